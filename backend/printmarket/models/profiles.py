from __future__ import annotations

from ..extensions import db
from printmarket.time_utils import to_utc_z


# Profile and catalog tables are owned by other parts of the marketplace.
# Only the columns the settlement engine reads are mapped here.


class DesignerProfile(db.Model):
    __tablename__ = "designer_profiles"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "user_id": self.user_id, "display_name": self.display_name}


class ShopProfile(db.Model):
    __tablename__ = "shop_profiles"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    shop_name = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "user_id": self.user_id, "shop_name": self.shop_name}


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "created_at": to_utc_z(self.created_at)}
