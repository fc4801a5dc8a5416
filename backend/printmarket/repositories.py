# Overview: Read collaborators for the settlement engine; returns immutable snapshots.

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from flask import current_app
from sqlalchemy.orm import selectinload

from .extensions import db
from .models import (
    CustomizationRequest,
    DesignerEarning,
    DesignerProfile,
    Order,
    Product,
    ShopProfile,
)
from .records import (
    CustomizationSnapshot,
    EarningSnapshot,
    OrderSnapshot,
    ProductSnapshot,
    ProfileSnapshot,
)
from .time_utils import utcnow
from .validation import CUSTOMIZATION_PATCH_POLICY, validate_payload


CUSTOMIZATION_FILTER_FIELDS = {
    "status",
    "designer_id",
    "customer_id",
    "printing_shop_id",
    "escrow_status",
    "payment_status",
}


class CustomizationRepository:
    @staticmethod
    def _query():
        return db.session.query(CustomizationRequest).options(
            selectinload(CustomizationRequest.payments)
        )

    @classmethod
    def find_by_id(cls, request_id) -> Optional[CustomizationSnapshot]:
        req = cls._query().filter(CustomizationRequest.id == request_id).first()
        return CustomizationSnapshot.from_model(req) if req else None

    @classmethod
    def find_by_designer_id(cls, designer_id: str) -> list[CustomizationSnapshot]:
        rows = (
            cls._query()
            .filter(CustomizationRequest.designer_id == designer_id)
            .order_by(CustomizationRequest.id)
            .all()
        )
        return [CustomizationSnapshot.from_model(r) for r in rows]

    @classmethod
    def find_by_customer_id(cls, customer_id: str) -> list[CustomizationSnapshot]:
        rows = (
            cls._query()
            .filter(CustomizationRequest.customer_id == customer_id)
            .order_by(CustomizationRequest.id)
            .all()
        )
        return [CustomizationSnapshot.from_model(r) for r in rows]

    @classmethod
    def find_all(cls, filters: dict | None = None) -> list[CustomizationSnapshot]:
        """
        Equality filters over request columns.

        Supported keys: status, designer_id, customer_id, printing_shop_id,
        escrow_status, payment_status. A list value matches any of its members.
        """
        query = cls._query()
        for key, value in (filters or {}).items():
            if key not in CUSTOMIZATION_FILTER_FIELDS:
                raise ValueError(f"Unsupported filter: {key}")
            column = getattr(CustomizationRequest, key)
            if isinstance(value, (list, tuple, set)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        rows = query.order_by(CustomizationRequest.id).all()
        return [CustomizationSnapshot.from_model(r) for r in rows]

    @classmethod
    def update(cls, request_id, patch: dict) -> Optional[CustomizationSnapshot]:
        """Apply a validated descriptive patch; returns None when the request is missing."""
        clean = validate_payload(
            model=CustomizationRequest,
            payload=patch,
            policy=CUSTOMIZATION_PATCH_POLICY,
            partial=True,
        )
        req = db.session.get(CustomizationRequest, request_id)
        if req is None:
            return None
        for key, value in clean.items():
            setattr(req, key, value)
        req.updated_at = utcnow()
        db.session.commit()
        return CustomizationSnapshot.from_model(req)


class OrderRepository:
    @staticmethod
    def _query():
        return db.session.query(Order).options(selectinload(Order.items))

    @classmethod
    def find_by_business_owner(cls, user_id: str) -> list[OrderSnapshot]:
        rows = cls._query().filter(Order.business_owner_id == user_id).order_by(Order.created_at).all()
        return [OrderSnapshot.from_model(o) for o in rows]

    @classmethod
    def find_by_customer(cls, user_id: str) -> list[OrderSnapshot]:
        rows = cls._query().filter(Order.customer_id == user_id).order_by(Order.created_at).all()
        return [OrderSnapshot.from_model(o) for o in rows]

    @classmethod
    def find_by_id(cls, order_id: str) -> Optional[OrderSnapshot]:
        order = cls._query().filter(Order.id == order_id).first()
        return OrderSnapshot.from_model(order) if order else None


class ShopProfileRepository:
    @staticmethod
    def find_by_user_id(user_id: str) -> Optional[ProfileSnapshot]:
        shop = db.session.query(ShopProfile).filter_by(user_id=user_id).first()
        if shop is None:
            return None
        return ProfileSnapshot(id=shop.id, user_id=shop.user_id, name=shop.shop_name)


class DesignerProfileRepository:
    @staticmethod
    def find_by_user_id(user_id: str) -> Optional[ProfileSnapshot]:
        profile = db.session.query(DesignerProfile).filter_by(user_id=user_id).first()
        if profile is None:
            return None
        return ProfileSnapshot(id=profile.id, user_id=profile.user_id, name=profile.display_name)


class DesignerEarningsRepository:
    @staticmethod
    def find_by_designer_id(profile_id: str) -> list[EarningSnapshot]:
        rows = (
            db.session.query(DesignerEarning)
            .filter(DesignerEarning.designer_id == profile_id)
            .order_by(DesignerEarning.id)
            .all()
        )
        return [EarningSnapshot.from_model(e) for e in rows]


class ProductRepository:
    @staticmethod
    def find_by_id(product_id: str) -> Optional[ProductSnapshot]:
        product = db.session.get(Product, product_id)
        if product is None:
            return None
        return ProductSnapshot(id=product.id, name=product.name)


def run_reads(*calls: Callable[[], Any]) -> list[Any]:
    """
    Run mutually independent zero-argument reads and return results in call order.

    With LEDGER_PARALLEL_READS on, each call runs on a worker thread inside its
    own app context and its scoped session is removed afterwards. Exceptions
    propagate from the first failing call in order; callers that need
    best-effort semantics wrap each call themselves.
    """
    if not calls:
        return []

    app = current_app._get_current_object()
    parallel = app.config.get("LEDGER_PARALLEL_READS", True) and len(calls) > 1
    if not parallel:
        return [call() for call in calls]

    def _worker(call):
        with app.app_context():
            try:
                return call()
            finally:
                db.session.remove()

    workers = max(1, min(int(app.config.get("LEDGER_READ_WORKERS", 4)), len(calls)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_worker, call) for call in calls]
        return [future.result() for future in futures]
