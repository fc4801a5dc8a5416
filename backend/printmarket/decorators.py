# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .repositories import CustomizationRepository, ShopProfileRepository


def require_user(f):
    """
    Require a caller identity and expose it as g.user_id.

    Authentication happens upstream; the gateway forwards the authenticated
    user id in the X-User-Id header. Returns 401 when it is missing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function


def _is_operator(user_id: str) -> bool:
    return user_id in current_app.config.get("ESCROW_OPERATOR_USERS", ())


def _parties_of(req, user_id: str) -> set[str]:
    parties = set()
    if req.customer_id == user_id:
        parties.add("customer")
    if req.designer_id and req.designer_id == user_id:
        parties.add("designer")
    if req.printing_shop_id:
        shop = ShopProfileRepository.find_by_user_id(user_id)
        if shop and shop.id == req.printing_shop_id:
            parties.add("shop")
    return parties


def require_request_party(*parties):
    """
    Allow the caller only when they hold one of the named roles on the
    customization request in the route's request_id.

    Operators listed in ESCROW_OPERATOR_USERS pass for every request.
    Must be applied under @require_user.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = getattr(g, "user_id", None)
            if not user_id:
                return jsonify({"error": "Authentication required"}), 401

            if _is_operator(user_id):
                return f(*args, **kwargs)

            req = CustomizationRepository.find_by_id(kwargs.get("request_id"))
            if req is None:
                return jsonify({"error": f"Customization request {kwargs.get('request_id')} not found"}), 404

            if not _parties_of(req, user_id) & set(parties):
                current_app.logger.warning(
                    "Escrow access denied: user %s on request %s (needs %s)",
                    user_id, req.id, ", ".join(parties),
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_party": list(parties),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
