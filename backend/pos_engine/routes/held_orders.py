# Overview: Flask API routes for held orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..services import hold_service
from ..services.cart_service import build_cart
from ..services.pricing_service import Discount
from ..validation import ValidationFailure


held_orders_bp = Blueprint("held_orders", __name__, url_prefix="/api/held-orders")


@held_orders_bp.get("")
@require_identity
def list_held_orders_route():
    try:
        orders = hold_service.list_held_orders(g.tenant_id)
        return jsonify({"held_orders": [o.to_dict() for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list held orders")
        return jsonify({"error": "Internal server error"}), 500


@held_orders_bp.post("")
@require_identity
def hold_order_route():
    """
    Park a cart.

    Request body:
    {
        "register_id": "register_...",  (optional)
        "items": [{"product_id": "product_...", "quantity": "2"}],
        "customer_id": "cust-1",  (optional)
        "discount": {"type": "fixed", "value": "500"}  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        cart = build_cart(
            g.tenant_id,
            data.get("items"),
            register_id=data.get("register_id"),
            customer_id=data.get("customer_id"),
            discount=Discount.from_dict(data.get("discount")),
        )
        held = hold_service.hold_order(
            cart,
            tenant_id=g.tenant_id,
            cashier_user_id=g.user_id,
        )
        return jsonify({"held_order": held.to_dict()}), 201

    except ValidationFailure as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to hold order")
        return jsonify({"error": "Internal server error"}), 500


@held_orders_bp.post("/<held_order_id>/recall")
@require_identity
def recall_order_route(held_order_id: str):
    try:
        recalled = hold_service.recall_order(
            held_order_id, tenant_id=g.tenant_id, user_id=g.user_id
        )
        if recalled is None:
            return jsonify({"error": "Held order not found"}), 404
        return jsonify({"cart": recalled.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to recall held order")
        return jsonify({"error": "Internal server error"}), 500


@held_orders_bp.delete("/<held_order_id>")
@require_identity
def delete_held_order_route(held_order_id: str):
    try:
        deleted = hold_service.delete_held_order(
            held_order_id, tenant_id=g.tenant_id, user_id=g.user_id
        )
        if not deleted:
            return jsonify({"error": "Held order not found"}), 404
        return jsonify({"deleted": True}), 200

    except Exception:
        current_app.logger.exception("Failed to delete held order")
        return jsonify({"error": "Internal server error"}), 500
