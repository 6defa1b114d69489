# Overview: Flask API routes for checkout and sale lookup; parses input and returns JSON responses.

"""
Checkout API Routes

DESIGN:
- The request body carries the whole cart; a fresh Cart is built per request
- Stock, quota and payment checks happen in checkout_service
- Sales are read-only once created
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..services import checkout_service, refund_service, tenant_service
from ..services.cart_service import build_cart
from ..services.pricing_service import Discount
from ..validation import OrderLimitExceeded, PosError, SaleNotFound, ValidationFailure


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api")


@checkout_bp.post("/checkout")
@require_identity
def checkout_route():
    """
    Finalize a sale.

    Request body:
    {
        "register_id": "register_...",
        "shift_id": "shift_...",  (optional)
        "items": [{"product_id": "product_...", "quantity": "1"}],
        "discount": {"type": "percentage", "value": "10", "reason": "..."},  (optional)
        "customer_id": "cust-1",  (optional)
        "payment_method": "CASH",
        "amount_tendered_cents": 2000  (optional)
    }

    Returns:
        201: Sale, receipt and payment created
        400: Invalid input or insufficient stock
        409: Order limit reached
    """
    try:
        data = request.get_json(silent=True) or {}

        register_id = data.get("register_id")
        if not register_id:
            return jsonify({"error": "register_id required"}), 400

        cart = build_cart(
            g.tenant_id,
            data.get("items"),
            register_id=register_id,
            customer_id=data.get("customer_id"),
            discount=Discount.from_dict(data.get("discount")),
        )
        context = tenant_service.build_checkout_context(
            tenant_id=g.tenant_id,
            register_id=register_id,
            cashier_user_id=g.user_id,
            shift_id=data.get("shift_id"),
        )
        result = checkout_service.checkout(
            cart,
            context=context,
            payment_method=data.get("payment_method", "CASH"),
            amount_tendered_cents=data.get("amount_tendered_cents"),
        )
        return jsonify(result.to_dict()), 201

    except OrderLimitExceeded as e:
        return jsonify({"error": e.message, "details": e.details}), 409
    except ValidationFailure as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500


@checkout_bp.get("/sales")
@require_identity
def list_sales_route():
    """List recent sales, newest first. Optional ?shift_id= filter."""
    try:
        sales = checkout_service.list_sales(g.tenant_id, shift_id=request.args.get("shift_id"))
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200

    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@checkout_bp.get("/sales/<sale_id>")
@require_identity
def get_sale_route(sale_id: str):
    try:
        sale = checkout_service.get_sale(g.tenant_id, sale_id)
        if not sale:
            return jsonify({"error": "Sale not found"}), 404

        data = sale.to_dict(include_lines=True)
        data["receipt"] = sale.receipt.to_dict() if sale.receipt else None
        data["payments"] = [p.to_dict() for p in sale.payments]
        data["refund_status"] = refund_service.refund_status(sale.id)
        return jsonify({"sale": data}), 200

    except PosError as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@checkout_bp.get("/sales/<sale_id>/refunds")
@require_identity
def list_sale_refunds_route(sale_id: str):
    try:
        sale = checkout_service.get_sale(g.tenant_id, sale_id)
        if not sale:
            raise SaleNotFound("Sale not found")

        refunds = refund_service.list_refunds(g.tenant_id, sale_id=sale.id)
        return jsonify({
            "refunds": [r.to_dict() for r in refunds],
            "refund_status": refund_service.refund_status(sale.id),
            "refunded_quantities": {
                k: str(v) for k, v in refund_service.refunded_quantities(sale.id).items()
            },
        }), 200

    except SaleNotFound as e:
        return jsonify({"error": e.message, "details": e.details}), 404
    except Exception:
        current_app.logger.exception("Failed to list refunds")
        return jsonify({"error": "Internal server error"}), 500
