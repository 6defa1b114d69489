# Overview: Flask API routes for refunds; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..services import refund_service
from ..validation import SaleNotFound, ValidationFailure


refunds_bp = Blueprint("refunds", __name__, url_prefix="/api/refunds")


@refunds_bp.post("")
@require_identity
def create_refund_route():
    """
    Refund items of a completed sale and restore their stock.

    Request body:
    {
        "sale_id": "sale_...",
        "items": [{"product_id": "product_...", "quantity": "1"}],
        "reason": "Damaged",
        "register_id": "register_...",  (optional)
        "shift_id": "shift_..."  (optional)
    }

    Returns:
        201: Refund created
        400: Invalid items or quantity beyond what is left to refund
        404: Sale not found
    """
    try:
        data = request.get_json(silent=True) or {}

        sale_id = data.get("sale_id")
        if not sale_id:
            return jsonify({"error": "sale_id required"}), 400

        refund_doc = refund_service.refund(
            sale_id,
            data.get("items") or [],
            data.get("reason") or "",
            g.user_id,
            g.tenant_id,
            register_id=data.get("register_id"),
            shift_id=data.get("shift_id"),
        )
        return jsonify({
            "refund": refund_doc.to_dict(),
            "refund_status": refund_service.refund_status(sale_id),
        }), 201

    except SaleNotFound as e:
        return jsonify({"error": e.message, "details": e.details}), 404
    except ValidationFailure as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to process refund")
        return jsonify({"error": "Internal server error"}), 500
