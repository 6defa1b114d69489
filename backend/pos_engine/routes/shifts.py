# Overview: Flask API routes for register shifts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..services import shift_service
from ..validation import ShiftNotFound, ValidationFailure


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("")
@require_identity
def open_shift_route():
    """
    Request body:
    {
        "register_id": "register_...",
        "opening_cash_cents": 10000
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        register_id = data.get("register_id")
        if not register_id:
            return jsonify({"error": "register_id required"}), 400

        shift = shift_service.open_shift(
            g.tenant_id,
            register_id,
            g.user_id,
            data.get("opening_cash_cents", 0),
        )
        return jsonify({"shift": shift.to_dict()}), 201

    except ValidationFailure as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/<shift_id>/close")
@require_identity
def close_shift_route(shift_id: str):
    """
    Request body:
    {
        "closing_cash_cents": 15250
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        if "closing_cash_cents" not in data:
            return jsonify({"error": "closing_cash_cents required"}), 400

        shift = shift_service.close_shift(shift_id, g.tenant_id, data["closing_cash_cents"])
        return jsonify({"shift": shift.to_dict()}), 200

    except ShiftNotFound as e:
        return jsonify({"error": e.message, "details": e.details}), 404
    except ValidationFailure as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return jsonify({"error": "Internal server error"}), 500
