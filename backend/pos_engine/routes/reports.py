# Overview: Flask API routes for reports; returns JSON summaries.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_identity
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales-summary")
@require_identity
def sales_summary_route():
    try:
        summary = reporting_service.sales_summary(g.tenant_id)
        return jsonify({"summary": summary}), 200
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "Internal server error"}), 500
