# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import reporting_service
from ..validation import ValidationError

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/net-stock")
def net_stock_route():
    return reporting_service.net_stock(search=request.args.get("search"))


@reports_bp.get("/profit")
def profit_route():
    """
    Query params:
    - date_from, date_to: YYYY-MM-DD, inclusive, both optional
    """
    try:
        return reporting_service.profit_summary(
            date_from=request.args.get("date_from") or None,
            date_to=request.args.get("date_to") or None,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@reports_bp.get("/dashboard")
def dashboard_route():
    return reporting_service.dashboard()
