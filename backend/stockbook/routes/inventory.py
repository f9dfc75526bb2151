# backend/stockbook/routes/inventory.py
"""
Tracking item routes (one InventoryItem per unit received).

Items are created and shipped only by completing transactions; these
routes are read-only.
"""
from flask import Blueprint, request

from ..responses import csv_attachment
from ..services.export_service import export_stock_report_csv
from ..services.inventory_service import find_by_tracking_number, list_inventory_items, stock_summary
from ..validation import NotFoundError, ValidationError

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
def list_inventory_route():
    """
    Query params:
    - status: IN_STOCK | SHIPPED (optional)
    - product_id: str (optional)
    - search: substring over identifiers, partner, memo (optional)
    """
    try:
        items = list_inventory_items(
            status=request.args.get("status"),
            product_id=request.args.get("product_id"),
            search=request.args.get("search"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@inventory_bp.get("/tracking/<tracking_number>")
def tracking_lookup_route(tracking_number: str):
    try:
        items = find_by_tracking_number(tracking_number)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": items, "count": len(items)}


@inventory_bp.get("/summary/<product_id>")
def stock_summary_route(product_id: str):
    try:
        counts = stock_summary(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product_id": product_id, "by_status": counts, "total": sum(counts.values())}


@inventory_bp.get("/export")
def export_inventory_route():
    try:
        download = export_stock_report_csv(
            status=request.args.get("status"),
            search=request.args.get("search"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    return csv_attachment(download)
