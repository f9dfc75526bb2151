# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/stockbook/routes/products.py
"""
Product management routes.

- CRUD over the product master
- barcode lookup for scanners (internal barcode, then product code)
- CSV import (multipart "file" or raw body) and CSV export
"""
from flask import Blueprint, current_app, request

from ..responses import csv_attachment, read_csv_upload
from ..services import products_service
from ..services.product_import_service import export_products_csv, import_products_csv
from ..validation import ConflictError, NotFoundError, ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """
    List products.

    Query params:
    - search: str (optional) - substring over name, codes, supplier, memo
    - supplier: str (optional) - exact supplier
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        search=request.args.get("search"),
        supplier=request.args.get("supplier"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        created = products_service.create_product(payload=payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500
    return created, 201


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        return products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/barcode/<code>")
def barcode_lookup_route(code: str):
    try:
        return products_service.find_by_barcode(code)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.put("/<product_id>")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return products_service.update_product(product_id, payload=payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    """
    Delete a product.

    Returns 409 while transactions or tracking items still reference it.
    """
    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"deleted": True, "id": product_id}


@products_bp.post("/import")
def import_products_route():
    try:
        count = import_products_csv(read_csv_upload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to import products")
        return {"error": "Internal server error"}, 500
    return {"count": count, "level": "success", "message": f"Imported {count} products"}, 201


@products_bp.get("/export")
def export_products_route():
    return csv_attachment(export_products_csv())
