# Overview: Flask API routes for transactions; parses input and returns JSON responses.

# backend/stockbook/routes/transactions.py
"""
Transaction routes.

Lifecycle:
- POST /api/transactions creates a transaction (SCHEDULED unless the body asks
  for COMPLETED, in which case it is reconciled immediately)
- PUT edits a SCHEDULED transaction and replaces all of its items
- POST /<id>/complete and /<id>/revert move the status and run the ledger
- POST /<id>/duplicate copies into a new SCHEDULED transaction dated today

Request body for create/edit:
    {"type": "IN", "date": "2024-01-01", ..., "items": [{"product_id", "quantity", "price"}]}

Status responses include a "reconcile" block listing skipped lines and
FIFO shortfalls.
"""
from flask import Blueprint, current_app, request

from ..responses import csv_attachment, read_csv_upload
from ..services import transactions_service
from ..services.export_service import export_template_csv, export_transactions_csv
from ..services.transaction_import_service import TransactionImportError, import_transactions_csv
from ..validation import ConflictError, NotFoundError, ValidationError

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _split_body() -> tuple[dict, list]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(data)
    items = payload.pop("items", [])
    return payload, items


@transactions_bp.get("")
def list_transactions_route():
    """
    List transactions.

    Query params:
    - status: SCHEDULED | COMPLETED (optional)
    - type: IN | OUT (optional)
    - category, partner_name: exact filters (optional)
    - search: substring over partner, identifiers, customer, memo (optional)
    - sort: date_desc (default) | date_asc | amount_desc | amount_asc | partner | category
    - page / per_page: pagination (optional)
    """
    try:
        return transactions_service.list_transactions(
            status=request.args.get("status"),
            tx_type=request.args.get("type"),
            category=request.args.get("category"),
            partner_name=request.args.get("partner_name"),
            search=request.args.get("search"),
            sort=request.args.get("sort"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@transactions_bp.post("")
def create_transaction_route():
    try:
        payload, items = _split_body()
        created = transactions_service.create_transaction(payload, items)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return {"error": "Internal server error"}, 500
    return created, 201


@transactions_bp.get("/<tx_id>")
def get_transaction_route(tx_id: str):
    try:
        return transactions_service.get_transaction(tx_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@transactions_bp.put("/<tx_id>")
def update_transaction_route(tx_id: str):
    try:
        payload, items = _split_body()
        return transactions_service.update_transaction(tx_id, payload, items)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update transaction")
        return {"error": "Internal server error"}, 500


@transactions_bp.delete("/<tx_id>")
def delete_transaction_route(tx_id: str):
    try:
        transactions_service.delete_transaction(tx_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"deleted": True, "id": tx_id}


@transactions_bp.post("/<tx_id>/complete")
def complete_transaction_route(tx_id: str):
    try:
        return transactions_service.complete_transaction(tx_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to complete transaction")
        return {"error": "Internal server error"}, 500


@transactions_bp.post("/<tx_id>/revert")
def revert_transaction_route(tx_id: str):
    try:
        return transactions_service.revert_transaction(tx_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to revert transaction")
        return {"error": "Internal server error"}, 500


@transactions_bp.post("/<tx_id>/duplicate")
def duplicate_transaction_route(tx_id: str):
    try:
        return transactions_service.duplicate_transaction(tx_id), 201
    except NotFoundError as e:
        return {"error": str(e)}, 404


@transactions_bp.post("/bulk-delete")
def bulk_delete_route():
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        return {"error": "ids must be a list of transaction ids"}, 400
    deleted = transactions_service.bulk_delete_transactions(ids)
    return {"deleted": deleted}


@transactions_bp.post("/import")
def import_transactions_route():
    """
    Import transactions from CSV.

    201 with level "success", or level "warning" plus the skipped lines when
    some products could not be resolved. 400 when nothing could be imported.
    """
    try:
        result = import_transactions_csv(read_csv_upload())
    except TransactionImportError as e:
        return {"error": str(e), "skipped": [s.to_dict() for s in e.skipped]}, 400
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to import transactions")
        return {"error": "Internal server error"}, 500
    return result.to_dict(), 201


@transactions_bp.get("/export")
def export_transactions_route():
    return csv_attachment(export_transactions_csv())


@transactions_bp.get("/template")
def template_route():
    return csv_attachment(export_template_csv())
