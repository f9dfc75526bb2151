# backend/stockbook/routes/system.py
"""
System health endpoint.

Reports database reachability and basic table counts.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, Transaction, InventoryItem
from stockbook.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "transactions": db.session.query(Transaction).count(),
            "inventory_items": db.session.query(InventoryItem).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database check failed
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200
    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, http_status
