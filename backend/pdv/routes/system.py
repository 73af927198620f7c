# backend/pdv/routes/system.py
"""
System health endpoint.

Reports ledger store connectivity and the pending maintenance backlog
(recurring entries and overdue financial transactions).
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Product, Sale, FinancialTransaction, RecurringEntry
from ..models.finance import FIN_PENDING
from pdv.time_utils import utcnow, today

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        sale_count = db.session.query(Sale).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "sales": sale_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_maintenance_health() -> dict:
    """
    Pending transactions past due mean the maintenance timer has not run today.
    """
    start_time = time.time()
    try:
        stale = db.session.query(FinancialTransaction).filter(
            FinancialTransaction.status == FIN_PENDING,
            FinancialTransaction.due_date < today(),
        ).count()
        active_recurring = db.session.query(RecurringEntry).filter(RecurringEntry.is_active.is_(True)).count()

        elapsed_ms = (time.time() - start_time) * 1000
        result = {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_recurring_entries": active_recurring,
                "pending_past_due": stale,
            }
        }
        if stale:
            result["status"] = "degraded"
            result["warning"] = f"{stale} pending transactions past due; run `flask maintenance run`"
        return result
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Maintenance health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Maintenance check error"
        }


@system_bp.get("/health")
@system_bp.get("/api/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: ledger store unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    maintenance_health = check_maintenance_health()

    all_checks = [database_health, maintenance_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "maintenance": maintenance_health,
        }
    }

    return jsonify(response), http_status
