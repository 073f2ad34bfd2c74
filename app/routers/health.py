# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + primary DB + secondary (mirror) store.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_event_bus, get_secondary

router = APIRouter()


@router.get("/health", summary="System health check")
async def health_check(db: Session = Depends(get_db), secondary=Depends(get_secondary),
                       bus=Depends(get_event_bus)):
    """
    Returns:
    - Backend status
    - Primary database connectivity (degraded when it fails)
    - Secondary store: ok | disabled | unreachable | error (informational only)
    - Connected event-stream subscribers
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "secondary": "disabled",
        "subscribers": bus.subscriber_count if bus is not None else 0,
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if secondary is not None:
        result["secondary"] = await secondary.ping()

    return result
