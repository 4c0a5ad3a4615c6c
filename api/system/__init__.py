"""System health endpoint."""

import logging
import time
from typing import Optional

import psutil
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

STARTED_AT = time.time()


class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    uptime: float
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    ledger_status: str
    ledger_backend: Optional[str] = None


@router.get("/health")
async def get_system_health(request: Request) -> SystemHealth:
    """Get system health status.

    Returns:
        SystemHealth object containing system metrics
    """
    try:
        cpu_percent = psutil.cpu_percent()
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')

        ledger = getattr(request.app.state, 'ledger', None)
        if ledger is None:
            ledger_status = "unavailable"
        elif await ledger.ping():
            ledger_status = "connected"
        else:
            ledger_status = "error"

        return SystemHealth(
            status="healthy" if ledger_status == "connected" else "degraded",
            uptime=time.time() - STARTED_AT,
            cpu_usage=cpu_percent,
            memory_usage=memory.percent,
            disk_usage=disk.percent,
            ledger_status=ledger_status,
            ledger_backend=type(ledger).__name__ if ledger is not None else None
        )

    except Exception as e:
        logger.error(f"Error getting system health: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error getting system health: {str(e)}"
        )
