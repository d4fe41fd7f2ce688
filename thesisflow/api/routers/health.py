"""Health check endpoints for ThesisFlow.

Provides Kubernetes-compatible health probes:
- /health: Basic health check
- /health/live: Liveness probe (is the app running?)
- /health/ready: Readiness probe (is the app ready to serve traffic?)

Readiness checks database connectivity and free space on the upload volume.
"""

from datetime import datetime
from typing import Any, Dict

import psutil
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thesisflow import __version__
from thesisflow.api.deps import get_blob_store, get_db
from thesisflow.common.logger import get_logger
from thesisflow.services.storage import LocalBlobStore

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

# Thresholds
DISK_WARNING_PERCENT = 85
DISK_CRITICAL_PERCENT = 95


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity."""
    try:
        db.execute(text("SELECT 1")).fetchone()
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


def check_disk(path: str) -> Dict[str, Any]:
    """Check free space on the volume holding ``path``."""
    try:
        disk = psutil.disk_usage(path)
    except OSError as e:
        return {"status": "unknown", "error": str(e)}

    percent_used = disk.percent
    state = "healthy"
    if percent_used >= DISK_CRITICAL_PERCENT:
        state = "critical"
    elif percent_used >= DISK_WARNING_PERCENT:
        state = "warning"

    return {
        "status": state,
        "total_gb": round(disk.total / (1024**3), 2),
        "free_gb": round(disk.free / (1024**3), 2),
        "percent_used": percent_used,
    }


@router.get("/health")
async def health_check():
    """Basic health check. Returns 200 if the application is running."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/live")
async def liveness_probe():
    """
    Kubernetes liveness probe.

    Fast and independent of external services.
    """
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "alive",
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


@router.get("/health/ready")
async def readiness_probe(
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """
    Kubernetes readiness probe.

    Fails (503) when the database is unreachable or the upload volume is
    critically full.
    """
    checks = {
        "database": check_database(db),
        "disk": check_disk(str(blob_store.upload_dir)),
    }

    failed = [name for name, check in checks.items() if check["status"] in ("unhealthy", "critical")]

    if failed:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": checks,
                "failed": failed,
                "timestamp": datetime.utcnow().isoformat(),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
