"""Health check endpoints"""
import time
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from membership.database import get_db

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time
STARTUP_TIME = time.time()


@router.get("")
def health_check():
    """Returns 200 if the service is running"""
    return {
        "status": "healthy",
        "service": "alumni-membership",
        "version": "1.0.0",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Readiness check - verifies the database answers

    Returns 200 if ready to serve traffic, 503 if not ready
    """
    checks = {"database": False, "database_latency_ms": None}

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        checks["database"] = True
        checks["database_latency_ms"] = round((time.time() - start) * 1000, 2)
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "checks": checks, "message": f"Database check failed: {e}"},
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/live")
def liveness_check():
    """Liveness probe: 200 while the process is alive"""
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": datetime.utcnow().isoformat()
    }
