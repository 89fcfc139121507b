"""SLA cron endpoint — called by an external scheduler once a minute."""

from __future__ import annotations

import asyncio
import hmac
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from dispatch.application.use_cases.sla_monitor import SlaMonitorUseCase
from dispatch.config import settings
from dispatch.infrastructure.api.dependencies import get_cron_secret, get_sla_monitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["sla"])


@router.post("/sla-check")
async def sla_check(
    request: Request,
    x_cron_secret: str | None = Header(default=None),
    cron_secret: str = Depends(get_cron_secret),
    monitor: SlaMonitorUseCase = Depends(get_sla_monitor),
):
    """Expire overdue assignments. Safe to call repeatedly."""
    if not cron_secret or not hmac.compare_digest(
        (x_cron_secret or "").encode(), cron_secret.encode()
    ):
        logger.warning(
            "Unauthorized SLA check attempt from %s",
            request.client.host if request.client else "unknown",
        )
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    started = time.monotonic()
    try:
        report = await monitor.sweep(settings.sla_sweep_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error("SLA check timed out after %ss", settings.sla_sweep_timeout_seconds)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "SLA check timed out",
                "timestamp": _now_iso(),
            },
        )
    duration_ms = int((time.monotonic() - started) * 1000)

    logger.info("SLA check completed: %d unassigned in %dms", report.expired, duration_ms)
    return {
        "success": True,
        "unassignedCount": report.expired,
        "candidates": report.candidates,
        "skipped": report.skipped,
        "failed": report.failed,
        "notificationsFailed": report.notifications_failed,
        "timestamp": _now_iso(),
        "durationMs": duration_ms,
    }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
