from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from alertmanager_matrix.clients.alertmanager import AlertmanagerClient, AlertmanagerError
from alertmanager_matrix.core.dependencies import get_alertmanager_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    alertmanager: AlertmanagerClient = Depends(get_alertmanager_client),  # noqa: B008
) -> dict[str, str]:
    """Ready once Alertmanager answers its status endpoint."""
    try:
        status = await asyncio.to_thread(alertmanager.status)
    except AlertmanagerError as exc:
        logger.warning("Alertmanager not reachable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    cluster = status.get("cluster")
    cluster_status = cluster.get("status", "") if isinstance(cluster, dict) else ""
    return {"status": "ok", "alertmanager": str(cluster_status or "up")}


@router.get("/")
def root() -> dict[str, str]:
    return {"status": "ok", "message": "alertmanager-matrix is running"}
