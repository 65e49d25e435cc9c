from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from alertmanager_matrix.clients.matrix import MatrixClient, MatrixError
from alertmanager_matrix.core.config import Settings
from alertmanager_matrix.core.dependencies import get_formatter, get_matrix_client, get_settings
from alertmanager_matrix.schemas.alert import AlertmanagerMessage
from alertmanager_matrix.services.formatting import Formatter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/{room_id}")
async def relay_alerts(
    room_id: str,
    request: Request,
    settings: Settings = Depends(get_settings),  # noqa: B008
    formatter: Formatter = Depends(get_formatter),  # noqa: B008
    matrix: MatrixClient = Depends(get_matrix_client),  # noqa: B008
) -> dict[str, str]:
    """Relay an Alertmanager webhook message to the given Matrix room."""
    if not room_id.startswith("!"):
        logger.warning("Invalid room ID: %r", room_id)
        raise HTTPException(status_code=400, detail=f"invalid room ID: {room_id!r}")

    try:
        message = AlertmanagerMessage.model_validate_json(await request.body())
    except ValidationError as exc:
        logger.warning("Error parsing message: %s", exc)
        raise HTTPException(status_code=400, detail="invalid Alertmanager message") from exc

    plain, html = formatter.format_alerts(message.alerts, settings.show_labels)
    logger.info("Sending message to %s: %s", room_id, plain)
    try:
        await matrix.send_html(room_id, plain, html)
    except MatrixError as exc:
        logger.error("Error sending message: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"status": "ok"}
