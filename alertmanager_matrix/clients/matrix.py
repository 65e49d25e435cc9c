from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from nio import (
    AsyncClient,
    JoinError,
    MatrixRoom,
    RoomMessageText,
    RoomSendError,
    SyncError,
    WhoamiError,
)

from alertmanager_matrix.core.config import Settings
from alertmanager_matrix.models.message import ChatMessage

SYNC_TIMEOUT_MS = 30000

MessageCallback = Callable[[str, str, str], Awaitable[None]]


class MatrixError(Exception):
    pass


class MatrixClient:
    """Thin wrapper around the matrix-nio client used by the bot."""

    def __init__(self, settings: Settings, client: AsyncClient | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._message_type = settings.message_type
        self._client = client or AsyncClient(settings.homeserver, settings.user_id)
        self._client.user_id = settings.user_id
        self._client.access_token = settings.token

    @property
    def user_id(self) -> str:
        return self._client.user_id

    async def verify(self) -> None:
        """Check that the homeserver accepts the configured token."""
        response = await self._client.whoami()
        if isinstance(response, WhoamiError):
            raise MatrixError(f"cannot connect to homeserver: {response.message}")

    async def join_room(self, room: str) -> str:
        """Join a room by ID or alias and return the room ID."""
        response = await self._client.join(room)
        if isinstance(response, JoinError):
            raise MatrixError(f"cannot join room {room!r}: {response.message}")
        return response.room_id

    async def send(self, room_id: str, message: ChatMessage) -> str:
        response = await self._client.room_send(
            room_id,
            message_type="m.room.message",
            content=message.to_content(self._message_type),
            ignore_unverified_devices=True,
        )
        if isinstance(response, RoomSendError):
            raise MatrixError(f"cannot send message to {room_id}: {response.message}")
        return response.event_id

    async def send_text(self, room_id: str, plain: str) -> str:
        return await self.send(room_id, ChatMessage.text(plain))

    async def send_html(self, room_id: str, plain: str, html: str) -> str:
        return await self.send(room_id, ChatMessage.from_html(plain, html))

    async def send_markdown(self, room_id: str, md: str) -> str:
        return await self.send(room_id, ChatMessage.from_markdown(md))

    def on_message(self, callback: MessageCallback) -> None:
        """Register ``callback(room_id, sender, body)`` for text messages."""

        async def _handle(room: MatrixRoom, event: RoomMessageText) -> None:
            await callback(room.room_id, event.sender, event.body)

        self._client.add_event_callback(_handle, RoomMessageText)

    async def initial_sync(self) -> None:
        """Sync once so that callbacks only see messages sent from now on."""
        response = await self._client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if isinstance(response, SyncError):
            raise MatrixError(f"initial sync failed: {response.message}")

    async def sync_forever(self) -> None:
        await self._client.sync_forever(timeout=SYNC_TIMEOUT_MS)

    async def close(self) -> None:
        await self._client.close()
