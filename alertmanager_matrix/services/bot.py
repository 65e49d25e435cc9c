from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from alertmanager_matrix.clients.matrix import MatrixError, MessageCallback
from alertmanager_matrix.models.message import ChatMessage
from alertmanager_matrix.services.commands import CommandRouter


class ChatClient(Protocol):
    @property
    def user_id(self) -> str:
        raise NotImplementedError

    async def join_room(self, room: str) -> str:
        raise NotImplementedError

    async def send(self, room_id: str, message: ChatMessage) -> str:
        raise NotImplementedError

    def on_message(self, callback: MessageCallback) -> None:
        raise NotImplementedError

    async def initial_sync(self) -> None:
        raise NotImplementedError

    async def sync_forever(self) -> None:
        raise NotImplementedError


class AlertBot:
    """Answers chat commands in the joined rooms."""

    def __init__(
        self,
        chat: ChatClient,
        router: CommandRouter,
        rooms: Sequence[str] = (),
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._chat = chat
        self._router = router
        self._rooms = list(rooms)
        self._allowed_rooms: set[str] | None = None

    async def join_rooms(self) -> None:
        """Join the configured rooms; when any are configured, only they are served."""
        if not self._rooms:
            return
        allowed: set[str] = set()
        for room in self._rooms:
            room_id = await self._chat.join_room(room)
            self._logger.info("Joined room %s (%s)", room, room_id)
            allowed.add(room_id)
        self._allowed_rooms = allowed

    async def start(self) -> None:
        """Join rooms and register for messages sent from now on."""
        await self.join_rooms()
        await self._chat.initial_sync()
        self._chat.on_message(self.handle_message)

    async def listen(self) -> None:
        """Process messages until cancelled."""
        self._logger.info("Listening for commands as %s", self._chat.user_id)
        await self._chat.sync_forever()

    async def handle_message(self, room_id: str, sender: str, body: str) -> None:
        if not body or sender == self._chat.user_id or not self._router.is_command(body):
            return
        if self._allowed_rooms is not None and room_id not in self._allowed_rooms:
            self._logger.debug("Ignoring command from non configured room %s: %s", room_id, body)
            return

        try:
            message = await asyncio.to_thread(self._router.route, sender, body)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("Command failed: %s", body)
            message = ChatMessage.text(f"Command failed: {exc}")
        if message is None:
            return

        self._logger.info("Sending message to %s: %s", room_id, message.plain)
        try:
            await self._chat.send(room_id, message)
        except MatrixError as exc:
            self._logger.error("Error sending message: %s", exc)
