from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Protocol

from alertmanager_matrix.clients.alertmanager import AlertmanagerError
from alertmanager_matrix.core.duration import parse_duration
from alertmanager_matrix.models.matcher import (
    InvalidMatchersError,
    is_fingerprint,
    matchers_from_labels,
    parse_matchers,
)
from alertmanager_matrix.models.message import ChatMessage
from alertmanager_matrix.schemas.alert import Alert
from alertmanager_matrix.schemas.silence import Silence
from alertmanager_matrix.services.formatting import Formatter

SILENCE_COMMENT = "Created from Matrix"


class AlertmanagerAPI(Protocol):
    def get_alerts(self, silenced: bool) -> list[Alert]:
        raise NotImplementedError

    def get_alert(self, fingerprint: str) -> Alert:
        raise NotImplementedError

    def get_silences(self) -> list[Silence]:
        raise NotImplementedError

    def create_silence(self, silence: Silence) -> str:
        raise NotImplementedError

    def delete_silence(self, silence_id: str) -> None:
        raise NotImplementedError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertService:
    """Chat-facing actions on Alertmanager alerts and silences."""

    def __init__(
        self,
        alertmanager: AlertmanagerAPI,
        formatter: Formatter,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._alertmanager = alertmanager
        self._formatter = formatter
        self._clock = clock

    def alerts(self, silenced: bool, labels: bool) -> ChatMessage:
        """Return active alerts, optionally including silenced ones."""
        try:
            alerts = self._alertmanager.get_alerts(silenced)
        except AlertmanagerError as exc:
            return ChatMessage.text(str(exc))
        if not alerts:
            return ChatMessage.text("No alerts")
        plain, html = self._formatter.format_alerts(alerts, labels)
        return ChatMessage.from_html(plain, html)

    def silences(self, state: str) -> str:
        """Return a Markdown list of the silences in ``state``."""
        try:
            silences = self._alertmanager.get_silences()
        except AlertmanagerError as exc:
            return f"Alertmanager error: {exc}"
        md = self._formatter.format_silences(silences, state)
        if not md:
            return f"No {state} silences"
        return md

    def new_silence(self, author: str, duration: str, matchers: str) -> str:
        """Create a silence from a matcher expression or an alert fingerprint."""
        try:
            length = parse_duration(duration)
        except ValueError as exc:
            return str(exc)

        now = self._clock()
        silence = Silence(
            starts_at=now,
            ends_at=now + length,
            created_by=author,
            comment=SILENCE_COMMENT,
        )

        if is_fingerprint(matchers):
            try:
                alert = self._alertmanager.get_alert(matchers)
            except AlertmanagerError as exc:
                return str(exc)
            silence.set_matchers(matchers_from_labels(alert.labels))
        else:
            try:
                silence.set_matchers(parse_matchers(matchers))
            except InvalidMatchersError as exc:
                return f"Invalid matchers: {exc}"

        try:
            silence_id = self._alertmanager.create_silence(silence)
        except AlertmanagerError as exc:
            return f"Error creating silence: {exc}"
        self._logger.info("Silence %s created by %s", silence_id, author)
        return f"Silence created with ID *{silence_id}*"

    def delete_silences(self, ids: Sequence[str]) -> str:
        """Expire each silence; failures are reported together and do not stop the rest."""
        if not ids:
            return "No silence IDs provided"

        errors: list[str] = []
        for silence_id in ids:
            try:
                self._alertmanager.delete_silence(silence_id)
            except AlertmanagerError as exc:
                errors.append(f"Error deleting {silence_id}: {exc}")

        if errors:
            return "\n\n".join(errors)
        return f"Silences deleted: *{', '.join(ids)}*"
