from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from alertmanager_matrix.core.config import Settings
from alertmanager_matrix.schemas.alert import Alert
from alertmanager_matrix.schemas.silence import Silence

DEFAULT_BASE_PATH = "/api/v2"

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class AlertmanagerError(Exception):
    pass


class AlertNotFoundError(AlertmanagerError):
    pass


class AlertmanagerClient:
    """Blocking client for the Alertmanager v2 API."""

    def __init__(self, settings: Settings) -> None:
        self._logger = logging.getLogger(__name__)
        self._base_url = normalize_base_url(settings.alertmanager_url)
        self._timeout_seconds = settings.alertmanager_timeout_seconds
        if not self._base_url:
            raise ValueError(f"invalid Alertmanager URL: {settings.alertmanager_url!r}")

    def status(self) -> dict[str, object]:
        payload = self._request_json("GET", "/status")
        if not isinstance(payload, dict):
            raise AlertmanagerError("unexpected Alertmanager status payload")
        return payload

    def get_alerts(self, silenced: bool) -> list[Alert]:
        """Retrieve active alerts, including silenced ones when requested."""
        params = {
            "active": "true",
            "inhibited": "false",
            "silenced": "true" if silenced else "false",
            "unprocessed": "true",
        }
        try:
            payload = self._request_json("GET", "/alerts", params=params)
        except AlertmanagerError as exc:
            raise AlertmanagerError(f"error retrieving alerts from Alertmanager: {exc}") from exc
        return [_parse(Alert, item) for item in _as_list(payload)]

    def get_alert(self, fingerprint: str) -> Alert:
        for alert in self.get_alerts(silenced=True):
            if alert.fingerprint == fingerprint:
                return alert
        raise AlertNotFoundError(f"no alert with fingerprint {fingerprint!r}")

    def get_silences(self) -> list[Silence]:
        try:
            payload = self._request_json("GET", "/silences")
        except AlertmanagerError as exc:
            raise AlertmanagerError(f"error retrieving silences: {exc}") from exc
        return [_parse(Silence, item) for item in _as_list(payload)]

    def create_silence(self, silence: Silence) -> str:
        """Create the silence and return the ID assigned by Alertmanager."""
        payload = self._request_json("POST", "/silences", body=silence.to_postable())
        if not isinstance(payload, dict) or not payload.get("silenceID"):
            raise AlertmanagerError("no silence ID in response")
        return str(payload["silenceID"])

    def delete_silence(self, silence_id: str) -> None:
        self._request_json("DELETE", f"/silence/{urllib.parse.quote(silence_id, safe='')}")

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, object] | None = None,
    ) -> object:
        url = f"{self._base_url}{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"

        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout_seconds) as response:
                payload = response.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace").strip()
            self._logger.warning("Alertmanager HTTP error %s for %s %s", exc.code, method, url)
            raise AlertmanagerError(f"HTTP {exc.code}: {detail[:300] or exc.reason}") from exc
        except (urllib.error.URLError, OSError) as exc:
            self._logger.warning("Failed to reach Alertmanager: %s", exc)
            raise AlertmanagerError(str(exc)) from exc

        if not payload.strip():
            return None
        try:
            return json.loads(payload.decode("utf-8"))
        except json.JSONDecodeError as exc:
            self._logger.warning("Failed to decode Alertmanager response: %s", exc)
            raise AlertmanagerError(f"failed to decode Alertmanager response: {exc}") from exc


def normalize_base_url(raw: str) -> str:
    value = raw.strip()
    if not value:
        return ""
    if "://" not in value:
        value = f"http://{value}"
    parsed = urllib.parse.urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        return ""
    if parsed.path in ("", "/"):
        parsed = parsed._replace(path=DEFAULT_BASE_PATH)
    return urllib.parse.urlunparse(parsed).rstrip("/")


def _as_list(payload: object) -> list[object]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise AlertmanagerError("unexpected Alertmanager payload type")
    return payload


def _parse(model: type[_ModelT], item: object) -> _ModelT:
    try:
        return model.model_validate(item)
    except ValidationError as exc:
        raise AlertmanagerError(f"unexpected Alertmanager payload: {exc}") from exc
