from __future__ import annotations

import io
import json
import urllib.error
import urllib.parse
from dataclasses import replace
from datetime import datetime, timezone

import pytest

import alertmanager_matrix.clients.alertmanager as alertmanager_module
from alertmanager_matrix.clients.alertmanager import (
    AlertmanagerClient,
    AlertmanagerError,
    AlertNotFoundError,
    normalize_base_url,
)
from alertmanager_matrix.core.config import load_settings
from alertmanager_matrix.models.matcher import Matcher, MatchType
from alertmanager_matrix.schemas.silence import Silence


class _FakeHTTPResponse:
    def __init__(self, body: str) -> None:
        self._body = body.encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> _FakeHTTPResponse:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        return None


def _install_fake_urlopen(
    monkeypatch: pytest.MonkeyPatch,
    body: str = "[]",
    error: Exception | None = None,
) -> list[dict[str, object]]:
    captured: list[dict[str, object]] = []

    def fake_urlopen(request, timeout=0):  # type: ignore[no-untyped-def]
        captured.append(
            {
                "url": request.full_url,
                "method": request.get_method(),
                "data": request.data,
                "timeout": timeout,
            }
        )
        if error is not None:
            raise error
        return _FakeHTTPResponse(body)

    monkeypatch.setattr(alertmanager_module.urllib.request, "urlopen", fake_urlopen)
    return captured


def _client(url: str = "http://alertmanager:9093") -> AlertmanagerClient:
    settings = replace(load_settings(), alertmanager_url=url, alertmanager_timeout_seconds=5)
    return AlertmanagerClient(settings)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("http://alertmanager:9093", "http://alertmanager:9093/api/v2"),
        ("http://alertmanager:9093/", "http://alertmanager:9093/api/v2"),
        ("alertmanager:9093", "http://alertmanager:9093/api/v2"),
        ("https://am.example.org/prefix/api/v2/", "https://am.example.org/prefix/api/v2"),
        ("", ""),
    ],
)
def test_normalize_base_url(raw: str, expected: str) -> None:
    assert normalize_base_url(raw) == expected


def test_get_alerts_sends_filters(monkeypatch: pytest.MonkeyPatch) -> None:
    body = json.dumps(
        [
            {
                "labels": {"alertname": "InstanceDown"},
                "annotations": {},
                "status": {"state": "suppressed", "silencedBy": ["abc"]},
                "fingerprint": "04e45af092081699",
                "startsAt": "2024-05-01T10:00:00Z",
            }
        ]
    )
    captured = _install_fake_urlopen(monkeypatch, body=body)

    alerts = _client().get_alerts(silenced=True)

    parsed = urllib.parse.urlparse(str(captured[0]["url"]))
    assert parsed.path == "/api/v2/alerts"
    assert urllib.parse.parse_qs(parsed.query) == {
        "active": ["true"],
        "inhibited": ["false"],
        "silenced": ["true"],
        "unprocessed": ["true"],
    }
    assert captured[0]["timeout"] == 5
    assert [alert.status_string for alert in alerts] == ["silenced"]


def test_get_alert_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_urlopen(monkeypatch, body="[]")

    with pytest.raises(AlertNotFoundError, match="no alert with fingerprint 'abc'"):
        _client().get_alert("abc")


def test_http_errors_are_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    error = urllib.error.HTTPError(
        "http://alertmanager:9093/api/v2/alerts",
        503,
        "Service Unavailable",
        hdrs=None,  # type: ignore[arg-type]
        fp=io.BytesIO(b"not ready"),
    )
    _install_fake_urlopen(monkeypatch, error=error)

    with pytest.raises(AlertmanagerError) as excinfo:
        _client().get_alerts(silenced=False)

    assert str(excinfo.value) == "error retrieving alerts from Alertmanager: HTTP 503: not ready"


def test_connection_errors_are_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_urlopen(monkeypatch, error=urllib.error.URLError("connection refused"))

    with pytest.raises(AlertmanagerError, match="error retrieving silences: .*connection refused"):
        _client().get_silences()


def test_create_silence_posts_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _install_fake_urlopen(monkeypatch, body='{"silenceID": "d8b3c2a1"}')
    silence = Silence(
        starts_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        ends_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        created_by="@admin:example.org",
        comment="Created from Matrix",
    )
    silence.set_matchers([Matcher("instance", "db.*", MatchType.REGEX)])

    silence_id = _client().create_silence(silence)

    assert silence_id == "d8b3c2a1"
    assert captured[0]["method"] == "POST"
    assert str(captured[0]["url"]).endswith("/api/v2/silences")
    payload = json.loads(captured[0]["data"])  # type: ignore[arg-type]
    assert payload["matchers"] == [
        {"name": "instance", "value": "db.*", "isRegex": True, "isEqual": True}
    ]
    assert payload["createdBy"] == "@admin:example.org"
    assert payload["comment"] == "Created from Matrix"
    assert payload["startsAt"].startswith("2024-05-01T10:00:00")
    assert "id" not in payload


def test_create_silence_requires_id(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_urlopen(monkeypatch, body="{}")
    silence = Silence(
        starts_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        ends_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )

    with pytest.raises(AlertmanagerError, match="no silence ID in response"):
        _client().create_silence(silence)


def test_delete_silence_uses_singular_path(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _install_fake_urlopen(monkeypatch, body="")

    _client().delete_silence("d8b3c2a1")

    assert captured[0]["method"] == "DELETE"
    assert captured[0]["url"] == "http://alertmanager:9093/api/v2/silence/d8b3c2a1"
