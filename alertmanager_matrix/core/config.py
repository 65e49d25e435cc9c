from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_HOMESERVER = "http://localhost:8008"
DEFAULT_ALERTMANAGER_URL = "http://localhost:9093"
DEFAULT_MESSAGE_TYPE = "m.notice"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _get_list_env(name: str) -> list[str]:
    value = os.getenv(name, "")
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    log_level: str
    homeserver: str
    user_id: str
    token: str
    rooms: list[str]
    message_type: str
    alertmanager_url: str
    alertmanager_timeout_seconds: int
    icon_file: str
    color_file: str
    text_template_file: str
    html_template_file: str
    silence_template_file: str
    show_labels: bool


def load_settings() -> Settings:
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_get_int_env("PORT", 4051),
        log_level=os.getenv("LOG_LEVEL", "info"),
        homeserver=os.getenv("MATRIX_HOMESERVER", DEFAULT_HOMESERVER),
        user_id=os.getenv("MATRIX_USER_ID", ""),
        token=os.getenv("MATRIX_TOKEN", ""),
        rooms=_get_list_env("MATRIX_ROOMS"),
        message_type=os.getenv("MATRIX_MESSAGE_TYPE", DEFAULT_MESSAGE_TYPE),
        alertmanager_url=os.getenv("ALERTMANAGER_URL", DEFAULT_ALERTMANAGER_URL),
        alertmanager_timeout_seconds=_get_int_env("ALERTMANAGER_TIMEOUT_SECONDS", 10),
        icon_file=os.getenv("ICON_FILE", ""),
        color_file=os.getenv("COLOR_FILE", ""),
        text_template_file=os.getenv("TEXT_TEMPLATE", ""),
        html_template_file=os.getenv("HTML_TEMPLATE", ""),
        silence_template_file=os.getenv("SILENCE_TEMPLATE", ""),
        show_labels=_get_bool_env("SHOW_LABELS", False),
    )


def require_credentials(settings: Settings) -> None:
    if not settings.user_id or not settings.token:
        raise ValueError("MATRIX_USER_ID or MATRIX_TOKEN not supplied")


def load_text_file(path: str) -> str | None:
    """Return the contents of ``path``, or None when no path is configured."""
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"unable to read file {path!r}: {exc}") from exc


def load_string_map(path: str) -> dict[str, str] | None:
    """Load a YAML mapping of strings, e.g. status icons or colors."""
    contents = load_text_file(path)
    if contents is None:
        return None
    try:
        data = yaml.safe_load(contents)
    except yaml.YAMLError as exc:
        raise ValueError(f"unable to parse YAML file {path!r}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"YAML file {path!r} must contain a mapping")
    output: dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValueError(f"YAML file {path!r}: value for {key!r} must be a string")
        output[str(key)] = str(value)
    return output
