from __future__ import annotations

import logging
from collections.abc import Iterable

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
HEALTH_PATHS = ("/healthz", "/readyz")


class _AccessPathFilter(logging.Filter):
    """Drops uvicorn access log records for the given request paths."""

    def __init__(self, paths: Iterable[str]) -> None:
        super().__init__()
        self._paths = set(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        args = record.args
        # uvicorn.access args: (client_addr, method, path, http_version, status_code)
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2]).split("?", 1)[0]
            return path not in self._paths
        return True


def parse_log_level(level: str) -> int:
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def configure_logging(level: str) -> None:
    logging.basicConfig(level=parse_log_level(level), format=LOG_FORMAT)
    logging.getLogger("uvicorn.access").addFilter(_AccessPathFilter(HEALTH_PATHS))
