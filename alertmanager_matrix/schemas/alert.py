from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALERT_STATUS = "alert"
RESOLVED_STATUS = "resolved"
SUPPRESSED_STATUS = "suppressed"
SILENCED_STATUS = "silenced"

SUMMARY_ANNOTATION = "summary"
RESOLVED_ANNOTATION = "resolved"
SEVERITY_LABEL = "severity"
ALERT_NAME_LABEL = "alertname"


class Alert(BaseModel):
    """An alert from a webhook message or from the Alertmanager API.

    API alerts report their status as ``{"state": ...}``; only the state is kept.
    """

    status: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: datetime | None = Field(default=None, alias="startsAt")
    ends_at: datetime | None = Field(default=None, alias="endsAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    generator_url: str = Field(default="", alias="generatorURL")
    fingerprint: str = ""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("status", mode="before")
    @classmethod
    def _fold_status(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("state") or ""
        return "" if value is None else value

    @field_validator("generator_url", "fingerprint", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def status_string(self) -> str:
        """Either ``resolved``, ``silenced``, the ``severity`` label, or ``alert``."""
        if self.status == RESOLVED_STATUS:
            return RESOLVED_STATUS
        if self.status in (SUPPRESSED_STATUS, SILENCED_STATUS):
            return SILENCED_STATUS
        return self.labels.get(SEVERITY_LABEL, ALERT_STATUS)

    @property
    def alert_name(self) -> str:
        return self.labels.get(ALERT_NAME_LABEL, "")

    @property
    def summary(self) -> str:
        """The ``summary`` annotation, or the ``resolved`` one for resolved alerts."""
        if SUMMARY_ANNOTATION in self.annotations:
            return self.annotations[SUMMARY_ANNOTATION]
        if self.status == RESOLVED_STATUS:
            return self.annotations.get(RESOLVED_ANNOTATION, "")
        return ""

    @property
    def label_string(self) -> str:
        labels = (
            f"{name}={json.dumps(self.labels[name], ensure_ascii=False)}"
            for name in sorted(self.labels)
        )
        return "{" + ",".join(labels) + "}"


class AlertmanagerMessage(BaseModel):
    """Webhook payload posted by Alertmanager."""

    version: str = ""
    group_key: str = Field(default="", alias="groupKey")
    status: str = ""
    receiver: str = ""
    group_labels: dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: dict[str, str] = Field(default_factory=dict, alias="commonAnnotations")
    external_url: str = Field(default="", alias="externalURL")
    alerts: list[Alert] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
