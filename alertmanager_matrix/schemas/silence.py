from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from alertmanager_matrix.models.matcher import Matcher

PENDING_STATE = "pending"
ACTIVE_STATE = "active"
EXPIRED_STATE = "expired"


class SilenceMatcher(BaseModel):
    name: str
    value: str
    is_regex: bool = Field(default=False, alias="isRegex")
    is_equal: bool = Field(default=True, alias="isEqual")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_matcher(cls, matcher: Matcher) -> SilenceMatcher:
        return cls.model_validate(matcher.to_dict())

    def to_matcher(self) -> Matcher:
        return Matcher.from_dict(self.model_dump(by_alias=True))


class SilenceStatus(BaseModel):
    state: str = ""


class Silence(BaseModel):
    """A silence as returned by (or posted to) the Alertmanager API."""

    id: str = ""
    matchers: list[SilenceMatcher] = Field(default_factory=list)
    starts_at: datetime = Field(alias="startsAt")
    ends_at: datetime = Field(alias="endsAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    created_by: str = Field(default="", alias="createdBy")
    comment: str = ""
    status: SilenceStatus = Field(default_factory=SilenceStatus)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def state(self) -> str:
        return self.status.state

    @property
    def label_matchers(self) -> list[Matcher]:
        return [matcher.to_matcher() for matcher in self.matchers]

    def set_matchers(self, matchers: list[Matcher]) -> None:
        self.matchers = [SilenceMatcher.from_matcher(matcher) for matcher in matchers]

    def to_postable(self) -> dict[str, object]:
        payload = self.model_dump(
            by_alias=True,
            mode="json",
            include={"matchers", "starts_at", "ends_at", "created_by", "comment"},
        )
        if self.id:
            payload["id"] = self.id
        return payload
