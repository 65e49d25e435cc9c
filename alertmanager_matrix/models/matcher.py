from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

# Characters that only occur in matcher expressions, never in a fingerprint.
MATCHER_CHARACTERS = frozenset('{"=~!}')

_MATCHER_PATTERN = re.compile(r"([a-zA-Z_:][a-zA-Z0-9_:]*)\s*(=~|!~|!=|=)\s*(.*)", re.DOTALL)


class InvalidMatchersError(ValueError):
    pass


class MatchType(str, Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    REGEX = "=~"
    NOT_REGEX = "!~"

    @property
    def is_equal(self) -> bool:
        return self in (MatchType.EQUAL, MatchType.REGEX)

    @property
    def is_regex(self) -> bool:
        return self in (MatchType.REGEX, MatchType.NOT_REGEX)

    @classmethod
    def from_flags(cls, is_equal: bool, is_regex: bool) -> MatchType:
        if is_regex:
            return cls.REGEX if is_equal else cls.NOT_REGEX
        return cls.EQUAL if is_equal else cls.NOT_EQUAL


@dataclass(frozen=True)
class Matcher:
    name: str
    value: str
    type: MatchType = MatchType.EQUAL

    def __str__(self) -> str:
        return f"{self.name}{self.type.value}{json.dumps(self.value, ensure_ascii=False)}"

    def to_dict(self) -> dict[str, object]:
        """Return the Alertmanager API representation."""
        return {
            "name": self.name,
            "value": self.value,
            "isRegex": self.type.is_regex,
            "isEqual": self.type.is_equal,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Matcher:
        # Alertmanager omits isEqual for matchers created by older releases.
        is_equal = data.get("isEqual")
        return cls(
            name=str(data.get("name") or ""),
            value=str(data.get("value") or ""),
            type=MatchType.from_flags(
                True if is_equal is None else bool(is_equal),
                bool(data.get("isRegex")),
            ),
        )


def is_fingerprint(text: str) -> bool:
    """Return True when ``text`` cannot be a matcher expression."""
    return not any(char in MATCHER_CHARACTERS for char in text)


def matchers_from_labels(labels: Mapping[str, str]) -> list[Matcher]:
    return [Matcher(name=name, value=labels[name]) for name in sorted(labels)]


def format_matchers(matchers: Iterable[Matcher]) -> str:
    return ",".join(str(matcher) for matcher in matchers)


def parse_matchers(text: str) -> list[Matcher]:
    """Parse ``name="value"`` terms separated by commas.

    The operators ``=``, ``!=``, ``=~`` and ``!~`` are supported and the list may
    be wrapped in braces. A single bad term rejects the whole expression.
    """
    expression = text.strip()
    if expression.startswith("{") and expression.endswith("}"):
        expression = expression[1:-1]

    matchers = [_parse_matcher(item) for item in _split_terms(expression)]
    if not matchers:
        raise InvalidMatchersError(f"no matchers in {text!r}")
    return matchers


def _split_terms(expression: str) -> list[str]:
    terms: list[str] = []
    current: list[str] = []
    quoted = False
    escaped = False
    for char in expression:
        if escaped:
            escaped = False
        elif char == "\\" and quoted:
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char == "," and not quoted:
            terms.append("".join(current))
            current = []
            continue
        current.append(char)
    if quoted:
        raise InvalidMatchersError(f"unterminated quoted string in {expression!r}")
    terms.append("".join(current))
    return [term.strip() for term in terms if term.strip()]


def _parse_matcher(term: str) -> Matcher:
    match = _MATCHER_PATTERN.fullmatch(term)
    if match is None:
        raise InvalidMatchersError(f"bad matcher format: {term}")
    name, operator, raw_value = match.groups()
    value = _parse_value(term, raw_value.strip())
    match_type = MatchType(operator)
    if match_type.is_regex:
        try:
            re.compile(f"^(?:{value})$")
        except re.error as exc:
            raise InvalidMatchersError(f"invalid regular expression in {term}: {exc}") from exc
    return Matcher(name=name, value=value, type=match_type)


def _parse_value(term: str, raw_value: str) -> str:
    if not raw_value.startswith('"'):
        if '"' in raw_value:
            raise InvalidMatchersError(f"bad matcher format: {term}")
        return raw_value
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise InvalidMatchersError(f"bad matcher value: {term}") from exc
    if not isinstance(value, str):
        raise InvalidMatchersError(f"bad matcher value: {term}")
    return value
