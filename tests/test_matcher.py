from __future__ import annotations

import pytest

from alertmanager_matrix.models.matcher import (
    InvalidMatchersError,
    Matcher,
    MatchType,
    format_matchers,
    is_fingerprint,
    matchers_from_labels,
    parse_matchers,
)


def test_parse_matchers_supports_all_operators() -> None:
    matchers = parse_matchers('job="node", env!="dev",instance=~"db.*" , team!~"ops|sre"')

    assert matchers == [
        Matcher("job", "node", MatchType.EQUAL),
        Matcher("env", "dev", MatchType.NOT_EQUAL),
        Matcher("instance", "db.*", MatchType.REGEX),
        Matcher("team", "ops|sre", MatchType.NOT_REGEX),
    ]


def test_parse_matchers_accepts_braces_bare_values_and_quoted_commas() -> None:
    matchers = parse_matchers('{job=node,msg="a, b \\"c\\""}')

    assert matchers == [Matcher("job", "node"), Matcher("msg", 'a, b "c"')]


def test_parse_matchers_accepts_colons_in_label_names() -> None:
    matchers = parse_matchers('job:rate5m="0",:ns:="x"')

    assert matchers == [Matcher("job:rate5m", "0"), Matcher(":ns:", "x")]


@pytest.mark.parametrize(
    "text",
    ['job="node",="x"', 'job=="node"', 'job="node', "job", 'instance=~"("', "{}"],
)
def test_parse_matchers_rejects_whole_expression(text: str) -> None:
    with pytest.raises(InvalidMatchersError):
        parse_matchers(text)


def test_parse_matchers_error_names_offending_term() -> None:
    with pytest.raises(InvalidMatchersError, match="1bad"):
        parse_matchers('job="node",1bad="x"')


def test_text_round_trip_preserves_order_and_operators() -> None:
    matchers = [
        Matcher("b", 'quote " and \\ slash', MatchType.NOT_EQUAL),
        Matcher("a", "x.+", MatchType.REGEX),
        Matcher("c", "", MatchType.EQUAL),
        Matcher("d", "y", MatchType.NOT_REGEX),
    ]

    assert parse_matchers(format_matchers(matchers)) == matchers


@pytest.mark.parametrize(
    ("match_type", "is_equal", "is_regex"),
    [
        (MatchType.EQUAL, True, False),
        (MatchType.NOT_EQUAL, False, False),
        (MatchType.REGEX, True, True),
        (MatchType.NOT_REGEX, False, True),
    ],
)
def test_api_encoding_maps_flags_to_operators(
    match_type: MatchType, is_equal: bool, is_regex: bool
) -> None:
    matcher = Matcher("job", "node", match_type)

    encoded = matcher.to_dict()

    assert encoded == {"name": "job", "value": "node", "isEqual": is_equal, "isRegex": is_regex}
    assert Matcher.from_dict(encoded) == matcher


def test_api_decoding_defaults_missing_is_equal_to_true() -> None:
    matcher = Matcher.from_dict({"name": "job", "value": "n.*", "isRegex": True})

    assert matcher.type is MatchType.REGEX
    assert str(matcher) == 'job=~"n.*"'


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("04e45af092081699", True),
        ('job="node"', False),
        ("job=node", False),
        ("{job}", False),
        ("a!b", False),
    ],
)
def test_is_fingerprint(text: str, expected: bool) -> None:
    assert is_fingerprint(text) is expected


def test_matchers_from_labels_uses_sorted_equality_matchers() -> None:
    assert matchers_from_labels({"job": "node", "alertname": "Down"}) == [
        Matcher("alertname", "Down"),
        Matcher("job", "node"),
    ]
