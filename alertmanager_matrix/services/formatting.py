from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType

import jinja2

from alertmanager_matrix.schemas.alert import Alert
from alertmanager_matrix.schemas.silence import EXPIRED_STATE, Silence

logger = logging.getLogger(__name__)

FALLBACK_ICON = "❔"
FALLBACK_COLOR = "gray"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

DEFAULT_TEXT_TEMPLATE = (
    "{% for alert in alerts %}"
    "{{ alert.status_string|icon }} {{ alert.status_string|upper }} "
    "{{ alert.alert_name }}: {{ alert.summary }}"
    "{% if alert.fingerprint %} ({{ alert.fingerprint }}){% endif %}"
    "{% if show_labels %}, labels: {{ alert.label_string }}{% endif %}\n"
    "{% endfor %}"
)

DEFAULT_HTML_TEMPLATE = (
    "{% for alert in alerts %}"
    '<font color="{{ alert.status_string|color }}">'
    "{{ alert.status_string|icon }} <b>{{ alert.status_string|upper }}</b> "
    "{{ alert.alert_name }}:</font> {{ alert.summary }}"
    "{% if alert.fingerprint %} ({{ alert.fingerprint }}){% endif %}"
    "{% if show_labels %}<br/><b>Labels:</b> <code>{{ alert.label_string }}</code>{% endif %}"
    "<br/>"
    "{% endfor %}"
)

DEFAULT_SILENCE_TEMPLATE = (
    "{% for silence in silences %}"
    "**Silence {{ silence.id }}**  \n"
    '{% if silence.state == "expired" %}Ended{% else %}Ends{% endif %}'
    " at {{ silence.ends_at|timestamp }}\n\n"
    "{% for matcher in silence.label_matchers %}"
    "`{{ matcher }}`{% if not loop.last %}, {% endif %}"
    "{% endfor %}\n\n"
    "{% endfor %}"
)

DEFAULT_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "alert": "black",
        "information": "blue",
        "info": "blue",
        "warning": "orange",
        "critical": "red",
        "error": "red",
        "resolved": "green",
        "silenced": "gray",
    }
)

DEFAULT_ICONS: Mapping[str, str] = MappingProxyType(
    {
        "alert": "🔔️",
        "information": "ℹ️",
        "info": "ℹ️",
        "warning": "⚠️",
        "critical": "🚨",
        "error": "🚨",
        "resolved": "✅",
        "silenced": "🔕",
    }
)


@dataclass(frozen=True)
class FormatterConfig:
    """Icons, colors and templates; anything left as None uses the default."""

    text_template: str | None = None
    html_template: str | None = None
    silence_template: str | None = None
    colors: Mapping[str, str] | None = None
    icons: Mapping[str, str] | None = None


class Formatter:
    """Renders alerts as plain text and HTML, and silences as Markdown.

    Templates use Jinja2. The following functions are available both as filters
    and as global functions:

        icon:  the icon for a status string.
        color: the color for a status string.
        upper: converts a string to uppercase.
        lower: converts a string to lowercase.
        title: converts a string to title case.

    Template syntax errors raise ``jinja2.TemplateSyntaxError`` on construction.
    """

    def __init__(self, config: FormatterConfig | None = None) -> None:
        config = config or FormatterConfig()
        colors = DEFAULT_COLORS if config.colors is None else config.colors
        icons = DEFAULT_ICONS if config.icons is None else config.icons
        self._colors = MappingProxyType(dict(colors))
        self._icons = MappingProxyType(dict(icons))

        text_env = self._environment(autoescape=False)
        html_env = self._environment(autoescape=True)
        self._text = text_env.from_string(config.text_template or DEFAULT_TEXT_TEMPLATE)
        self._html = html_env.from_string(config.html_template or DEFAULT_HTML_TEMPLATE)
        self._silence = text_env.from_string(config.silence_template or DEFAULT_SILENCE_TEMPLATE)

    def icon(self, status: str) -> str:
        icon = self._icons.get(status)
        if icon is None:
            logger.debug("Unknown status: %s", status)
            return FALLBACK_ICON
        return icon

    def color(self, status: str) -> str:
        color = self._colors.get(status)
        if color is None:
            logger.debug("Unknown status: %s", status)
            return FALLBACK_COLOR
        return color

    def format_alerts(self, alerts: Sequence[Alert], show_labels: bool) -> tuple[str, str]:
        """Format alerts as plain text and HTML.

        A failing template yields the error text as both outputs.
        """
        context = {"alerts": list(alerts), "show_labels": show_labels}
        try:
            plain = self._text.render(context)
            html = self._html.render(context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to render alert template: %s", exc)
            return str(exc), str(exc)
        return plain, html

    def format_silences(self, silences: Sequence[Silence], state: str) -> str:
        """Format the silences in the given state as Markdown, or "" if there are none."""
        filtered = [silence for silence in silences if silence.state == state]
        if not filtered:
            return ""
        try:
            return self._silence.render(
                silences=filtered,
                state=state,
                expired=state == EXPIRED_STATE,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to render silence template: %s", exc)
            return str(exc)

    def _environment(self, *, autoescape: bool) -> jinja2.Environment:
        env = jinja2.Environment(autoescape=autoescape, undefined=jinja2.StrictUndefined)
        functions = {
            "icon": self.icon,
            "color": self.color,
            "upper": str.upper,
            "lower": str.lower,
            "title": str.upper,
            "timestamp": _format_timestamp,
        }
        env.filters.update(functions)
        env.globals.update(functions)
        return env


def _format_timestamp(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime(TIMESTAMP_FORMAT)
