from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from alertmanager_matrix.models.message import ChatMessage
from alertmanager_matrix.schemas.silence import ACTIVE_STATE, EXPIRED_STATE, PENDING_STATE
from alertmanager_matrix.services.alerts import AlertService

DEFAULT_PREFIXES = ("!alert", "!alertmanager")
HELP_COMMAND = "help"

# Short forms of the most used command paths, e.g. `!alert sd <id>`.
ABBREVIATIONS: Mapping[str, tuple[str, ...]] = {
    "l": ("list",),
    "la": ("list", "all"),
    "ll": ("list", "all", "labels"),
    "s": ("silence",),
    "sp": ("silence", "pending"),
    "se": ("silence", "expired"),
    "sa": ("silence", "add"),
    "sd": ("silence", "del"),
}

CommandHandler = Callable[[str, list[str]], ChatMessage]


@dataclass
class Command:
    summary: str
    handler: CommandHandler
    usage: str = ""
    description: str = ""
    subcommands: dict[str, Command] = field(default_factory=dict)


class CommandRouter:
    """Resolves chat text to a command in the tree and runs it."""

    def __init__(
        self,
        root: Command,
        prefixes: Sequence[str] = DEFAULT_PREFIXES,
        abbreviations: Mapping[str, tuple[str, ...]] = ABBREVIATIONS,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._root = root
        self._prefixes = tuple(prefixes)
        self._abbreviations = dict(abbreviations)

    @property
    def prefix(self) -> str:
        return self._prefixes[0]

    def is_command(self, text: str) -> bool:
        words = text.split(maxsplit=1)
        return bool(words) and words[0] in self._prefixes

    def route(self, sender: str, text: str) -> ChatMessage | None:
        """Run the command in ``text``; None when the text is not a command."""
        if not self.is_command(text):
            return None
        path = text.split()[1:]

        if path and path[0] == HELP_COMMAND:
            return self.help(path[1:])
        if path and path[0] not in self._root.subcommands:
            expanded = self._abbreviations.get(path[0])
            if expanded is None:
                return self.help([])
            path = [*expanded, *path[1:]]

        command, depth = self._resolve(path)
        args = path[depth:]
        self._logger.debug("Running %r for %s with args %s", path[:depth], sender, args)
        return command.handler(sender, args)

    def help(self, path: Sequence[str]) -> ChatMessage:
        command, depth = self._resolve(path)
        if depth and depth == len(path):
            return ChatMessage.from_markdown(self._command_help(list(path), command))
        return ChatMessage.from_markdown(self.help_text())

    def help_text(self) -> str:
        lines = [
            f"Usage: `{self.prefix} <subcommand> [options]`",
            "",
            "Available subcommands are:",
            "",
        ]
        for words, command in self._walk(self._root, []):
            name = " ".join([*words, command.usage]).strip()
            lines.append(f"- `{name}`: {command.summary}")
        lines.append(
            f"- `{HELP_COMMAND} [subcommand]`: Show this message or help for a subcommand."
        )
        if self._abbreviations:
            lines.extend(["", "Abbreviations:", ""])
            for short, words in self._abbreviations.items():
                lines.append(f"- `{short}`: `{' '.join(words)}`")
        return "\n".join(lines) + "\n"

    def _command_help(self, words: list[str], command: Command) -> str:
        name = " ".join([self.prefix, *words, command.usage]).strip()
        parts = [f"`{name}`: {command.summary}"]
        if command.description:
            parts.append(command.description)
        if command.subcommands:
            items = [
                f"- `{' '.join([*words, sub_name])}`: {sub.summary}"
                for sub_name, sub in command.subcommands.items()
            ]
            parts.append("Subcommands:\n\n" + "\n".join(items))
        return "\n\n".join(parts) + "\n"

    def _resolve(self, path: Sequence[str]) -> tuple[Command, int]:
        command = self._root
        depth = 0
        while depth < len(path) and path[depth] in command.subcommands:
            command = command.subcommands[path[depth]]
            depth += 1
        return command, depth

    def _walk(self, command: Command, words: list[str]) -> Iterator[tuple[list[str], Command]]:
        for name, sub in command.subcommands.items():
            path = [*words, name]
            yield path, sub
            yield from self._walk(sub, path)


def build_command_tree(service: AlertService) -> Command:
    """Return the root command; its subcommands are the first words after the prefix."""

    def alerts(silenced: bool, labels: bool) -> CommandHandler:
        return lambda sender, args: service.alerts(silenced, labels)

    def silences(state: str) -> CommandHandler:
        return lambda sender, args: ChatMessage.from_markdown(service.silences(state))

    def add_silence(sender: str, args: list[str]) -> ChatMessage:
        if len(args) <= 1:
            return ChatMessage.text("Insufficient arguments.")
        return ChatMessage.from_markdown(service.new_silence(sender, args[0], " ".join(args[1:])))

    def delete_silences(sender: str, args: list[str]) -> ChatMessage:
        return ChatMessage.from_markdown(service.delete_silences(args))

    list_command = Command(
        summary="Show active alerts.",
        handler=alerts(False, False),
        subcommands={
            "all": Command(
                summary="Show active and silenced alerts.",
                handler=alerts(True, False),
                subcommands={
                    "labels": Command(
                        summary="Show labels of active and silenced alerts.",
                        handler=alerts(True, True),
                    ),
                },
            ),
            "labels": Command(
                summary="Show labels of active alerts.",
                handler=alerts(False, True),
            ),
        },
    )
    silence_command = Command(
        summary="Show active silences.",
        handler=silences(ACTIVE_STATE),
        subcommands={
            "pending": Command(summary="Show pending silences.", handler=silences(PENDING_STATE)),
            "expired": Command(summary="Show expired silences.", handler=silences(EXPIRED_STATE)),
            "add": Command(
                summary="Create a silence.",
                usage="<duration> <matchers|fingerprint>",
                description=(
                    "Create a silence using a `duration` and `matchers` or a `fingerprint`.\n\n"
                    "Matchers are separated by commas and match alert labels, for example:\n\n"
                    '```\nsilence add 1h job="test",target=~"test.*"\n```\n\n'
                    "Alternatively, an alert fingerprint can be given "
                    "to match all labels of that alert, for example:\n\n"
                    "```\nsilence add 1d 04e45af092081699\n```"
                ),
                handler=add_silence,
            ),
            "del": Command(
                summary="Delete silences by ID.",
                usage="<id>...",
                handler=delete_silences,
            ),
        },
    )
    return Command(
        summary="Show active alerts.",
        handler=alerts(False, False),
        subcommands={"list": list_command, "silence": silence_command},
    )
