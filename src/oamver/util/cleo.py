from __future__ import annotations

import typing as t

from cleo.commands.help_command import HelpCommand as _HelpCommand  # type: ignore[import]
from cleo.formatters.formatter import Formatter  # type: ignore[import]
from cleo.formatters.style import Style  # type: ignore[import]
from cleo.io.io import IO  # type: ignore[import]


@t.overload
def add_style(
    io: IO | Formatter,
    name: str,
    foreground: str | None = ...,
    background: str | None = ...,
    options: list[str] | None = ...,
) -> None: ...


@t.overload
def add_style(
    io: IO | Formatter,
    name: str,
    style: Style,
) -> None: ...


def add_style(  # type: ignore[misc]
    io: IO | Formatter,
    name: str,
    foreground: str | Style | None = None,
    background: str | None = None,
    options: list[str] | None = None,
    *,
    style: Style | None = None,
) -> None:
    """
    Add a style to a Cleo IO or Formatter instance.
    """

    if style is not None:
        assert foreground is None and background is None and options is None
    elif isinstance(foreground, Style):
        style = foreground
        assert background is None and options is None
    else:
        style = Style(foreground, background, options)

    if isinstance(io, IO):
        io.output.formatter.set_style(name, style)
        io.error_output.formatter.set_style(name, style)
    elif isinstance(io, Formatter):
        io.set_style(name, style)
    else:
        raise TypeError(f"expected IO|Formatter, got {type(io).__name__}")


class UsageCommand(_HelpCommand):
    """Prints the usage of the application, or the detailed help of a command with `help <command>`. The
    application falls back to this command for unknown command names, thus validation errors are ignored."""

    description = "Show this help"

    #: Commands provided by cleo itself that are not listed in the usage.
    HIDDEN_COMMANDS = frozenset(["help", "list", "completions"])

    def configure(self) -> None:
        super().configure()
        self._ignore_validation_errors = True

    def handle(self) -> int:
        if self._command is None:
            name = self._get_requested_command_name()
            if name is None:
                self.write_usage()
                return 0
            self._command = self.application.get(name)
        return super().handle()

    def _get_requested_command_name(self) -> str | None:
        if self.io.input.first_argument != self.name:
            return None
        name = self.io.input.arguments.get("command_name")
        if not name or name == self.name or not self.application.has(name):
            return None
        return t.cast(str, name)

    def write_usage(self) -> None:
        app_name = self.application.name
        commands = [c for c in self.application.all().values() if c.name not in self.HIDDEN_COMMANDS and not c.hidden]

        def _synopsis(command: t.Any) -> str:
            parts = [command.name]
            for arg in command.arguments:
                parts.append(f"<{arg.name}>" if arg.is_required() else f"[{arg.name}]")
            return " ".join(parts)

        rows = [(_synopsis(c), c.description) for c in commands] + [(self.name, self.description)]
        width = max(len(r[0]) for r in rows) + 2

        self.line(Formatter.escape(f"Usage: {app_name} <command> [service] [registry]"))
        self.line("")
        self.line("Commands:")
        for synopsis, description in rows:
            self.line(Formatter.escape(f"  {synopsis.ljust(width)}{description}"))

        examples = [example for c in commands for example in getattr(c, "examples", [])]
        if examples:
            self.line("")
            self.line("Examples:")
            for example in examples:
                self.line(f"  {app_name} {example}")
