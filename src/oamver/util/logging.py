""" Provides a logging formatter that understands cleo style tags in the message and renders them as terminal
colors, or strips them when the output is not a terminal. """

from __future__ import annotations

import logging

import typing_extensions as te
from cleo.formatters.formatter import Formatter  # type: ignore[import]

from oamver.util.cleo import add_style


def get_default_formatter(decorated: bool) -> Formatter:
    formatter = Formatter(decorated)
    add_style(formatter, "subj", "blue")
    add_style(formatter, "obj", "yellow")
    add_style(formatter, "val", "cyan")
    add_style(formatter, "warning", "magenta")
    return formatter


class TerminalColorFormatter(logging.Formatter):
    """A formatter that converts cleo style tags (e.g. `<subj>...</subj>` or `<fg=red>...</fg>`) in log messages
    into ANSI terminal colors. With *decorated* set to `False`, the tags are removed instead."""

    def __init__(self, fmt: str, decorated: bool = True) -> None:
        super().__init__(fmt)
        self.styles = get_default_formatter(decorated)

    def format(self, record: logging.LogRecord) -> str:
        return self.styles.format(super().format(record))

    def install(self, target: te.Literal["tty", "notty"]) -> None:
        """Install the formatter on the stream handlers of the root logger that are attached to a TTY, or on all
        the others, depending on *target*."""

        for handler in logging.root.handlers:
            if not isinstance(handler, logging.StreamHandler):
                continue
            isatty = getattr(handler.stream, "isatty", None)
            if (target == "tty") == bool(isatty and isatty()):
                handler.setFormatter(self)


def configure_logging(level: int, fmt: str) -> None:
    """Configures the root logger to the given *level* and installs #TerminalColorFormatter#s."""

    logging.basicConfig(level=level)
    logging.root.setLevel(level)
    TerminalColorFormatter(fmt, decorated=True).install("tty")
    TerminalColorFormatter(fmt, decorated=False).install("notty")
