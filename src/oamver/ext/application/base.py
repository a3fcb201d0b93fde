from __future__ import annotations

from oamver.application import Application, Command
from oamver.plugins import ApplicationPlugin
from oamver.version import MalformedBaseVersionError


class BaseCommandPlugin(Command, ApplicationPlugin[None]):
    """Base class for the builtin commands. Subclasses implement #_handle(). A malformed base version file is
    reported as an error instead of being turned into a bogus version number."""

    app: Application

    def __init__(self, app: Application) -> None:
        Command.__init__(self)
        self.app = app

    def load_configuration(self, app: Application) -> None:
        return None

    def activate(self, app: Application, config: None) -> None:
        app.cleo.add(self)

    def handle(self) -> int:
        try:
            return self._handle()
        except MalformedBaseVersionError as exc:
            self.line_error(f"error: {exc}", "error")
            return 1

    def _handle(self) -> int:
        raise NotImplementedError
