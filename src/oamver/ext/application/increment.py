from __future__ import annotations

import typing as t

from oamver.ext.application.base import BaseCommandPlugin
from oamver.version import BaseVersion


class _IncrementCommandPlugin(BaseCommandPlugin):
    #: The name of the version component that is incremented.
    component: t.ClassVar[str]

    def increment(self, version: BaseVersion) -> BaseVersion:
        raise NotImplementedError

    def _handle(self) -> int:
        version_file = self.app.version_file
        current = version_file.load()
        target = self.increment(current)
        version_file.save(target)
        self.line(f"Incremented {self.component} version from {current} to <b>{target}</b>")
        return 0


class IncrementMajorCommandPlugin(_IncrementCommandPlugin):
    """Increment major version

    Increments the major version in the base version file and resets the minor version
    to <b>0</b>. The file is created if it does not exist.
    """

    name = "increment-major"
    component = "major"

    def increment(self, version: BaseVersion) -> BaseVersion:
        return version.next_major()


class IncrementMinorCommandPlugin(_IncrementCommandPlugin):
    """Increment minor version

    Increments the minor version in the base version file. The file is created if it does
    not exist.
    """

    name = "increment-minor"
    component = "minor"

    def increment(self, version: BaseVersion) -> BaseVersion:
        return version.next_minor()
