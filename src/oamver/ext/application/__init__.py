from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from oamver.plugins import ApplicationPlugin


def get_builtin_plugins() -> list[type[ApplicationPlugin]]:
    """Returns the application plugins that provide the builtin commands, in the order they are listed in the
    usage."""

    from oamver.ext.application.increment import IncrementMajorCommandPlugin, IncrementMinorCommandPlugin
    from oamver.ext.application.summary import SummaryCommandPlugin
    from oamver.ext.application.update_oam import UpdateOamCommandPlugin
    from oamver.ext.application.version import TagsCommandPlugin, VersionCommandPlugin

    return [
        VersionCommandPlugin,
        TagsCommandPlugin,
        UpdateOamCommandPlugin,
        SummaryCommandPlugin,
        IncrementMajorCommandPlugin,
        IncrementMinorCommandPlugin,
    ]
