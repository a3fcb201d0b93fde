from __future__ import annotations

from oamver.application import argument
from oamver.ext.application.base import BaseCommandPlugin
from oamver.version import render_summary


class SummaryCommandPlugin(BaseCommandPlugin):
    """Create version summary

    Prints a Markdown summary of the version information of the service, containing
    the semantic version, commit SHA, branch, container tags, a UTC timestamp, the
    build number (the number of commits) and whether the branch is a release branch.
    Suitable for CI job summaries.
    """

    name = "summary"
    arguments = [
        argument("service", "The name of the service."),
        argument("registry", "The container registry, defaults to the configured registry.", optional=True),
    ]
    examples = ["summary streamlit-frontend"]

    def _handle(self) -> int:
        info = self.app.get_version_info(self.argument("service"), self.argument("registry"))
        self.io.write(render_summary(info))
        return 0
