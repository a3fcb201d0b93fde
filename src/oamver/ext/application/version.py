from __future__ import annotations

from oamver.application import argument
from oamver.ext.application.base import BaseCommandPlugin


class VersionCommandPlugin(BaseCommandPlugin):
    """Generate semantic version

    Prints the semantic version <b><major>.<minor>.<sha></b> of the service, where major and
    minor are read from the base version file (<u>.version</u>, defaults to <b>1.1</b>) and sha
    is the short commit SHA of <u>HEAD</u>. Outside of a Git repository the SHA is <b>unknown</b>.
    """

    name = "version"
    arguments = [
        argument("service", "The name of the service."),
    ]
    examples = ["version streamlit-frontend"]

    def _handle(self) -> int:
        info = self.app.get_version_info(self.argument("service"))
        self.line(info.semantic_version)
        return 0


class TagsCommandPlugin(BaseCommandPlugin):
    """Generate container tags

    Prints the comma-separated list of container image tags for the service:

      1. <registry>/<service>:<semantic version>
      2. <registry>/<service>:<sha>
      3. <registry>/<service>:<branch>-<sha>
      4. on <b>main</b>, <b>master</b> and <b>release/*</b>: latest, <major> and <major>.<minor>
      5. on <b>develop</b>: develop
    """

    name = "tags"
    arguments = [
        argument("service", "The name of the service."),
        argument("registry", "The container registry, defaults to the configured registry.", optional=True),
    ]
    examples = ["tags orchestration-service"]

    def _handle(self) -> int:
        info = self.app.get_version_info(self.argument("service"), self.argument("registry"))
        self.line(",".join(info.tags))
        return 0
