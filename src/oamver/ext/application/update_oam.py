from __future__ import annotations

import logging

from oamver.application import argument
from oamver.ext.application.base import BaseCommandPlugin
from oamver.manifest import ManifestError, ManifestNotFoundError

logger = logging.getLogger(__name__)


class UpdateOamCommandPlugin(BaseCommandPlugin):
    """Update OAM application with new version

    Points the component of the service in the OAM application manifest
    (<u>oam/applications/application.yaml</u> unless configured otherwise) to the image
    <b><registry>/<service>:<sha></b> and sets the <b>app.version</b> and <b>app.commit-sha</b>
    annotations of the application. Everything else in the file is left untouched and
    running the command again with the same commit does not change the file.

    The command fails if the manifest does not exist or has no component with the
    name of the service.
    """

    name = "update-oam"
    arguments = [
        argument("service", "The name of the service (the component name in the manifest)."),
        argument("registry", "The container registry, defaults to the configured registry.", optional=True),
    ]
    examples = ["update-oam streamlit-frontend"]

    def _handle(self) -> int:
        info = self.app.get_version_info(self.argument("service"), self.argument("registry"))
        patcher = self.app.manifest

        self.line(f"Updating OAM application for {info.service}")
        self.line(f"New image: {info.image}")
        self.line(f"Semantic version: {info.semantic_version}")

        try:
            if not patcher.path.is_file():
                raise ManifestNotFoundError(patcher.path)
            self.line(f"Updating {patcher.path}")
            result = patcher.patch(info.service, info.image, info.semantic_version, info.git.commit_sha)
        except ManifestError as exc:
            self.line_error(f"Error: {exc}", "error")
            return 1

        if result.changed:
            self.line(f"Successfully updated {info.service} image in OAM application")
        else:
            self.line(f"OAM application is already up to date for {info.service}")
        return 0
