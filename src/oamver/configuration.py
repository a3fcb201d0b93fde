from __future__ import annotations

import dataclasses
import logging
import subprocess as sp
import typing as t
from pathlib import Path

import tomli
from databind.core.settings import Alias, ExtraKeys

from oamver.util.git import Git

logger = logging.getLogger(__name__)

#: The registry that images are pushed to unless configured otherwise.
DEFAULT_REGISTRY = "docker.io/socrates12345"


@ExtraKeys(True)
@dataclasses.dataclass
class OamverConfig:
    #: The container registry (including the namespace) that service images are pushed to.
    registry: str = DEFAULT_REGISTRY

    #: The file that persists the `<major>.<minor>` base version, relative to the project root.
    version_file: t.Annotated[str, Alias("version-file")] = ".version"

    #: The OAM application manifest that `update-oam` patches, relative to the project root.
    manifest: str = "oam/applications/application.yaml"


class Configuration:
    """Represents the configuration of a project directory, which is either read from `oamver.toml` or from the
    `[tool.oamver]` section of `pyproject.toml`. Neither of the files has to exist."""

    #: The project root. Relative paths in the configuration are resolved against it.
    directory: Path

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.oamver_toml = directory / "oamver.toml"
        self.pyproject_toml = directory / "pyproject.toml"

    def __repr__(self) -> str:
        return f'{type(self).__name__}(directory="{self.directory}")'

    def get_raw_configuration(self) -> dict[str, t.Any]:
        """Loads the raw configuration data from either `oamver.toml` or the `[tool.oamver]` section of
        `pyproject.toml`. If neither of the files exist or the section does not exist, an empty dictionary is
        returned."""

        if self.oamver_toml.is_file():
            logger.debug("Reading configuration for <subj>%s</subj> from <val>%s</val>", self, self.oamver_toml)
            return _load_toml(self.oamver_toml)
        if self.pyproject_toml.is_file():
            logger.debug("Reading configuration for <subj>%s</subj> from <val>%s</val>", self, self.pyproject_toml)
            return _load_toml(self.pyproject_toml).get("tool", {}).get("oamver", {})
        return {}

    def load(self) -> OamverConfig:
        import databind.json

        return databind.json.load(self.get_raw_configuration(), OamverConfig, filename=str(self.directory))

    def get_version_file(self, config: OamverConfig) -> Path:
        return self.directory / config.version_file

    def get_manifest(self, config: OamverConfig) -> Path:
        return self.directory / config.manifest


def _load_toml(path: Path) -> dict[str, t.Any]:
    with path.open("rb") as fp:
        return tomli.load(fp)


def find_project_root(directory: Path) -> Path:
    """
    Finds the project root for the given directory. This is the closest parent directory that contains an
    `oamver.toml` configuration file, searching no further than the Git toplevel directory. Without such a file,
    the Git toplevel directory is the project root, or the *directory* itself if it is not inside a Git repository.
    """

    directory = directory.resolve()

    try:
        toplevel = Git(directory).get_toplevel()
    except sp.CalledProcessError as exc:
        logger.debug("Unable to determine the Git toplevel of <subj>%s</subj> (reason: %s)", directory, exc)
        toplevel = None
    git_root = Path(toplevel).resolve() if toplevel else None

    curdir = directory
    while True:
        if (curdir / "oamver.toml").is_file():
            return curdir
        if git_root is None or curdir == git_root or curdir == curdir.parent:
            break
        curdir = curdir.parent

    if git_root is not None:
        return git_root

    logger.debug("<subj>%s</subj> is not inside a Git repository, using it as the project root", directory)
    return directory
