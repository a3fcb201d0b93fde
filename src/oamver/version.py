""" Derives the semantic version and the container image tags of a service from the persisted base version and the
current Git state.

The semantic version has the form `<major>.<minor>.<sha>`. It is not a strict semver, the third component is the
short commit SHA, but it is valid as a container image tag. """

from __future__ import annotations

import dataclasses
import datetime
import enum
import logging
import re
import typing as t
from pathlib import Path

from oamver.util.fs import atomic_write

logger = logging.getLogger(__name__)

#: The value used in place of a commit SHA or branch name that could not be determined.
UNKNOWN = "unknown"

#: Characters that are not allowed in a container image tag are replaced with a dash.
_TAG_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


class MalformedBaseVersionError(ValueError):
    """Raised when the persisted base version is not of the form `<major>.<minor>`."""

    def __init__(self, value: str, source: Path | None = None) -> None:
        super().__init__(value, source)
        self.value = value
        self.source = source

    def __str__(self) -> str:
        where = f" in {self.source}" if self.source else ""
        return f"malformed base version {self.value!r}{where}, expected <major>.<minor>"


@dataclasses.dataclass(frozen=True)
class BaseVersion:
    """The manually maintained part of the version number."""

    DEFAULT: t.ClassVar[BaseVersion]

    major: int
    minor: int

    def __post_init__(self) -> None:
        if self.major < 0 or self.minor < 0:
            raise ValueError(f"version components must be non-negative, got {self}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, text: str) -> BaseVersion:
        value = text.strip()
        parts = value.split(".")
        if len(parts) < 2 or not all(p.isdigit() and p.isascii() for p in parts[:2]):
            raise MalformedBaseVersionError(value)
        if len(parts) > 2:
            logger.warning("Ignoring trailing components of base version <val>%s</val>", value)
        return cls(int(parts[0]), int(parts[1]))

    def next_major(self) -> BaseVersion:
        return BaseVersion(self.major + 1, 0)

    def next_minor(self) -> BaseVersion:
        return BaseVersion(self.major, self.minor + 1)


BaseVersion.DEFAULT = BaseVersion(1, 1)


class BaseVersionFile:
    """The file that persists the #BaseVersion as a single `<major>.<minor>` line."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f'BaseVersionFile("{self.path}")'

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> BaseVersion:
        """Returns the persisted base version, or #BaseVersion.DEFAULT if the file does not exist. Raises a
        #MalformedBaseVersionError if the file content cannot be parsed."""

        if not self.exists():
            logger.debug("No base version file at <subj>%s</subj>, using <val>%s</val>", self.path, BaseVersion.DEFAULT)
            return BaseVersion.DEFAULT
        text = self.path.read_text(encoding="utf-8")
        try:
            return BaseVersion.parse(text)
        except MalformedBaseVersionError as exc:
            raise MalformedBaseVersionError(exc.value, self.path) from None

    def save(self, version: BaseVersion) -> None:
        logger.info("Writing base version <val>%s</val> to <subj>%s</subj>", version, self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with atomic_write(self.path) as fp:
            fp.write(f"{version}\n")


class BranchKind(enum.Enum):
    RELEASE = "release"
    HOTFIX = "hotfix"
    DEVELOP = "develop"
    FEATURE = "feature"


def sanitize_branch_name(branch: str) -> str:
    """Makes a branch name usable as part of a container image tag. The result is lowercase and contains only
    characters from `[a-z0-9._-]`. Applying the function again does not change the result."""

    return _TAG_UNSAFE_CHARS.sub("-", branch.lower())


def classify_branch(branch: str) -> BranchKind:
    """Classifies a branch name. `main`, `master` and `release/*` are release branches, `hotfix/*` are hotfix
    branches, `develop` is the development branch and everything else is a feature branch. Case is ignored, as
    it is in the sanitized branch name."""

    branch = branch.lower()
    if branch in ("main", "master") or branch.startswith("release/"):
        return BranchKind.RELEASE
    if branch.startswith("hotfix/"):
        return BranchKind.HOTFIX
    if branch == "develop":
        return BranchKind.DEVELOP
    return BranchKind.FEATURE


def semantic_version(base: BaseVersion, sha: str) -> str:
    return f"{base.major}.{base.minor}.{sha}"


def image_name(registry: str, service: str) -> str:
    return f"{registry.rstrip('/')}/{service}"


def image_reference(registry: str, service: str, sha: str) -> str:
    """Returns the image reference that deployments of *service* are pinned to."""

    return f"{image_name(registry, service)}:{sha}"


def container_tags(base: BaseVersion, sha: str, branch: str, registry: str, service: str) -> list[str]:
    """Returns the container image tags for a build, in a stable order:

    1. the semantic version
    2. the short commit SHA
    3. `<branch>-<sha>` (with the branch name sanitized)
    4. `latest`, `<major>` and `<major>.<minor>` on release branches
    5. `develop` on the development branch

    The *branch* is classified as given, so pass the unsanitized name to have `release/*` recognized."""

    image = image_name(registry, service)
    tags = [
        f"{image}:{semantic_version(base, sha)}",
        f"{image}:{sha}",
        f"{image}:{sanitize_branch_name(branch)}-{sha}",
    ]

    kind = classify_branch(branch)
    if kind == BranchKind.RELEASE:
        tags.append(f"{image}:latest")
        tags.append(f"{image}:{base.major}")
        tags.append(f"{image}:{base.major}.{base.minor}")
    elif kind == BranchKind.DEVELOP:
        tags.append(f"{image}:develop")

    return tags


@dataclasses.dataclass(frozen=True)
class GitInfo:
    """Git metadata of the current checkout. Values that could not be determined are #UNKNOWN (or `0` for the
    commit count)."""

    commit_sha: str = UNKNOWN

    #: The abbreviated ref name of `HEAD` as reported by Git, e.g. `feature/Login`.
    ref_name: str = UNKNOWN

    commit_count: int = 0

    @property
    def branch(self) -> str:
        """The sanitized branch name."""

        return sanitize_branch_name(self.ref_name)

    @property
    def kind(self) -> BranchKind:
        return classify_branch(self.ref_name)


@dataclasses.dataclass(frozen=True)
class VersionInfo:
    """Everything derived for one service from the base version and the Git state."""

    service: str
    base: BaseVersion
    git: GitInfo
    registry: str

    @property
    def semantic_version(self) -> str:
        return semantic_version(self.base, self.git.commit_sha)

    @property
    def image(self) -> str:
        return image_reference(self.registry, self.service, self.git.commit_sha)

    @property
    def tags(self) -> list[str]:
        return container_tags(self.base, self.git.commit_sha, self.git.ref_name, self.registry, self.service)

    @property
    def is_release(self) -> bool:
        return self.git.kind == BranchKind.RELEASE


SUMMARY_TEMPLATE = """\
## 🏷️ Version Information for {{ info.service }}

**Semantic Version:** `{{ info.semantic_version }}`
**Commit SHA:** `{{ info.git.commit_sha }}`
**Branch:** `{{ info.git.branch }}`

### 📦 Container Tags
{% for tag in info.tags %}
- `{{ tag }}`
{% endfor %}

### 📅 Build Information
- **Timestamp:** {{ timestamp }}
- **Build Number:** {{ info.git.commit_count }}
- **Is Release:** {{ "Yes" if info.is_release else "No" }}
"""


def format_timestamp(timestamp: datetime.datetime) -> str:
    """Formats *timestamp* in UTC as `YYYY-MM-DDTHH:MM:SSZ`."""

    return timestamp.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def render_summary(info: VersionInfo, timestamp: datetime.datetime | None = None) -> str:
    """Renders a Markdown summary of the version information, e.g. for a CI job summary. The *timestamp* defaults
    to the current time."""

    import jinja2

    timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)
    template = jinja2.Template(SUMMARY_TEMPLATE, trim_blocks=True, keep_trailing_newline=True)
    return template.render(info=info, timestamp=format_timestamp(timestamp))
