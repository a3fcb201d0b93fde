""" Patches the image of a component and the version annotations of an OAM application manifest.

The manifest is edited as text rather than loaded and dumped as YAML, so that comments, quoting and formatting
outside of the updated values are kept byte for byte. The regions to edit are located by indentation:

```yaml
apiVersion: core.oam.dev/v1beta1
kind: Application
metadata:
  name: my-app
  annotations:                                  # <- document annotations, upserted
    app.version: "1.1.abc1234"
    app.commit-sha: "abc1234"
spec:
  components:
    - name: orchestration-service               # <- component block of the service
      type: webservice
      properties:
        image: docker.io/me/orchestration-service:abc1234   # <- rewritten
    - name: streamlit-frontend                  # <- end of the block
```
"""

from __future__ import annotations

import dataclasses
import logging
import re
import typing as t
from pathlib import Path

import yaml

from oamver.util.fs import atomic_write, read_text
from oamver.util.text import SubstRange, leading_whitespace, line_ending, substitute_ranges

logger = logging.getLogger(__name__)

#: The annotation that holds the semantic version of the latest deployed build.
VERSION_ANNOTATION = "app.version"

#: The annotation that holds the commit SHA of the latest deployed build.
COMMIT_SHA_ANNOTATION = "app.commit-sha"

_BOM = "\ufeff"
_COMPONENT_NAME = re.compile(r"^[ \t]*-[ \t]+name:[ \t]*(?P<q>[\"']?)(?P<name>[^\"'#\s]+)(?P=q)[ \t]*(?:#.*)?$")
_IMAGE = re.compile(r"^[ \t]*(?:-[ \t]+)?image:[ \t]*(?P<q>[\"']?)(?P<value>[^\"'#\s]+)(?P=q)(?:[ \t]+#.*)?[ \t]*$")
_METADATA = re.compile(r"^metadata:[ \t]*(?:#.*)?$")
_ANNOTATIONS = re.compile(r"^[ \t]+annotations:[ \t]*(?:#.*)?$")
_ANNOTATION_ENTRY = r"^[ \t]*(?P<kq>[\"']?){key}(?P=kq):(?P<value>[ \t]*(?:\"[^\"]*\"|'[^']*'|.*?))(?:[ \t]+#.*)?$"


class ManifestError(Exception):
    """Base class for errors when patching a manifest. The manifest is left unchanged when one is raised."""


class ManifestNotFoundError(ManifestError):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"OAM application file not found at {self.path}"


class ServiceBlockNotFoundError(ManifestError):
    def __init__(self, path: Path, service: str) -> None:
        super().__init__(path, service)
        self.path = path
        self.service = service

    def __str__(self) -> str:
        return f"no component named {self.service!r} in {self.path}"


class InvalidManifestError(ManifestError):
    """Raised if the patched manifest would no longer be valid YAML."""


class ManifestWriteError(ManifestError):
    """Raised if the patched manifest could not be written. Wraps the #OSError."""


@dataclasses.dataclass
class ManifestPatchResult:
    path: Path

    #: The number of `image:` fields of the service that were (re)written.
    images_updated: int

    #: Annotations whose existing value was overwritten.
    annotations_updated: list[str] = dataclasses.field(default_factory=list)

    #: Annotations that did not exist and were added.
    annotations_inserted: list[str] = dataclasses.field(default_factory=list)

    #: Whether the file content changed. A repeated patch with the same values does not change the file.
    changed: bool = False


class _Line(t.NamedTuple):
    start: int
    body: str
    eol: str

    @property
    def end(self) -> int:
        return self.start + len(self.body)

    @property
    def indent(self) -> int:
        return len(leading_whitespace(self.body))

    @property
    def is_content(self) -> bool:
        """Whether the line contributes to the YAML structure (is not blank and not just a comment)."""

        stripped = self.body.strip()
        return bool(stripped) and not stripped.startswith("#")


def _split_lines(text: str) -> list[_Line]:
    lines = []
    for match in re.finditer(r"[^\n]*\n|[^\n]+", text):
        raw = match.group(0)
        eol = line_ending(raw, "")
        lines.append(_Line(match.start(), raw[: len(raw) - len(eol)], eol))
    return lines


def _block_end(lines: list[_Line], index: int, indent: int) -> int:
    """Returns the index of the first line after *index* that is not nested deeper than *indent*."""

    for j in range(index + 1, len(lines)):
        if lines[j].is_content and lines[j].indent <= indent:
            return j
    return len(lines)


def image_repository(reference: str) -> str:
    """Returns the repository part of an image reference, without tag and digest. A colon in the registry host
    (for a port) is not mistaken for a tag."""

    name = reference.split("@", 1)[0]
    last = name.rsplit("/", 1)[-1]
    if ":" in last:
        name = name[: len(name) - len(last) + last.index(":")]
    return name


def image_belongs_to(reference: str, service: str) -> bool:
    repository = image_repository(reference)
    return repository == service or repository.endswith("/" + service)


def quote(value: str) -> str:
    """Formats *value* as a double-quoted YAML scalar."""

    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class ManifestPatcher:
    """Applies an idempotent patch to a single OAM application manifest: the image of one component and the
    document-level version annotations are updated, everything else is left as it is.

    The file is replaced atomically, readers never see a partially written manifest. Concurrent patches of the
    same file are not coordinated, the last writer wins."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f'ManifestPatcher("{self.path}")'

    def patch(self, service: str, new_image: str, version: str, commit_sha: str) -> ManifestPatchResult:
        """Points the component *service* to *new_image* and sets the version annotations.

        :raise ManifestNotFoundError: If the manifest does not exist.
        :raise ServiceBlockNotFoundError: If there is no component named *service*. The file is not modified.
        :raise InvalidManifestError: If the patched manifest would not be valid YAML.
        :raise ManifestWriteError: If the patched manifest could not be written.
        """

        if not service:
            raise ValueError("service name must not be empty")
        if not self.path.is_file():
            raise ManifestNotFoundError(self.path)

        text = read_text(self.path)

        # A byte order mark is kept as is but must not shift the first line.
        bom = _BOM if text.startswith(_BOM) else ""
        text = text[len(bom) :]

        lines = _split_lines(text)
        result = ManifestPatchResult(self.path, 0)

        image_ranges = self._get_image_ranges(lines, service, new_image)
        result.images_updated = len(image_ranges)

        annotations = {VERSION_ANNOTATION: version, COMMIT_SHA_ANNOTATION: commit_sha}
        annotation_ranges = self._get_annotation_ranges(lines, annotations, result)

        new_text = substitute_ranges(text, image_ranges + annotation_ranges)
        result.changed = new_text != text
        if not result.changed:
            logger.info("<subj>%s</subj> is already up to date", self.path)
            return result

        self._validate(text, new_text)

        try:
            with atomic_write(self.path) as fp:
                fp.write(bom + new_text)
        except OSError as exc:
            raise ManifestWriteError(f"unable to write {self.path}: {exc}") from exc

        logger.info(
            "Patched <subj>%s</subj> (images: <val>%d</val>, annotations updated: <val>%s</val>, "
            "inserted: <val>%s</val>)",
            self.path,
            result.images_updated,
            result.annotations_updated,
            result.annotations_inserted,
        )
        return result

    def _get_image_ranges(self, lines: list[_Line], service: str, new_image: str) -> list[SubstRange]:
        ranges: list[SubstRange] = []
        found_block = False

        for index, line in enumerate(lines):
            match = _COMPONENT_NAME.match(line.body)
            if not match or match.group("name") != service:
                continue
            found_block = True
            end = _block_end(lines, index, line.indent)
            logger.debug("Found component <subj>%s</subj> on lines %d-%d", service, index + 1, end)

            for block_line in lines[index + 1 : end]:
                image_match = _IMAGE.match(block_line.body)
                if not image_match or not image_belongs_to(image_match.group("value"), service):
                    continue
                logger.debug("Replacing image <val>%s</val> with <val>%s</val>", image_match.group("value"), new_image)
                start = block_line.start + image_match.start("value")
                ranges.append((start, block_line.start + image_match.end("value"), new_image))

        if not found_block:
            raise ServiceBlockNotFoundError(self.path, service)
        if not ranges:
            logger.warning("Component <subj>%s</subj> has no image of the service to update", service)
        return ranges

    def _find_annotation_blocks(self, lines: list[_Line]) -> list[int]:
        """Returns the indices of the `annotations:` lines that are direct children of a top-level `metadata:`."""

        result = []
        for index, line in enumerate(lines):
            if not _METADATA.match(line.body):
                continue
            end = _block_end(lines, index, 0)
            children = [i for i in range(index + 1, end) if lines[i].is_content]
            if not children:
                continue
            child_indent = lines[children[0]].indent
            for i in children:
                if lines[i].indent == child_indent and _ANNOTATIONS.match(lines[i].body):
                    result.append(i)
                    break
        return result

    def _get_annotation_ranges(
        self, lines: list[_Line], annotations: dict[str, str], result: ManifestPatchResult
    ) -> list[SubstRange]:
        blocks = self._find_annotation_blocks(lines)
        if not blocks:
            logger.warning(
                "No <val>metadata.annotations</val> found in <subj>%s</subj>, skipping annotations", self.path
            )
            return []

        ranges: list[SubstRange] = []
        for index in blocks:
            marker = lines[index]
            end = _block_end(lines, index, marker.indent)
            entries = [line for line in lines[index + 1 : end] if line.is_content]
            key_indent = leading_whitespace(entries[0].body) if entries else leading_whitespace(marker.body) + "  "

            missing = []
            for key, value in annotations.items():
                pattern = re.compile(_ANNOTATION_ENTRY.format(key=re.escape(key)))
                matched = False
                for entry in entries:
                    if leading_whitespace(entry.body) != key_indent:
                        continue
                    match = pattern.match(entry.body)
                    if match:
                        matched = True
                        start, end = entry.start + match.start("value"), entry.start + match.end("value")
                        ranges.append((start, end, " " + quote(value)))
                if matched:
                    result.annotations_updated.append(key)
                else:
                    missing.append(key)
                    result.annotations_inserted.append(key)

            if missing:
                eol = marker.eol or lines[0].eol or "\n"
                new_lines = [f"{key_indent}{key}: {quote(annotations[key])}" for key in missing]
                if marker.eol:
                    insertion = "".join(line + eol for line in new_lines)
                else:
                    insertion = "".join(eol + line for line in new_lines)
                ranges.append((marker.end + len(marker.eol), marker.end + len(marker.eol), insertion))

        return ranges

    def _validate(self, old_text: str, new_text: str) -> None:
        """Ensures that the patch did not break the YAML syntax. Manifests that were not valid YAML to begin with
        (e.g. templates) are not checked."""

        try:
            list(yaml.safe_load_all(old_text))
        except yaml.YAMLError:
            logger.warning("<subj>%s</subj> is not valid YAML, the patched result is not validated", self.path)
            return
        try:
            list(yaml.safe_load_all(new_text))
        except yaml.YAMLError as exc:
            raise InvalidManifestError(f"patching {self.path} would produce invalid YAML: {exc}") from exc
