from pathlib import Path

import pytest

from oamver.manifest import (
    ManifestNotFoundError,
    ManifestPatcher,
    ServiceBlockNotFoundError,
    image_belongs_to,
    image_repository,
)

MANIFEST = """\
apiVersion: core.oam.dev/v1beta1
kind: Application
metadata:
  name: socrates
  annotations:
    description: "Socrates platform"  # keep me
spec:
  components:
    # The API
    - name: orchestration-service
      type: webservice
      properties:
        env:
          - name: LOG_LEVEL
            value: info
        image: docker.io/socrates12345/orchestration-service:0000000
        ports:
          - port: 8000
    - name: streamlit-frontend
      type: webservice
      properties:
        image: "docker.io/socrates12345/streamlit-frontend:0000000"
    - name: orchestration-service-worker
      type: worker
      properties:
        image: docker.io/socrates12345/orchestration-service-worker:0000000
"""

PATCHED = """\
apiVersion: core.oam.dev/v1beta1
kind: Application
metadata:
  name: socrates
  annotations:
    app.version: "1.1.abc1234"
    app.commit-sha: "abc1234"
    description: "Socrates platform"  # keep me
spec:
  components:
    # The API
    - name: orchestration-service
      type: webservice
      properties:
        env:
          - name: LOG_LEVEL
            value: info
        image: docker.io/socrates12345/orchestration-service:abc1234
        ports:
          - port: 8000
    - name: streamlit-frontend
      type: webservice
      properties:
        image: "docker.io/socrates12345/streamlit-frontend:0000000"
    - name: orchestration-service-worker
      type: worker
      properties:
        image: docker.io/socrates12345/orchestration-service-worker:0000000
"""

IMAGE = "docker.io/socrates12345/orchestration-service:abc1234"


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    path = tmp_path / "application.yaml"
    path.write_bytes(MANIFEST.encode())
    return path


def _patch(path: Path, service: str = "orchestration-service", image: str = IMAGE, sha: str = "abc1234"):
    return ManifestPatcher(path).patch(service, image, f"1.1.{sha}", sha)


def test__ManifestPatcher__updates_image_and_inserts_annotations(manifest: Path):
    result = _patch(manifest)

    assert manifest.read_bytes().decode() == PATCHED
    assert result.changed
    assert result.images_updated == 1
    assert result.annotations_inserted == ["app.version", "app.commit-sha"]
    assert result.annotations_updated == []


def test__ManifestPatcher__is_idempotent(manifest: Path):
    _patch(manifest)
    first = manifest.read_bytes()

    result = _patch(manifest)

    assert manifest.read_bytes() == first
    assert not result.changed
    assert result.annotations_updated == ["app.version", "app.commit-sha"]
    assert result.annotations_inserted == []


def test__ManifestPatcher__updates_existing_annotations_in_place(manifest: Path):
    _patch(manifest, image="docker.io/socrates12345/orchestration-service:1111111", sha="1111111")
    _patch(manifest)

    content = manifest.read_text()
    assert content == PATCHED
    assert content.count("app.version:") == 1
    assert content.count("app.commit-sha:") == 1


def test__ManifestPatcher__keeps_annotation_quoting_style_and_comments(tmp_path: Path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "metadata:\n"
        "  annotations:\n"
        "    app.version: 0.9.old  # managed\n"
        "    'app.commit-sha': 'old'\n"
        "spec:\n"
        "  components:\n"
        "    - name: svc\n"
        "      properties:\n"
        "        image: 'registry:5000/team/svc:old'\n"
    )

    _patch(path, "svc", "registry:5000/team/svc:abc1234")

    assert path.read_text() == (
        "metadata:\n"
        "  annotations:\n"
        '    app.version: "1.1.abc1234"  # managed\n'
        "    'app.commit-sha': \"abc1234\"\n"
        "spec:\n"
        "  components:\n"
        "    - name: svc\n"
        "      properties:\n"
        "        image: 'registry:5000/team/svc:abc1234'\n"
    )


def test__ManifestPatcher__overwrites_unquoted_annotation_containing_a_hash(tmp_path: Path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "metadata:\n"
        "  annotations:\n"
        "    app.version: 1.1.a#b\n"
        "    app.commit-sha: a#b  # previous build\n"
        "spec:\n"
        "  components:\n"
        "    - name: svc\n"
        "      properties:\n"
        "        image: me/svc:old\n"
    )

    result = _patch(path, "svc", "me/svc:abc1234")

    content = path.read_text()
    assert content.count("app.version:") == 1
    assert content.count("app.commit-sha:") == 1
    assert '    app.version: "1.1.abc1234"\n' in content
    assert '    app.commit-sha: "abc1234"  # previous build\n' in content
    assert result.annotations_updated == ["app.version", "app.commit-sha"]
    assert result.annotations_inserted == []


def test__ManifestPatcher__without_annotations_block_only_updates_image(tmp_path: Path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "metadata:\n"
        "  name: app\n"
        "spec:\n"
        "  components:\n"
        "  - name: svc\n"
        "    properties:\n"
        "      image: svc:old\n"
    )

    result = _patch(path, "svc", "docker.io/me/svc:abc1234")

    assert path.read_text() == (
        "metadata:\n"
        "  name: app\n"
        "spec:\n"
        "  components:\n"
        "  - name: svc\n"
        "    properties:\n"
        "      image: docker.io/me/svc:abc1234\n"
    )
    assert result.annotations_inserted == []
    assert result.annotations_updated == []


def test__ManifestPatcher__ignores_annotations_outside_of_document_metadata(tmp_path: Path):
    path = tmp_path / "app.yaml"
    text = (
        "metadata:\n"
        "  name: app\n"
        "spec:\n"
        "  components:\n"
        "    - name: svc\n"
        "      annotations:\n"
        "        app.version: keep\n"
        "      properties:\n"
        "        image: svc:abc1234\n"
    )
    path.write_text(text)

    result = _patch(path, "svc", "svc:abc1234")

    assert path.read_text() == text
    assert not result.changed


def test__ManifestPatcher__keeps_crlf_line_endings(tmp_path: Path):
    path = tmp_path / "app.yaml"
    path.write_bytes(
        b"metadata:\r\n"
        b"  annotations: {}\r\n"
        b"spec:\r\n"
        b"  components:\r\n"
        b"    - name: svc\r\n"
        b"      properties:\r\n"
        b"        image: me/svc:old\r\n"
    )

    _patch(path, "svc", "me/svc:abc1234")

    assert path.read_bytes() == (
        b"metadata:\r\n"
        b"  annotations: {}\r\n"
        b"spec:\r\n"
        b"  components:\r\n"
        b"    - name: svc\r\n"
        b"      properties:\r\n"
        b"        image: me/svc:abc1234\r\n"
    )


def test__ManifestPatcher__inserts_annotations_into_empty_block(tmp_path: Path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "metadata:\n"
        "  annotations:\n"
        "spec:\n"
        "  components:\n"
        "    - name: svc\n"
        "      properties:\n"
        "        image: me/svc:old\n"
    )

    _patch(path, "svc", "me/svc:abc1234")

    assert path.read_text() == (
        "metadata:\n"
        "  annotations:\n"
        '    app.version: "1.1.abc1234"\n'
        '    app.commit-sha: "abc1234"\n'
        "spec:\n"
        "  components:\n"
        "    - name: svc\n"
        "      properties:\n"
        "        image: me/svc:abc1234\n"
    )


def test__ManifestPatcher__missing_service_block_leaves_file_unchanged(manifest: Path):
    with pytest.raises(ServiceBlockNotFoundError) as excinfo:
        _patch(manifest, "billing-service", "docker.io/socrates12345/billing-service:abc1234")

    assert excinfo.value.service == "billing-service"
    assert manifest.read_bytes() == MANIFEST.encode()


def test__ManifestPatcher__missing_manifest(tmp_path: Path):
    path = tmp_path / "oam" / "application.yaml"
    with pytest.raises(ManifestNotFoundError) as excinfo:
        _patch(path)
    assert str(excinfo.value) == f"OAM application file not found at {path}"
    assert not path.exists()


def test__ManifestPatcher__leaves_no_temporary_files(manifest: Path):
    _patch(manifest)
    assert [p.name for p in manifest.parent.iterdir()] == [manifest.name]


def test__ManifestPatcher__rejects_empty_service(manifest: Path):
    with pytest.raises(ValueError):
        _patch(manifest, "")


def test__image_repository():
    assert image_repository("docker.io/me/svc:abc1234") == "docker.io/me/svc"
    assert image_repository("registry:5000/team/svc:1.0") == "registry:5000/team/svc"
    assert image_repository("registry:5000/team/svc") == "registry:5000/team/svc"
    assert image_repository("me/svc@sha256:0123") == "me/svc"
    assert image_repository("svc") == "svc"


def test__image_belongs_to():
    assert image_belongs_to("docker.io/me/svc:abc1234", "svc")
    assert image_belongs_to("svc:latest", "svc")
    assert not image_belongs_to("docker.io/me/my-svc:abc1234", "svc")
    assert not image_belongs_to("docker.io/me/svc-worker:abc1234", "svc")


def test__ManifestPatcher__keeps_byte_order_mark(tmp_path: Path):
    path = tmp_path / "app.yaml"
    path.write_bytes(b"\xef\xbb\xbf" + MANIFEST.encode())

    result = _patch(path)

    assert path.read_bytes() == b"\xef\xbb\xbf" + PATCHED.encode()
    assert result.annotations_inserted == ["app.version", "app.commit-sha"]
