from pathlib import Path

from cleo.testers.application_tester import ApplicationTester
from pytest import MonkeyPatch, fixture

from oamver.application import Application
from oamver.vcs import StaticInfoProvider

MANIFEST = """\
metadata:
  name: socrates
  annotations:
    description: socrates
spec:
  components:
    - name: orchestration-service
      properties:
        image: docker.io/socrates12345/orchestration-service:0000000
    - name: streamlit-frontend
      properties:
        image: docker.io/socrates12345/streamlit-frontend:0000000
"""


@fixture
def project(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    return tmp_path


def make_tester(project: Path, ref_name: str = "main") -> ApplicationTester:
    app = Application(project, StaticInfoProvider("abc1234", ref_name, 42))
    app.load_plugins()
    return ApplicationTester(app.cleo)


def write_manifest(project: Path) -> Path:
    path = project / "oam" / "applications" / "application.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(MANIFEST)
    return path


def test__version_command(project: Path):
    tester = make_tester(project)
    assert tester.execute("version orchestration-service") == 0
    assert tester.io.fetch_output() == "1.1.abc1234\n"


def test__version_command__reads_base_version_file(project: Path):
    (project / ".version").write_text("2.5\n")
    tester = make_tester(project)
    assert tester.execute("version orchestration-service") == 0
    assert tester.io.fetch_output() == "2.5.abc1234\n"


def test__version_command__malformed_base_version_fails(project: Path):
    (project / ".version").write_text("two.five\n")
    tester = make_tester(project)
    assert tester.execute("version orchestration-service") == 1
    assert tester.io.fetch_output() == ""
    assert "malformed base version 'two.five'" in tester.io.fetch_error()


def test__tags_command__feature_branch(project: Path):
    tester = make_tester(project, "feature/x")
    assert tester.execute("tags orchestration-service") == 0
    assert tester.io.fetch_output() == (
        "docker.io/socrates12345/orchestration-service:1.1.abc1234,"
        "docker.io/socrates12345/orchestration-service:abc1234,"
        "docker.io/socrates12345/orchestration-service:feature-x-abc1234\n"
    )


def test__tags_command__with_registry_argument(project: Path):
    tester = make_tester(project, "develop")
    assert tester.execute("tags api ghcr.io/acme") == 0
    assert tester.io.fetch_output() == (
        "ghcr.io/acme/api:1.1.abc1234,ghcr.io/acme/api:abc1234,ghcr.io/acme/api:develop-abc1234,ghcr.io/acme/api:develop\n"
    )


def test__tags_command__uses_configured_registry(project: Path):
    (project / "oamver.toml").write_text('registry = "ghcr.io/acme"\n')
    tester = make_tester(project)
    assert tester.execute("tags api") == 0
    assert tester.io.fetch_output().split(",") == [
        "ghcr.io/acme/api:1.1.abc1234",
        "ghcr.io/acme/api:abc1234",
        "ghcr.io/acme/api:main-abc1234",
        "ghcr.io/acme/api:latest",
        "ghcr.io/acme/api:1",
        "ghcr.io/acme/api:1.1\n",
    ]


def test__update_oam_command(project: Path):
    manifest = write_manifest(project)
    tester = make_tester(project)

    assert tester.execute("update-oam orchestration-service") == 0

    output = tester.io.fetch_output()
    assert "Updating OAM application for orchestration-service" in output
    assert "New image: docker.io/socrates12345/orchestration-service:abc1234" in output
    assert "Semantic version: 1.1.abc1234" in output
    assert "Successfully updated orchestration-service image in OAM application" in output

    content = manifest.read_text()
    assert "image: docker.io/socrates12345/orchestration-service:abc1234\n" in content
    assert "image: docker.io/socrates12345/streamlit-frontend:0000000\n" in content
    assert '    app.version: "1.1.abc1234"\n' in content
    assert '    app.commit-sha: "abc1234"\n' in content


def test__update_oam_command__is_idempotent(project: Path):
    manifest = write_manifest(project)
    tester = make_tester(project)

    assert tester.execute("update-oam orchestration-service") == 0
    content = manifest.read_bytes()
    assert tester.execute("update-oam orchestration-service") == 0

    assert manifest.read_bytes() == content
    assert "OAM application is already up to date for orchestration-service" in tester.io.fetch_output()


def test__update_oam_command__missing_manifest_fails(project: Path):
    tester = make_tester(project)
    assert tester.execute("update-oam orchestration-service") == 1
    assert "OAM application file not found at" in tester.io.fetch_error()
    assert not (project / "oam").exists()


def test__update_oam_command__unknown_service_fails(project: Path):
    manifest = write_manifest(project)
    tester = make_tester(project)
    assert tester.execute("update-oam billing-service") == 1
    assert "billing-service" in tester.io.fetch_error()
    assert manifest.read_text() == MANIFEST


def test__summary_command(project: Path):
    tester = make_tester(project)
    assert tester.execute("summary orchestration-service") == 0

    output = tester.io.fetch_output()
    assert output.startswith("## 🏷️ Version Information for orchestration-service\n")
    assert "- `docker.io/socrates12345/orchestration-service:latest`\n" in output
    assert "- **Build Number:** 42\n" in output
    assert "- **Is Release:** Yes\n" in output


def test__increment_major_command(project: Path):
    (project / ".version").write_text("2.5\n")
    tester = make_tester(project)

    assert tester.execute("increment-major") == 0
    assert tester.io.fetch_output() == "Incremented major version from 2.5 to 3.0\n"
    assert (project / ".version").read_text() == "3.0\n"

    tester = make_tester(project)
    assert tester.execute("version orchestration-service") == 0
    assert tester.io.fetch_output() == "3.0.abc1234\n"


def test__increment_minor_command__creates_version_file(project: Path):
    tester = make_tester(project)
    assert tester.execute("increment-minor") == 0
    assert tester.io.fetch_output() == "Incremented minor version from 1.1 to 1.2\n"
    assert (project / ".version").read_text() == "1.2\n"


def test__help_command__prints_usage(project: Path):
    tester = make_tester(project)
    assert tester.execute("help") == 0

    output = tester.io.fetch_output()
    assert output.startswith("Usage: oamver <command> [service] [registry]\n")
    for command in ("version", "tags", "update-oam", "summary", "increment-major", "increment-minor"):
        assert f"  {command}" in output
    assert "Examples:" in output


def test__unknown_command__prints_usage(project: Path):
    tester = make_tester(project)
    assert tester.execute("frobnicate") == 0
    assert tester.io.fetch_output().startswith("Usage: oamver <command> [service] [registry]\n")
