import json
from pathlib import Path

from stencil.cache.fs_cache import CacheSnapshot
from stencil.config import ConfigError
from stencil.errors import format_user_error
from stencil.jsonic import dumps

from tests.infrastructure.cli_utils import jload, run_cli
from tests.infrastructure.file_utils import write, write_config


def test_cli_render_with_json_data(project: Path):
    write(project / "data.json", json.dumps({"user": {"name": "Ana"}}))
    cp = run_cli(project, "render", "pages/home", "--data", "data.json")
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout == "<title>Home</title>\n<main>Hello Ana</main>\n"


def test_cli_render_with_yaml_data(project: Path):
    write(project / "data.yaml", "players:\n  - name: A\n  - name: B\n")
    cp = run_cli(project, "render", "pages/team.html", "--data", "data.yaml")
    assert cp.returncode == 0, cp.stderr
    assert "<li>A</li><li>B</li>" in cp.stdout


def test_cli_render_with_stdin(project: Path):
    cp = run_cli(project, "render", "partials/greeting", "--data", "-", stdin='{"user": {"name": "Bo"}}')
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout == "Hi Bo!"


def test_cli_render_missing_template(project: Path):
    cp = run_cli(project, "render", "nope")
    assert cp.returncode == 2
    assert cp.stderr.startswith("error: Template 'nope' not found.")


def test_cli_render_bad_data(project: Path):
    write(project / "data.json", "[1, 2]")
    cp = run_cli(project, "render", "plain.txt", "--data", "data.json")
    assert cp.returncode == 2
    assert "Data must be a mapping" in cp.stderr


def test_cli_compile_report(project: Path):
    cp = run_cli(project, "compile")
    assert cp.returncode == 0, cp.stderr
    data = jload(cp.stdout)
    assert "pages/home.html" in data["compiled"]
    assert data["errors"] == {}

    cp = run_cli(project, "compile")
    data = jload(cp.stdout)
    assert data["compiled"] == []
    assert len(data["skipped"]) == 5


def test_cli_compile_reports_errors(project: Path):
    write(project / "templates/broken.html", "{% endfor %}")
    cp = run_cli(project, "compile")
    assert cp.returncode == 1
    data = jload(cp.stdout)
    assert "broken.html" in data["errors"]


def test_cli_cache_status_and_clear(project: Path):
    run_cli(project, "compile")
    cp = run_cli(project, "cache", "status")
    assert cp.returncode == 0, cp.stderr
    status = jload(cp.stdout)
    assert status["enabled"] is True
    assert status["entries"] == 5
    assert Path(status["path"]) == (project / ".stencil-cache").resolve()

    cp = run_cli(project, "cache", "clear")
    assert cp.returncode == 0, cp.stderr
    assert jload(cp.stdout)["entries"] == 0


def test_cli_list_templates_with_config(project: Path):
    write_config(project, """
        cache:
          warmup:
            exclude: ["layouts/"]
    """)
    cp = run_cli(project, "list", "templates")
    assert cp.returncode == 0, cp.stderr
    assert jload(cp.stdout)["templates"] == [
        "pages/home.html", "pages/team.html", "partials/greeting.html", "partials/player.html",
    ]


def test_cli_invalid_config(project: Path):
    write_config(project, "bogus: 1\n")
    cp = run_cli(project, "list", "templates")
    assert cp.returncode == 2
    assert "Unknown config key" in cp.stderr


def test_cli_explicit_config(project: Path):
    write(project / "alt/site.yaml", "paths: [../templates]\ncache:\n  enabled: false\n")
    cp = run_cli(project, "cache", "status", "--config", "alt/site.yaml")
    assert cp.returncode == 0, cp.stderr
    assert jload(cp.stdout)["enabled"] is False


def test_cli_verbose_logs_to_stderr(project: Path):
    cp = run_cli(project, "render", "plain.txt", "--verbose")
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout == "static"
    assert "[DEBUG]" in cp.stderr


def test_cli_version(project: Path):
    cp = run_cli(project, "--version")
    assert cp.returncode == 0
    assert cp.stdout.startswith("stencil ")


def test_user_error_line():
    assert format_user_error(ConfigError("bad key\n")) == "error: bad key\n"


def test_jsonic_encodes_snapshots():
    snap = CacheSnapshot(enabled=True, path=Path("c"), exists=False, size_bytes=0, entries=0)
    assert jload(dumps({"s": snap, "name": "Grüße"})) == {
        "s": {"enabled": True, "path": "c", "exists": False, "size_bytes": 0, "entries": 0},
        "name": "Grüße",
    }
    assert "Grüße" in dumps("Grüße")
