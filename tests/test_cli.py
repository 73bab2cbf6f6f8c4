"""Tests for gherkin_analyzer/cli.py"""

import json
import subprocess
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from gherkin_analyzer import runtime
from gherkin_analyzer.cli import cli
from gherkin_analyzer.config import TEMPLATE

BASE     = "https://sonar.example.com"
PROFILES = f"{BASE}/api/qualityprofiles/search"
RULES    = f"{BASE}/api/rules/search"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("SONAR_URL", "SONAR_TOKEN", "JAVA_HOME"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path) -> Path:
    p = tmp_path / "gherkin-analyzer.yaml"
    p.write_text(TEMPLATE, encoding="utf-8")
    return p


@pytest.fixture
def jdk(tmp_path, monkeypatch) -> Path:
    home = tmp_path / "jdk"
    (home / "bin").mkdir(parents=True)
    (home / "bin" / "java").write_text("")
    monkeypatch.setattr(runtime, "get_java_version", lambda path, runner=None: 17)
    return home


def _mock_sonar(requests_mock, rules: list[dict]) -> None:
    requests_mock.get(PROFILES, json={"profiles": [
        {"key": "ayx-q", "name": "Qualimetry way", "language": "gherkin"},
    ]})
    requests_mock.get(RULES, json={"total": len(rules), "rules": rules, "actives": {}})


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

def test_init_writes_template(runner, tmp_path):
    out = tmp_path / "new.yaml"
    result = runner.invoke(cli, ["init", "--output", str(out)])
    assert result.exit_code == 0
    assert out.read_text(encoding="utf-8") == TEMPLATE


def test_init_refuses_overwrite(runner, config_file):
    result = runner.invoke(cli, ["init", "--output", str(config_file)])
    assert result.exit_code == 1


# ---------------------------------------------------------------------------
# check-runtime
# ---------------------------------------------------------------------------

def test_check_runtime_prints_json(runner, tmp_path, jdk):
    result = runner.invoke(cli, [
        "--config", str(tmp_path / "absent.yaml"),
        "check-runtime", "--java-home", str(jdk),
    ])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data == {"path": str(jdk / "bin" / "java"), "source": "configured", "version": 17}


def test_check_runtime_too_old(runner, tmp_path, jdk, monkeypatch):
    monkeypatch.setattr(runtime, "get_java_version", lambda path, runner=None: 11)
    result = runner.invoke(cli, [
        "--config", str(tmp_path / "absent.yaml"),
        "check-runtime", "--java-home", str(jdk),
    ])
    assert result.exit_code == 1
    assert "Java runtime error" in result.output
    assert "Java 11" in result.output


# ---------------------------------------------------------------------------
# start-server
# ---------------------------------------------------------------------------

def test_start_server_missing_jar(runner, tmp_path, jdk):
    result = runner.invoke(cli, [
        "--config", str(tmp_path / "absent.yaml"),
        "start-server", str(tmp_path / "server.jar"), "--java-home", str(jdk),
    ])
    assert result.exit_code == 1
    assert "Server JAR not found" in result.output


def test_start_server_spawns_jar_and_exits_with_its_code(runner, tmp_path, jdk, monkeypatch):
    jar = tmp_path / "gherkin-lsp-server.jar"
    jar.write_bytes(b"PK")
    calls = []

    def fake_run(command, **kwargs):
        calls.append(list(command))
        return subprocess.CompletedProcess(command, 3)

    monkeypatch.setattr("gherkin_analyzer.cli.subprocess.run", fake_run)
    result = runner.invoke(cli, [
        "--config", str(tmp_path / "absent.yaml"),
        "start-server", str(jar), "--java-home", str(jdk),
    ])

    assert result.exit_code == 3
    assert calls == [[str(jdk / "bin" / "java"), "-jar", str(jar)]]


def test_start_server_spawn_failure(runner, tmp_path, jdk, monkeypatch):
    jar = tmp_path / "gherkin-lsp-server.jar"
    jar.write_bytes(b"PK")

    def fake_run(command, **kwargs):
        raise OSError(8, "Exec format error")

    monkeypatch.setattr("gherkin_analyzer.cli.subprocess.run", fake_run)
    result = runner.invoke(cli, [
        "--config", str(tmp_path / "absent.yaml"),
        "start-server", str(jar), "--java-home", str(jdk),
    ])

    assert result.exit_code == 1
    assert "Failed to start language server" in result.output
    assert "Exec format error" in result.output
    assert not isinstance(result.exception, OSError)


def test_output_option_writes_json_file(runner, tmp_path, jdk):
    out = tmp_path / "runtime.json"
    result = runner.invoke(cli, [
        "--config", str(tmp_path / "absent.yaml"), "--output", str(out),
        "check-runtime", "--java-home", str(jdk),
    ])
    assert result.exit_code == 0, result.output
    assert "Output written to" in result.output
    assert json.loads(out.read_text(encoding="utf-8"))["version"] == 17


def test_start_server_disabled(runner, tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("enabled: false\n", encoding="utf-8")
    result = runner.invoke(cli, ["--config", str(cfg), "start-server", "server.jar"])
    assert result.exit_code == 0
    assert "disabled" in result.output


# ---------------------------------------------------------------------------
# list-profiles
# ---------------------------------------------------------------------------

def test_list_profiles(runner, config_file, requests_mock):
    _mock_sonar(requests_mock, [])
    result = runner.invoke(cli, ["--config", str(config_file), "list-profiles"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [
        {"key": "ayx-q", "name": "Qualimetry way", "language": "gherkin"},
    ]


# ---------------------------------------------------------------------------
# import-profile
# ---------------------------------------------------------------------------

def test_import_profile_saves_rules(runner, config_file, requests_mock):
    _mock_sonar(requests_mock, [
        {"key": "qualimetry-gherkin:no-tab-characters", "severity": "MINOR"},
        {"key": "other-repo:R1", "severity": "MAJOR"},
    ])

    result = runner.invoke(cli, ["--config", str(config_file), "import-profile"])

    assert result.exit_code == 0, result.output
    raw = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    assert raw["rules"] == {"no-tab-characters": {"enabled": True, "severity": "minor"}}
    assert raw["rulesReplaceDefaults"] is True


def test_import_profile_dry_run_leaves_config(runner, config_file, requests_mock):
    _mock_sonar(requests_mock, [{"key": "qualimetry-gherkin:r1", "severity": "INFO"}])

    result = runner.invoke(cli, [
        "--config", str(config_file), "import-profile", "--profile", "qualimetry", "--dry-run",
    ])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["profile_key"] == "ayx-q"
    assert data["rules"] == {"r1": {"enabled": True, "severity": "info"}}
    assert config_file.read_text(encoding="utf-8") == TEMPLATE


def test_import_profile_failure_keeps_previous_rules(runner, config_file, requests_mock):
    _mock_sonar(requests_mock, [{"key": "other-repo:R1"}])

    result = runner.invoke(cli, ["--config", str(config_file), "import-profile"])

    assert result.exit_code == 1
    assert "Import error" in result.output
    assert config_file.read_text(encoding="utf-8") == TEMPLATE


def test_import_profile_http_error(runner, config_file, requests_mock):
    requests_mock.get(PROFILES, status_code=500, reason="Internal Server Error")
    result = runner.invoke(cli, ["--config", str(config_file), "import-profile"])
    assert result.exit_code == 1
    assert "500 Internal Server Error" in result.output


def test_import_profile_missing_url(runner, tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("sonar:\n  profile: x\n", encoding="utf-8")
    result = runner.invoke(cli, ["--config", str(cfg), "import-profile"])
    assert result.exit_code == 1
    assert "sonar.url" in result.output
