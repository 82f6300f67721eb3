"""
flatpak-build-helper — CLI subprocess smoke contracts

Purpose
- Exercise `python -m flatpak_build_helper` plan/status/build end to end.
- Verify exit codes, JSON payloads, and repo side effects.
- The sandbox and builder tools are stand-in shell scripts placed on PATH.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

pytestmark = pytest.mark.integration

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

_FAKE_SANDBOX = """#!/bin/sh
echo "flatpak $*" >> "$FBH_TEST_CALL_LOG"
if [ "$1" = "build-init" ]; then
    mkdir -p "$2/files" "$2/var"
    touch "$2/metadata"
fi
exit 0
"""

_FAKE_BUILDER = """#!/bin/sh
echo "flatpak-builder $*" >> "$FBH_TEST_CALL_LOG"
exit 0
"""


def _run_cli(
    cwd: Path, *args: str, extra_env: dict[str, str] | None = None
) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env.pop("FBH_LOG", None)
    if extra_env:
        env.update(extra_env)
    return subprocess.run(
        [sys.executable, "-m", "flatpak_build_helper", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def _seed_project(root: Path) -> None:
    _write(
        root / "org.example.Hello.json",
        json.dumps(
            {
                "id": "org.example.Hello",
                "sdk": "org.freedesktop.Sdk",
                "runtime": "org.freedesktop.Platform",
                "runtime-version": "23.08",
                "command": "hello",
                "finish-args": ["--share=ipc"],
                "modules": [
                    {
                        "name": "hello",
                        "buildsystem": "simple",
                        "build-commands": ["install -D hello.sh /app/bin/hello"],
                    }
                ],
            }
        ),
    )


def _fake_tools(tmp_path: Path) -> dict[str, str]:
    bin_dir = tmp_path / "bin"
    for name, body in (("flatpak", _FAKE_SANDBOX), ("flatpak-builder", _FAKE_BUILDER)):
        _write(bin_dir / name, body)
        (bin_dir / name).chmod(0o755)
    return {
        "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}",
        "FBH_TEST_CALL_LOG": str(tmp_path / "calls.log"),
    }


def test_no_subcommand_prints_help(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path)

    assert completed.returncode == 0
    assert "usage: fbh" in completed.stdout


def test_plan_json(tmp_path: Path) -> None:
    project = (tmp_path / "project").resolve()
    _seed_project(project)

    completed = _run_cli(tmp_path, "plan", str(project), "--json")

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(completed.stdout)
    assert payload["command"] == "plan"
    assert payload["id"] == "org.example.Hello"
    assert payload["module"] == "hello"
    assert payload["build_system"] == "simple"
    assert payload["rebuild"] is False
    assert len(payload["commands"]) == 1
    command = payload["commands"][0]
    assert command["sandboxed"] is True
    assert command["argv"][:2] == ["flatpak", "build"]
    assert command["tool_argv"] == ["install", "-D", "hello.sh", "/app/bin/hello"]
    repo_dir = project / ".sandbox-meta" / "repo"
    assert command["argv"][-5:] == [str(repo_dir), *command["tool_argv"]]


def test_status_text_before_build(tmp_path: Path) -> None:
    _seed_project(tmp_path)

    completed = _run_cli(tmp_path, "status")

    assert completed.returncode == 0, completed.stderr
    assert "org.example.Hello" in completed.stdout
    assert "FAIL  repo initialized" in completed.stdout


def test_missing_root_dir_exits_with_config_code(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, "status", str(tmp_path / "missing"))

    assert completed.returncode == 2
    assert "root dir is not a directory" in completed.stderr


def test_project_without_manifest_exits_with_config_code(tmp_path: Path) -> None:
    _write(tmp_path / "notes.json", json.dumps({"hello": "world"}))

    completed = _run_cli(tmp_path, "plan")

    assert completed.returncode == 2
    assert "no flatpak manifest found" in completed.stderr


def test_invalid_config_exits_with_config_code(tmp_path: Path) -> None:
    _seed_project(tmp_path)
    _write(tmp_path / "fbh.toml", "[observability]\nlog_format = 'yaml'\n")

    completed = _run_cli(tmp_path, "status")

    assert completed.returncode == 2


def test_build_then_skip_then_rebuild(tmp_path: Path) -> None:
    project = (tmp_path / "project").resolve()
    _seed_project(project)
    env = _fake_tools(tmp_path)
    call_log = tmp_path / "calls.log"

    first = _run_cli(project, "build", extra_env=env)

    assert first.returncode == 0, first.stderr
    assert first.stdout.startswith("built org.example.Hello into ")
    calls = call_log.read_text(encoding="utf-8").splitlines()
    repo_dir = project / ".sandbox-meta" / "repo"
    assert calls[0].startswith(f"flatpak build-init {repo_dir} org.example.Hello ")
    assert "--download-only" in calls[1]
    assert "--build-only" in calls[2]
    assert calls[3].startswith("flatpak build ")
    assert len(calls) == 4

    status = _run_cli(project, "status", "--json", extra_env=env)
    payload = json.loads(status.stdout)
    assert payload["initialized"] is True
    assert payload["built"] is True

    second = _run_cli(project, "build", extra_env=env)
    assert second.returncode == 0, second.stderr
    assert "already exists" in second.stdout
    assert len(call_log.read_text(encoding="utf-8").splitlines()) == 4

    rebuild = _run_cli(project, "build", "--rebuild", extra_env=env)
    assert rebuild.returncode == 0, rebuild.stderr
    calls = call_log.read_text(encoding="utf-8").splitlines()
    assert len(calls) == 5
    assert calls[4].startswith("flatpak build ")


def test_failing_build_step_exits_with_command_code(tmp_path: Path) -> None:
    project = (tmp_path / "project").resolve()
    _seed_project(project)
    env = _fake_tools(tmp_path)
    _write(
        tmp_path / "bin" / "flatpak",
        _FAKE_SANDBOX.replace(
            "exit 0\n", 'if [ "$1" = "build" ]; then echo "compile error" >&2; exit 3; fi\nexit 0\n'
        ),
    )

    completed = _run_cli(project, "build", "-v", extra_env=env)

    assert completed.returncode == 1
    assert "compile error" in completed.stderr


def test_set_overrides_config_file_and_env(tmp_path: Path) -> None:
    _seed_project(tmp_path)
    _write(tmp_path / "fbh.toml", "[tools]\nsandbox = 'from-file'\n")

    completed = _run_cli(
        tmp_path,
        "plan",
        "--json",
        "--set",
        "tools.sandbox=from-cli",
        extra_env={"FBH_TOOLS_SANDBOX": "from-env"},
    )

    assert completed.returncode == 0, completed.stderr
    assert json.loads(completed.stdout)["commands"][0]["argv"][0] == "from-cli"


def test_malformed_set_exits_with_config_code(tmp_path: Path) -> None:
    _seed_project(tmp_path)

    completed = _run_cli(tmp_path, "status", "--set", "tools.sandbox")

    assert completed.returncode == 2
    assert "--set expects SECTION.KEY=VALUE" in completed.stderr


def test_run_builds_then_launches_with_a11y_and_fonts(tmp_path: Path) -> None:
    project = (tmp_path / "project").resolve()
    _seed_project(project)
    env = _fake_tools(tmp_path)
    _write(
        tmp_path / "bin" / "gdbus",
        "#!/bin/sh\necho \"('unix:path=/run/user/1000/at-spi/bus_0,guid=abc123',)\"\n",
    )
    (tmp_path / "bin" / "gdbus").chmod(0o755)
    _write(
        tmp_path / "bin" / "flatpak",
        _FAKE_SANDBOX.replace(
            "exit 0\n",
            'case "$*" in *--with-appdir*) echo "hello from sandbox";; esac\nexit 0\n',
        ),
    )
    env["XDG_CACHE_HOME"] = str(tmp_path / "cache")

    completed = _run_cli(project, "run", extra_env=env)

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout == "hello from sandbox\n"
    call_lines = (tmp_path / "calls.log").read_text(encoding="utf-8").splitlines()
    launch = call_lines[-1]
    assert "--env=AT_SPI_BUS_ADDRESS=unix:path=/run/flatpak/at-spi-bus,guid=abc123" in launch
    assert f"--bind-mount=/run/host/font-dirs.xml={tmp_path / 'cache' / 'font-dirs.xml'}" in launch
    assert launch.endswith(f"{project / '.sandbox-meta' / 'repo'} hello")
    assert (tmp_path / "cache" / "font-dirs.xml").is_file()


def test_failing_step_stdout_reaches_the_user(tmp_path: Path) -> None:
    project = (tmp_path / "project").resolve()
    _seed_project(project)
    env = _fake_tools(tmp_path)
    _write(
        tmp_path / "bin" / "flatpak",
        _FAKE_SANDBOX.replace(
            "exit 0\n",
            'if [ "$1" = "build" ]; then echo "FAILED: main.c:3: error: expected \';\'"; exit 1; fi\n'
            "exit 0\n",
        ),
    )

    completed = _run_cli(project, "build", extra_env=env)

    assert completed.returncode == 1
    assert "FAILED: main.c:3: error: expected ';'" in completed.stderr
