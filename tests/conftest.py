"""Shared fixtures for actorkit tests."""

from pathlib import Path
from unittest.mock import patch

import pytest

from actorkit.config import load_project_config

# Smallest valid module: header plus a "name" custom section
MINIMAL_WASM = b"\x00asm\x01\x00\x00\x00" + b"\x00\x05\x04name"

RUST_PROJECT = """\
name = "{name}"
language = "rust"
type = "actor"
version = "0.1.0"

[actor]
claims = ["wasmcloud:httpserver", "wasmcloud:builtin:logging"]
{actor_extra}

[rust]
cargo_path = "/opt/rust/bin/cargo"
"""

TINYGO_PROJECT = """\
name = "{name}"
language = "tinygo"
type = "actor"
version = "0.2.0"

[actor]
claims = ["wasmcloud:httpserver"]
call_alias = "echo/main"

[tinygo]
tinygo_path = "/opt/tinygo/bin/tinygo"
"""


@pytest.fixture
def rust_project(tmp_path: Path):
    """Factory writing a Rust actor project and returning its config."""

    def make(name: str = "hello", actor_extra: str = ""):
        project = tmp_path / name
        project.mkdir(parents=True, exist_ok=True)
        (project / "wasmcloud.toml").write_text(RUST_PROJECT.format(name=name, actor_extra=actor_extra))
        return load_project_config(project)

    return make


@pytest.fixture
def tinygo_project(tmp_path: Path):
    def make(name: str = "echo"):
        project = tmp_path / name
        project.mkdir(parents=True, exist_ok=True)
        (project / "wasmcloud.toml").write_text(TINYGO_PROJECT.format(name=name))
        return load_project_config(project)

    return make


def _fake_compiler(write_output: bool = True):
    """A run_toolchain stand-in that emits a module where the real compiler would."""
    calls = []

    def run(command, cwd):
        calls.append((list(command), Path(cwd)))
        if not write_output:
            return None
        if "-o" in command:
            output = Path(command[command.index("-o") + 1])
        else:
            crate = cwd.name.replace("-", "_")
            output = cwd / "target" / "wasm32-unknown-unknown" / "release" / f"{crate}.wasm"
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(MINIMAL_WASM)
        return None

    run.calls = calls
    return run


@pytest.fixture
def fake_compiler():
    """Patch toolchain invocation with a compiler that writes its module."""
    run = _fake_compiler()
    with patch("actorkit.backends.run_toolchain", side_effect=run) as mock_run:
        mock_run.calls = run.calls
        yield mock_run


@pytest.fixture
def silent_compiler():
    """Patch toolchain invocation with a compiler that exits 0 but writes nothing."""
    run = _fake_compiler(write_output=False)
    with patch("actorkit.backends.run_toolchain", side_effect=run) as mock_run:
        mock_run.calls = run.calls
        yield mock_run


@pytest.fixture
def keys_dir(tmp_path: Path) -> Path:
    return tmp_path / "keys"


@pytest.fixture
def wasm_bytes() -> bytes:
    return MINIMAL_WASM
