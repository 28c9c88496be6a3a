"""Tests for language backends and the dispatcher."""

from pathlib import Path
from unittest.mock import patch

import pytest

from actorkit.backends import (
    build_module,
    build_rust,
    build_tinygo,
    run_tests,
    rust_artifact_path,
    signed_artifact_path,
    unsigned_artifact_path,
)
from actorkit.config import CommonConfig, RustConfig, TinyGoConfig
from actorkit.exceptions import ArtifactNotFound, FilesystemNormalizationFailed


def _common(path: Path, name: str = "hello") -> CommonConfig:
    return CommonConfig(name=name, version="0.1.0", path=path)


class TestArtifactPaths:
    def test_canonical_paths(self, tmp_path):
        common = _common(tmp_path)
        assert unsigned_artifact_path(common) == tmp_path / "build" / "hello.wasm"
        assert signed_artifact_path(common) == tmp_path / "build" / "hello_s.wasm"

    def test_rust_default_target(self, tmp_path):
        path = rust_artifact_path(RustConfig(), _common(tmp_path))
        assert path == tmp_path / "target" / "wasm32-unknown-unknown" / "release" / "hello.wasm"

    def test_rust_target_override(self, tmp_path):
        rust = RustConfig(target_path=Path("/cache/target"), wasm_target="wasm32-wasi")
        path = rust_artifact_path(rust, _common(tmp_path))
        assert path == Path("/cache/target/wasm32-wasi/release/hello.wasm")

    def test_rust_relative_target_override(self, tmp_path):
        rust = RustConfig(target_path=Path("../shared-target"))
        path = rust_artifact_path(rust, _common(tmp_path))
        assert path == tmp_path / "../shared-target" / "wasm32-unknown-unknown" / "release" / "hello.wasm"

    def test_rust_crate_name_uses_underscores(self, tmp_path):
        path = rust_artifact_path(RustConfig(), _common(tmp_path, "hello-world"))
        assert path.name == "hello_world.wasm"


class TestBuildRust:
    def test_invokes_cargo_release(self, tmp_path, fake_compiler, wasm_bytes):
        common = _common(tmp_path / "hello")
        common.path.mkdir()

        result = build_rust(RustConfig(cargo_path=Path("/opt/cargo")), common)

        (command, cwd) = fake_compiler.calls[0]
        assert command == ["/opt/cargo", "build", "--release"]
        assert cwd == common.path
        assert result == common.path / "build" / "hello.wasm"
        assert result.read_bytes() == wasm_bytes

    def test_cargo_from_path(self, tmp_path, fake_compiler):
        common = _common(tmp_path / "hello")
        common.path.mkdir()

        with patch("shutil.which", return_value="/usr/bin/cargo"):
            build_rust(RustConfig(), common)

        assert fake_compiler.calls[0][0][0] == "/usr/bin/cargo"

    def test_artifact_not_found(self, tmp_path, silent_compiler):
        common = _common(tmp_path)
        with pytest.raises(ArtifactNotFound) as exc_info:
            build_rust(RustConfig(cargo_path=Path("cargo")), common)
        assert exc_info.value.details["expected_path"].endswith("release/hello.wasm")
        assert not (tmp_path / "build" / "hello.wasm").exists()

    def test_copy_failure(self, tmp_path, fake_compiler):
        common = _common(tmp_path / "hello")
        common.path.mkdir()

        with patch("shutil.copyfile", side_effect=OSError("disk full")):
            with pytest.raises(FilesystemNormalizationFailed) as exc_info:
                build_rust(RustConfig(cargo_path=Path("cargo")), common)

        assert "disk full" in exc_info.value.message
        native = common.path / "target" / "wasm32-unknown-unknown" / "release" / "hello.wasm"
        assert native.exists()

    def test_stale_module_is_replaced(self, tmp_path, fake_compiler, wasm_bytes):
        common = _common(tmp_path / "hello")
        (common.path / "build").mkdir(parents=True)
        (common.path / "build" / "hello.wasm").write_bytes(b"stale")

        build_rust(RustConfig(cargo_path=Path("cargo")), common)

        assert (common.path / "build" / "hello.wasm").read_bytes() == wasm_bytes


class TestBuildTinyGo:
    def test_invokes_tinygo(self, tmp_path, fake_compiler):
        common = _common(tmp_path / "echo", "echo")
        common.path.mkdir()

        result = build_tinygo(TinyGoConfig(tinygo_path=Path("/opt/tinygo")), common)

        (command, cwd) = fake_compiler.calls[0]
        assert command == [
            "/opt/tinygo",
            "build",
            "-o",
            str(common.path / "build" / "echo.wasm"),
            "-target",
            "wasm",
            "-scheduler",
            "none",
            "-no-debug",
            ".",
        ]
        assert cwd == common.path
        assert result == common.path / "build" / "echo.wasm"

    def test_build_dir_created_before_compile(self, tmp_path):
        common = _common(tmp_path / "echo", "echo")
        common.path.mkdir()
        seen = {}

        def check(command, cwd):
            seen["build_dir"] = (cwd / "build").is_dir()

        with patch("actorkit.backends.run_toolchain", side_effect=check):
            with pytest.raises(ArtifactNotFound):
                build_tinygo(TinyGoConfig(tinygo_path=Path("tinygo")), common)

        assert seen["build_dir"] is True

    def test_stale_module_is_not_reused(self, tmp_path, silent_compiler):
        common = _common(tmp_path / "echo", "echo")
        (common.path / "build").mkdir(parents=True)
        (common.path / "build" / "echo.wasm").write_bytes(b"stale from last run")

        with pytest.raises(ArtifactNotFound) as exc_info:
            build_tinygo(TinyGoConfig(tinygo_path=Path("tinygo")), common)

        assert exc_info.value.expected_path == common.path / "build" / "echo.wasm"
        assert not (common.path / "build" / "echo.wasm").exists()

    def test_stale_module_cannot_be_removed(self, tmp_path, silent_compiler):
        common = _common(tmp_path / "echo", "echo")
        (common.path / "build").mkdir(parents=True)
        (common.path / "build" / "echo.wasm").write_bytes(b"stale from last run")

        with patch("pathlib.Path.unlink", side_effect=PermissionError("read-only")):
            with pytest.raises(FilesystemNormalizationFailed):
                build_tinygo(TinyGoConfig(tinygo_path=Path("tinygo")), common)

        assert silent_compiler.calls == []


class TestDispatch:
    def test_dispatches_rust(self, tmp_path):
        common = _common(tmp_path)
        rust = RustConfig()
        with patch("actorkit.backends.build_rust", return_value=tmp_path / "x.wasm") as build:
            assert build_module(rust, common) == tmp_path / "x.wasm"
        build.assert_called_once_with(rust, common)

    def test_dispatches_tinygo(self, tmp_path):
        common = _common(tmp_path)
        tinygo = TinyGoConfig()
        with patch("actorkit.backends.build_tinygo", return_value=tmp_path / "x.wasm") as build:
            build_module(tinygo, common)
        build.assert_called_once_with(tinygo, common)

    def test_unknown_backend_is_a_contract_violation(self, tmp_path):
        with pytest.raises(TypeError):
            build_module(object(), _common(tmp_path))


class TestRunTests:
    def test_rust_runs_clippy(self, tmp_path):
        with patch("actorkit.backends.run_toolchain") as run:
            assert run_tests(RustConfig(cargo_path=Path("cargo")), _common(tmp_path)) == "tests passed!"
        run.assert_called_once_with(["cargo", "clippy", "--all-features", "--all-targets"], cwd=tmp_path)

    def test_tinygo_runs_test(self, tmp_path):
        with patch("actorkit.backends.run_toolchain") as run:
            run_tests(TinyGoConfig(tinygo_path=Path("tinygo")), _common(tmp_path))
        run.assert_called_once_with(["tinygo", "test"], cwd=tmp_path)
