"""
Language backends.

Each backend is a build routine with the same contract:

    (backend options, common config) -> verified path of build/<name>.wasm

``build_module`` is the only dispatcher; a new language needs a new
``LanguageConfig`` variant, a build routine, and one ``case`` arm.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from actorkit.config import CommonConfig, LanguageConfig, RustConfig, TinyGoConfig
from actorkit.exceptions import ArtifactNotFound, FilesystemNormalizationFailed
from actorkit.toolchain import resolve_driver, run_toolchain

logger = logging.getLogger(__name__)

BUILD_DIR_NAME = "build"


def unsigned_artifact_path(common: CommonConfig) -> Path:
    return common.build_dir / f"{common.name}.wasm"


def signed_artifact_path(common: CommonConfig) -> Path:
    return common.build_dir / f"{common.name}_s.wasm"


def _ensure_build_dir(common: CommonConfig) -> Path:
    try:
        common.build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemNormalizationFailed(
            f"Could not create build directory {common.build_dir}: {e}",
            details={"path": str(common.build_dir)},
        ) from e
    return common.build_dir


def _verified(path: Path) -> Path:
    if not path.is_file():
        raise ArtifactNotFound(path)
    return path


def rust_artifact_path(rust: RustConfig, common: CommonConfig) -> Path:
    """Where cargo writes the release module for this project."""
    target_root = rust.target_path or Path("target")
    if not target_root.is_absolute():
        target_root = common.path / target_root
    crate_file = common.name.replace("-", "_")
    return target_root / rust.wasm_target / "release" / f"{crate_file}.wasm"


def build_rust(rust: RustConfig, common: CommonConfig) -> Path:
    """Build with cargo, then move the module into ``build/``."""
    cargo = resolve_driver(rust.cargo_path, "cargo")
    run_toolchain([cargo, "build", "--release"], cwd=common.path)

    produced = _verified(rust_artifact_path(rust, common))
    destination = unsigned_artifact_path(common)
    _ensure_build_dir(common)
    try:
        shutil.copyfile(produced, destination)
        produced.unlink()
    except OSError as e:
        raise FilesystemNormalizationFailed(
            f"Could not move {produced} to {destination}: {e}",
            details={"source": str(produced), "destination": str(destination)},
        ) from e
    logger.info("Moved %s to %s", produced, destination)
    return _verified(destination)


def build_tinygo(tinygo: TinyGoConfig, common: CommonConfig) -> Path:
    """Build with tinygo straight into ``build/``."""
    driver = resolve_driver(tinygo.tinygo_path, "tinygo")
    destination = unsigned_artifact_path(common)
    _ensure_build_dir(common)
    # Only a module written by this run may be returned
    try:
        destination.unlink(missing_ok=True)
    except OSError as e:
        raise FilesystemNormalizationFailed(
            f"Could not remove previous module {destination}: {e}",
            details={"path": str(destination)},
        ) from e
    run_toolchain(
        [
            driver,
            "build",
            "-o",
            str(destination),
            "-target",
            "wasm",
            "-scheduler",
            "none",
            "-no-debug",
            ".",
        ],
        cwd=common.path,
    )
    return _verified(destination)


def build_module(language: LanguageConfig, common: CommonConfig) -> Path:
    """Build the project with the backend selected by ``language``."""
    match language:
        case RustConfig():
            return build_rust(language, common)
        case TinyGoConfig():
            return build_tinygo(language, common)
        case _:
            raise TypeError(f"Unsupported language configuration: {type(language).__name__}")


def run_tests(language: LanguageConfig, common: CommonConfig) -> str:
    """Run the language's lint/test command in the project directory."""
    match language:
        case RustConfig():
            cargo = resolve_driver(language.cargo_path, "cargo")
            run_toolchain([cargo, "clippy", "--all-features", "--all-targets"], cwd=common.path)
        case TinyGoConfig():
            tinygo = resolve_driver(language.tinygo_path, "tinygo")
            run_toolchain([tinygo, "test"], cwd=common.path)
        case _:
            raise TypeError(f"Unsupported language configuration: {type(language).__name__}")
    return "tests passed!"
