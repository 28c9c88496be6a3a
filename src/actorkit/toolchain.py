"""
Toolchain invocation.

Compiler drivers are resolved explicitly (override first, then ``PATH``)
and run synchronously in the project directory. There is no timeout: a
build runs until the compiler exits or the user interrupts it.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from actorkit.exceptions import ToolchainInvocationFailed, ToolchainNotFound

logger = logging.getLogger(__name__)

# Lines of compiler stderr kept on a failure
STDERR_TAIL_LINES = 40

_INSTALL_HINTS = {
    "cargo": "Install Rust from https://rustup.rs and add the wasm target with `rustup target add wasm32-unknown-unknown`.",
    "tinygo": "Install TinyGo from https://tinygo.org/getting-started/install/.",
}


def resolve_driver(override: Path | str | None, default_name: str) -> str:
    """Return the executable to run for a toolchain.

    An explicit override is used as given; otherwise ``default_name`` is
    looked up on ``PATH``.
    """
    if override is not None:
        return str(override)
    found = shutil.which(default_name)
    if found is None:
        raise ToolchainNotFound(
            f"Could not find `{default_name}` on PATH",
            command=[default_name],
        )
    return found


def install_hint(driver: str) -> str:
    return _INSTALL_HINTS.get(Path(driver).stem, "")


def run_toolchain(command: list[str], cwd: Path) -> subprocess.CompletedProcess:
    """Run a compiler command and wait for it to exit.

    Raises:
        ToolchainNotFound: the driver could not be spawned.
        ToolchainInvocationFailed: the driver exited with a non-zero status.
    """
    logger.debug("Running %s in %s", " ".join(command), cwd)
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise ToolchainNotFound(
            f"Failed to start `{command[0]}`: {e}",
            command=command,
        ) from e

    if result.returncode != 0:
        tail = "\n".join((result.stderr or "").splitlines()[-STDERR_TAIL_LINES:])
        raise ToolchainInvocationFailed(
            f"`{' '.join(command)}` failed with exit status {result.returncode}",
            command=command,
            returncode=result.returncode,
            stderr=tail,
        )
    return result
