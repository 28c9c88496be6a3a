"""Structured CLI error handling with actionable guidance.

Maps actorkit's typed failures (and a few stdlib ones) to a user-facing
message plus a remediation hint. A compiler that failed, a compiler that
succeeded without output, and an unreachable registry each need a
different fix, so each gets its own hint.

Usage:
    @cli_error_handler
    def build(...):
        ...
"""

from __future__ import annotations

import functools
import sys
import traceback
from collections.abc import Callable

import click

from actorkit.exceptions import (
    ActorkitError,
    ArtifactNotFound,
    ConfigurationError,
    FilesystemNormalizationFailed,
    InvalidClaims,
    PipelineCancelled,
    PushFailed,
    RemoteError,
    SigningFailed,
    ToolchainInvocationFailed,
    ToolchainNotFound,
    TransportError,
    TransportTimeout,
)
from actorkit.toolchain import install_hint

# ---------------------------------------------------------------------------
# Core error type
# ---------------------------------------------------------------------------


class CLIError(Exception):
    """A CLI error that carries a user-facing message and optional remediation hint."""

    def __init__(self, message: str, hint: str = "", details: str = ""):
        self.message = message
        self.hint = hint
        self.details = details
        super().__init__(message)


# ---------------------------------------------------------------------------
# Error mapping registry
# ---------------------------------------------------------------------------

_ERROR_MAP: list[tuple[type, Callable[[Exception], CLIError | None]]] = []


def _register(exc_type: type):
    """Decorator to register an exception mapper."""

    def decorator(fn: Callable[[Exception], CLIError | None]):
        _ERROR_MAP.append((exc_type, fn))
        return fn

    return decorator


def _format_details(details: dict) -> str:
    return ", ".join(f"{k}={v}" for k, v in details.items() if v not in (None, "", [], {}))


@_register(ToolchainNotFound)
def _map_toolchain_not_found(exc: ToolchainNotFound) -> CLIError:
    driver = exc.command[0] if exc.command else ""
    hint = install_hint(driver) or "Install the toolchain or set its path in wasmcloud.toml."
    return CLIError(
        exc.message,
        hint=f"{hint}\n  An explicit driver path can be set in the [rust] or [tinygo] table.",
    )


@_register(ToolchainInvocationFailed)
def _map_toolchain_failed(exc: ToolchainInvocationFailed) -> CLIError:
    return CLIError(
        exc.message,
        hint="Fix the compiler errors above and run the build again.",
        details=exc.stderr,
    )


@_register(ArtifactNotFound)
def _map_artifact_not_found(exc: ArtifactNotFound) -> CLIError:
    return CLIError(
        exc.message,
        hint=(
            "The compiler succeeded but wrote no module where one was expected.\n"
            "  Check that `name` in wasmcloud.toml matches the crate or package name,\n"
            "  that the crate is a `cdylib`, and that `wasm_target`/`target_path` match your build."
        ),
    )


@_register(FilesystemNormalizationFailed)
def _map_normalization_failed(exc: FilesystemNormalizationFailed) -> CLIError:
    return CLIError(
        exc.message,
        hint="Check permissions and free space in the project's build/ directory.",
    )


@_register(SigningFailed)
def _map_signing_failed(exc: SigningFailed) -> CLIError:
    return CLIError(
        exc.message,
        hint=(
            "The unsigned module was kept in build/ for inspection.\n"
            "  Re-run with --no-sign to skip signing, or check the key directory."
        ),
        details=_format_details(exc.details),
    )


@_register(PushFailed)
def _map_push_failed(exc: PushFailed) -> CLIError:
    return CLIError(
        exc.message,
        hint="Check the registry reference and credentials (ACTORKIT_REGISTRY_USER / ACTORKIT_REGISTRY_PASSWORD).",
        details=_format_details(exc.details),
    )


@_register(TransportTimeout)
def _map_transport_timeout(exc: TransportTimeout) -> CLIError:
    return CLIError(
        exc.message,
        hint="No wadm instance answered. Make sure wadm is running on this lattice.",
        details=_format_details(exc.details),
    )


@_register(TransportError)
def _map_transport_error(exc: TransportError) -> CLIError:
    return CLIError(
        exc.message,
        hint="Check that NATS is reachable, or set ACTORKIT_NATS_URL.",
        details=_format_details(exc.details),
    )


@_register(RemoteError)
def _map_remote_error(exc: RemoteError) -> CLIError:
    return CLIError(f"wadm: {exc.message}", details=_format_details({"operation": exc.details.get("operation")}))


@_register(ConfigurationError)
def _map_configuration_error(exc: ConfigurationError) -> CLIError:
    errors = exc.details.get("errors") or []
    return CLIError(
        exc.message,
        hint=exc.details.get("hint", "Check wasmcloud.toml in the project root."),
        details="\n    ".join(errors),
    )


@_register(PipelineCancelled)
def _map_cancelled(exc: PipelineCancelled) -> CLIError:
    return CLIError(exc.message)


@_register(InvalidClaims)
def _map_invalid_claims(exc: InvalidClaims) -> CLIError:
    return CLIError(exc.message, hint="Re-sign the module with `actorkit build`.")


@_register(ActorkitError)
def _map_actorkit_error(exc: ActorkitError) -> CLIError:
    return CLIError(exc.message, details=_format_details(exc.details))


@_register(FileNotFoundError)
def _map_file_not_found(exc: FileNotFoundError) -> CLIError:
    path = str(exc.filename or exc.args[0] if exc.args else "unknown")
    return CLIError(
        f"File not found: {path}",
        hint="Check that the path exists and you have read permissions.",
    )


@_register(PermissionError)
def _map_permission_error(exc: PermissionError) -> CLIError:
    return CLIError(
        f"Permission denied: {exc}",
        hint="Check file permissions or try running with appropriate privileges.",
    )


# ---------------------------------------------------------------------------
# Error formatting
# ---------------------------------------------------------------------------


def format_error(error: CLIError, verbose: bool = False) -> str:
    """Format a CLIError for terminal output."""
    lines = [f"Error: {error.message}"]
    if error.hint:
        lines.append(f"  Hint: {error.hint}")
    if error.details:
        lines.append(f"  Details: {error.details}")
    if verbose and error.__cause__:
        lines.append("")
        lines.append("Caused by:")
        tb_line = traceback.format_exception_only(type(error.__cause__), error.__cause__)[-1]
        lines.append(tb_line.strip())
    return "\n".join(lines)


def _resolve_error(exc: Exception) -> CLIError:
    """Map a raw exception to a CLIError with actionable guidance.

    Walks the exception chain (__cause__ / __context__) so that wrapped
    exceptions still produce specific hints.
    """
    if isinstance(exc, CLIError):
        return exc

    chain: list[Exception] = []
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen and len(chain) < 10:
        if isinstance(cur, Exception):
            chain.append(cur)
        seen.add(id(cur))
        cur = cur.__cause__ if cur.__cause__ is not None else cur.__context__

    for candidate in chain:
        for exc_type, mapper in _ERROR_MAP:
            if isinstance(candidate, exc_type):
                result = mapper(candidate)
                if result is not None:
                    return result

    return CLIError(
        str(exc) or type(exc).__name__,
        hint="An unexpected error occurred.\n  Re-run with --verbose for the full traceback.",
    )


# ---------------------------------------------------------------------------
# Decorator for CLI command functions
# ---------------------------------------------------------------------------


def _verbose_from_context() -> bool:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.find_root().obj, dict):
        return False
    return bool(ctx.find_root().obj.get("verbose", False))


def cli_error_handler(fn: Callable) -> Callable:
    """Wrap a click command callback with structured error handling.

    Unhandled exceptions are printed as diagnostics on stderr and turned
    into exit status 1 (130 on Ctrl-C).
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (SystemExit, click.exceptions.Exit, click.ClickException):
            raise
        except KeyboardInterrupt:
            print("\nInterrupted.", file=sys.stderr)
            sys.exit(130)
        except Exception as e:
            verbose = _verbose_from_context()
            cli_err = _resolve_error(e)
            if cli_err is not e:
                cli_err.__cause__ = e
            print(format_error(cli_err, verbose=verbose), file=sys.stderr)
            if verbose:
                traceback.print_exc(file=sys.stderr)
            sys.exit(1)

    return wrapper
