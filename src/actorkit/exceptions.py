"""
actorkit Exceptions.

This module defines the structured exception hierarchy for actorkit.
Every failure raised by the build pipeline, the toolchain invoker, the
signing and push collaborators, or the application client inherits from
ActorkitError and carries a ``details`` dict with the context needed to act
on it (expected path, exit status, remote message, ...).
"""


class ActorkitError(Exception):
    """Base exception for all actorkit errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ActorkitError):
    """Raised when a project or user configuration is missing or invalid."""
    pass


class UnsupportedProjectKind(ActorkitError):
    """Raised when a pipeline is requested for a project kind it cannot build."""

    def __init__(self, kind: str):
        super().__init__(
            f"Building {kind} projects is not yet supported. "
            "Use `make` in the project directory instead.",
            details={"kind": kind},
        )
        self.kind = kind


class ToolchainInvocationFailed(ActorkitError):
    """Raised when a compiler process ran and exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(
            message,
            details={
                "command": " ".join(command or []),
                "returncode": returncode,
                "stderr": stderr,
            },
        )
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr


class ToolchainNotFound(ToolchainInvocationFailed):
    """Raised when a compiler driver cannot be resolved or spawned."""
    pass


class ArtifactNotFound(ActorkitError):
    """Raised when a toolchain reported success but its output is missing."""

    def __init__(self, expected_path):
        super().__init__(
            f"Could not find compiled artifact at {expected_path}",
            details={"expected_path": str(expected_path)},
        )
        self.expected_path = expected_path


class FilesystemNormalizationFailed(ActorkitError):
    """Raised when moving an artifact into the build directory fails."""
    pass


class SigningFailed(ActorkitError):
    """Raised when the signing collaborator cannot produce a signed module."""
    pass


class PushFailed(ActorkitError):
    """Raised when pushing a signed module to a registry fails."""
    pass


class PipelineCancelled(ActorkitError):
    """Raised when a cancellation is observed between pipeline stages."""
    pass


class TransportTimeout(ActorkitError):
    """Raised when an application request receives no response in time."""
    pass


class TransportError(ActorkitError):
    """Raised when the message bus transport fails to deliver a request."""
    pass


class RemoteError(ActorkitError):
    """Raised when the application orchestrator answers with an error."""
    pass


class InvalidClaims(ActorkitError):
    """Raised when an embedded claims token is missing, malformed, or forged."""
    pass
