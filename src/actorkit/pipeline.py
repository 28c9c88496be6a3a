"""
Build pipeline.

Sequences the stages for a single project:

    START -> DISPATCHED -> BUILT -> SIGNED -> (PUSHED | DONE)

Every stage failure stops the pipeline, except push: a push runs only
after a successful sign, so its failure is recorded on the outcome and the
signed module stays on disk. Nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol

from actorkit.backends import build_module, signed_artifact_path
from actorkit.config import ActorConfig, InterfaceConfig, ProjectConfig, ProviderConfig
from actorkit.exceptions import (
    ConfigurationError,
    PipelineCancelled,
    PushFailed,
    SigningFailed,
    UnsupportedProjectKind,
)
from actorkit.registry import Pusher
from actorkit.signing import ClaimsMetadata, Signer, SignRequest

logger = logging.getLogger(__name__)


class Stage(Enum):
    START = "start"
    DISPATCHED = "dispatched"
    BUILT = "built"
    SIGNED = "signed"
    PUSHED = "pushed"
    DONE = "done"


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


@dataclass
class BuildOptions:
    """Caller choices for one pipeline run."""

    sign: bool = True
    push: bool = False
    destination: str | None = None
    insecure: bool | None = None
    expires_in_days: int | None = None
    not_before_days: int | None = None


@dataclass
class PipelineOutcome:
    status: str
    path: Path
    stage: Stage
    pushed_to: str | None = None
    push_error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.push_error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "path": str(self.path),
            "stage": self.stage.value,
        }
        if self.pushed_to:
            data["pushed_to"] = self.pushed_to
        if self.push_error:
            data["push_error"] = self.push_error
        return data


@dataclass
class BuildPipeline:
    """Runs build, sign and push for a project with injected collaborators."""

    signer: Signer
    pusher: Pusher | None = None
    builder: Callable = build_module
    cancel: CancelToken | None = None
    stage: Stage = field(default=Stage.START, init=False)

    def _advance(self, stage: Stage) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise PipelineCancelled(
                f"Build cancelled before reaching {stage.value}",
                details={"stage": self.stage.value},
            )
        logger.info("Pipeline %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def run(self, config: ProjectConfig, options: BuildOptions | None = None) -> PipelineOutcome:
        options = options or BuildOptions()
        self.stage = Stage.START

        match config.kind:
            case ActorConfig():
                actor = config.kind
            case ProviderConfig() | InterfaceConfig():
                raise UnsupportedProjectKind(config.kind.kind)
            case _:
                raise TypeError(f"Unsupported project kind: {type(config.kind).__name__}")

        destination = None
        if options.push:
            destination = options.destination or actor.registry
            if not destination:
                raise ConfigurationError(
                    "A push was requested but no registry destination is configured",
                    details={"hint": "Pass --push-to or set `registry` in the [actor] table"},
                )
            if not options.sign:
                raise ConfigurationError("Cannot push a module that was not signed")
            if self.pusher is None:
                raise ConfigurationError("A push was requested but no registry client is configured")

        self._advance(Stage.DISPATCHED)
        common = config.common
        unsigned = self.builder(config.language, common)
        self._advance(Stage.BUILT)

        if not options.sign:
            self._advance(Stage.DONE)
            return PipelineOutcome(
                status=f"Built {common.name} without signing",
                path=unsigned,
                stage=Stage.BUILT,
            )

        signed = self._sign(config, actor, unsigned, options)
        self._advance(Stage.SIGNED)

        if destination is None:
            self._advance(Stage.DONE)
            return PipelineOutcome(
                status=f"Built and signed {common.name}",
                path=signed,
                stage=Stage.SIGNED,
            )

        insecure = actor.push_insecure if options.insecure is None else options.insecure
        try:
            pushed_to = self.pusher.push(signed, destination, insecure=insecure)
        except PushFailed as e:
            logger.error("Push of %s failed: %s", signed, e.message)
            return PipelineOutcome(
                status=f"Built and signed {common.name}, but push failed",
                path=signed,
                stage=Stage.SIGNED,
                push_error=e.message,
            )
        self._advance(Stage.PUSHED)
        return PipelineOutcome(
            status=f"Built, signed and pushed {common.name}",
            path=signed,
            stage=Stage.PUSHED,
            pushed_to=pushed_to,
        )

    def _sign(self, config: ProjectConfig, actor: ActorConfig, unsigned: Path, options: BuildOptions) -> Path:
        common = config.common
        key_directory = actor.key_directory
        if key_directory is not None and not key_directory.is_absolute():
            key_directory = common.path / key_directory
        request = SignRequest(
            source=unsigned,
            destination=signed_artifact_path(common),
            metadata=ClaimsMetadata(
                name=common.name,
                version=common.version,
                claims=common.claims,
                call_alias=common.call_alias,
                rev=actor.rev,
                tags=actor.tags,
                expires_in_days=options.expires_in_days,
                not_before_days=options.not_before_days,
                key_directory=key_directory,
            ),
        )
        signed = self.signer.sign(request)
        if not Path(signed).is_file():
            raise SigningFailed(
                f"Signer reported success but {signed} does not exist",
                details={"destination": str(signed)},
            )
        return Path(signed)
