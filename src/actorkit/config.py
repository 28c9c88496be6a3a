"""
Project configuration - the on-disk ``wasmcloud.toml`` declaration.

The file is read once per invocation and validated into an immutable
ProjectConfig. Project kind and source language are tagged variants so
callers can dispatch over them with ``match``:

    name = "hello"
    language = "rust"
    type = "actor"
    version = "0.1.0"

    [actor]
    claims = ["wasmcloud:httpserver"]

    [rust]
    cargo_path = "/opt/cargo/bin/cargo"
"""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from actorkit.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "wasmcloud.toml"

_SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# --- Language backends ---


class RustConfig(_Frozen):
    """Rust backend options."""

    language: Literal["rust"] = "rust"
    cargo_path: Path | None = Field(default=None, description="Override for the cargo driver")
    target_path: Path | None = Field(default=None, description="Override for cargo's target directory")
    wasm_target: str = Field(default="wasm32-unknown-unknown", description="Target triple the crate builds for")


class TinyGoConfig(_Frozen):
    """TinyGo backend options."""

    language: Literal["tinygo"] = "tinygo"
    tinygo_path: Path | None = Field(default=None, description="Override for the tinygo driver")


LanguageConfig = Annotated[Union[RustConfig, TinyGoConfig], Field(discriminator="language")]


# --- Project kinds ---


class ActorConfig(_Frozen):
    kind: Literal["actor"] = "actor"
    registry: str | None = Field(default=None, description="Default push destination, host/repo:tag")
    push_insecure: bool = False
    key_directory: Path | None = None
    rev: int = 0
    tags: tuple[str, ...] = ()


class ProviderConfig(_Frozen):
    kind: Literal["provider"] = "provider"
    capability_id: str
    vendor: str = "NoVendor"


class InterfaceConfig(_Frozen):
    kind: Literal["interface"] = "interface"
    html_target: Path = Path("./html")
    codegen_config: Path = Path(".")


TypeConfig = Annotated[
    Union[ActorConfig, ProviderConfig, InterfaceConfig], Field(discriminator="kind")
]


class CommonConfig(_Frozen):
    """Metadata shared by every project kind."""

    name: str = Field(min_length=1)
    version: str
    claims: tuple[str, ...] = ()
    call_alias: str | None = None
    path: Path = Field(default_factory=Path.cwd, description="Project root directory")

    @field_validator("version")
    @classmethod
    def _semver(cls, value: str) -> str:
        if not _SEMVER.match(value):
            raise ValueError(f"'{value}' is not a semantic version")
        return value

    @field_validator("name")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("project name must not contain path separators")
        return value

    @property
    def build_dir(self) -> Path:
        return self.path / "build"


class ProjectConfig(_Frozen):
    """Immutable snapshot of a project declaration."""

    kind: TypeConfig
    language: LanguageConfig
    common: CommonConfig


def find_config_file(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` looking for ``wasmcloud.toml``."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def parse_project_config(data: dict, project_dir: Path) -> ProjectConfig:
    """Validate a raw TOML document into a ProjectConfig.

    ``claims`` and ``call_alias`` live in the ``[actor]`` table on disk but are
    carried on ``common`` so every stage reads metadata from one place.
    """
    data = dict(data)
    kind = data.pop("type", None)
    language = data.pop("language", None)
    if kind not in ("actor", "provider", "interface"):
        raise ConfigurationError(
            f"Unknown or missing project type: {kind!r}",
            details={"expected": ["actor", "provider", "interface"]},
        )
    if language not in ("rust", "tinygo"):
        raise ConfigurationError(
            f"Unknown or missing project language: {language!r}",
            details={"expected": ["rust", "tinygo"]},
        )

    kind_table = dict(data.pop(kind, {}) or {})
    language_table = dict(data.pop(language, {}) or {})
    claims = kind_table.pop("claims", [])
    call_alias = kind_table.pop("call_alias", None)

    try:
        return ProjectConfig(
            kind={"kind": kind, **kind_table},
            language={"language": language, **language_table},
            common={
                "name": data.get("name"),
                "version": data.get("version"),
                "claims": claims,
                "call_alias": call_alias,
                "path": project_dir,
            },
        )
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid project configuration: {e.error_count()} error(s)",
            details={"errors": [_describe(err) for err in e.errors()]},
        ) from e


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid')}"


def load_project_config(path: Path | None = None) -> ProjectConfig:
    """Load the project configuration.

    Args:
        path: Either the ``wasmcloud.toml`` file, a project directory, or
            ``None`` to search upwards from the working directory.
    """
    if path is None:
        config_file = find_config_file()
    elif path.is_dir():
        config_file = path / CONFIG_FILE_NAME
    else:
        config_file = path

    if config_file is None or not config_file.is_file():
        raise ConfigurationError(
            f"No {CONFIG_FILE_NAME} found",
            details={"searched": str(path or Path.cwd())},
        )

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Failed to parse {config_file}: {e}", details={"path": str(config_file)}
        ) from e

    logger.debug("Loaded project configuration from %s", config_file)
    return parse_project_config(data, config_file.parent.resolve())
