"""
actorkit: build, sign and deploy WebAssembly actors.

The build pipeline compiles a project with its language toolchain
(Rust or TinyGo), normalizes the module into ``build/<name>.wasm``, embeds
signed capability claims into ``build/<name>_s.wasm``, and optionally
pushes the result to an OCI registry:

    from actorkit import BuildPipeline, ClaimsSigner, load_project_config

    config = load_project_config()
    outcome = BuildPipeline(signer=ClaimsSigner(keys_dir)).run(config)
"""

__version__ = "0.1.0"

from actorkit.backends import build_module, run_tests
from actorkit.config import ProjectConfig, load_project_config
from actorkit.pipeline import BuildOptions, BuildPipeline, PipelineOutcome, Stage
from actorkit.registry import RegistryClient
from actorkit.signing import ClaimsMetadata, ClaimsSigner, SignRequest, read_embedded_claims

__all__ = [
    "BuildOptions",
    "BuildPipeline",
    "ClaimsMetadata",
    "ClaimsSigner",
    "PipelineOutcome",
    "ProjectConfig",
    "RegistryClient",
    "SignRequest",
    "Stage",
    "build_module",
    "load_project_config",
    "read_embedded_claims",
    "run_tests",
]
