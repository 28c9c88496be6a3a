"""
OCI registry push.

Pushes a signed module as a single-layer OCI artifact using the
distribution API: blobs are uploaded monolithically (POST then PUT with the
digest), blobs the registry already holds are skipped, and the manifest is
written last under the requested tag.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from actorkit.exceptions import PushFailed

logger = logging.getLogger(__name__)

MANIFEST_MEDIA_TYPE = "application/vnd.oci.image.manifest.v1+json"
CONFIG_MEDIA_TYPE = "application/vnd.wasmcloud.actor.archive.config"
WASM_LAYER_MEDIA_TYPE = "application/vnd.module.wasm.content.layer.v1+wasm"
DEFAULT_TIMEOUT = 60.0


class Pusher(Protocol):
    def push(self, path: Path, destination: str, *, insecure: bool = False) -> str: ...


@dataclass(frozen=True)
class ArtifactReference:
    """A parsed ``host/repository:tag`` reference."""

    registry: str
    repository: str
    tag: str

    @classmethod
    def parse(cls, reference: str) -> ArtifactReference:
        reference = reference.strip()
        for scheme in ("oci://", "https://", "http://"):
            if reference.startswith(scheme):
                reference = reference[len(scheme):]
        if "/" not in reference:
            raise PushFailed(
                f"Registry reference '{reference}' has no registry host",
                details={"reference": reference},
            )
        registry, remainder = reference.split("/", 1)
        if not ("." in registry or ":" in registry or registry == "localhost"):
            raise PushFailed(
                f"Registry reference '{reference}' has no registry host",
                details={"reference": reference},
            )
        repository, sep, tag = remainder.rpartition(":")
        if not sep or "/" in tag:
            repository, tag = remainder, "latest"
        if not repository:
            raise PushFailed(f"Registry reference '{reference}' has no repository", details={"reference": reference})
        return cls(registry=registry, repository=repository, tag=tag)

    def __str__(self) -> str:
        return f"{self.registry}/{self.repository}:{self.tag}"


def _digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def _descriptor(media_type: str, data: bytes) -> dict:
    return {"mediaType": media_type, "digest": _digest(data), "size": len(data)}


class RegistryClient:
    """Default push collaborator."""

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.auth = httpx.BasicAuth(username, password or "") if username else None
        self.timeout = timeout
        self._transport = transport

    def _client(self, ref: ArtifactReference, insecure: bool) -> httpx.Client:
        scheme = "http" if insecure else "https"
        return httpx.Client(
            base_url=f"{scheme}://{ref.registry}",
            auth=self.auth,
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": "actorkit/0.1"},
        )

    def _upload_blob(self, client: httpx.Client, ref: ArtifactReference, data: bytes) -> None:
        digest = _digest(data)
        head = client.head(f"/v2/{ref.repository}/blobs/{digest}")
        if head.status_code == 200:
            logger.debug("Blob %s already present in %s", digest, ref.repository)
            return

        start = client.post(f"/v2/{ref.repository}/blobs/uploads/")
        start.raise_for_status()
        location = start.headers.get("Location")
        if not location:
            raise PushFailed(
                "Registry did not return an upload location",
                details={"reference": str(ref), "status": start.status_code},
            )
        separator = "&" if "?" in location else "?"
        finish = client.put(
            f"{location}{separator}digest={digest}",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        finish.raise_for_status()

    def push(self, path: Path, destination: str, *, insecure: bool = False) -> str:
        """Push ``path`` to ``destination`` and return the pushed reference."""
        ref = ArtifactReference.parse(destination)
        try:
            module = path.read_bytes()
        except OSError as e:
            raise PushFailed(f"Could not read {path}: {e}", details={"path": str(path)}) from e

        config = b"{}"
        manifest = {
            "schemaVersion": 2,
            "mediaType": MANIFEST_MEDIA_TYPE,
            "config": _descriptor(CONFIG_MEDIA_TYPE, config),
            "layers": [_descriptor(WASM_LAYER_MEDIA_TYPE, module)],
        }
        manifest_bytes = json.dumps(manifest, separators=(",", ":")).encode()

        try:
            with self._client(ref, insecure) as client:
                self._upload_blob(client, ref, config)
                self._upload_blob(client, ref, module)
                response = client.put(
                    f"/v2/{ref.repository}/manifests/{ref.tag}",
                    content=manifest_bytes,
                    headers={"Content-Type": MANIFEST_MEDIA_TYPE},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PushFailed(
                f"Registry rejected push to {ref}: HTTP {e.response.status_code}",
                details={"reference": str(ref), "status": e.response.status_code, "body": e.response.text[:200]},
            ) from e
        except httpx.HTTPError as e:
            raise PushFailed(
                f"Could not reach registry {ref.registry}: {e}",
                details={"reference": str(ref)},
            ) from e
        except httpx.InvalidURL as e:
            raise PushFailed(
                f"Registry reference '{destination}' is not a valid address: {e}",
                details={"reference": str(ref)},
            ) from e

        logger.info("Pushed %s to %s (%s)", path, ref, _digest(manifest_bytes))
        return str(ref)
