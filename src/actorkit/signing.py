"""
Module signing.

``ClaimsSigner`` embeds a capability claims token into a ``jwt`` custom
section of a WebAssembly module. The token is a compact JWT signed with an
Ed25519 account key; its subject is the module's own Ed25519 key and it
records the SHA-256 of the module body so tampering is detectable.

Keys are generated on first use and stored as PEM files:

    <keys_dir>/<name>_account.pem   issuer
    <keys_dir>/<name>_module.pem    subject
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from actorkit.exceptions import InvalidClaims, SigningFailed
from actorkit.wasm import InvalidModule, append_custom_section, find_custom_section, strip_custom_section

logger = logging.getLogger(__name__)

JWT_SECTION = "jwt"
JWT_HEADER = {"typ": "jwt", "alg": "Ed25519"}
SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class ClaimsMetadata:
    """Metadata embedded into a signed module."""

    name: str
    version: str
    claims: tuple[str, ...] = ()
    call_alias: str | None = None
    rev: int = 0
    tags: tuple[str, ...] = ()
    expires_in_days: int | None = None
    not_before_days: int | None = None
    key_directory: Path | None = None
    issuer: Path | None = None
    subject: Path | None = None


@dataclass(frozen=True)
class SignRequest:
    source: Path
    destination: Path
    metadata: ClaimsMetadata


class Signer(Protocol):
    def sign(self, request: SignRequest) -> Path: ...


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def public_key_id(key: ed25519.Ed25519PublicKey) -> str:
    raw = key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
    return _b64(raw)


def load_or_create_key(path: Path) -> ed25519.Ed25519PrivateKey:
    """Load an Ed25519 PEM key, generating and saving one if absent."""
    if path.exists():
        try:
            key = serialization.load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError, OSError) as e:
            raise SigningFailed(f"Could not load signing key {path}: {e}", details={"key": str(path)}) from e
        if not isinstance(key, ed25519.Ed25519PrivateKey):
            raise SigningFailed(f"Signing key {path} is not an Ed25519 key", details={"key": str(path)})
        return key

    key = ed25519.Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(pem)
    except OSError as e:
        raise SigningFailed(f"Could not write signing key {path}: {e}", details={"key": str(path)}) from e
    logger.info("Generated new signing key at %s", path)
    return key


def module_hash(module: bytes) -> str:
    """SHA-256 of the module with any embedded claims removed."""
    return hashlib.sha256(strip_custom_section(module, JWT_SECTION)).hexdigest()


def encode_token(claims: dict[str, Any], key: ed25519.Ed25519PrivateKey) -> str:
    header = _b64(json.dumps(JWT_HEADER, separators=(",", ":")).encode())
    body = _b64(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode())
    signing_input = f"{header}.{body}".encode("ascii")
    return f"{header}.{body}.{_b64(key.sign(signing_input))}"


def decode_token(token: str) -> dict[str, Any]:
    """Decode a claims token and verify its signature against its issuer."""
    try:
        header, body, signature = token.split(".")
        claims = json.loads(_unb64(body))
        issuer = ed25519.Ed25519PublicKey.from_public_bytes(_unb64(claims["iss"]))
        issuer.verify(_unb64(signature), f"{header}.{body}".encode("ascii"))
    except InvalidSignature as e:
        raise InvalidClaims("Claims token signature does not match its issuer") from e
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidClaims(f"Malformed claims token: {e}") from e
    return claims


class ClaimsSigner:
    """Default signing collaborator."""

    def __init__(self, keys_dir: Path, clock=time.time):
        self.keys_dir = Path(keys_dir)
        self._clock = clock

    def _key_paths(self, metadata: ClaimsMetadata) -> tuple[Path, Path]:
        keys_dir = metadata.key_directory or self.keys_dir
        issuer = metadata.issuer or keys_dir / f"{metadata.name}_account.pem"
        subject = metadata.subject or keys_dir / f"{metadata.name}_module.pem"
        return issuer, subject

    def build_claims(self, module: bytes, metadata: ClaimsMetadata, issuer, subject) -> dict[str, Any]:
        now = int(self._clock())
        wascap: dict[str, Any] = {
            "name": metadata.name,
            "hash": module_hash(module),
            "tags": list(metadata.tags),
            "caps": list(metadata.claims),
            "rev": metadata.rev,
            "ver": metadata.version,
        }
        if metadata.call_alias:
            wascap["call_alias"] = metadata.call_alias
        claims: dict[str, Any] = {
            "jti": uuid.uuid4().hex,
            "iat": now,
            "iss": public_key_id(issuer.public_key()),
            "sub": public_key_id(subject.public_key()),
            "wascap": wascap,
        }
        if metadata.expires_in_days is not None:
            claims["exp"] = now + metadata.expires_in_days * SECONDS_PER_DAY
        if metadata.not_before_days is not None:
            claims["nbf"] = now + metadata.not_before_days * SECONDS_PER_DAY
        return claims

    def sign(self, request: SignRequest) -> Path:
        try:
            module = request.source.read_bytes()
        except OSError as e:
            raise SigningFailed(
                f"Could not read module {request.source}: {e}", details={"source": str(request.source)}
            ) from e

        issuer_path, subject_path = self._key_paths(request.metadata)
        issuer = load_or_create_key(issuer_path)
        subject = load_or_create_key(subject_path)

        try:
            body = strip_custom_section(module, JWT_SECTION)
            claims = self.build_claims(body, request.metadata, issuer, subject)
            signed = append_custom_section(body, JWT_SECTION, encode_token(claims, issuer).encode("ascii"))
        except InvalidModule as e:
            raise SigningFailed(
                f"{request.source} is not a valid WebAssembly module: {e}",
                details={"source": str(request.source)},
            ) from e

        try:
            request.destination.parent.mkdir(parents=True, exist_ok=True)
            request.destination.write_bytes(signed)
        except OSError as e:
            raise SigningFailed(
                f"Could not write signed module {request.destination}: {e}",
                details={"destination": str(request.destination)},
            ) from e

        logger.info("Signed %s as %s (module %s)", request.source, request.destination, claims["sub"])
        return request.destination


def read_embedded_claims(path: Path) -> dict[str, Any]:
    """Return the verified claims embedded in a signed module."""
    module = path.read_bytes()
    try:
        section = find_custom_section(module, JWT_SECTION)
    except InvalidModule as e:
        raise InvalidClaims(f"{path} is not a valid WebAssembly module: {e}") from e
    if section is None:
        raise InvalidClaims(f"{path} has no embedded claims")

    claims = decode_token(section.decode("ascii", errors="replace"))
    wascap = claims.get("wascap")
    if not isinstance(wascap, dict):
        raise InvalidClaims(f"Claims in {path} have no capability metadata")
    if wascap.get("hash") != module_hash(module):
        raise InvalidClaims(f"Module hash in {path} does not match its contents")
    return claims
