"""
Application orchestrator client.

Manages wadm application manifests over NATS. Every call is a single
request/response on a topic of the form

    wadm.api.<lattice>.model.<operation>[.<name>]

bounded by a fixed two second timeout. A missing reply, a transport
failure, and an error payload from wadm raise distinct exceptions.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Protocol

import nats
from nats.errors import Error as NatsError
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from actorkit.exceptions import RemoteError, TransportError, TransportTimeout
from actorkit.settings import DEFAULT_LATTICE_PREFIX

logger = logging.getLogger(__name__)

WADM_API_PREFIX = "wadm.api"
REQUEST_TIMEOUT_SECONDS = 2.0


class ModelOperation(str, Enum):
    LIST = "list"
    GET = "get"
    HISTORY = "versions"
    DELETE = "del"
    PUT = "put"
    DEPLOY = "deploy"
    UNDEPLOY = "undeploy"


class RequestClient(Protocol):
    """The subset of a NATS connection the client needs."""

    async def request(self, subject: str, payload: bytes = b"", timeout: float = 0.5) -> Any: ...


# --- Response models ---


class _Response(BaseModel):
    model_config = ConfigDict(extra="allow")


class ModelSummary(_Response):
    name: str
    version: str = ""
    description: str | None = None
    deployed_version: str | None = None
    status: str = "undeployed"
    status_message: str | None = None


class GetModelResponse(_Response):
    result: str
    message: str = ""
    manifest: dict[str, Any] | None = None


class PutModelResponse(_Response):
    result: str
    message: str = ""
    name: str | None = None
    total_versions: int = 0
    current_version: str = ""


class VersionInfo(_Response):
    version: str
    deployed: bool = False


class VersionResponse(_Response):
    result: str
    message: str = ""
    versions: list[VersionInfo] = Field(default_factory=list)


class DeployModelResponse(_Response):
    result: str
    message: str = ""
    name: str | None = None
    version: str | None = None


class DeleteModelResponse(_Response):
    result: str
    message: str = ""
    undeploy: bool = False


def model_topic(operation: ModelOperation, lattice_prefix: str | None = None, object_name: str | None = None) -> str:
    topic = f"{WADM_API_PREFIX}.{lattice_prefix or DEFAULT_LATTICE_PREFIX}.model.{operation.value}"
    if object_name:
        topic = f"{topic}.{object_name}"
    return topic


async def connect(url: str) -> Any:
    """Open a NATS connection, reporting failures as TransportError."""
    try:
        return await nats.connect(url, connect_timeout=REQUEST_TIMEOUT_SECONDS, max_reconnect_attempts=0)
    except (NatsError, OSError, asyncio.TimeoutError) as e:
        raise TransportError(f"Could not connect to NATS at {url}: {e}", details={"url": url}) from e


class AppClient:
    """Request/response helper for wadm's model API."""

    def __init__(self, client: RequestClient, lattice_prefix: str | None = None):
        self.client = client
        self.lattice_prefix = lattice_prefix or DEFAULT_LATTICE_PREFIX

    async def model_request(
        self,
        operation: ModelOperation,
        object_name: str | None = None,
        body: bytes = b"",
    ) -> bytes:
        topic = model_topic(operation, self.lattice_prefix, object_name)
        logger.debug("Requesting %s (%d bytes)", topic, len(body))
        try:
            message = await asyncio.wait_for(
                self.client.request(topic, body, timeout=REQUEST_TIMEOUT_SECONDS),
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError as e:
            raise TransportTimeout(
                f"model_request timed out after {int(REQUEST_TIMEOUT_SECONDS * 1000)}ms",
                details={"topic": topic},
            ) from e
        except (NatsError, OSError) as e:
            raise TransportError(f"Error making model request: {e}", details={"topic": topic}) from e
        return message.data

    def _decode(self, payload: bytes, model: Any, topic_hint: str) -> Any:
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RemoteError(
                f"wadm returned a payload that is not JSON: {e}",
                details={"operation": topic_hint, "payload": payload[:200].decode("utf-8", "replace")},
            ) from e
        if isinstance(data, dict) and data.get("result") == "error":
            raise RemoteError(
                data.get("message") or "wadm returned an error",
                details={"operation": topic_hint, "response": data},
            )
        try:
            return TypeAdapter(model).validate_python(data)
        except ValidationError as e:
            raise RemoteError(
                f"Unexpected response from wadm for {topic_hint}",
                details={"operation": topic_hint, "errors": e.errors()},
            ) from e

    async def get_models(self) -> list[ModelSummary]:
        payload = await self.model_request(ModelOperation.LIST)
        return self._decode(payload, list[ModelSummary], "list")

    async def get_model_details(self, model_name: str, version: str | None = None) -> GetModelResponse:
        body = json.dumps({"version": version}).encode()
        payload = await self.model_request(ModelOperation.GET, model_name, body)
        return self._decode(payload, GetModelResponse, "get")

    async def get_model_history(self, model_name: str) -> VersionResponse:
        payload = await self.model_request(ModelOperation.HISTORY, model_name)
        return self._decode(payload, VersionResponse, "versions")

    async def delete_model_version(
        self, model_name: str, version: str | None = None, delete_all: bool = False
    ) -> DeleteModelResponse:
        body = json.dumps({"version": version or "", "delete_all": delete_all}).encode()
        payload = await self.model_request(ModelOperation.DELETE, model_name, body)
        return self._decode(payload, DeleteModelResponse, "del")

    async def put_model(self, manifest: str) -> PutModelResponse:
        """Store a YAML or JSON manifest for later deploys."""
        payload = await self.model_request(ModelOperation.PUT, body=manifest.encode())
        return self._decode(payload, PutModelResponse, "put")

    async def deploy_model(self, model_name: str, version: str | None = None) -> DeployModelResponse:
        body = json.dumps({"version": version}).encode()
        payload = await self.model_request(ModelOperation.DEPLOY, model_name, body)
        return self._decode(payload, DeployModelResponse, "deploy")

    async def undeploy_model(self, model_name: str, non_destructive: bool = False) -> DeployModelResponse:
        body = json.dumps({"non_destructive": non_destructive}).encode()
        payload = await self.model_request(ModelOperation.UNDEPLOY, model_name, body)
        return self._decode(payload, DeployModelResponse, "undeploy")
