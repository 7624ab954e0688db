"""How the orchestrator reaches the dispatch gateway: in-process or over HTTP.

Both transports hand back a Reply, the single success/failure value the
orchestrator decides on. The HTTP envelope ({response} or {error}) is
collapsed into a Reply as soon as it is received.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from duochat.gateway import DispatchGateway, GatewayError
from duochat.models import Reply
from duochat.providers.base import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 180.0


class TransportError(Exception):
    """The gateway reply could not be read as an envelope."""


def parse_envelope(backend: str, status_code: int, body: str) -> Reply:
    """Collapse a raw gateway reply into a Reply.

    A non-2xx status and a 2xx body carrying an ``error`` field are the
    same failure. Anything that is not a JSON object with either a string
    ``response`` or an ``error`` raises TransportError.
    """
    try:
        data: Any = json.loads(body)
    except ValueError as exc:
        raise TransportError(f"Invalid response from server: {body[:200]!r}") from exc
    if not isinstance(data, dict):
        raise TransportError(f"Invalid response from server: expected object, got {type(data).__name__}")

    failed = not 200 <= status_code < 300
    if "error" in data or failed:
        error = data.get("error") or "Failed to get response"
        return Reply(backend=backend, error=str(error), status_code=status_code if failed else 500)

    text = data.get("response")
    if not isinstance(text, str):
        raise TransportError("Invalid response from server: missing 'response'")
    return Reply(backend=backend, text=text, status_code=status_code)


class Transport(ABC):
    """Sends one message to one backend through the gateway."""

    @abstractmethod
    async def send(self, message: str, target: str) -> Reply:
        """Return the collapsed outcome for one backend.

        Raises:
            TransportError: the reply could not be interpreted.
        """
        ...

    async def aclose(self) -> None:
        """Release any held connections."""


class LocalTransport(Transport):
    """Calls a DispatchGateway in the same process, no HTTP hop."""

    def __init__(self, gateway: DispatchGateway) -> None:
        self._gateway = gateway

    async def send(self, message: str, target: str) -> Reply:
        try:
            text = await self._gateway.dispatch(message, target)
        except (GatewayError, ProviderError) as exc:
            return Reply(backend=target, error=exc.message, status_code=exc.status_code)
        return Reply(backend=target, text=text)


class HttpTransport(Transport):
    """POSTs {message, target} to a running gateway.

    Usage:
        transport = HttpTransport("http://127.0.0.1:8000/api/chat")
        reply = await transport.send("hello", "claude")
        await transport.aclose()
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def url(self) -> str:
        return self._url

    async def send(self, message: str, target: str) -> Reply:
        payload = {"message": message, "target": target}
        try:
            response = await self._client.post(
                self._url, json=payload, headers={"Content-Type": "application/json"}
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timed out waiting for gateway at {self._url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to gateway at {self._url} failed: {exc}") from exc

        reply = parse_envelope(target, response.status_code, response.text)
        if not reply.ok:
            logger.warning("Gateway returned %d for %s: %s", reply.status_code, target, reply.error)
        return reply

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
