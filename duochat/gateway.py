"""Dispatch gateway: validate a {message, target} request and route it to one backend."""

import logging

from duochat.models import BACKENDS
from duochat.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_NOT_CONFIGURED_STATUS = 503


class GatewayError(Exception):
    """Request rejected by the gateway before any provider call."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EmptyMessageError(GatewayError):
    """The message was missing or blank."""


class InvalidTargetError(GatewayError):
    """The target is not one of the known backend tags."""


class DispatchGateway:
    """Routes each message to the provider registered under its target tag.

    Known tags are fixed at construction; a known tag with no provider
    (missing API key) is reported as a 503 ProviderError rather than an
    invalid target.
    """

    def __init__(
        self,
        providers: dict[str, AIProvider],
        known_targets: tuple[str, ...] = BACKENDS,
    ) -> None:
        unknown = set(providers) - set(known_targets)
        if unknown:
            raise ValueError(f"Providers registered under unknown targets: {sorted(unknown)}")
        self._providers = dict(providers)
        self._known_targets = tuple(known_targets)

    @property
    def known_targets(self) -> tuple[str, ...]:
        return self._known_targets

    @property
    def configured_targets(self) -> tuple[str, ...]:
        return tuple(t for t in self._known_targets if t in self._providers)

    async def dispatch(self, message: str | None, target: str | None) -> str:
        """Send message to the backend named by target and return its text.

        Raises:
            EmptyMessageError: message missing or whitespace only.
            InvalidTargetError: target is not a known tag.
            ProviderError: the backend is not configured or its call failed.
        """
        if not message or not message.strip():
            raise EmptyMessageError("Message is required")
        if target not in self._known_targets:
            raise InvalidTargetError("Invalid chatbot specified")

        provider = self._providers.get(target)
        if provider is None:
            raise ProviderError(target, "Backend not configured", _NOT_CONFIGURED_STATUS)

        try:
            response = await provider.generate(message)
        except ProviderError as exc:
            logger.warning("Dispatch to %s failed (%d): %s", target, exc.status_code, exc.message)
            raise

        logger.debug("Dispatch to %s ok in %.2fs", target, response.latency_sec)
        return response.content
