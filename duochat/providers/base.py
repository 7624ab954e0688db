"""Abstract base for the model backends a message can be routed to."""

from abc import ABC, abstractmethod

from duochat.models import ModelResponse

NO_RESPONSE_TEXT = "No response generated"

DEFAULT_STATUS_CODE = 500


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code or DEFAULT_STATUS_CODE
        super().__init__(f"[{provider_name}] {message}")


def status_code_of(exc: BaseException) -> int:
    """HTTP status reported by an SDK exception, 500 when it carries none."""
    status = getattr(exc, "status_code", None)
    return status if isinstance(status, int) else DEFAULT_STATUS_CODE


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the backend tag (e.g. 'claude', 'chatgpt')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str) -> ModelResponse:
        """Generate a full completion for a single, context-free prompt.

        Args:
            prompt: The user's text. Callers guarantee it is not blank.

        Returns:
            ModelResponse whose content is the completion text, or
            NO_RESPONSE_TEXT when the provider returned nothing usable.

        Raises:
            ProviderError: On API failure or timeout. No retries here.
        """
        ...
