"""Pure dataclasses for the dual-response chat pipeline. No logic, no deps."""

from dataclasses import dataclass

USER = "user"
ASSISTANT = "assistant"

CLAUDE = "claude"
CHATGPT = "chatgpt"
BACKENDS = (CLAUDE, CHATGPT)

ERROR_PLACEHOLDER = "Sorry, there was an error processing your request."


@dataclass(frozen=True)
class Message:
    id: str
    text: str
    role: str              # "user" or "assistant"
    backend: str           # "claude" or "chatgpt", also set on user messages
    reply_to: str | None = None  # originating user message id, assistant only


@dataclass(frozen=True)
class PendingRequest:
    backend: str
    message_id: str        # user message that triggered the call
    started_at: float      # time.monotonic()


@dataclass(frozen=True)
class Reply:
    """One gateway outcome, collapsed from the envelope into success or failure."""

    backend: str
    text: str | None = None
    error: str | None = None
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ModelResponse:
    provider: str          # backend tag
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None


@dataclass(frozen=True)
class ChatSnapshot:
    messages: tuple[Message, ...]
    is_loading: bool
    active_backend: str
