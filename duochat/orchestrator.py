"""Dual-response orchestration: one user message, one concurrent call per backend.

Everything here runs on a single asyncio event loop. The conversation log
is only mutated from that loop, so it needs no locking.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from duochat.conversation import ConversationLog, MessageIdFactory
from duochat.gateway import EmptyMessageError, InvalidTargetError
from duochat.models import (
    ASSISTANT,
    BACKENDS,
    ERROR_PLACEHOLDER,
    USER,
    ChatSnapshot,
    Message,
    PendingRequest,
    Reply,
)
from duochat.transport import Transport, TransportError

logger = logging.getLogger(__name__)

_ERROR_ID_PREFIX = "error-"


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_BOTH = "awaiting_both"
    SETTLED = "settled"


class MergePolicy(str, Enum):
    SHARED = "shared"            # any failure -> one placeholder for the whole submission
    INDEPENDENT = "independent"  # each backend gets its own reply or placeholder


class Orchestrator:
    """Owns the conversation log and drives one submission at a time.

    Usage:
        orchestrator = Orchestrator(LocalTransport(gateway))
        task = orchestrator.submit("hello")   # user message already in the log
        replies = await task
    """

    def __init__(
        self,
        transport: Transport,
        backends: tuple[str, ...] = BACKENDS,
        active_backend: str | None = None,
        merge_policy: MergePolicy | str = MergePolicy.SHARED,
        on_update: Callable[[ChatSnapshot], None] | None = None,
        id_factory: Callable[[str], str] | None = None,
    ) -> None:
        if not backends:
            raise ValueError("At least one backend is required")
        self._transport = transport
        self._backends = tuple(backends)
        self._active = active_backend or self._backends[0]
        if self._active not in self._backends:
            raise InvalidTargetError(f"Unknown backend: {self._active}")
        self._merge_policy = MergePolicy(merge_policy)
        self._on_update = on_update
        self._new_id = id_factory or MessageIdFactory()
        self._log = ConversationLog()
        self._pending: list[PendingRequest] = []
        self._state = SubmissionState.IDLE

    @property
    def backends(self) -> tuple[str, ...]:
        return self._backends

    @property
    def active_backend(self) -> str:
        return self._active

    @property
    def merge_policy(self) -> MergePolicy:
        return self._merge_policy

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state in (SubmissionState.SUBMITTING, SubmissionState.AWAITING_BOTH)

    @property
    def pending(self) -> tuple[PendingRequest, ...]:
        return tuple(self._pending)

    @property
    def log(self) -> tuple[Message, ...]:
        return self._log.snapshot()

    def select_backend(self, backend: str) -> None:
        """Switch the backend view. Does not touch the log."""
        if backend not in self._backends:
            raise InvalidTargetError(f"Unknown backend: {backend}")
        self._active = backend
        self._notify()

    def visible_messages(self, backend: str | None = None) -> list[Message]:
        return self._log.for_backend(backend or self._active)

    def snapshot(self) -> ChatSnapshot:
        return ChatSnapshot(
            messages=self._log.snapshot(),
            is_loading=self.is_loading,
            active_backend=self._active,
        )

    def submit(self, text: str) -> asyncio.Task | None:
        """Append the user message and start one call per backend.

        Must be called from a running event loop. Returns the round-trip
        task, or None when a previous submission is still outstanding.

        Raises:
            EmptyMessageError: text is blank. Nothing is appended.
        """
        if not text or not text.strip():
            raise EmptyMessageError("Message is required")
        if self.is_loading:
            logger.debug("Submission refused: %d request(s) still pending", len(self._pending))
            return None

        loop = asyncio.get_running_loop()
        view_backend = self._active
        user_message = Message(id=self._new_id(""), text=text, role=USER, backend=view_backend)
        self._log.append(user_message)

        started_at = time.monotonic()
        self._pending = [PendingRequest(b, user_message.id, started_at) for b in self._backends]
        self._state = SubmissionState.SUBMITTING
        task = loop.create_task(self._round_trip(user_message, view_backend))
        self._notify()
        return task

    async def submit_and_wait(self, text: str) -> list[Message]:
        """Submit and wait for settlement. Returns the assistant messages appended."""
        task = self.submit(text)
        if task is None:
            return []
        return await task

    async def _call_backend(self, backend: str, user_message: Message) -> Reply:
        """Send to one backend. Never raises; failures come back as a failed Reply."""
        try:
            return await self._transport.send(user_message.text, backend)
        except TransportError as exc:
            logger.warning("Transport failure for %s: %s", backend, exc)
            return Reply(backend=backend, error=str(exc), status_code=500)
        except Exception as exc:
            logger.warning("Unexpected failure for %s: %s", backend, exc)
            return Reply(backend=backend, error=f"Unexpected error: {exc}", status_code=500)

    async def _round_trip(self, user_message: Message, view_backend: str) -> list[Message]:
        arrivals: list[Reply] = []
        appended: list[Message] = []

        async def collect(backend: str) -> None:
            reply = await self._call_backend(backend, user_message)
            self._pending = [p for p in self._pending if p.backend != backend]
            arrivals.append(reply)
            if self._merge_policy is MergePolicy.INDEPENDENT:
                appended.append(self._append_reply(reply, user_message))
            self._notify()

        start = time.monotonic()
        try:
            calls = asyncio.gather(*(collect(b) for b in self._backends))
            self._state = SubmissionState.AWAITING_BOTH
            self._notify()
            await calls

            if self._merge_policy is MergePolicy.SHARED:
                appended.extend(self._merge_shared(arrivals, user_message, view_backend))
        finally:
            self._pending = []
            self._state = SubmissionState.SETTLED
            self._notify()

        logger.info(
            "Submission %s settled in %.2fs: %d/%d backends succeeded",
            user_message.id,
            time.monotonic() - start,
            sum(1 for r in arrivals if r.ok),
            len(self._backends),
        )
        return appended

    def _merge_shared(
        self, arrivals: list[Reply], user_message: Message, view_backend: str
    ) -> list[Message]:
        failed = [r for r in arrivals if not r.ok]
        if not failed:
            return [self._append_reply(r, user_message) for r in arrivals]
        for reply in failed:
            logger.warning("Backend %s failed (%d): %s", reply.backend, reply.status_code, reply.error)
        return [self._append_placeholder(view_backend, user_message)]

    def _append_reply(self, reply: Reply, user_message: Message) -> Message:
        if not reply.ok:
            logger.warning("Backend %s failed (%d): %s", reply.backend, reply.status_code, reply.error)
            return self._append_placeholder(reply.backend, user_message)
        message = Message(
            id=self._new_id(""),
            text=reply.text or "",
            role=ASSISTANT,
            backend=reply.backend,
            reply_to=user_message.id,
        )
        self._log.append(message)
        return message

    def _append_placeholder(self, backend: str, user_message: Message) -> Message:
        message = Message(
            id=self._new_id(_ERROR_ID_PREFIX),
            text=ERROR_PLACEHOLDER,
            role=ASSISTANT,
            backend=backend,
            reply_to=user_message.id,
        )
        self._log.append(message)
        return message

    def _notify(self) -> None:
        """Hand a snapshot to the presentation callback. Its failures stay out of the round trip."""
        if not self._on_update:
            return
        try:
            self._on_update(self.snapshot())
        except Exception:
            logger.exception("on_update callback failed")
