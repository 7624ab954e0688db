"""Backend health checks: ping each configured backend through the gateway."""

import asyncio
import logging

from duochat.gateway import DispatchGateway

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _ping(gateway: DispatchGateway, backend: str) -> tuple[str, bool, str]:
    try:
        await asyncio.wait_for(gateway.dispatch(_PING_PROMPT, backend), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        return backend, False, f"No reply within {_TIMEOUT_SEC:g}s"
    except Exception as exc:
        return backend, False, str(exc)
    return backend, True, ""


async def run_health_checks(gateway: DispatchGateway) -> dict[str, tuple[bool, str]]:
    """Ping every known backend in parallel.

    Backends without a configured adapter are reported as failures.

    Returns:
        Dict mapping backend tag -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_ping(gateway, b) for b in gateway.known_targets))
    for backend, ok, err in results:
        if not ok:
            logger.debug("Health check failed for %s: %s", backend, err)
    return {backend: (ok, err) for backend, ok, err in results}
