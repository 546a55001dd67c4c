# Bounded Awaiting
import asyncio
import logging

logger = logging.getLogger(__name__)


async def call_with_timeout(factory, timeout, fallback=None, label='call'):
    """
    Await factory() for at most timeout seconds.

    On timeout the pending call is cancelled (its late result can never be
    applied) and fallback is returned. Errors raised by the call propagate.
    """
    try:
        return await asyncio.wait_for(factory(), timeout)
    except asyncio.TimeoutError:
        logger.warning('%s timed out after %.1fs, continuing with fallback', label, timeout)
        return fallback
