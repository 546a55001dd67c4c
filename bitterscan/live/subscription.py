# Change-Feed Subscription Manager
import asyncio
import logging

logger = logging.getLogger(__name__)

DISCONNECTED = 'disconnected'
CONNECTING = 'connecting'
CONNECTED = 'connected'
BACKING_OFF = 'backing_off'
POLLING = 'polling'

STATES = (DISCONNECTED, CONNECTING, CONNECTED, BACKING_OFF, POLLING)

MAX_ATTEMPTS = 5
BASE_DELAY = 1.0
MAX_DELAY = 10.0
POLL_INTERVAL = 10.0
CONNECT_TIMEOUT = 10.0


class ChangeFeedError(Exception):
    """The change feed could not be opened or dropped; worth retrying."""


class FeedConfigurationError(ChangeFeedError):
    """The backend cannot serve a change feed at all (e.g. realtime disabled)."""


def backoff_delay(attempt, base=BASE_DELAY, ceiling=MAX_DELAY):
    """Delay before reconnect attempt number attempt (1-based)."""
    return min(base * 2 ** (attempt - 1), ceiling)


class SubscriptionManager:
    """
    Keeps at most one change-feed channel open and refetches on every change.

    feed must provide ``async connect(on_change, on_lost)`` returning a
    handle, ``async disconnect(handle)`` and ``is_alive(handle)``. fetch is
    the same coroutine function used for the startup load. After
    max_attempts failed connects the manager polls fetch every
    poll_interval seconds instead.
    """

    def __init__(self, feed, fetch, max_attempts=MAX_ATTEMPTS, base_delay=BASE_DELAY,
                 max_delay=MAX_DELAY, poll_interval=POLL_INTERVAL,
                 connect_timeout=CONNECT_TIMEOUT, sleep=asyncio.sleep):
        self.feed = feed
        self.fetch = fetch
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.poll_interval = poll_interval
        self.connect_timeout = connect_timeout
        self._sleep = sleep

        self.state = DISCONNECTED
        self.attempts = 0
        self._handle = None
        self._task = None
        self._fetches = set()

    def _set_state(self, state):
        if state != self.state:
            logger.debug('Subscription state %s -> %s', self.state, state)
            self.state = state

    @property
    def connected(self):
        return self.state == CONNECTED and self._handle is not None and self.feed.is_alive(self._handle)

    async def start(self):
        """Begin connecting unless a connection or retry cycle is already running."""
        if self._task is not None and not self._task.done():
            return
        if self.connected:
            return
        self._spawn()

    async def ensure_connected(self):
        """Replace a channel that died without telling us; leave live or retrying ones alone."""
        if self.state in (CONNECTING, BACKING_OFF, POLLING):
            return
        if self.state == CONNECTED and self.connected:
            return
        logger.info('Change feed is not live (state=%s), reconnecting', self.state)
        await self._close_handle()
        self.attempts = 0
        self._set_state(DISCONNECTED)
        await self.start()

    async def stop(self):
        """Cancel retries or polling and close the channel."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        for pending in list(self._fetches):
            pending.cancel()
        self._fetches.clear()
        await self._close_handle()
        self.attempts = 0
        self._set_state(DISCONNECTED)

    async def _close_handle(self):
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await self.feed.disconnect(handle)
        except ChangeFeedError as e:
            logger.warning('Error while closing change feed: %s', e)

    async def _run(self):
        while True:
            # Only one channel may be open at a time
            await self._close_handle()
            self._set_state(CONNECTING)
            try:
                self._handle = await asyncio.wait_for(
                    self.feed.connect(self._on_change, self._on_lost), self.connect_timeout
                )
            except FeedConfigurationError as e:
                logger.warning('Change feed unavailable (%s), polling every %.0fs', e, self.poll_interval)
                break
            except Exception as e:
                # Any other connect failure counts as transient
                self.attempts += 1
                if self.attempts >= self.max_attempts:
                    logger.warning('Change feed failed %d times, polling every %.0fs',
                                   self.attempts, self.poll_interval)
                    break
                delay = backoff_delay(self.attempts, self.base_delay, self.max_delay)
                logger.warning('Change feed error (%s), retry %d/%d in %.1fs',
                               str(e) or type(e).__name__, self.attempts, self.max_attempts, delay)
                self._set_state(BACKING_OFF)
                await self._sleep(delay)
                continue

            self.attempts = 0
            self._set_state(CONNECTED)
            return

        await self._poll()

    async def _poll(self):
        self._set_state(POLLING)
        while True:
            await self._sleep(self.poll_interval)
            await self._safe_fetch()

    async def _safe_fetch(self):
        try:
            await self.fetch()
        except asyncio.CancelledError:
            raise
        except Exception:
            # Transient; the next change or poll tries again
            logger.exception('Refetch after change failed')

    def _on_change(self, payload=None):
        logger.debug('Change received: %s', payload)
        task = asyncio.ensure_future(self._safe_fetch())
        self._fetches.add(task)
        task.add_done_callback(self._fetches.discard)

    def _on_lost(self, reason=None):
        """Called by the feed when an open channel errors or closes."""
        if self.state != CONNECTED:
            return
        logger.warning('Change feed lost (%s), reconnecting', reason)
        self._set_state(DISCONNECTED)
        self._spawn()

    def _spawn(self):
        self._task = asyncio.ensure_future(self._run())
        self._task.add_done_callback(self._on_run_done)

    def _on_run_done(self, task):
        if task.cancelled() or task.exception() is None:
            return
        logger.error('Change feed task failed', exc_info=task.exception())
        self._handle = None
        self.attempts = 0
        self._set_state(DISCONNECTED)
