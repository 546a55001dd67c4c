# Session/Data Readiness Coordinator
import asyncio
import logging
from collections import namedtuple

from bitterscan.live.api_client import AccessDenied
from bitterscan.live.timeouts import call_with_timeout
from bitterscan.utils.access import build_access_profile, dashboard_route_for

logger = logging.getLogger(__name__)

SESSION_TIMEOUT = 12.0
DATA_TIMEOUT = 10.0

Denial = namedtuple('Denial', ['message', 'redirect'])


class ReadinessCoordinator:
    """
    Drives a dashboard session to a ready state within bounded time.

    get_session, get_profile(session) and fetch_data(session) are coroutine
    functions supplied by the caller. get_profile returns a mapping with
    ``role`` and ``status``; fetch_data returns whatever the screen shows.

    Flags: has_session, session_ready, data_ready. session_ready and
    data_ready become true even when the upstream calls never finish.
    """

    def __init__(self, get_session, get_profile, fetch_data, subscriptions=None,
                 session_timeout=SESSION_TIMEOUT, data_timeout=DATA_TIMEOUT, sign_out=None):
        self.get_session = get_session
        self.get_profile = get_profile
        self.fetch_data = fetch_data
        self.subscriptions = subscriptions
        self.session_timeout = session_timeout
        self.data_timeout = data_timeout
        self.sign_out = sign_out
        self._reset()

    @classmethod
    def from_config(cls, config, get_session, get_profile, fetch_data, **kwargs):
        return cls(
            get_session, get_profile, fetch_data,
            session_timeout=config.get('SESSION_TIMEOUT', SESSION_TIMEOUT),
            data_timeout=config.get('DATA_TIMEOUT', DATA_TIMEOUT),
            **kwargs
        )

    def _reset(self):
        self.session = None
        self.has_session = False
        self.session_ready = False
        self.profile = None
        self.profile_ready = False
        self.data = None
        self.data_ready = False
        self.denial = None
        self._refreshing = False

    def _mark_session_ready(self):
        if not self.session_ready:
            self.session_ready = True
            logger.debug('Session ready (has_session=%s)', self.has_session)

    @property
    def refreshing(self):
        return self._refreshing

    async def start(self):
        """Resolve the session, gate on the profile, then load data and subscribe."""
        try:
            session = await call_with_timeout(self.get_session, self.session_timeout, label='Session resolution')
        except AccessDenied:
            session = None
        except Exception:
            logger.exception('Session resolution failed')
            session = None

        self.session = session
        self.has_session = session is not None
        self._mark_session_ready()

        if not self.has_session:
            # Nothing to load; the screen proceeds to the login state
            self.data_ready = True
            return self

        await self._load_profile()
        if self.denial is not None or self.profile is None:
            self.data_ready = True
            return self

        await asyncio.gather(self._load_data(), self._subscribe())
        await self._unsubscribe_if_denied()
        return self

    def _deny(self, message, redirect):
        self.denial = Denial(message, redirect)
        logger.warning('Dashboard access denied: %s (redirect %s)', message, redirect)

    async def _load_profile(self):
        try:
            profile = await call_with_timeout(
                lambda: self.get_profile(self.session), self.data_timeout, label='Profile fetch'
            )
        except AccessDenied as e:
            self._deny(e.message, e.redirect)
            profile = None
        except Exception:
            logger.exception('Profile fetch failed')
            profile = None
        finally:
            self.profile_ready = True

        if profile is None:
            return
        self.profile = profile
        access = build_access_profile(profile.get('role'), profile.get('status'))
        if not access.can_access_dashboard:
            # Farmers and unapproved experts never reach a data fetch
            self._deny(access.error_message, dashboard_route_for(None))

    async def _load_data(self, silent=False):
        try:
            data = await call_with_timeout(
                lambda: self.fetch_data(self.session), self.data_timeout, label='Data fetch'
            )
        except AccessDenied as e:
            self._deny(e.message, e.redirect)
            data = None
        except Exception:
            logger.exception('Data fetch failed')
            data = None
        finally:
            self.data_ready = True
        if data is not None:
            self.data = data
        elif not silent:
            logger.info('Proceeding with %s data', 'cached' if self.data is not None else 'empty')
        return data

    async def _subscribe(self):
        if self.subscriptions is not None:
            await self.subscriptions.start()

    async def _unsubscribe_if_denied(self):
        # A rejected token must not keep driving refetches
        if self.denial is None:
            return False
        if self.subscriptions is not None:
            await self.subscriptions.stop()
        return True

    async def on_foreground(self):
        """
        Tab came back into view: refetch silently when ready and idle, and
        make sure the change feed is still live. Returns True when a refresh
        was issued.
        """
        if not self.session_ready or not self.has_session or self.denial is not None:
            return False
        if self.profile is None:
            # The profile gate never completed; try it again
            await self._load_profile()
            if self.denial is not None or self.profile is None:
                return False
            await self._subscribe()
        if not self.data_ready or self._refreshing:
            return False

        self._refreshing = True
        try:
            await self._load_data(silent=True)
        finally:
            self._refreshing = False
        if await self._unsubscribe_if_denied():
            return False
        if self.subscriptions is not None:
            await self.subscriptions.ensure_connected()
        return True

    async def logout(self):
        """Tear down the feed, sign out and return to the initial state."""
        if self.subscriptions is not None:
            await self.subscriptions.stop()
        if self.sign_out is not None and self.has_session:
            try:
                await self.sign_out()
            except Exception:
                logger.exception('Sign-out failed')
        self._reset()
