# Supabase Realtime Change Feed
import asyncio
import logging
import time
from supabase import acreate_client

from bitterscan.live.subscription import ChangeFeedError, FeedConfigurationError

logger = logging.getLogger(__name__)

# (table, event) pairs the dashboard refetches on
WATCHED_CHANGES = (
    ('leaf_disease_scans', '*'),
    ('fruit_ripeness_scans', '*'),
    ('validation_history', '*'),
    ('profiles', 'INSERT'),
    ('profiles', 'DELETE'),
)

CONFIGURATION_HINTS = ('mismatch', 'binding', 'server and client', 'not enabled', 'publication')


class FeedHandle:
    """An open channel and whether the server still reports it subscribed."""

    def __init__(self, channel):
        self.channel = channel
        self.alive = False


def _is_configuration_error(error):
    message = str(error or '').lower()
    return any(hint in message for hint in CONFIGURATION_HINTS)


class SupabaseChangeFeed:
    """
    Opens one realtime channel on the watched tables through the async
    supabase client. The client is created on first connect and closed
    with close().
    """

    def __init__(self, url, anon_key, access_token=None, refresh_token=None,
                 channel_prefix='dashboard-changes', changes=WATCHED_CHANGES):
        self.url = url
        self.anon_key = anon_key
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.channel_prefix = channel_prefix
        self.changes = changes
        self._client = None

    async def _get_client(self):
        if not self.url or not self.anon_key:
            raise FeedConfigurationError('Missing Supabase URL or anon key')
        if self._client is None:
            self._client = await acreate_client(self.url, self.anon_key)
            if self.access_token and self.refresh_token:
                # Row-level policies apply to the signed-in user's feed
                await self._client.auth.set_session(self.access_token, self.refresh_token)
        return self._client

    async def connect(self, on_change, on_lost):
        try:
            client = await self._get_client()
        except ChangeFeedError:
            raise
        except Exception as e:
            # A half-built client is never reused
            self._client = None
            raise ChangeFeedError(f'Could not reach realtime server: {e}') from e

        # Unique topic per attempt so a stale server-side binding is never reused
        channel = client.channel(f'{self.channel_prefix}-{int(time.time() * 1000)}')
        for table, event in self.changes:
            channel.on_postgres_changes(event, callback=on_change, table=table, schema='public')

        handle = FeedHandle(channel)
        loop = asyncio.get_running_loop()
        subscribed = loop.create_future()

        def on_status(status, error=None):
            status = getattr(status, 'value', status)
            if status == 'SUBSCRIBED':
                handle.alive = True
                if not subscribed.done():
                    subscribed.set_result(True)
                return
            handle.alive = False
            if not subscribed.done():
                if _is_configuration_error(error):
                    subscribed.set_exception(FeedConfigurationError(str(error)))
                else:
                    subscribed.set_exception(ChangeFeedError(f'{status}: {error}' if error else status))
            else:
                on_lost(f'{status}: {error}' if error else status)

        try:
            await channel.subscribe(on_status)
            await subscribed
        except ChangeFeedError:
            await self._remove(channel)
            raise
        except asyncio.CancelledError:
            await self._remove(channel)
            raise
        except Exception as e:
            await self._remove(channel)
            raise ChangeFeedError(f'Realtime subscribe failed: {e}') from e
        logger.info('Subscribed to %d change streams', len(self.changes))
        return handle

    async def _remove(self, channel):
        try:
            await self._client.remove_channel(channel)
        except Exception as e:
            raise ChangeFeedError(f'Could not remove channel: {e}') from e

    async def disconnect(self, handle):
        handle.alive = False
        if self._client is not None:
            await self._remove(handle.channel)

    def is_alive(self, handle):
        return handle.alive

    async def close(self):
        client, self._client = self._client, None
        if client is not None:
            await client.remove_all_channels()
