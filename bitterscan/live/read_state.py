# Notification Read-State Store
import asyncio
import json
import logging
from pathlib import Path

import requests

from bitterscan.live.api_client import ApiError, AccessDenied
from bitterscan.utils.notifications import reconcile

logger = logging.getLogger(__name__)


class LocalReadStateCache:
    """Per-user JSON file on the device; the fast path for read markers."""

    def __init__(self, directory):
        self.directory = Path(directory)

    @classmethod
    def from_config(cls, config):
        return cls(config['READ_STATE_CACHE_DIR'])

    def _path(self, user_id):
        return self.directory / f'notification_reads_{user_id}.json'

    def load(self, user_id):
        """Return (read_scan_ids, read_user_ids), or None when nothing is cached."""
        path = self._path(user_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.warning('Ignoring unreadable read-state cache %s: %s', path, e)
            return None
        scan_ids = {sid for sid in data.get('read_scan_ids', []) if isinstance(sid, int)}
        user_ids = {uid for uid in data.get('read_user_ids', []) if isinstance(uid, str)}
        return scan_ids, user_ids

    def save(self, user_id, read_scan_ids, read_user_ids):
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(user_id).write_text(json.dumps({
            'read_scan_ids': sorted(read_scan_ids),
            'read_user_ids': sorted(read_user_ids),
        }), encoding='utf-8')

    def clear(self, user_id):
        path = self._path(user_id)
        if path.exists():
            path.unlink()


class ReadStateStore:
    """
    Read markers for one signed-in user.

    The server row is the cross-device source of truth; the device cache is
    read first and refreshed from the server whenever it answers.
    """

    def __init__(self, api, cache, user_id):
        self.api = api
        self.cache = cache
        self.user_id = user_id
        self.read_scan_ids = set()
        self.read_user_ids = set()
        self.pending_scan_ids = set()
        self.pending_user_ids = set()

    def _apply(self, payload):
        self.read_scan_ids = set(payload.get('readScanIds') or [])
        self.read_user_ids = set(payload.get('readUserIds') or [])
        self.pending_scan_ids = {scan['id'] for scan in payload.get('pendingScans') or []}
        self.pending_user_ids = {user['id'] for user in payload.get('pendingUsers') or []}
        self.cache.save(self.user_id, self.read_scan_ids, self.read_user_ids)

    @property
    def unread_scan_count(self):
        return len(self.pending_scan_ids - self.read_scan_ids)

    @property
    def unread_user_count(self):
        return len(self.pending_user_ids - self.read_user_ids)

    async def load(self):
        cached = self.cache.load(self.user_id)
        if cached is not None:
            self.read_scan_ids, self.read_user_ids = cached
        try:
            payload = await asyncio.to_thread(self.api.get_notifications)
        except AccessDenied:
            raise
        except (ApiError, requests.RequestException) as e:
            logger.warning('Using cached read state for %s: %s', self.user_id, e)
            return self
        self._apply(payload)
        return self

    def reconcile(self, pending_scan_ids, pending_user_ids, loading=False):
        """Forget markers for items that left the pending set. Skipped while loading."""
        if loading:
            return False
        self.pending_scan_ids = set(pending_scan_ids)
        self.pending_user_ids = set(pending_user_ids)
        self.read_scan_ids, self.read_user_ids, changed = reconcile(
            self.read_scan_ids, self.read_user_ids, self.pending_scan_ids, self.pending_user_ids
        )
        if changed:
            self.cache.save(self.user_id, self.read_scan_ids, self.read_user_ids)
        return changed

    async def mark_read(self, scan_ids=(), user_ids=(), mark_all=False):
        if mark_all:
            self.read_scan_ids |= self.pending_scan_ids
            self.read_user_ids |= self.pending_user_ids
        self.read_scan_ids |= set(scan_ids)
        self.read_user_ids |= set(user_ids)
        self.cache.save(self.user_id, self.read_scan_ids, self.read_user_ids)

        try:
            payload = await asyncio.to_thread(self.api.mark_read, scan_ids, user_ids, mark_all)
        except AccessDenied:
            raise
        except (ApiError, requests.RequestException) as e:
            # The device copy stands until the next successful load
            logger.warning('Could not persist read state for %s: %s', self.user_id, e)
            return False
        self._apply(payload)
        return True

    def clear(self):
        self.cache.clear(self.user_id)
        self.read_scan_ids = set()
        self.read_user_ids = set()
