import asyncio

from bitterscan.live import AccessDenied, ReadinessCoordinator, call_with_timeout
from bitterscan.utils.access import ACCESS_ERRORS


async def never():
    await asyncio.Event().wait()


class Recorder:
    def __init__(self, result=None, hang=False):
        self.result = result
        self.hang = hang
        self.calls = 0

    async def __call__(self, *args):
        self.calls += 1
        if self.hang:
            await never()
        return self.result


class FakeSubscriptions:
    def __init__(self):
        self.started = 0
        self.checked = 0
        self.stopped = 0

    async def start(self):
        self.started += 1

    async def ensure_connected(self):
        self.checked += 1

    async def stop(self):
        self.stopped += 1


def test_call_with_timeout_returns_fallback():
    assert asyncio.run(call_with_timeout(never, 0.01, fallback='empty')) == 'empty'
    assert asyncio.run(call_with_timeout(Recorder('value'), 1)) == 'value'


def test_session_that_never_resolves_still_becomes_ready():
    fetch = Recorder(['scan'])
    coordinator = ReadinessCoordinator(never, Recorder(), fetch, session_timeout=0.05, data_timeout=0.05)
    asyncio.run(coordinator.start())

    assert coordinator.session_ready is True
    assert coordinator.has_session is False
    assert coordinator.data_ready is True
    assert fetch.calls == 0


def test_farmer_is_rejected_before_any_data_fetch():
    fetch = Recorder(['scan'])
    subscriptions = FakeSubscriptions()
    coordinator = ReadinessCoordinator(
        Recorder({'user': 'u1'}), Recorder({'role': 'farmer', 'status': 'approved'}), fetch,
        subscriptions=subscriptions, session_timeout=1, data_timeout=1
    )
    asyncio.run(coordinator.start())

    assert coordinator.has_session is True
    assert coordinator.denial.message == ACCESS_ERRORS['FARMER_DENIED']
    assert coordinator.denial.redirect == '/login'
    assert coordinator.data_ready is True
    assert fetch.calls == 0
    assert subscriptions.started == 0


def test_pending_expert_is_rejected():
    coordinator = ReadinessCoordinator(
        Recorder({'user': 'u1'}), Recorder({'role': 'expert', 'status': 'pending'}), Recorder([]),
        session_timeout=1, data_timeout=1
    )
    asyncio.run(coordinator.start())
    assert coordinator.denial.message == ACCESS_ERRORS['EXPERT_NOT_APPROVED']


def test_access_denied_from_api_surfaces_redirect():
    async def forbidden(session):
        raise AccessDenied('Expert or Admin access required', 403, '/expert-dashboard')

    coordinator = ReadinessCoordinator(Recorder({'user': 'u1'}), forbidden, Recorder([]),
                                       session_timeout=1, data_timeout=1)
    asyncio.run(coordinator.start())
    assert coordinator.denial.redirect == '/expert-dashboard'
    assert coordinator.data_ready is True


def test_slow_data_fetch_times_out_to_empty_state():
    subscriptions = FakeSubscriptions()
    coordinator = ReadinessCoordinator(
        Recorder({'user': 'u1'}), Recorder({'role': 'admin', 'status': 'approved'}), Recorder(hang=True),
        subscriptions=subscriptions, session_timeout=1, data_timeout=0.05
    )
    asyncio.run(coordinator.start())

    assert coordinator.data_ready is True
    assert coordinator.data is None
    assert coordinator.denial is None
    assert subscriptions.started == 1


def test_foreground_refetches_silently_and_checks_feed():
    fetch = Recorder(['scan'])
    subscriptions = FakeSubscriptions()
    coordinator = ReadinessCoordinator(
        Recorder({'user': 'u1'}), Recorder({'role': 'expert', 'status': 'approved'}), fetch,
        subscriptions=subscriptions, session_timeout=1, data_timeout=1
    )

    async def scenario():
        await coordinator.start()
        refreshed = await coordinator.on_foreground()
        return refreshed

    assert asyncio.run(scenario()) is True
    assert fetch.calls == 2
    assert coordinator.data == ['scan']
    assert coordinator.refreshing is False
    assert subscriptions.checked == 1


def test_foreground_without_session_does_nothing():
    fetch = Recorder([])
    coordinator = ReadinessCoordinator(Recorder(None), Recorder(), fetch, session_timeout=1, data_timeout=1)

    async def scenario():
        await coordinator.start()
        return await coordinator.on_foreground()

    assert asyncio.run(scenario()) is False
    assert fetch.calls == 0


def test_logout_tears_down():
    subscriptions = FakeSubscriptions()
    sign_out = Recorder()
    coordinator = ReadinessCoordinator(
        Recorder({'user': 'u1'}), Recorder({'role': 'admin', 'status': 'approved'}), Recorder(['scan']),
        subscriptions=subscriptions, session_timeout=1, data_timeout=1, sign_out=sign_out
    )

    async def scenario():
        await coordinator.start()
        await coordinator.logout()

    asyncio.run(scenario())
    assert subscriptions.stopped == 1
    assert sign_out.calls == 1
    assert coordinator.has_session is False
    assert coordinator.data is None


def test_from_config_reads_timeouts():
    coordinator = ReadinessCoordinator.from_config(
        {'SESSION_TIMEOUT': 3.0, 'DATA_TIMEOUT': 2.0}, Recorder(), Recorder(), Recorder()
    )
    assert coordinator.session_timeout == 3.0
    assert coordinator.data_timeout == 2.0


def test_rejected_data_fetch_stops_subscriptions():
    async def expired(session):
        raise AccessDenied('Invalid or expired token', 401)

    subscriptions = FakeSubscriptions()
    coordinator = ReadinessCoordinator(
        Recorder({'user': 'u1'}), Recorder({'role': 'admin', 'status': 'approved'}), expired,
        subscriptions=subscriptions, session_timeout=1, data_timeout=1
    )

    async def scenario():
        await coordinator.start()
        return await coordinator.on_foreground()

    assert asyncio.run(scenario()) is False
    assert coordinator.denial.message == 'Invalid or expired token'
    assert coordinator.data_ready is True
    assert subscriptions.stopped == 1
    assert subscriptions.checked == 0
