import asyncio
import logging
from datetime import timedelta

import pytest

from studentscope.auth.authenticator import authenticate, create_user
from studentscope.auth.sessions import SessionStore
from studentscope.core.errors import StorageError
from studentscope.database import utcnow
from studentscope.main import _session_cleanup_loop, _sweep_expired_sessions
from studentscope.seed import DEFAULT_USERS, seed_default_users


def test_storage_failure_returns_generic_500(client, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_authenticate(*_args, **_kwargs):
        raise StorageError('connection refused by db-host-01')

    monkeypatch.setattr('studentscope.routes.auth_routes.authenticate', broken_authenticate)

    response = client.post('/api/auth/login', json={'username': 'admin', 'password': '123'})

    assert response.status_code == 500
    assert response.json() == {'error': 'Internal server error'}


def test_sweep_expired_sessions_removes_stale_rows(database, db) -> None:
    user = create_user(db, 'admin', '123', 'admin')
    yesterday = utcnow() - timedelta(days=2)
    expired = SessionStore(db, clock=lambda: yesterday).create(user)
    current = SessionStore(db).create(user)

    assert _sweep_expired_sessions(database) == 1

    store = SessionStore(db)
    assert store.get(expired) is None
    assert store.get(current) is not None


def test_seed_default_users_is_idempotent(db) -> None:
    created = seed_default_users(db)

    assert sorted(user.username for user in created) == sorted(username for username, _role in DEFAULT_USERS)
    assert seed_default_users(db) == []
    assert authenticate(db, 'admin', '123').role == 'admin'


def test_cleanup_loop_logs_unexpected_errors_and_keeps_running(monkeypatch, caplog) -> None:
    real_sleep = asyncio.sleep
    intervals = []

    async def fake_sleep(seconds, *args, **kwargs):
        if seconds == 0:
            return await real_sleep(0, *args, **kwargs)
        intervals.append(seconds)
        if len(intervals) == 3:
            raise asyncio.CancelledError
        return None

    def broken_sweep(_database):
        raise RuntimeError('unexpected failure')

    monkeypatch.setattr(asyncio, 'sleep', fake_sleep)
    monkeypatch.setattr('studentscope.main._sweep_expired_sessions', broken_sweep)

    with caplog.at_level(logging.ERROR, logger='studentscope.main'):
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(_session_cleanup_loop(None, interval_minutes=5))

    assert intervals == [300, 300, 300]
    assert caplog.text.count('Expired session sweep failed') == 2
