"""Tests for the session context, profile store and read/write lock."""

import threading
import time

import numpy as np
import pytest

from core.rw_lock import ReadWriteLock
from repositories.voice.memory_repository import InMemoryVoiceProfileRepository
from services.voice.session import AuthSession, AuthState, derive_state
from tests.conftest import unlock


class TestInMemoryVoiceProfileRepository:
    def test_append_and_count(self):
        repo = InMemoryVoiceProfileRepository()
        assert repo.count() == 0
        assert repo.add_embedding(np.ones(4)) == 1
        assert repo.add_embedding(np.zeros(4) + 2) == 2
        assert repo.count() == 2

    def test_returns_copies(self):
        repo = InMemoryVoiceProfileRepository()
        source = np.ones(3)
        repo.add_embedding(source)
        source[0] = 99.0
        stored = repo.get_embeddings()
        stored[0][1] = -1.0
        np.testing.assert_array_equal(repo.get_embeddings()[0], [1.0, 1.0, 1.0])

    def test_clear(self):
        repo = InMemoryVoiceProfileRepository()
        repo.add_embedding(np.ones(3))
        repo.clear()
        repo.clear()
        assert repo.count() == 0
        assert repo.get_embeddings() == []

    def test_rejects_empty_embedding(self):
        with pytest.raises(ValueError):
            InMemoryVoiceProfileRepository().add_embedding(np.array([]))


class TestDeriveState:
    @pytest.mark.parametrize(
        "count,unlocked,expected",
        [
            (0, False, AuthState.LOCKED),
            (1, False, AuthState.ENROLLING),
            (2, False, AuthState.ENROLLING),
            (3, False, AuthState.READY),
            (3, True, AuthState.UNLOCKED),
        ],
    )
    def test_states(self, count, unlocked, expected):
        assert derive_state(count, 3, unlocked) is expected


class TestAuthSession:
    def test_try_enroll_stops_at_target(self):
        session = AuthSession(target_count=2)
        assert session.try_enroll(np.ones(2), session.snapshot().generation)[0] is True
        accepted, count, state = session.try_enroll(np.ones(2), session.snapshot().generation)
        assert (accepted, count, state) == (True, 2, AuthState.READY)
        accepted, count, state = session.try_enroll(np.ones(2), session.snapshot().generation)
        assert (accepted, count, state) == (False, 2, AuthState.READY)

    def test_enroll_with_stale_generation_is_refused(self):
        session = AuthSession(target_count=2)
        stale = session.snapshot().generation
        session.clear()

        accepted, count, state = session.try_enroll(np.ones(2), stale)

        assert (accepted, count, state) == (False, 0, AuthState.LOCKED)
        assert session.enrollment_count == 0

    def test_unlock_requires_complete_profile(self):
        session = AuthSession(target_count=2)
        session.try_enroll(np.ones(2), session.snapshot().generation)
        assert session.try_unlock(session.snapshot().generation) is False
        assert session.is_locked

    def test_observer_runs_once_per_transition(self):
        session = AuthSession(target_count=1)
        seen = []
        session.subscribe(lambda s: seen.append(s.state))

        unlock(session)
        assert session.try_unlock(session.snapshot().generation) is False
        assert seen == [AuthState.UNLOCKED]

        session.clear()
        unlock(session)
        assert len(seen) == 2

    def test_unsubscribe(self):
        session = AuthSession(target_count=1)
        seen = []
        unsubscribe = session.subscribe(lambda s: seen.append(1))
        unsubscribe()
        unlock(session)
        assert seen == []

    def test_failing_observer_does_not_block_others(self):
        session = AuthSession(target_count=1)
        seen = []

        def broken(_):
            raise RuntimeError("observer failed")

        session.subscribe(broken)
        session.subscribe(lambda s: seen.append(True))
        unlock(session)

        assert seen == [True]
        assert not session.is_locked

    def test_invalid_target(self):
        with pytest.raises(ValueError):
            AuthSession(target_count=0)


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        lock.acquire_read()
        lock.release_read()
        lock.release_read()

    def test_writer_waits_for_reader(self):
        lock = ReadWriteLock()
        acquired = threading.Event()

        def writer():
            with lock.write_locked():
                acquired.set()

        lock.acquire_read()
        t = threading.Thread(target=writer)
        t.start()
        time.sleep(0.05)
        assert not acquired.is_set()

        lock.release_read()
        t.join(timeout=2)
        assert acquired.is_set()

    def test_reader_waits_for_writer(self):
        lock = ReadWriteLock()
        acquired = threading.Event()

        def reader():
            with lock.read_locked():
                acquired.set()

        lock.acquire_write()
        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.05)
        assert not acquired.is_set()

        lock.release_write()
        t.join(timeout=2)
        assert acquired.is_set()
