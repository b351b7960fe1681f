"""
Replay Guard Tests
==================
Admit-once semantics, time window and concurrency.
"""

import threading
from unittest.mock import MagicMock

import pytest

from hmacauth_core.exceptions import ConfigurationError
from hmacauth_core.signing.replay import (
    InMemoryReplayGuard,
    RedisReplayGuard,
    is_within_window,
    make_replay_key,
)

from .conftest import NOW

WINDOW = 300


class TestWindow:
    """Timestamp drift rules."""

    def test_drift_up_to_window_is_accepted(self):
        assert is_within_window(NOW - WINDOW, NOW, WINDOW) is True

    def test_drift_beyond_window_is_rejected(self):
        assert is_within_window(NOW - WINDOW - 1, NOW, WINDOW) is False

    def test_future_timestamp_accepted_without_bound(self):
        """Client clock far ahead is accepted by default."""
        assert is_within_window(NOW + 10 * WINDOW, NOW, WINDOW) is True

    def test_future_timestamp_bounded(self):
        assert is_within_window(NOW + 30, NOW, WINDOW, max_future_skew=30) is True
        assert is_within_window(NOW + 31, NOW, WINDOW, max_future_skew=30) is False


class TestReplayKey:
    """Cache key construction."""

    def test_concatenated_keys_collide_across_boundary(self):
        assert make_replay_key("ab", "c") == make_replay_key("a", "bc")

    def test_structured_keys_do_not_collide(self):
        assert make_replay_key("ab", "c", "structured") != make_replay_key("a", "bc", "structured")


class TestInMemoryReplayGuard:
    """In-memory nonce cache."""

    def test_first_request_admitted(self):
        guard = InMemoryReplayGuard()
        assert guard.admit("app1", "n1", NOW, NOW, WINDOW) is True
        assert len(guard) == 1

    def test_same_nonce_rejected_within_window(self):
        guard = InMemoryReplayGuard()
        guard.admit("app1", "n1", NOW, NOW, WINDOW)

        assert guard.admit("app1", "n1", NOW, NOW + 10, WINDOW) is False

    def test_same_nonce_other_app_admitted(self):
        guard = InMemoryReplayGuard()
        guard.admit("app1", "n1", NOW, NOW, WINDOW)

        assert guard.admit("app2", "n1", NOW, NOW, WINDOW) is True

    def test_stale_request_rejected_and_not_cached(self):
        guard = InMemoryReplayGuard()

        assert guard.admit("app1", "n1", NOW - WINDOW - 1, NOW, WINDOW) is False
        assert len(guard) == 0

    def test_expired_entry_is_not_reported_present(self):
        """After the window the key is free again."""
        guard = InMemoryReplayGuard(sweep_interval=10_000)
        guard.admit("app1", "n1", NOW, NOW, WINDOW)

        assert guard.admit("app1", "n1", NOW + WINDOW, NOW + WINDOW, WINDOW) is True

    def test_sweep_evicts_expired_entries(self):
        guard = InMemoryReplayGuard(sweep_interval=1)
        guard.admit("app1", "n1", NOW, NOW, WINDOW)
        guard.admit("app1", "n2", NOW, NOW, WINDOW)

        guard.admit("app1", "n3", NOW + WINDOW, NOW + WINDOW, WINDOW)

        assert len(guard) == 1

    def test_future_dated_token_bounded_by_config(self):
        guard = InMemoryReplayGuard(max_future_skew=60)
        assert guard.admit("app1", "n1", NOW + 61, NOW, WINDOW) is False

    def test_concatenated_collision_is_rejected(self):
        guard = InMemoryReplayGuard()
        guard.admit("ab", "c", NOW, NOW, WINDOW)

        assert guard.admit("a", "bc", NOW, NOW, WINDOW) is False

    def test_structured_mode_avoids_collision(self):
        guard = InMemoryReplayGuard(key_mode="structured")
        guard.admit("ab", "c", NOW, NOW, WINDOW)

        assert guard.admit("a", "bc", NOW, NOW, WINDOW) is True

    def test_unknown_key_mode(self):
        with pytest.raises(ConfigurationError):
            InMemoryReplayGuard(key_mode="tuple")

    def test_concurrent_admit_accepts_exactly_once(self):
        """Many threads racing on one nonce see a single acceptance."""
        guard = InMemoryReplayGuard()
        threads_count = 32
        barrier = threading.Barrier(threads_count)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            admitted = guard.admit("app1", "race", NOW, NOW, WINDOW)
            with results_lock:
                results.append(admitted)

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == threads_count - 1


class TestRedisReplayGuard:
    """Redis-backed nonce cache."""

    def test_admits_with_set_nx_ex(self):
        redis_client = MagicMock()
        redis_client.set.return_value = True
        guard = RedisReplayGuard(redis_client)

        assert guard.admit("app1", "n1", NOW, NOW, WINDOW) is True
        redis_client.set.assert_called_once_with(
            "hmac_nonce:app1n1", str(NOW), nx=True, ex=WINDOW
        )

    def test_existing_key_is_replay(self):
        redis_client = MagicMock()
        redis_client.set.return_value = None
        guard = RedisReplayGuard(redis_client)

        assert guard.admit("app1", "n1", NOW, NOW, WINDOW) is False

    def test_stale_request_never_reaches_redis(self):
        redis_client = MagicMock()
        guard = RedisReplayGuard(redis_client)

        assert guard.admit("app1", "n1", NOW - WINDOW - 1, NOW, WINDOW) is False
        redis_client.set.assert_not_called()

    def test_structured_key(self):
        guard = RedisReplayGuard(MagicMock(), key_mode="structured")
        assert guard.get_key("app1", "n1") == "hmac_nonce:app1:n1"
