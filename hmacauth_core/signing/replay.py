"""
Replay Guard
============
Nonce caches that admit each (appId, nonce) at most once per time window.
"""

import threading
from typing import Dict, Hashable, Optional, Protocol, Union

import structlog

from ..config import REPLAY_KEY_CONCATENATED, REPLAY_KEY_MODES, REPLAY_KEY_STRUCTURED
from ..exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

ReplayKey = Union[str, tuple]


def make_replay_key(app_id: str, nonce: str, mode: str = REPLAY_KEY_CONCATENATED) -> ReplayKey:
    """
    Build the cache key for an (appId, nonce) pair.

    "concatenated" joins them without a separator, so appId "ab" + nonce "c"
    and appId "a" + nonce "bc" share a key. "structured" keeps them apart.
    """
    if mode == REPLAY_KEY_STRUCTURED:
        return (app_id, nonce)
    return f"{app_id}{nonce}"


def is_within_window(
    client_timestamp: int,
    server_timestamp: int,
    window_seconds: int,
    max_future_skew: Optional[int] = None,
) -> bool:
    """
    Check the declared timestamp against the server clock.

    Requests older than ``window_seconds`` are stale. A client clock ahead of
    the server (negative drift) is accepted unless ``max_future_skew`` bounds it.
    """
    drift = server_timestamp - client_timestamp
    if drift > window_seconds:
        return False
    if max_future_skew is not None and -drift > max_future_skew:
        return False
    return True


class ReplayGuard(Protocol):
    """Admit-once-per-key store shared by all concurrent verifications."""

    def admit(
        self,
        app_id: str,
        nonce: str,
        client_timestamp: int,
        server_timestamp: int,
        window_seconds: int,
    ) -> bool:
        ...


class InMemoryReplayGuard:
    """
    In-memory nonce cache for replay protection.

    Check-and-insert happens under a single lock, so concurrent requests
    with the same key see exactly one acceptance. Expired entries are
    ignored on lookup and swept periodically.

    Use RedisReplayGuard when several processes serve the same API.
    """

    def __init__(
        self,
        key_mode: str = REPLAY_KEY_CONCATENATED,
        max_future_skew: Optional[int] = None,
        sweep_interval: int = 60,
    ):
        if key_mode not in REPLAY_KEY_MODES:
            raise ConfigurationError(f"unknown replay key mode '{key_mode}'")
        self.key_mode = key_mode
        self.max_future_skew = max_future_skew
        self.sweep_interval = sweep_interval
        self._cache: Dict[Hashable, int] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0

    @classmethod
    def from_config(cls, config) -> "InMemoryReplayGuard":
        return cls(
            key_mode=config.replay_key_mode,
            max_future_skew=config.max_future_skew_seconds,
        )

    def admit(
        self,
        app_id: str,
        nonce: str,
        client_timestamp: int,
        server_timestamp: int,
        window_seconds: int,
    ) -> bool:
        """
        Admit a request if its nonce is fresh and its timestamp is in the window.

        Args:
            app_id: Declared application ID
            nonce: Declared nonce
            client_timestamp: Declared request timestamp
            server_timestamp: Current server time (Unix seconds)
            window_seconds: Replay window

        Returns:
            True if admitted; the key is then held until
            ``server_timestamp + window_seconds``
        """
        key = make_replay_key(app_id, nonce, self.key_mode)

        with self._lock:
            if server_timestamp >= self._next_sweep:
                self._sweep(server_timestamp)

            expires_at = self._cache.get(key)
            if expires_at is not None and expires_at > server_timestamp:
                logger.warning("replay_detected", app_id=app_id, nonce=nonce[:8])
                return False

            if not is_within_window(
                client_timestamp, server_timestamp, window_seconds, self.max_future_skew
            ):
                logger.info(
                    "request_outside_window",
                    app_id=app_id,
                    drift=server_timestamp - client_timestamp,
                    window=window_seconds,
                )
                return False

            self._cache[key] = server_timestamp + window_seconds
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def _sweep(self, now: int) -> None:
        """Remove expired nonces. Caller holds the lock."""
        expired = [key for key, expires_at in self._cache.items() if expires_at <= now]
        for key in expired:
            del self._cache[key]
        self._next_sweep = now + self.sweep_interval
        if expired:
            logger.debug("replay_cache_swept", removed=len(expired), remaining=len(self._cache))


class RedisReplayGuard:
    """
    Redis-backed nonce cache for replay protection across processes.

    ``SET key value NX EX window`` is a single atomic command, so two
    servers racing on the same nonce cannot both admit it.
    """

    def __init__(
        self,
        redis_client,
        key_prefix: str = "hmac_nonce:",
        key_mode: str = REPLAY_KEY_CONCATENATED,
        max_future_skew: Optional[int] = None,
    ):
        """
        Args:
            redis_client: Sync Redis client (redis.Redis)
            key_prefix: Namespace for nonce keys
            key_mode: "concatenated" or "structured"
            max_future_skew: Bound on client clocks running ahead, None for no bound
        """
        if key_mode not in REPLAY_KEY_MODES:
            raise ConfigurationError(f"unknown replay key mode '{key_mode}'")
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.key_mode = key_mode
        self.max_future_skew = max_future_skew

    @classmethod
    def from_url(cls, redis_url: str, config=None, **kwargs) -> "RedisReplayGuard":
        import redis

        client = redis.from_url(redis_url, decode_responses=True)
        if config is not None:
            kwargs.setdefault("key_mode", config.replay_key_mode)
            kwargs.setdefault("max_future_skew", config.max_future_skew_seconds)
        return cls(client, **kwargs)

    def get_key(self, app_id: str, nonce: str) -> str:
        """Generate the Redis key for an (appId, nonce) pair."""
        key = make_replay_key(app_id, nonce, self.key_mode)
        if isinstance(key, tuple):
            # appId never contains ":" in a parsed token
            return f"{self.key_prefix}{app_id}:{nonce}"
        return f"{self.key_prefix}{key}"

    def admit(
        self,
        app_id: str,
        nonce: str,
        client_timestamp: int,
        server_timestamp: int,
        window_seconds: int,
    ) -> bool:
        if not is_within_window(
            client_timestamp, server_timestamp, window_seconds, self.max_future_skew
        ):
            logger.info(
                "request_outside_window",
                app_id=app_id,
                drift=server_timestamp - client_timestamp,
                window=window_seconds,
            )
            return False

        stored = self.redis.set(
            self.get_key(app_id, nonce),
            str(client_timestamp),
            nx=True,
            ex=window_seconds,
        )
        if not stored:
            logger.warning("replay_detected", app_id=app_id, nonce=nonce[:8])
            return False
        return True