import pytest

from hmacauth_core.config import HmacAuthConfig
from hmacauth_core.signing.replay import InMemoryReplayGuard
from hmacauth_core.signing.signer import ClientSigner
from hmacauth_core.signing.verifier import HmacVerifier

# Fixed 64-byte key
SECRET = bytes(range(64))
APP_ID = "app1"
NOW = 1_700_000_000


class FakeClock:
    """Settable clock returning Unix seconds."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return HmacAuthConfig(secret_key=SECRET, scheme="hmacauth", window_seconds=300)


@pytest.fixture
def replay_guard(config):
    return InMemoryReplayGuard.from_config(config)


@pytest.fixture
def verifier(config, replay_guard, clock):
    return HmacVerifier(config, replay_guard=replay_guard, clock=clock)


@pytest.fixture
def signer(config, clock):
    return ClientSigner.from_config(APP_ID, config, clock=clock)
