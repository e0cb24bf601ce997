"""
Shared test fixtures and configuration.
"""

import os

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/hybridchat_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")

from hybridchat.core.capability_probe import LocalCapabilityProbe  # noqa: E402
from hybridchat.core.connectivity import ConnectivityMonitor  # noqa: E402
from hybridchat.core.orchestrator import TurnOrchestrator  # noqa: E402
from hybridchat.llm.local_provider import OnDeviceProvider  # noqa: E402
from hybridchat.models import Backend, ConnectionMode  # noqa: E402
from hybridchat.storage import SessionStore  # noqa: E402
from tests.fakes import FakeLocalRuntime, FakeProvider, MemoryStorage  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return SessionStore(storage, key="sessions.json")


@pytest.fixture
def cloud_provider():
    return FakeProvider(Backend.CLOUD, deltas=["Hello", " from", " the cloud"])


@pytest.fixture
def local_provider():
    return FakeProvider(Backend.LOCAL, deltas=["Hi", " there", "!"])


@pytest.fixture
def make_orchestrator(store, cloud_provider, local_provider):
    """Build an orchestrator; the local probe is backed by a fake runtime."""

    def _make(
        mode: ConnectionMode = ConnectionMode.AUTO,
        online: bool = True,
        local_runtime: FakeLocalRuntime = None,
    ) -> TurnOrchestrator:
        runtime = local_runtime or FakeLocalRuntime()
        probe = LocalCapabilityProbe(OnDeviceProvider(runtime=runtime))
        return TurnOrchestrator(
            store=store,
            providers={Backend.CLOUD: cloud_provider, Backend.LOCAL: local_provider},
            connectivity=ConnectivityMonitor(online=online),
            probe=probe,
            mode=mode,
        )

    return _make
