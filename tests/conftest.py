import pytest

from factories import make_session_factory, make_profile, snapshot_entry

from netwatch_monitor.collectors.netwatch_poller import NetwatchPoller
from netwatch_monitor.collectors.snapshot_source import StaticSnapshotSource


@pytest.fixture
def session_factory():
    return make_session_factory()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def router_profile(db_session):
    return make_profile(db_session)


@pytest.fixture
def netwatch_snapshot():
    return [
        snapshot_entry("*1", "8.8.8.8", "up", label="Google DNS"),
        snapshot_entry("*2", "192.168.88.100", "down", label="Server Internal"),
        snapshot_entry("*3", "1.1.1.1", "up", label="Cloudflare DNS"),
        snapshot_entry("*4", "192.168.88.50", "up"),
    ]


@pytest.fixture
def snapshot_source(router_profile, netwatch_snapshot):
    return StaticSnapshotSource({router_profile.address: netwatch_snapshot}, identity="MikroTik RouterOS 7.14")


@pytest.fixture
def client(session_factory, snapshot_source):
    from fastapi.testclient import TestClient

    from netwatch_monitor.api.dependencies import get_poller, get_snapshot_source
    from netwatch_monitor.database.connection import get_database
    from netwatch_monitor.main import app

    def override_database():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    poller = NetwatchPoller(snapshot_source, session_factory=session_factory, interval=60, timeout=1)
    app.dependency_overrides[get_database] = override_database
    app.dependency_overrides[get_snapshot_source] = lambda: snapshot_source
    app.dependency_overrides[get_poller] = lambda: poller

    # Not used as a context manager: lifespan would create tables on the real engine
    yield TestClient(app)

    app.dependency_overrides.clear()
