"""Pytest configuration and fixtures."""
import threading
import time
from collections.abc import Generator

import pytest

from posprint import create_app, db as _db
from posprint.errors import ConnectionTimeout, ProfileNotFound, TransmissionError, Unreachable
from posprint.models import PrinterProfile
from posprint.printer.connection import TransportDriver


@pytest.fixture(scope="function")
def app():
    """Application on the testing config with a fresh in-memory database."""
    app = create_app("testing")
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["posprint"].store


@pytest.fixture
def network_profile():
    """Unsaved network profile."""
    return PrinterProfile(
        id=1,
        name="Counter",
        kind="EPSON",
        transport_kind="NETWORK",
        network_address="192.168.1.50",
        network_port=9100,
        is_default=True,
    )


class FakeStore:
    """In-memory stand-in exposing the lookups the orchestrator uses."""

    def __init__(self, *profiles):
        self.profiles = {p.id: p for p in profiles}

    def get(self, profile_id):
        if profile_id not in self.profiles:
            raise ProfileNotFound(f"printer {profile_id} not found")
        return self.profiles[profile_id]

    def get_default(self):
        for profile in self.profiles.values():
            if profile.is_default:
                return profile
        raise ProfileNotFound("no default printer configured")


class FakeDriver(TransportDriver):
    """Driver that records every write; behavior set through ``mode``.

    Modes: ``ok``, ``timeout`` / ``refused`` (connect fails), ``silent`` (no
    status answer), ``broken`` (writes after the probe fail).
    """

    # Answer to DLE EOT 1 from an online printer
    ONLINE = b"\x12"

    def __init__(self, descriptor, mode="ok", log=None, delay=0.0, status=ONLINE):
        self.descriptor = descriptor
        self.mode = mode
        self.log = log if log is not None else []
        self.delay = delay
        self.status = status
        self.connected = False
        self.disconnects = 0
        self.writes = []

    def connect(self, timeout):
        if self.mode == "timeout":
            raise ConnectionTimeout(f"Connection to {self.descriptor} timed out")
        if self.mode == "refused":
            raise Unreachable(f"Failed to connect to {self.descriptor}: refused")
        self.connected = True

    def disconnect(self):
        self.connected = False
        self.disconnects += 1

    def write(self, data, timeout):
        if self.mode == "broken" and self.writes:
            raise TransmissionError("Failed to send data: broken pipe")
        self.writes.append(data)
        self.log.append((id(self), data))
        if self.delay:
            time.sleep(self.delay)

    def read(self, size, timeout):
        if self.mode == "silent":
            return b""
        return self.status[:size]

    def is_connected(self):
        return self.connected


class DriverRecorder:
    """Driver factory that keeps every driver it built."""

    def __init__(self, mode="ok", delay=0.0, status=FakeDriver.ONLINE):
        self.mode = mode
        self.delay = delay
        self.status = status
        self.drivers = []
        self.log = []
        self._lock = threading.Lock()

    def __call__(self, descriptor):
        driver = FakeDriver(descriptor, self.mode, self.log, self.delay, self.status)
        with self._lock:
            self.drivers.append(driver)
        return driver


@pytest.fixture
def recorder() -> Generator[DriverRecorder, None, None]:
    yield DriverRecorder()
