"""Persistent printer profiles with a single-default invariant."""
import logging
import threading
from contextlib import contextmanager
from typing import List, Optional

from posprint.errors import InvalidConfiguration, ProfileNotFound
from posprint.models import DEFAULT_NETWORK_PORT, PrinterKind, PrinterProfile, TransportKind

logger = logging.getLogger(__name__)


class ConfigStore:
    """Create, query and update printer profiles.

    Every write runs under one store-level lock and commits once, so clearing
    the previous default and marking a new one is a single transaction. Two
    concurrent writers can never both leave a profile marked default.
    """

    FIELDS = (
        "name",
        "kind",
        "transport_kind",
        "usb_identifier",
        "vendor_id",
        "product_id",
        "network_address",
        "network_port",
        "is_default",
    )

    def __init__(self, db):
        self.db = db
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self):
        with self._lock:
            try:
                yield self.db.session
                self.db.session.commit()
            except Exception:
                self.db.session.rollback()
                raise

    # Queries

    def list(self) -> List[PrinterProfile]:
        """All profiles, default first, then by id."""
        with self._lock:
            return PrinterProfile.query.order_by(
                PrinterProfile.is_default.desc(), PrinterProfile.id.asc()
            ).all()

    def get(self, profile_id: int) -> PrinterProfile:
        with self._lock:
            profile = self.db.session.get(PrinterProfile, profile_id)
        if profile is None:
            raise ProfileNotFound(f"printer {profile_id} not found")
        return profile

    def get_default(self) -> PrinterProfile:
        with self._lock:
            profile = PrinterProfile.query.filter_by(is_default=True).first()
        if profile is None:
            raise ProfileNotFound("no default printer configured")
        return profile

    # Writes

    def create(self, data: dict) -> PrinterProfile:
        values = self._clean(data)
        if not isinstance(values.get("name"), str):
            raise InvalidConfiguration("name is required")
        values.setdefault("kind", PrinterKind.EPSON.value)
        values.setdefault("transport_kind", TransportKind.USB.value)
        values.setdefault("network_port", DEFAULT_NETWORK_PORT)
        values.setdefault("is_default", False)

        with self._transaction() as session:
            if values["is_default"]:
                self._clear_defaults()
            profile = PrinterProfile(**values)
            session.add(profile)
        logger.info("Created printer %s (id=%s, default=%s)", profile.name, profile.id, profile.is_default)
        return profile

    def update(self, profile_id: int, data: dict) -> PrinterProfile:
        values = self._clean(data)
        if "name" in values and not isinstance(values["name"], str):
            raise InvalidConfiguration("name must be a string")

        with self._transaction():
            profile = self.get(profile_id)
            if values.get("is_default"):
                self._clear_defaults(except_id=profile_id)
            for key, value in values.items():
                setattr(profile, key, value)
        logger.info("Updated printer %s (id=%s)", profile.name, profile_id)
        return profile

    def delete(self, profile_id: int) -> None:
        with self._transaction() as session:
            profile = self.get(profile_id)
            session.delete(profile)
        logger.info("Deleted printer id=%s", profile_id)

    def set_default(self, profile_id: int) -> PrinterProfile:
        with self._transaction():
            profile = self.get(profile_id)
            self._clear_defaults(except_id=profile_id)
            profile.is_default = True
        logger.info("Default printer is now %s (id=%s)", profile.name, profile_id)
        return profile

    # Helpers

    def _clear_defaults(self, except_id: Optional[int] = None) -> None:
        query = PrinterProfile.query.filter(PrinterProfile.is_default.is_(True))
        if except_id is not None:
            query = query.filter(PrinterProfile.id != except_id)
        query.update({PrinterProfile.is_default: False}, synchronize_session="fetch")

    def _clean(self, data: dict) -> dict:
        """Validate incoming fields against the closed enumerations."""
        unknown = set(data) - set(self.FIELDS)
        if unknown:
            raise InvalidConfiguration(f"unknown field(s): {', '.join(sorted(unknown))}")

        values = dict(data)

        if "kind" in values:
            values["kind"] = self._enum_value(PrinterKind, values["kind"], "kind")
        if "transport_kind" in values:
            values["transport_kind"] = self._enum_value(
                TransportKind, values["transport_kind"], "transport_kind"
            )

        if "network_port" in values:
            port = values["network_port"]
            if port in (None, "", 0):
                port = DEFAULT_NETWORK_PORT
            try:
                port = int(port)
            except (TypeError, ValueError):
                raise InvalidConfiguration(f"network_port must be an integer, got {port!r}")
            if not 0 < port < 65536:
                raise InvalidConfiguration(f"network_port out of range: {port}")
            values["network_port"] = port

        for key in ("vendor_id", "product_id"):
            if isinstance(values.get(key), int):
                values[key] = f"{values[key]:04x}"

        if "is_default" in values:
            values["is_default"] = bool(values["is_default"])

        return values

    @staticmethod
    def _enum_value(enum_cls, value, field: str) -> str:
        # Unset falls back to the first member (EPSON / USB)
        if value in (None, ""):
            return list(enum_cls)[0].value
        try:
            return enum_cls(str(value).upper()).value
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise InvalidConfiguration(f"{field} must be one of {allowed}, got {value!r}")
