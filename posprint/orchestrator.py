"""Top-level print entry point used by the API handlers."""
import logging
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Optional

from posprint.errors import InvalidConfiguration, PrinterError, ProfileNotFound
from posprint.printer.connection import create_driver
from posprint.printer.escpos import dialect_for
from posprint.printer.renderer import ReceiptItem, ReceiptPayload, ReceiptRenderer
from posprint.printer.session import PrinterSession
from posprint.printer.transport import TransportResolver

logger = logging.getLogger(__name__)

NO_PRINTER_CONFIGURED = "no printer configured"

SAMPLE_RECEIPT = ReceiptPayload(
    store_name="THE LOFT COIMBATORE",
    address="Coimbatore, Tamil Nadu",
    order_number="TEST-001",
    customer_name="Test Customer",
    payment_method="Cash",
    items=[
        ReceiptItem("Cappuccino", 2, 150),
        ReceiptItem("Croissant", 1, 80),
    ],
    subtotal=380,
    tax=68.4,
    total=448.4,
    qr_code="TEST-001",
)


@dataclass(frozen=True)
class PrintResult:
    success: bool
    message: Optional[str] = None

    def to_dict(self):
        """Convert to dictionary for API responses."""
        result = {"success": self.success}
        if self.message is not None:
            result["message"] = self.message
        return result


class ProfileLocks:
    """One lock per printer profile; requests to different printers never share one.

    A lock lives only while a caller holds a reference to it, so profiles that
    were deleted do not leave entries behind.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def __len__(self):
        return len(self._locks)

    def get(self, profile_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(profile_id)
            if lock is None:
                lock = self._locks[profile_id] = threading.Lock()
            return lock


class PrintOrchestrator:
    """Resolves a printer, renders the receipt and sends it.

    :meth:`print_receipt` never raises for printer problems: every failure in
    the error taxonomy comes back as ``PrintResult(success=False, message=...)``.
    Sessions against the same profile are serialized.
    """

    def __init__(self, store, resolver: Optional[TransportResolver] = None,
                 renderer: Optional[ReceiptRenderer] = None,
                 session_factory=PrinterSession, driver_factory=create_driver,
                 connect_timeout: float = 5.0, io_timeout: float = 10.0, chunk_size: int = 4096,
                 currency_symbol: str = "$", footer: str = "Thank you for your visit!",
                 qr_cell_size: int = 6, locks: Optional[ProfileLocks] = None):
        self.store = store
        self.resolver = resolver or TransportResolver()
        self.renderer = renderer or ReceiptRenderer(
            currency_symbol=currency_symbol, footer=footer, qr_cell_size=qr_cell_size
        )
        self.session_factory = session_factory
        self.driver_factory = driver_factory
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.chunk_size = chunk_size
        self.locks = locks or ProfileLocks()

    def print_receipt(self, payload: ReceiptPayload, target_profile_id: Optional[int] = None,
                      deadline: Optional[float] = None) -> PrintResult:
        """Print a receipt on the named printer, or the default one.

        Args:
            payload: Receipt to print
            target_profile_id: Printer profile id; the default printer when None
            deadline: Absolute ``time.monotonic()`` instant to give up at
        """
        try:
            if target_profile_id is not None:
                profile = self.store.get(target_profile_id)
            else:
                profile = self.store.get_default()
        except ProfileNotFound as e:
            logger.warning("Print rejected: %s", e)
            return PrintResult(False, NO_PRINTER_CONFIGURED)

        try:
            descriptor = self.resolver.resolve(profile)
            dialect = self._dialect(profile.kind)
        except PrinterError as e:
            logger.warning("Printer %s is misconfigured: %s", profile.name, e)
            return PrintResult(False, str(e))

        profile_id = profile.id
        sequence = self.renderer.render(payload)
        logger.info("Printing to: %s (%s)", profile.name, descriptor)

        lock = self.locks.get(profile_id)
        if not self._acquire(lock, deadline):
            logger.warning("Timed out waiting for printer %s", profile_id)
            return PrintResult(False, f"Timed out waiting for printer {descriptor}")

        try:
            session = self.session_factory(
                descriptor, dialect,
                driver_factory=self.driver_factory,
                connect_timeout=self.connect_timeout,
                io_timeout=self.io_timeout,
                chunk_size=self.chunk_size,
                deadline=deadline,
            )
            with session:
                session.open()
                session.check_health()
                session.transmit(sequence)
        except PrinterError as e:
            return PrintResult(False, str(e))
        finally:
            lock.release()

        return PrintResult(True, "Printed successfully")

    def test_print(self, target_profile_id: Optional[int] = None,
                   deadline: Optional[float] = None) -> PrintResult:
        """Print the built-in sample receipt."""
        return self.print_receipt(SAMPLE_RECEIPT, target_profile_id, deadline)

    @staticmethod
    def _dialect(kind):
        try:
            return dialect_for(kind)
        except ValueError:
            raise InvalidConfiguration(f"Unknown printer kind: {kind!r}")

    @staticmethod
    def _acquire(lock: threading.Lock, deadline: Optional[float]) -> bool:
        if deadline is None:
            return lock.acquire()
        return lock.acquire(timeout=max(0.0, deadline - time.monotonic()))
