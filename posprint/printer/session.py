"""A single live connection to one physical printer."""
import enum
import logging
import time
from typing import Callable, Optional

from posprint.errors import (
    ConnectionTimeout,
    NotResponding,
    PrinterError,
    SessionError,
    TransmissionError,
)
from posprint.printer.commands import CommandSequence
from posprint.printer.connection import TransportDriver, create_driver
from posprint.printer.escpos import Dialect, ESCPOSEncoder
from posprint.printer.transport import TransportDescriptor

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    CREATED = "CREATED"
    CONNECTED = "CONNECTED"
    TRANSMITTING = "TRANSMITTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PrinterSession:
    """Owns one connection: open, health check, transmit, close.

    ``Created -> Connected -> Transmitting -> Completed``, or ``Failed`` from any
    step. :meth:`transmit` only runs after :meth:`check_health` has passed. The
    first failure is kept in :attr:`error` and re-raised. A session is
    single use; :meth:`close` is idempotent and is called by ``with`` on every
    exit path.

    Args:
        descriptor: Resolved transport target
        dialect: Command dialect of the printer
        driver_factory: Builds the transport driver for the descriptor
        connect_timeout: Bound on establishing the connection, in seconds
        io_timeout: Bound on the status probe and on each chunk write
        chunk_size: Bytes per write; a deadline is checked between chunks
        deadline: Absolute ``time.monotonic()`` instant after which nothing blocks
    """

    def __init__(self, descriptor: TransportDescriptor, dialect: Dialect,
                 driver_factory: Callable[[TransportDescriptor], TransportDriver] = create_driver,
                 connect_timeout: float = 5.0, io_timeout: float = 10.0,
                 chunk_size: int = 4096, deadline: Optional[float] = None):
        self.descriptor = descriptor
        self.dialect = dialect
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.chunk_size = chunk_size
        self.deadline = deadline
        self.state = SessionState.CREATED
        self.error: Optional[PrinterError] = None
        self.healthy = False
        self._driver = driver_factory(descriptor)

    def _remaining(self, budget: float, on_expiry) -> float:
        if self.deadline is None:
            return budget
        left = self.deadline - time.monotonic()
        if left <= 0:
            raise on_expiry(f"Deadline exceeded talking to {self.descriptor}")
        return min(budget, left)

    def _fail(self, error: PrinterError) -> PrinterError:
        self.state = SessionState.FAILED
        if self.error is None:
            self.error = error
        logger.warning("Printer session %s failed: %s", self.descriptor, error)
        return error

    def _expect(self, *states: SessionState) -> None:
        if self.state not in states:
            raise RuntimeError(f"Printer session is {self.state.value}, expected {'/'.join(s.value for s in states)}")

    def open(self) -> "PrinterSession":
        """Connect within the connect timeout."""
        self._expect(SessionState.CREATED)
        try:
            self._driver.connect(self._remaining(self.connect_timeout, ConnectionTimeout))
        except SessionError as e:
            raise self._fail(e)
        self.state = SessionState.CONNECTED
        logger.debug("Connected to %s", self.descriptor)
        return self

    def check_health(self) -> None:
        """Ask the printer for its status and require a healthy answer."""
        self._expect(SessionState.CONNECTED)
        try:
            timeout = self._remaining(self.io_timeout, NotResponding)
            self._driver.write(self.dialect.status_request, timeout)
            response = self._driver.read(1, self._remaining(self.io_timeout, NotResponding))
        except NotResponding as e:
            raise self._fail(e)
        except SessionError as e:
            error = NotResponding(f"Printer at {self.descriptor} did not answer status request: {e}")
            raise self._fail(error) from e

        problem = self.dialect.status_problem(response)
        if problem:
            raise self._fail(NotResponding(f"Printer at {self.descriptor} is not ready: {problem}"))
        self.healthy = True

    def transmit(self, sequence: CommandSequence) -> int:
        """Encode and send a command sequence in order.

        Returns:
            Number of bytes sent.
        """
        self._expect(SessionState.CONNECTED)
        if not self.healthy:
            raise RuntimeError("Printer session has not passed a health check")
        try:
            data = ESCPOSEncoder(self.dialect).encode(sequence)
        except ValueError as e:
            raise self._fail(TransmissionError(f"Cannot encode receipt for {self.descriptor}: {e}"))
        self.state = SessionState.TRANSMITTING
        try:
            for offset in range(0, len(data), self.chunk_size):
                timeout = self._remaining(self.io_timeout, TransmissionError)
                self._driver.write(data[offset:offset + self.chunk_size], timeout)
        except SessionError as e:
            if not isinstance(e, TransmissionError):
                e = TransmissionError(str(e))
            raise self._fail(e)
        self.state = SessionState.COMPLETED
        logger.debug("Sent %d bytes to %s", len(data), self.descriptor)
        return len(data)

    def close(self) -> None:
        """Release the transport resource."""
        self._driver.disconnect()

    def __enter__(self) -> "PrinterSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
