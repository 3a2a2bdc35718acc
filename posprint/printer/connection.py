"""Transport drivers for network (TCP/IP) and USB printers."""
import logging
import socket
from abc import ABC, abstractmethod
from typing import Callable, Mapping, Optional

import usb.core
import usb.util

from posprint.errors import ConnectionTimeout, NotResponding, TransmissionError, Unreachable
from posprint.models import TransportKind
from posprint.printer.transport import NetworkDescriptor, TransportDescriptor, UsbDescriptor

logger = logging.getLogger(__name__)


class TransportDriver(ABC):
    """Abstract base class for printer connections.

    Drivers raise the session errors (``ConnectionTimeout``, ``Unreachable``,
    ``TransmissionError``) rather than transport-specific exceptions.
    """

    @abstractmethod
    def connect(self, timeout: float) -> None:
        """Establish connection to the printer."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the printer. Safe to call more than once."""

    @abstractmethod
    def write(self, data: bytes, timeout: float) -> None:
        """Send data to the printer."""

    @abstractmethod
    def read(self, size: int, timeout: float) -> bytes:
        """Read up to ``size`` bytes; empty if nothing arrives in time."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if printer is connected."""


class NetworkDriver(TransportDriver):
    """TCP/IP network printer connection (raw port, usually 9100)."""

    def __init__(self, descriptor: NetworkDescriptor):
        self.ip = descriptor.address
        self.port = descriptor.port
        self._socket: Optional[socket.socket] = None

    def connect(self, timeout: float) -> None:
        try:
            self._socket = socket.create_connection((self.ip, self.port), timeout=timeout)
        except socket.timeout:
            raise ConnectionTimeout(
                f"Connection to {self.ip}:{self.port} timed out after {timeout:.1f}s"
            )
        except OSError as e:
            raise Unreachable(f"Failed to connect to {self.ip}:{self.port}: {e}")

    def disconnect(self) -> None:
        if self._socket:
            try:
                self._socket.close()
            except OSError as e:
                logger.debug("Error closing socket to %s:%s: %s", self.ip, self.port, e)
            self._socket = None

    def write(self, data: bytes, timeout: float) -> None:
        if not self._socket:
            raise TransmissionError("Not connected")
        try:
            self._socket.settimeout(timeout)
            self._socket.sendall(data)
        except socket.timeout:
            raise TransmissionError(f"Sending to {self.ip}:{self.port} timed out")
        except OSError as e:
            raise TransmissionError(f"Failed to send data: {e}")

    def read(self, size: int, timeout: float) -> bytes:
        if not self._socket:
            raise TransmissionError("Not connected")
        try:
            self._socket.settimeout(timeout)
            return self._socket.recv(size)
        except socket.timeout:
            return b""
        except OSError as e:
            raise TransmissionError(f"Failed to read from printer: {e}")

    def is_connected(self) -> bool:
        return self._socket is not None

    def __repr__(self):
        return f"NetworkDriver({self.ip}:{self.port})"


class USBDriver(TransportDriver):
    """USB printer connection."""

    # Common thermal printer vendor IDs
    KNOWN_VENDORS = {
        0x04b8: "Epson",
        0x0519: "Star Micronics",
        0x0dd4: "Custom",
        0x0fe6: "Bixolon",
        0x1504: "Sewoo",
        0x0493: "MAG-TEK",
        0x1a86: "QinHeng (CH340)",
    }

    def __init__(self, descriptor: UsbDescriptor):
        self.descriptor = descriptor
        self._device = None
        self._endpoint_out = None
        self._endpoint_in = None

    def connect(self, timeout: float) -> None:
        try:
            self._device = self._find()
        except usb.core.NoBackendError:
            raise Unreachable("No USB backend available (is libusb installed?)")
        except usb.core.USBError as e:
            raise Unreachable(f"USB lookup for {self.descriptor} failed: {e}")
        if not self._device:
            raise Unreachable(f"USB printer {self.descriptor} not found")

        # Detach kernel driver if active
        try:
            if self._device.is_kernel_driver_active(0):
                self._device.detach_kernel_driver(0)
        except (usb.core.USBError, NotImplementedError):
            pass

        try:
            self._device.set_configuration()
        except usb.core.USBError:
            pass  # May already be configured

        try:
            cfg = self._device.get_active_configuration()
        except usb.core.USBError as e:
            self.disconnect()
            raise Unreachable(f"USB printer {self.descriptor} has no active configuration: {e}")

        try:
            intf = cfg[(0, 0)]
            self._endpoint_out = usb.util.find_descriptor(
                intf,
                custom_match=lambda e: usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_OUT
            )
            self._endpoint_in = usb.util.find_descriptor(
                intf,
                custom_match=lambda e: usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_IN
            )
        except (usb.core.USBError, IndexError, KeyError) as e:
            self.disconnect()
            raise Unreachable(f"USB printer {self.descriptor} has no usable interface 0: {e!r}")

        if not self._endpoint_out:
            self.disconnect()
            raise Unreachable("Could not find USB OUT endpoint")

    def _find(self):
        d = self.descriptor
        if d.vendor_id is not None and d.product_id is not None:
            return usb.core.find(idVendor=d.vendor_id, idProduct=d.product_id)

        ids = _parse_usb_pair(d.selector)
        if ids:
            return usb.core.find(idVendor=ids[0], idProduct=ids[1])

        for dev in usb.core.find(find_all=True):
            if d.vendor_id is not None and dev.idVendor != d.vendor_id:
                continue
            if d.vendor_id is None and dev.idVendor not in self.KNOWN_VENDORS:
                continue
            if self._matches(dev):
                return dev
        return None

    def _matches(self, dev) -> bool:
        """Match a device against the selector name and optional serial identifier."""
        d = self.descriptor
        try:
            product = usb.util.get_string(dev, dev.iProduct) if dev.iProduct else ""
            serial = usb.util.get_string(dev, dev.iSerialNumber) if dev.iSerialNumber else ""
        except (usb.core.USBError, ValueError, NotImplementedError):
            # Strings unreadable without permissions
            product, serial = "", ""
        if d.identifier and serial != d.identifier:
            return False
        # Bare "usb" selects the first known printer
        return d.selector.lower() == "usb" or d.selector.lower() in (product or "").lower()

    def disconnect(self) -> None:
        if self._device:
            try:
                usb.util.dispose_resources(self._device)
            except usb.core.USBError as e:
                logger.debug("Error releasing USB device %s: %s", self.descriptor, e)
            self._device = None
            self._endpoint_out = None
            self._endpoint_in = None

    def write(self, data: bytes, timeout: float) -> None:
        if not self._endpoint_out:
            raise TransmissionError("Not connected")
        try:
            self._endpoint_out.write(data, timeout=int(timeout * 1000))
        except usb.core.USBError as e:
            raise TransmissionError(f"Failed to send data: {e}")

    def read(self, size: int, timeout: float) -> bytes:
        if not self._endpoint_in:
            raise NotResponding(f"USB printer {self.descriptor} has no status endpoint")
        try:
            return bytes(self._endpoint_in.read(size, timeout=int(timeout * 1000)))
        except usb.core.USBTimeoutError:
            return b""
        except usb.core.USBError as e:
            raise TransmissionError(f"Failed to read from printer: {e}")

    def is_connected(self) -> bool:
        return self._device is not None and self._endpoint_out is not None

    @classmethod
    def scan_devices(cls) -> list:
        """Scan for known USB printers."""
        found = []
        for dev in usb.core.find(find_all=True):
            if dev.idVendor in cls.KNOWN_VENDORS:
                found.append({
                    "vendor_id": dev.idVendor,
                    "product_id": dev.idProduct,
                    "vendor_name": cls.KNOWN_VENDORS[dev.idVendor],
                    "vendor_id_hex": f"{dev.idVendor:04x}",
                    "product_id_hex": f"{dev.idProduct:04x}",
                })
        return found

    def __repr__(self):
        return f"USBDriver({self.descriptor})"


def _parse_usb_pair(selector: str):
    """Parse a ``vvvv:pppp`` selector into (vendor, product) ints."""
    parts = selector.split(":")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0], 16), int(parts[1], 16)
    except ValueError:
        return None


DriverFactory = Callable[[TransportDescriptor], TransportDriver]

DRIVERS: Mapping[TransportKind, DriverFactory] = {
    TransportKind.USB: USBDriver,
    TransportKind.NETWORK: NetworkDriver,
}


def create_driver(descriptor: TransportDescriptor,
                  drivers: Mapping[TransportKind, DriverFactory] = DRIVERS) -> TransportDriver:
    """Pick the driver for a resolved descriptor by its transport tag."""
    return drivers[descriptor.kind](descriptor)
