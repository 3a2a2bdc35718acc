"""Resolution of printer profiles into validated transport descriptors."""
from dataclasses import dataclass
from typing import Optional, Union

from posprint.errors import InvalidConfiguration, UnsupportedTransport
from posprint.models import DEFAULT_NETWORK_PORT, TransportKind


@dataclass(frozen=True)
class UsbDescriptor:
    """USB device selector plus optional vendor/product hints."""
    selector: str
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    identifier: Optional[str] = None

    kind = TransportKind.USB

    def __str__(self):
        if self.vendor_id is not None and self.product_id is not None:
            return f"usb:{self.selector} ({self.vendor_id:04x}:{self.product_id:04x})"
        return f"usb:{self.selector}"


@dataclass(frozen=True)
class NetworkDescriptor:
    """TCP endpoint of a network printer."""
    address: str
    port: int = DEFAULT_NETWORK_PORT

    kind = TransportKind.NETWORK

    def __str__(self):
        return f"tcp://{self.address}:{self.port}"


TransportDescriptor = Union[UsbDescriptor, NetworkDescriptor]


class TransportResolver:
    """Maps a printer profile to a transport descriptor without opening anything."""

    def resolve(self, profile) -> TransportDescriptor:
        """Resolve a profile.

        Raises:
            InvalidConfiguration: if a field the transport needs is missing or malformed
            UnsupportedTransport: if the transport kind is not USB or NETWORK
        """
        kind = str(profile.transport_kind or "").upper()

        if kind == TransportKind.USB.value:
            selector = (profile.name or "").strip()
            if not selector:
                raise InvalidConfiguration("USB printer needs a device name")
            return UsbDescriptor(
                selector=selector,
                vendor_id=_hex_id(profile.vendor_id, "vendor_id"),
                product_id=_hex_id(profile.product_id, "product_id"),
                identifier=(profile.usb_identifier or "").strip() or None,
            )

        if kind == TransportKind.NETWORK.value:
            address = (profile.network_address or "").strip()
            if not address:
                raise InvalidConfiguration("Network printer needs an address")
            return NetworkDescriptor(address=address, port=profile.network_port or DEFAULT_NETWORK_PORT)

        raise UnsupportedTransport(f"Unsupported printer transport: {profile.transport_kind!r}")


def _hex_id(value, field: str) -> Optional[int]:
    """Parse a USB id given as hex string ("04b8", "0x04b8") or int."""
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 16)
    except ValueError:
        raise InvalidConfiguration(f"{field} must be a hex id, got {value!r}")
