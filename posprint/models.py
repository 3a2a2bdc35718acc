"""Database models."""
import enum
from datetime import datetime
from posprint import db

DEFAULT_NETWORK_PORT = 9100


class PrinterKind(str, enum.Enum):
    """Command dialect family of a printer."""
    EPSON = "EPSON"
    STAR = "STAR"
    GENERIC = "GENERIC"


class TransportKind(str, enum.Enum):
    """How a printer is reached."""
    USB = "USB"
    NETWORK = "NETWORK"


class PrinterProfile(db.Model):
    """Stored description of one physical printer and how to reach it."""
    __tablename__ = "printer_profiles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    kind = db.Column(db.String(20), nullable=False, default=PrinterKind.EPSON.value)
    transport_kind = db.Column(db.String(20), nullable=False, default=TransportKind.USB.value)
    usb_identifier = db.Column(db.String(255), nullable=True)
    vendor_id = db.Column(db.String(255), nullable=True)  # Hex string, e.g. "04b8"
    product_id = db.Column(db.String(255), nullable=True)
    network_address = db.Column(db.String(50), nullable=True)
    network_port = db.Column(db.Integer, nullable=False, default=DEFAULT_NETWORK_PORT)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "transport_kind": self.transport_kind,
            "usb_identifier": self.usb_identifier,
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "network_address": self.network_address,
            "network_port": self.network_port,
            "is_default": bool(self.is_default),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<PrinterProfile {self.name} ({self.transport_kind})>"
