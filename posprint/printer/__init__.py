"""Printer module: command vocabulary, rendering, transports and sessions."""
from posprint.printer.commands import CommandBuilder, CommandSequence
from posprint.printer.connection import NetworkDriver, TransportDriver, USBDriver, create_driver
from posprint.printer.escpos import DIALECTS, Dialect, ESCPOSEncoder, dialect_for
from posprint.printer.renderer import ReceiptItem, ReceiptPayload, ReceiptRenderer, preview_text
from posprint.printer.session import PrinterSession, SessionState
from posprint.printer.transport import NetworkDescriptor, TransportResolver, UsbDescriptor

__all__ = [
    "CommandBuilder",
    "CommandSequence",
    "TransportDriver",
    "NetworkDriver",
    "USBDriver",
    "create_driver",
    "DIALECTS",
    "Dialect",
    "ESCPOSEncoder",
    "dialect_for",
    "ReceiptItem",
    "ReceiptPayload",
    "ReceiptRenderer",
    "preview_text",
    "PrinterSession",
    "SessionState",
    "NetworkDescriptor",
    "TransportResolver",
    "UsbDescriptor",
]
