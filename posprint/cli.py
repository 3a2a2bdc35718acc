"""
Thermal Receipt Printer Connectivity Tester
Tests connection and status via USB or Network interfaces
"""
import argparse
import logging
from datetime import datetime

import usb.core

from posprint.errors import PrinterError
from posprint.models import PrinterKind
from posprint.printer.commands import CommandBuilder
from posprint.printer.connection import USBDriver
from posprint.printer.escpos import dialect_for
from posprint.printer.session import PrinterSession
from posprint.printer.transport import NetworkDescriptor, TransportDescriptor, UsbDescriptor


def build_test_page(connection: str):
    """Short page confirming the printer can be reached."""
    return (
        CommandBuilder()
        .align_center().bold().println("=== PRINTER TEST ===").bold(False)
        .println()
        .align_left()
        .println(f"Connection: {connection}")
        .println(f"Time: {datetime.now():%Y-%m-%d %H:%M:%S}")
        .println("Status: OK")
        .cut()
        .build()
    )


def check_printer(descriptor: TransportDescriptor, kind: str = "EPSON",
                  print_test: bool = True, timeout: float = 5.0) -> bool:
    """Connect, run the status probe and optionally print a test page."""
    print(f"Testing connection to {descriptor}...")
    session = PrinterSession(descriptor, dialect_for(kind), connect_timeout=timeout, io_timeout=timeout)
    try:
        with session:
            session.open()
            print(f"✓ Connected to {descriptor}")
            session.check_health()
            print("✓ Printer answered status request")
            if print_test:
                session.transmit(build_test_page(str(descriptor)))
                print("✓ Test page sent")
        return True
    except PrinterError as e:
        print(f"✗ {type(e).__name__}: {e}")
    return False


def list_usb_printers() -> bool:
    """List attached USB devices from known printer vendors."""
    print("Scanning for USB printers...")
    try:
        devices = USBDriver.scan_devices()
    except usb.core.NoBackendError as e:
        print(f"✗ {e}")
        return False

    for dev in devices:
        print(f"  Found: {dev['vendor_name']} - {dev['vendor_id_hex']}:{dev['product_id_hex']}")
    if not devices:
        print("  No known printer vendors detected")
    return bool(devices)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="posprint-check",
        description="Thermal Receipt Printer Connectivity Tester",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  posprint-check net 192.168.1.100
  posprint-check --no-print net 192.168.1.100 9100
  posprint-check --kind STAR net 192.168.1.50
  posprint-check usb
  posprint-check --no-print usb 04b8 0e15
        """
    )

    parser.add_argument("--no-print", action="store_true",
                        help="Skip printing test page (connection test only)")
    parser.add_argument("--kind", default="EPSON", type=str.upper,
                        choices=[k.value for k in PrinterKind],
                        help="Printer command dialect (default: EPSON)")
    parser.add_argument("--timeout", type=float, default=5.0,
                        help="Connect and status timeout in seconds (default: 5)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="mode", required=True)

    # Network subcommand
    net_parser = subparsers.add_parser("net", help="Test network printer")
    net_parser.add_argument("ip", help="Printer IP address")
    net_parser.add_argument("port", nargs="?", type=int, default=9100,
                            help="Port number (default: 9100)")

    # USB subcommand
    usb_parser = subparsers.add_parser("usb", help="Test USB printer")
    usb_parser.add_argument("vendor_id", nargs="?", help="Vendor ID in hex (e.g., 04b8)")
    usb_parser.add_argument("product_id", nargs="?", help="Product ID in hex (e.g., 0e15)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("=" * 40)
    print("Thermal Printer Connectivity Tester")
    print("=" * 40 + "\n")

    print_test = not args.no_print

    if args.mode == "net":
        ok = check_printer(NetworkDescriptor(args.ip, args.port), args.kind, print_test, args.timeout)
    elif args.vendor_id and args.product_id:
        descriptor = UsbDescriptor(
            selector=f"{args.vendor_id}:{args.product_id}",
            vendor_id=int(args.vendor_id, 16),
            product_id=int(args.product_id, 16),
        )
        ok = check_printer(descriptor, args.kind, print_test, args.timeout)
    else:
        ok = list_usb_printers()

    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
