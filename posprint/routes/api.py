"""REST API endpoints for printer profiles and receipt printing."""
import logging

from flask import Blueprint, current_app, jsonify, request

from posprint.errors import InvalidConfiguration, ProfileNotFound, UnsupportedTransport
from posprint.orchestrator import NO_PRINTER_CONFIGURED
from posprint.printer.escpos import dialect_for
from posprint.printer.renderer import ReceiptPayload, preview_text

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _orchestrator():
    return current_app.extensions["posprint"]


def _store():
    return _orchestrator().store


@api_bp.errorhandler(ProfileNotFound)
def handle_not_found(e):
    return jsonify({"error": str(e)}), 404


@api_bp.errorhandler(InvalidConfiguration)
@api_bp.errorhandler(UnsupportedTransport)
def handle_bad_config(e):
    return jsonify({"error": str(e)}), 400


# Printers API

@api_bp.route("/printers", methods=["GET"])
def list_printers():
    """List all printers, default first."""
    return jsonify({
        "printers": [p.to_dict() for p in _store().list()]
    })


@api_bp.route("/printers", methods=["POST"])
def create_printer():
    """Create a printer profile."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body is required"}), 400
    if not data.get("name"):
        return jsonify({"error": "Name is required"}), 400

    printer = _store().create(data)
    return jsonify(printer.to_dict()), 201


@api_bp.route("/printers/default", methods=["GET"])
def get_default_printer():
    """Get the default printer."""
    return jsonify(_store().get_default().to_dict())


@api_bp.route("/printers/<int:printer_id>", methods=["GET"])
def get_printer(printer_id):
    """Get a specific printer."""
    return jsonify(_store().get(printer_id).to_dict())


@api_bp.route("/printers/<int:printer_id>", methods=["PUT"])
def update_printer(printer_id):
    """Update a printer profile with the given fields."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body is required"}), 400

    return jsonify(_store().update(printer_id, data).to_dict())


@api_bp.route("/printers/<int:printer_id>", methods=["DELETE"])
def delete_printer(printer_id):
    """Delete a printer profile."""
    _store().delete(printer_id)
    return jsonify({"success": True})


@api_bp.route("/printers/<int:printer_id>/default", methods=["POST"])
def set_default_printer(printer_id):
    """Make a printer the default."""
    return jsonify(_store().set_default(printer_id).to_dict())


# Print API

@api_bp.route("/print-receipt", methods=["POST"])
def print_receipt():
    """Print a receipt.

    Request body is the receipt payload, optionally with ``printer_id``:
    {
        "storeName": "The Loft", "address": "...", "orderNumber": "ORD-001",
        "customerName": "...", "paymentMethod": "Cash",
        "items": [{"name": "Cappuccino", "qty": 2, "price": 150}],
        "subtotal": 300, "tax": 54, "total": 354,
        "qrCode": "ORD-001",      // optional
        "printer_id": 1           // optional, uses default if not provided
    }
    """
    data = request.get_json(silent=True) or {}
    printer_id = data.pop("printer_id", None) if isinstance(data, dict) else None

    try:
        payload = ReceiptPayload.from_dict(data)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    result = _orchestrator().print_receipt(payload, printer_id)
    return jsonify(result.to_dict())


@api_bp.route("/test-print", methods=["POST"])
def test_print():
    """Print the built-in sample receipt."""
    data = request.get_json(silent=True) or {}
    printer_id = data.get("printer_id") if isinstance(data, dict) else None
    result = _orchestrator().test_print(printer_id)
    return jsonify(result.to_dict())


@api_bp.route("/preview", methods=["POST"])
def preview_receipt():
    """Preview a receipt without printing.

    Uses the line width of ``printer_id`` (or the default printer) when one
    is configured, else the configured default width.
    """
    data = request.get_json(silent=True) or {}
    printer_id = data.pop("printer_id", None) if isinstance(data, dict) else None

    try:
        payload = ReceiptPayload.from_dict(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    width = current_app.config["DEFAULT_PRINTER_WIDTH"]
    store = _store()
    try:
        profile = store.get(printer_id) if printer_id is not None else store.get_default()
        width = dialect_for(profile.kind).width
    except ProfileNotFound:
        if printer_id is not None:
            raise
        logger.debug("Preview without printer: %s", NO_PRINTER_CONFIGURED)
    except ValueError:
        logger.debug("Preview with unknown printer kind, using width %s", width)

    sequence = _orchestrator().renderer.render(payload)
    return jsonify({"preview": preview_text(sequence, width), "width": width})
