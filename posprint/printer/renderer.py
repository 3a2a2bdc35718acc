"""Receipt payload and its rendering into printer commands."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from posprint.printer.commands import (
    Align,
    Column,
    CommandBuilder,
    CommandSequence,
    Cut,
    DrawLine,
    PrintLine,
    PrintQR,
    SetAlign,
    SetTextSize,
    TableRow,
)

ITEM_COLUMN_WIDTHS = (0.5, 0.15, 0.20, 0.15)
TOTALS_COLUMN_WIDTHS = (0.7, 0.3)


@dataclass(frozen=True)
class ReceiptItem:
    name: str
    qty: float
    price: float


@dataclass(frozen=True)
class ReceiptPayload:
    """One receipt to print. Amounts are taken as given, never re-derived."""
    store_name: str
    address: str
    order_number: str
    customer_name: str
    payment_method: str
    items: List[ReceiptItem] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    qr_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ReceiptPayload":
        """Build a payload from request JSON (camelCase or snake_case keys).

        Raises:
            ValueError: if a required field is missing or has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValueError("Receipt payload must be an object")

        def pick(*keys, default=None):
            for key in keys:
                if key in data:
                    return data[key]
            return default

        strings = {}
        for attr, keys in (
            ("store_name", ("storeName", "store_name")),
            ("address", ("address",)),
            ("order_number", ("orderNumber", "order_number")),
            ("customer_name", ("customerName", "customer_name")),
            ("payment_method", ("paymentMethod", "payment_method")),
        ):
            value = pick(*keys)
            if not isinstance(value, str):
                raise ValueError(f"{keys[0]} is required")
            strings[attr] = value

        raw_items = pick("items")
        if not isinstance(raw_items, list):
            raise ValueError("items must be a list")
        items = []
        for index, raw in enumerate(raw_items):
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                raise ValueError(f"items[{index}].name is required")
            qty = _number(raw.get("qty"), f"items[{index}].qty")
            price = _number(raw.get("price"), f"items[{index}].price")
            if qty <= 0:
                raise ValueError(f"items[{index}].qty must be greater than 0")
            if price < 0:
                raise ValueError(f"items[{index}].price must not be negative")
            items.append(ReceiptItem(raw["name"], qty, price))

        qr_code = pick("qrCode", "qr_code")
        if qr_code is not None and not isinstance(qr_code, str):
            raise ValueError("qrCode must be a string")

        return cls(
            items=items,
            subtotal=_number(pick("subtotal"), "subtotal"),
            tax=_number(pick("tax"), "tax"),
            total=_number(pick("total"), "total"),
            qr_code=qr_code,
            **strings,
        )


def _number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number")
    return value


class ReceiptRenderer:
    """Renders a receipt payload to a command sequence.

    Rendering is pure: the only input besides the payload is the clock used for
    the date line, which can be injected.
    """

    def __init__(self, currency_symbol: str = "$", footer: str = "Thank you for your visit!",
                 qr_cell_size: int = 6, clock: Callable[[], datetime] = datetime.now):
        self.currency_symbol = currency_symbol
        self.footer = footer
        self.qr_cell_size = qr_cell_size
        self.clock = clock

    def money(self, amount: float) -> str:
        return f"{self.currency_symbol}{amount:.2f}"

    def render(self, payload: ReceiptPayload) -> CommandSequence:
        b = CommandBuilder()

        # Header
        b.align_center().bold().println(payload.store_name).bold(False)
        b.println(payload.address)
        b.line()

        # Order info
        b.align_left()
        b.println(f"Order: {payload.order_number}")
        b.println(f"Customer: {payload.customer_name}")
        b.println(f"Date: {self.format_date(self.clock())}")
        b.line()

        # Items
        w_name, w_qty, w_price, w_total = ITEM_COLUMN_WIDTHS
        b.bold()
        b.table_row(
            Column("Item", Align.LEFT, w_name),
            Column("Qty", Align.CENTER, w_qty),
            Column("Price", Align.RIGHT, w_price),
            Column("Total", Align.RIGHT, w_total),
        )
        b.bold(False)
        for item in payload.items:
            b.table_row(
                Column(item.name, Align.LEFT, w_name),
                Column(_quantity(item.qty), Align.CENTER, w_qty),
                Column(self.money(item.price), Align.RIGHT, w_price),
                Column(self.money(item.qty * item.price), Align.RIGHT, w_total),
            )

        # Totals
        b.line()
        self._amount_row(b, "Subtotal:", payload.subtotal)
        self._amount_row(b, "Tax:", payload.tax)
        b.line()
        b.bold().text_size(2, 2)
        self._amount_row(b, "TOTAL:", payload.total)
        b.text_size(1, 1).bold(False)

        b.line()
        b.align_left().println(f"Payment: {payload.payment_method}")

        if payload.qr_code:
            b.println()
            b.align_center()
            b.qr(payload.qr_code, self.qr_cell_size)

        # Footer
        b.println()
        b.align_center().println(self.footer)
        b.println()
        b.cut()

        return b.build()

    def _amount_row(self, b: CommandBuilder, label: str, amount: float) -> None:
        w_label, w_value = TOTALS_COLUMN_WIDTHS
        b.table_row(
            Column(label, Align.LEFT, w_label),
            Column(self.money(amount), Align.RIGHT, w_value),
        )

    @staticmethod
    def format_date(moment: datetime) -> str:
        """Day-first locale date, e.g. ``19/10/2026, 3:04:05 pm``."""
        hour = moment.hour % 12 or 12
        suffix = "am" if moment.hour < 12 else "pm"
        return f"{moment:%d/%m/%Y}, {hour}:{moment:%M:%S} {suffix}"


def _quantity(qty: float) -> str:
    if float(qty).is_integer():
        return str(int(qty))
    return f"{qty:g}"


def layout_columns(columns, width: int) -> List[int]:
    """Resolve column width fractions to character counts summing to ``width``."""
    counts = [max(1, int(col.width * width)) for col in columns]
    if counts:
        counts[-1] = max(1, counts[-1] + width - sum(counts))
    return counts


def format_row(columns, width: int) -> str:
    """Lay a table row out as one fixed-width text line."""
    cells = []
    for col, size in zip(columns, layout_columns(columns, width)):
        text = col.text[:size]
        if col.align == Align.CENTER:
            cells.append(text.center(size))
        elif col.align == Align.RIGHT:
            cells.append(text.rjust(size))
        else:
            cells.append(text.ljust(size))
    return "".join(cells)


def preview_text(sequence: CommandSequence, width: int = 48) -> str:
    """Render a command sequence to a plain text preview of the printed receipt.

    Args:
        sequence: Commands as produced by :class:`ReceiptRenderer`
        width: Character width per line

    Returns:
        Plain text preview of receipt
    """
    lines = []
    alignment = Align.LEFT
    line_width = width

    for command in sequence:
        if isinstance(command, SetAlign):
            alignment = command.align
        elif isinstance(command, SetTextSize):
            line_width = max(1, width // max(1, command.width))
        elif isinstance(command, PrintLine):
            lines.append(_align_text(command.text, alignment, line_width))
        elif isinstance(command, DrawLine):
            lines.append(command.char * line_width)
        elif isinstance(command, TableRow):
            lines.append(format_row(command.columns, line_width).rstrip())
        elif isinstance(command, PrintQR):
            lines.append(_align_text(f"[QR:{command.data}]", alignment, line_width))
        elif isinstance(command, Cut):
            lines.append("")
            lines.append("--- CUT ---")
        # SetBold has no plain text form

    return "\n".join(lines)


def _align_text(text: str, alignment: Align, width: int) -> str:
    """Align text for preview."""
    text = text.rstrip()
    if not text:
        return ""
    if alignment == Align.CENTER:
        return text.center(width).rstrip()
    elif alignment == Align.RIGHT:
        return text.rjust(width)
    return text
