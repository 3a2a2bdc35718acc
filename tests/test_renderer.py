"""Tests for receipt rendering and preview."""
from datetime import datetime

import pytest

from posprint.printer.commands import (
    Align,
    Column,
    Cut,
    DrawLine,
    PrintLine,
    PrintQR,
    SetAlign,
    SetBold,
    SetTextSize,
    TableRow,
)
from posprint.printer.renderer import (
    ReceiptItem,
    ReceiptPayload,
    ReceiptRenderer,
    format_row,
    layout_columns,
    preview_text,
)

FIXED_TIME = datetime(2026, 10, 19, 15, 4, 5)


def make_payload(**overrides):
    fields = dict(
        store_name="The Loft",
        address="Coimbatore, Tamil Nadu",
        order_number="ORD-001",
        customer_name="John Doe",
        payment_method="Cash",
        items=[ReceiptItem("Cappuccino", 2, 150), ReceiptItem("Croissant", 1, 80)],
        subtotal=999,  # Deliberately not the item sum
        tax=54,
        total=1053,
    )
    fields.update(overrides)
    return ReceiptPayload(**fields)


@pytest.fixture
def renderer():
    return ReceiptRenderer(currency_symbol="$", clock=lambda: FIXED_TIME)


def item_rows(sequence):
    rows = sequence.of_type(TableRow)
    # Header row, then one per item, then subtotal/tax/total
    return rows[1:-3]


class TestLayout:

    def test_header(self, renderer):
        commands = list(renderer.render(make_payload()))
        assert commands[:6] == [
            SetAlign(Align.CENTER),
            SetBold(True),
            PrintLine("The Loft"),
            SetBold(False),
            PrintLine("Coimbatore, Tamil Nadu"),
            DrawLine("-"),
        ]

    def test_metadata_block(self, renderer):
        commands = list(renderer.render(make_payload()))
        assert commands[6:11] == [
            SetAlign(Align.LEFT),
            PrintLine("Order: ORD-001"),
            PrintLine("Customer: John Doe"),
            PrintLine("Date: 19/10/2026, 3:04:05 pm"),
            DrawLine("-"),
        ]

    def test_column_header_is_bold_with_fixed_widths(self, renderer):
        commands = list(renderer.render(make_payload()))
        assert commands[11:14] == [
            SetBold(True),
            TableRow((
                Column("Item", Align.LEFT, 0.5),
                Column("Qty", Align.CENTER, 0.15),
                Column("Price", Align.RIGHT, 0.20),
                Column("Total", Align.RIGHT, 0.15),
            )),
            SetBold(False),
        ]
        assert sum(c.width for c in commands[12].columns) == pytest.approx(1.0)

    def test_line_totals_computed_from_items(self, renderer):
        rows = item_rows(renderer.render(make_payload()))

        assert [[c.text for c in row.columns] for row in rows] == [
            ["Cappuccino", "2", "$150.00", "$300.00"],
            ["Croissant", "1", "$80.00", "$80.00"],
        ]
        assert [c.align for c in rows[0].columns] == [Align.LEFT, Align.CENTER, Align.RIGHT, Align.RIGHT]

    def test_items_keep_payload_order(self, renderer):
        items = [ReceiptItem(name, 1, 1) for name in ("Zeta", "Alpha", "Mid")]
        rows = item_rows(renderer.render(make_payload(items=items)))
        assert [row.columns[0].text for row in rows] == ["Zeta", "Alpha", "Mid"]

    def test_totals_use_given_values(self, renderer):
        rows = renderer.render(make_payload(subtotal=12.5, tax=1.125, total=13.6)).of_type(TableRow)
        subtotal, tax, total = rows[-3:]

        assert subtotal.columns == (Column("Subtotal:", Align.LEFT, 0.7), Column("$12.50", Align.RIGHT, 0.3))
        assert tax.columns[1].text == "$1.12"
        assert total.columns[0].text == "TOTAL:"
        assert total.columns[1].text == "$13.60"

    def test_total_row_bold_double_size_then_reverts(self, renderer):
        commands = list(renderer.render(make_payload()))
        total_index = next(i for i, c in enumerate(commands)
                           if isinstance(c, TableRow) and c.columns[0].text == "TOTAL:")

        assert commands[total_index - 3:total_index] == [DrawLine("-"), SetBold(True), SetTextSize(2, 2)]
        assert commands[total_index + 1:total_index + 6] == [
            SetTextSize(1, 1),
            SetBold(False),
            DrawLine("-"),
            SetAlign(Align.LEFT),
            PrintLine("Payment: Cash"),
        ]

    def test_closing_block(self, renderer):
        commands = list(renderer.render(make_payload()))
        assert commands[-5:] == [
            PrintLine(""),
            SetAlign(Align.CENTER),
            PrintLine("Thank you for your visit!"),
            PrintLine(""),
            Cut(False),
        ]

    def test_fractional_quantity(self, renderer):
        rows = item_rows(renderer.render(make_payload(items=[ReceiptItem("Beans (kg)", 0.5, 10)])))
        assert rows[0].columns[1].text == "0.5"
        assert rows[0].columns[3].text == "$5.00"


class TestQRCode:

    @pytest.mark.parametrize("qr_code", [None, ""])
    def test_no_qr_block_without_code(self, renderer, qr_code):
        sequence = renderer.render(make_payload(qr_code=qr_code))
        assert sequence.of_type(PrintQR) == ()

    def test_single_qr_block(self, renderer):
        commands = list(renderer.render(make_payload(qr_code="ORD-1")))
        qrs = [c for c in commands if isinstance(c, PrintQR)]

        assert qrs == [PrintQR("ORD-1", 6)]
        index = commands.index(qrs[0])
        assert commands[index - 2:index] == [PrintLine(""), SetAlign(Align.CENTER)]


class TestPurity:

    def test_same_input_same_output(self, renderer):
        payload = make_payload(qr_code="ORD-1")
        assert renderer.render(payload) == renderer.render(payload)

    def test_only_date_line_depends_on_clock(self):
        payload = make_payload()
        first = ReceiptRenderer(clock=lambda: FIXED_TIME).render(payload)
        second = ReceiptRenderer(clock=lambda: datetime(2027, 1, 1, 0, 0, 0)).render(payload)

        differing = [i for i, (a, b) in enumerate(zip(first, second)) if a != b]
        assert len(first) == len(second)
        assert len(differing) == 1
        assert first[differing[0]].text.startswith("Date: ")

    def test_midnight_and_noon_format(self):
        assert ReceiptRenderer.format_date(datetime(2026, 1, 2, 0, 5, 9)) == "02/01/2026, 12:05:09 am"
        assert ReceiptRenderer.format_date(datetime(2026, 1, 2, 12, 0, 0)) == "02/01/2026, 12:00:00 pm"


class TestPayloadFromDict:

    def test_camel_case_payload(self):
        payload = ReceiptPayload.from_dict({
            "storeName": "The Loft", "address": "Coimbatore", "orderNumber": "ORD-001",
            "customerName": "John", "paymentMethod": "Card",
            "items": [{"name": "Cappuccino", "qty": 2, "price": 150}],
            "subtotal": 300, "tax": 54, "total": 354, "qrCode": "ORD-001",
        })
        assert payload.store_name == "The Loft"
        assert payload.items == [ReceiptItem("Cappuccino", 2, 150)]
        assert payload.qr_code == "ORD-001"

    @pytest.mark.parametrize("change, message", [
        ({"storeName": None}, "storeName"),
        ({"items": "nope"}, "items"),
        ({"items": [{"name": "X", "qty": 0, "price": 1}]}, "qty"),
        ({"items": [{"name": "X", "qty": 1, "price": -1}]}, "price"),
        ({"total": "354"}, "total"),
    ])
    def test_rejects_bad_shape(self, change, message):
        data = {
            "storeName": "S", "address": "A", "orderNumber": "1", "customerName": "C",
            "paymentMethod": "Cash", "items": [], "subtotal": 0, "tax": 0, "total": 0,
        }
        data.update(change)
        with pytest.raises(ValueError, match=message):
            ReceiptPayload.from_dict(data)


class TestPreview:

    def test_column_layout_fills_width(self):
        cols = (Column("a", Align.LEFT, 0.5), Column("b", Align.CENTER, 0.15),
                Column("c", Align.RIGHT, 0.20), Column("d", Align.RIGHT, 0.15))
        assert layout_columns(cols, 48) == [24, 7, 9, 8]
        assert len(format_row(cols, 48)) == 48

    def test_long_cell_truncated(self):
        cols = (Column("x" * 40, Align.LEFT, 0.5), Column("1", Align.RIGHT, 0.5))
        assert format_row(cols, 20) == "x" * 10 + " " * 9 + "1"

    def test_preview_text(self, renderer):
        text = preview_text(renderer.render(make_payload(qr_code="ORD-1")), width=48)
        lines = text.split("\n")

        assert lines[0] == "The Loft".center(48).rstrip()
        assert "-" * 48 in lines
        assert "Cappuccino" in text and "$300.00" in text
        # Double-size total row uses half the width
        assert any(line.startswith("TOTAL:") and len(line) == 24 for line in lines)
        assert "[QR:ORD-1]" in text
        assert lines[-1] == "--- CUT ---"
