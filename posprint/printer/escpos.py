"""Byte encoding of command sequences for ESC/POS and Star Line Mode printers."""
from dataclasses import dataclass
from typing import Optional, Union

import qrcode
import qrcode.exceptions
from PIL import Image

from posprint.models import PrinterKind
from posprint.printer.commands import (
    Align,
    CommandSequence,
    Cut,
    DrawLine,
    PrintLine,
    PrintQR,
    SetAlign,
    SetBold,
    SetTextSize,
    TableRow,
)
from posprint.printer.renderer import format_row

ESC = b'\x1b'
GS = b'\x1d'
DLE = b'\x10'
EOT = b'\x04'
ACK = b'\x06'

# Largest QR payload the printer symbol storage accepts (GS ( k / ESC GS y D)
QR_NATIVE_MAX_BYTES = 7089
# Byte-mode capacity of a version 40 symbol at error correction M
QR_RASTER_MAX_BYTES = 2331


@dataclass(frozen=True)
class Dialect:
    """Command dialect of a printer kind.

    ``family`` is ``"escpos"`` or ``"star"``; ``qr`` is ``"native"`` for the
    printer's own QR command or ``"raster"`` to send a rendered bitmap.
    """
    kind: PrinterKind
    width: int
    family: str
    qr: str

    @property
    def status_request(self) -> bytes:
        if self.family == "star":
            return ESC + ACK + b'\x01'  # ESC ACK SOH - automatic status
        return DLE + EOT + b'\x01'  # DLE EOT 1 - printer status

    def status_problem(self, response: bytes) -> Optional[str]:
        """Return why a status response means the printer can't print, or None."""
        if not response:
            return "no status response"
        if self.family == "escpos":
            status = response[0]
            # Bits 1 and 4 fixed to 1, bits 0 and 7 fixed to 0
            if status & 0x93 != 0x12:
                return f"unexpected status byte 0x{status:02x}"
            if status & 0x08:
                return "printer reports offline"
        return None


DIALECTS = {
    PrinterKind.EPSON: Dialect(PrinterKind.EPSON, width=48, family="escpos", qr="native"),
    PrinterKind.STAR: Dialect(PrinterKind.STAR, width=48, family="star", qr="native"),
    PrinterKind.GENERIC: Dialect(PrinterKind.GENERIC, width=42, family="escpos", qr="raster"),
}


def dialect_for(kind: Union[PrinterKind, str]) -> Dialect:
    """Resolve a printer kind to its dialect.

    Raises:
        ValueError: for a kind outside EPSON/STAR/GENERIC
    """
    return DIALECTS[PrinterKind(kind)]


class ESCPOSEncoder:
    """Encodes a command sequence to printer bytes for one dialect."""

    # ESC/POS
    INIT = ESC + b'\x40'  # ESC @
    BOLD_ON = ESC + b'\x45\x01'   # ESC E 1
    BOLD_OFF = ESC + b'\x45\x00'  # ESC E 0
    ALIGN = {
        Align.LEFT: ESC + b'\x61\x00',    # ESC a 0
        Align.CENTER: ESC + b'\x61\x01',  # ESC a 1
        Align.RIGHT: ESC + b'\x61\x02',   # ESC a 2
    }
    CUT_FULL = GS + b'\x56\x00'  # GS V 0
    CUT_PARTIAL = GS + b'\x56\x01'  # GS V 1

    # Star Line Mode
    STAR_BOLD_ON = ESC + b'\x45'   # ESC E
    STAR_BOLD_OFF = ESC + b'\x46'  # ESC F
    STAR_ALIGN = {
        Align.LEFT: ESC + GS + b'\x61\x00',    # ESC GS a 0
        Align.CENTER: ESC + GS + b'\x61\x01',  # ESC GS a 1
        Align.RIGHT: ESC + GS + b'\x61\x02',   # ESC GS a 2
    }
    STAR_CUT_FULL = ESC + b'\x64\x00'  # ESC d 0
    STAR_CUT_PARTIAL = ESC + b'\x64\x01'  # ESC d 1

    FEED_LINE = b'\n'
    RASTER_MAX_WIDTH = 384  # Dots, 58mm paper at 203 DPI

    def __init__(self, dialect: Dialect):
        self.dialect = dialect
        self._buffer = bytearray()
        self._char_width = 1

    @property
    def line_width(self) -> int:
        """Characters per line at the current magnification."""
        return max(1, self.dialect.width // self._char_width)

    def encode(self, sequence: CommandSequence) -> bytes:
        """Encode all commands, starting from a printer reset.

        Raises:
            ValueError: if QR data exceeds what the dialect can print
        """
        self._buffer = bytearray(self.INIT)
        self._char_width = 1

        for command in sequence:
            if isinstance(command, SetAlign):
                self._align(command.align)
            elif isinstance(command, SetBold):
                self._bold(command.on)
            elif isinstance(command, SetTextSize):
                self._text_size(command.width, command.height)
            elif isinstance(command, PrintLine):
                self._text(command.text)
            elif isinstance(command, DrawLine):
                self._text(command.char * self.line_width)
            elif isinstance(command, TableRow):
                self._text(format_row(command.columns, self.line_width))
            elif isinstance(command, PrintQR):
                self._qr(command.data, command.cell_size)
            elif isinstance(command, Cut):
                self._cut(command.partial)
            else:
                raise TypeError(f"Unknown printer command: {command!r}")

        return bytes(self._buffer)

    # Text formatting

    def _text(self, content: str) -> None:
        self._buffer.extend(content.encode("cp437", errors="replace"))
        self._buffer.extend(self.FEED_LINE)

    def _bold(self, on: bool) -> None:
        if self.dialect.family == "star":
            self._buffer.extend(self.STAR_BOLD_ON if on else self.STAR_BOLD_OFF)
        else:
            self._buffer.extend(self.BOLD_ON if on else self.BOLD_OFF)

    def _align(self, align: Align) -> None:
        table = self.STAR_ALIGN if self.dialect.family == "star" else self.ALIGN
        self._buffer.extend(table[align])

    def _text_size(self, width: int, height: int) -> None:
        width = min(max(width, 1), 8)
        height = min(max(height, 1), 8)
        self._char_width = width
        if self.dialect.family == "star":
            # ESC i n1 n2 - height then width expansion
            self._buffer.extend(ESC + b'\x69' + bytes([height - 1, width - 1]))
        else:
            # GS ! n - width in high nibble, height in low nibble
            self._buffer.extend(GS + b'\x21' + bytes([((width - 1) << 4) | (height - 1)]))

    # Paper control

    def _cut(self, partial: bool) -> None:
        # Feed a bit before cutting to ensure content clears the cutter
        self._buffer.extend(self.FEED_LINE * 4)
        if self.dialect.family == "star":
            self._buffer.extend(self.STAR_CUT_PARTIAL if partial else self.STAR_CUT_FULL)
        else:
            self._buffer.extend(self.CUT_PARTIAL if partial else self.CUT_FULL)

    # QR codes

    def _qr(self, data: str, cell_size: int) -> None:
        cell_size = min(max(cell_size, 1), 8)
        payload = data.encode("utf-8")
        limit = QR_RASTER_MAX_BYTES if self.dialect.qr == "raster" else QR_NATIVE_MAX_BYTES
        if len(payload) > limit:
            raise ValueError(f"QR data is {len(payload)} bytes, {self.dialect.kind.value} printers take at most {limit}")

        if self.dialect.qr == "raster":
            self._qr_raster(data, cell_size)
        elif self.dialect.family == "star":
            self._buffer.extend(ESC + GS + b'\x79\x53\x30\x02')  # Model 2
            self._buffer.extend(ESC + GS + b'\x79\x53\x31\x01')  # Error correction M
            self._buffer.extend(ESC + GS + b'\x79\x53\x32' + bytes([cell_size]))
            self._buffer.extend(ESC + GS + b'\x79\x44\x31\x00')  # Store data
            self._buffer.extend(len(payload).to_bytes(2, "little") + payload)
            self._buffer.extend(ESC + GS + b'\x79\x50')  # Print
        else:
            fn = GS + b'\x28\x6b'  # GS ( k
            self._buffer.extend(fn + b'\x04\x00\x31\x41\x32\x00')  # Model 2
            self._buffer.extend(fn + b'\x03\x00\x31\x43' + bytes([cell_size]))
            self._buffer.extend(fn + b'\x03\x00\x31\x45\x31')  # Error correction M
            self._buffer.extend(fn + (len(payload) + 3).to_bytes(2, "little") + b'\x31\x50\x30' + payload)
            self._buffer.extend(fn + b'\x03\x00\x31\x51\x30')  # Print
        self._buffer.extend(self.FEED_LINE)

    def _qr_raster(self, data: str, cell_size: int) -> None:
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=cell_size,
            border=2,
        )
        qr.add_data(data)
        try:
            qr.make(fit=True)
        except qrcode.exceptions.DataOverflowError:
            raise ValueError(f"QR data does not fit in a version 40 symbol ({len(data)} characters)")
        img = qr.make_image(fill_color="black", back_color="white")
        self._image(img.get_image())

    def _image(self, img: Image.Image) -> None:
        """Append a raster bit image (GS v 0)."""
        img = img.convert("L")
        if img.width > self.RASTER_MAX_WIDTH:
            ratio = self.RASTER_MAX_WIDTH / img.width
            img = img.resize((self.RASTER_MAX_WIDTH, int(img.height * ratio)), Image.Resampling.NEAREST)
        img = img.convert("1")

        width_bytes = (img.width + 7) // 8
        self._buffer.extend(GS + b'\x76\x30\x00')
        self._buffer.extend(width_bytes.to_bytes(2, "little"))
        self._buffer.extend(img.height.to_bytes(2, "little"))

        for y in range(img.height):
            row_bytes = bytearray(width_bytes)
            for x in range(img.width):
                if img.getpixel((x, y)) == 0:  # Black pixel
                    row_bytes[x // 8] |= (0x80 >> (x % 8))
            self._buffer.extend(row_bytes)


def encode(sequence: CommandSequence, kind: Union[PrinterKind, str]) -> bytes:
    """Encode a command sequence for a printer kind."""
    return ESCPOSEncoder(dialect_for(kind)).encode(sequence)
