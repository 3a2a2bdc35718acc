"""Transport-agnostic printer command vocabulary.

A receipt is rendered into a :class:`CommandSequence`, an immutable ordered
list of the commands below. Nothing here knows about bytes or devices; the
encoder resolves each command against a printer dialect at transmit time.
"""
import enum
from dataclasses import dataclass
from typing import Iterator, Tuple, Type, Union


class Align(str, enum.Enum):
    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class SetAlign:
    align: Align


@dataclass(frozen=True)
class SetBold:
    on: bool


@dataclass(frozen=True)
class SetTextSize:
    """Character magnification, 1-8 in each direction."""
    width: int = 1
    height: int = 1


@dataclass(frozen=True)
class PrintLine:
    text: str


@dataclass(frozen=True)
class DrawLine:
    char: str = "-"


@dataclass(frozen=True)
class Column:
    """One cell of a table row.

    ``width`` is a fraction of the printable line width, not a character count.
    """
    text: str
    align: Align = Align.LEFT
    width: float = 1.0


@dataclass(frozen=True)
class TableRow:
    columns: Tuple[Column, ...]


@dataclass(frozen=True)
class PrintQR:
    data: str
    cell_size: int = 6


@dataclass(frozen=True)
class Cut:
    partial: bool = False


Command = Union[SetAlign, SetBold, SetTextSize, PrintLine, DrawLine, TableRow, PrintQR, Cut]


@dataclass(frozen=True)
class CommandSequence:
    """Ordered, immutable list of printer commands."""
    commands: Tuple[Command, ...] = ()

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def __getitem__(self, index):
        return self.commands[index]

    def of_type(self, command_type: Type) -> Tuple[Command, ...]:
        """Return the commands of one type, in order."""
        return tuple(c for c in self.commands if isinstance(c, command_type))


class CommandBuilder:
    """Fluent builder for command sequences."""

    def __init__(self):
        self._commands = []

    def _add(self, command: Command) -> "CommandBuilder":
        self._commands.append(command)
        return self

    def align_left(self) -> "CommandBuilder":
        return self._add(SetAlign(Align.LEFT))

    def align_center(self) -> "CommandBuilder":
        return self._add(SetAlign(Align.CENTER))

    def align_right(self) -> "CommandBuilder":
        return self._add(SetAlign(Align.RIGHT))

    def bold(self, on: bool = True) -> "CommandBuilder":
        return self._add(SetBold(on))

    def text_size(self, width: int = 1, height: int = 1) -> "CommandBuilder":
        return self._add(SetTextSize(width, height))

    def println(self, text: str = "") -> "CommandBuilder":
        return self._add(PrintLine(text))

    def line(self, char: str = "-") -> "CommandBuilder":
        return self._add(DrawLine(char))

    def table_row(self, *columns: Column) -> "CommandBuilder":
        return self._add(TableRow(tuple(columns)))

    def qr(self, data: str, cell_size: int = 6) -> "CommandBuilder":
        return self._add(PrintQR(data, cell_size))

    def cut(self, partial: bool = False) -> "CommandBuilder":
        return self._add(Cut(partial))

    def build(self) -> CommandSequence:
        return CommandSequence(tuple(self._commands))
