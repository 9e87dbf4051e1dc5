"""
Run-length encoded Life patterns.

The grammar is the bare RLE body: ``(digits? tag)+`` where the tag is

    b    a run of dead cells
    o    a run of alive cells
    $    end of row (a count of k moves down k rows)

There is no header line, no ``!`` terminator and no whitespace handling;
any other character is an error. Decoding is two passes: the text becomes a
list of Symbols, then the symbols are replayed against a cursor to produce
absolute ``(x, y)`` coordinates, x being the column and y the row.

    >>> decode_cells("2bobo23$4b2o")
    [(2, 0), (4, 0), (4, 23), (5, 23)]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

# ── Pattern library ─────────────────────────────────────────────────────
PATTERNS: dict[str, str] = {
    "glider": "bo$2bo$3o",
    "blinker": "3o",
    "block": "2o$2o",
    "lwss": "bo2bo$o4b$o3bo$4o",
    "r_pentomino": "b2o$2o$bo",
    "acorn": "bo$3bo$2o2b3o",
    "diehard": "6bo$2o$bo3b3o",
    "gosper_gun": (
        "24bo$22bobo$12b2o6b2o12b2o$11bo3bo4b2o12b2o$2o8bo5bo3b2o$"
        "2o8bo3bob2o4bobo$10bo5bo7bo$11bo3bo$12b2o"
    ),
    "pulsar": (
        "2b3o3b3o2$o4bobo4bo$o4bobo4bo$o4bobo4bo$2b3o3b3o2$"
        "2b3o3b3o$o4bobo4bo$o4bobo4bo$o4bobo4bo2$2b3o3b3o"
    ),
    # Default seed of the viewer, placed at DEMO_OFFSET on a 100x100 universe
    "demo": (
        "28b2o17b$28bobo16b$28bo18b$31bo15b$24b3o4bobo13b$24bo6bo2bo3b3o6b$"
        "25bo7b2o2bo2b2o5b$27b3o7bo5b2o2b$20b2o15b2o4b3ob$20bobo5bobo3b3o9bo$"
        "20bo8b2o2bo2bo6bo2bo$23bo9bo9bo3b$16b3o4bobo7b2o8bobob$"
        "16bo6bo2bo3b3o14b$17bo7b2o2bo2bo14b$19b3o7bo17b$12b2o15b2o16b$"
        "12bobo5bobo3b3o18b$12bo8b2o2bo2bo18b$15bo9bo21b$8b3o4bobo7b2o20b$"
        "8bo6bo2bo3b3o22b$9bo7b2o2bo2bo22b$11b3o7bo25b$4b2o15b2o24b$"
        "4bobo5bobo3b3o26b$4bo8b2o2bo2bo26b$7bo9bo29b$3o4bobo7b2o28b$"
        "o6bo2bo3b3o30b$bo7b2o2bo2bo30b$3b3o7bo33b$13b2o32b$4bobo3b3o34b$"
        "5b2o2bo2bo34b$9bo37b$9b2o36b$6b3o38b$5bo2bo38b$5bo41b$5b2o40b$"
        "6bo40b2$7b2ob3o34b$7b2o38b$8bo3bo34b$9b2o"
    ),
}

DEMO_OFFSET: tuple[int, int] = (50, 100)

_ATOM = re.compile(r"([0-9]*)([bo$])")
_DIGITS = re.compile(r"[0-9]*")


class MalformedPattern(ValueError):
    """The RLE text does not match ``(digits? tag)+`` at ``position``."""

    def __init__(self, position: int, reason: str, remainder: str) -> None:
        self.position = position
        self.reason = reason
        self.remainder = remainder
        shown = remainder if len(remainder) <= 20 else remainder[:20] + "..."
        super().__init__(f"{reason} at position {position}: {shown!r}")


# ═══════════════════════════════════════════════════════════════════════
#  Symbols
# ═══════════════════════════════════════════════════════════════════════

class SymbolKind(Enum):
    DEAD_RUN = "b"
    ALIVE_RUN = "o"
    END_OF_ROW = "$"


@dataclass
class Cursor:
    """Running write position while a pattern is being expanded."""
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class Symbol:
    """One decoded ``count tag`` atom."""
    kind: SymbolKind
    count: int = 1

    def grow(self, cursor: Cursor, cells: list[tuple[int, int]]) -> None:
        """Apply this symbol at the cursor, appending any alive cells."""
        if self.kind is SymbolKind.DEAD_RUN:
            cursor.x += self.count
        elif self.kind is SymbolKind.ALIVE_RUN:
            cells.extend((cursor.x + i, cursor.y) for i in range(self.count))
            cursor.x += self.count
        else:
            cursor.x = 0
            cursor.y += self.count

    def __str__(self) -> str:
        return f"{self.count}{self.kind.value}"


def decode_symbol(text: str, pos: int = 0) -> tuple[Symbol, int]:
    """Decode the atom starting at ``pos``. Returns the symbol and the next position."""
    m = _ATOM.match(text, pos)
    if m is None:
        end = _DIGITS.match(text, pos).end()
        if end == len(text) and end > pos:
            raise MalformedPattern(pos, "count not followed by a tag", text[pos:])
        if end == len(text):
            raise MalformedPattern(pos, "expected a tag", text[pos:])
        raise MalformedPattern(
            end, f"unexpected character {text[end]!r}", text[end:]
        )

    digits, tag = m.groups()
    count = int(digits) if digits else 1
    if count < 1:
        raise MalformedPattern(pos, "run length must be at least 1", text[pos:])
    return Symbol(SymbolKind(tag), count), m.end()


def decode_symbols(text: str) -> list[Symbol]:
    """Tokenize a whole RLE string. Every character must belong to an atom."""
    if not text:
        raise MalformedPattern(0, "empty pattern", text)

    symbols: list[Symbol] = []
    pos = 0
    while pos < len(text):
        symbol, pos = decode_symbol(text, pos)
        symbols.append(symbol)
    return symbols


# ═══════════════════════════════════════════════════════════════════════
#  Coordinates
# ═══════════════════════════════════════════════════════════════════════

def build_cells(symbols: list[Symbol]) -> list[tuple[int, int]]:
    cursor = Cursor()
    cells: list[tuple[int, int]] = []
    for symbol in symbols:
        symbol.grow(cursor, cells)
    return cells


def decode_cells(text: str) -> list[tuple[int, int]]:
    return build_cells(decode_symbols(text))


def shift_cells(
    cells: list[tuple[int, int]], dx: int, dy: int
) -> list[tuple[int, int]]:
    """Translate every coordinate by ``(dx, dy)``; order and count are kept."""
    return [(x + dx, y + dy) for x, y in cells]


@dataclass
class Shape:
    """A decoded pattern: alive cells relative to the pattern's top-left."""
    alive_cells: list[tuple[int, int]] = field(default_factory=list)

    @classmethod
    def from_rle(cls, text: str) -> Shape:
        return cls(decode_cells(text))

    @classmethod
    def named(cls, name: str) -> Shape:
        """Decode an entry of PATTERNS. Raises KeyError for unknown names."""
        return cls.from_rle(PATTERNS[name])

    def shifted(self, dx: int, dy: int) -> Shape:
        return Shape(shift_cells(self.alive_cells, dx, dy))

    def bounds(self) -> tuple[int, int]:
        """(width, height) of the box spanning the origin and every alive cell."""
        if not self.alive_cells:
            return 0, 0
        return (
            max(x for x, _ in self.alive_cells) + 1,
            max(y for _, y in self.alive_cells) + 1,
        )

    def __len__(self) -> int:
        return len(self.alive_cells)
