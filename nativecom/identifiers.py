"""Codec for canonical 128-bit class identifiers (``8-4-4-4-12`` hex groups).

The generated C# code builds ``System.Guid`` values through the
``Guid(uint, ushort, ushort, byte, byte, byte, byte, byte, byte, byte, byte)``
constructor, so a decoded identifier keeps the first three groups as whole
32/16/16-bit values and splits only the last two groups into single bytes.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Tuple

_GROUP_LENGTHS: Tuple[int, ...] = (8, 4, 4, 4, 12)
_HEX_PATTERN = re.compile(r"^[0-9A-Fa-f]+$")


class IdentifierError(ValueError):
    """Raised when text is not a canonical hyphen-grouped identifier."""


class FieldLayout(NamedTuple):
    """Field decomposition of an identifier: one 32-bit, two 16-bit and eight 8-bit values."""

    data1: int
    data2: int
    data3: int
    data4: Tuple[int, int, int, int, int, int, int, int]

    def components(self) -> Tuple[int, ...]:
        """Return the eleven numeric components in emission order."""
        return (self.data1, self.data2, self.data3, *self.data4)


def decode(text: str) -> FieldLayout:
    """Parse canonical identifier text into its field layout."""
    if not isinstance(text, str):
        raise IdentifierError(f"Identifier must be a string, got {type(text).__name__}")
    groups = text.strip().split("-")
    if len(groups) != len(_GROUP_LENGTHS):
        raise IdentifierError(
            f"Identifier '{text}' must have {len(_GROUP_LENGTHS)} hyphen-separated groups"
        )
    for group, expected in zip(groups, _GROUP_LENGTHS):
        if len(group) != expected:
            raise IdentifierError(
                f"Identifier '{text}' has group '{group}' of length {len(group)}, expected {expected}"
            )
        if not _HEX_PATTERN.match(group):
            raise IdentifierError(f"Identifier '{text}' contains non-hex characters in '{group}'")

    tail = groups[3] + groups[4]
    data4 = tuple(int(tail[offset : offset + 2], 16) for offset in range(0, len(tail), 2))
    return FieldLayout(
        data1=int(groups[0], 16),
        data2=int(groups[1], 16),
        data3=int(groups[2], 16),
        data4=data4,  # type: ignore[arg-type]
    )


def is_valid(text: object) -> bool:
    """Return True when ``text`` decodes cleanly."""
    if not isinstance(text, str):
        return False
    try:
        decode(text)
    except IdentifierError:
        return False
    return True


def render(layout: FieldLayout) -> str:
    """Render a layout back to canonical upper-case identifier text."""
    _check_ranges(layout)
    data4 = "".join(f"{byte:02X}" for byte in layout.data4)
    return f"{layout.data1:08X}-{layout.data2:04X}-{layout.data3:04X}-{data4[:4]}-{data4[4:]}"


def render_literal(layout: FieldLayout) -> str:
    """Render a layout as a target-typed C# ``Guid`` construction expression."""
    _check_ranges(layout)
    parts = [f"0x{layout.data1:08X}", f"0x{layout.data2:04X}", f"0x{layout.data3:04X}"]
    parts.extend(f"0x{byte:02X}" for byte in layout.data4)
    return f"new({', '.join(parts)})"


def _check_ranges(layout: FieldLayout) -> None:
    if len(layout.data4) != 8:
        raise IdentifierError("Identifier layout must carry exactly eight trailing bytes")
    limits = ((layout.data1, 0xFFFFFFFF), (layout.data2, 0xFFFF), (layout.data3, 0xFFFF))
    for value, limit in limits:
        if not 0 <= value <= limit:
            raise IdentifierError(f"Identifier field {value:#x} is out of range")
    for byte in layout.data4:
        if not 0 <= byte <= 0xFF:
            raise IdentifierError(f"Identifier byte {byte:#x} is out of range")


__all__ = [
    "FieldLayout",
    "IdentifierError",
    "decode",
    "is_valid",
    "render",
    "render_literal",
]
