"""Tables that turn bit ranges of a register into descriptive text."""

from collections.abc import Mapping
from dataclasses import dataclass

from rasdecode.event import extract


@dataclass(frozen=True)
class Field:
    """A bit range starting at ``start`` whose value indexes ``names``.

    Entries of ``names`` that are None mark values without a description.
    """

    start: int
    names: tuple

    @property
    def width(self):
        return max(1, (len(self.names) - 1).bit_length())


@dataclass(frozen=True)
class NumField:
    """A numeric bit range printed with its name."""

    start: int
    end: int
    name: str
    hexadecimal: bool = False
    force: bool = False


def sbitfield(start, text):
    """A single bit that reports text when set."""
    return Field(start, (None, text))


def table_field(start, names):
    """A field decoded by a table; names may be a sequence or a sparse mapping."""
    if isinstance(names, Mapping):
        size = max(names) + 1 if names else 0
        names = tuple(names.get(index) for index in range(size))
    return Field(start, tuple(names))


def null_field(start):
    """A single bit that is known but never reported."""
    return Field(start, ("", ""))


def numfield(start, end, name, hexadecimal=False, force=False):
    """A numeric range, printed when non-zero or when forced."""
    return NumField(start, end, name, hexadecimal, force)


def decode_bitfield(event, value, fields):
    """Append the description of every field of value to the event's error text."""
    for field in fields:
        index = (value >> field.start) & ((1 << field.width) - 1)
        name = field.names[index] if index < len(field.names) else None
        if name is None:
            if index:
                event.add_message("error_msg", f"<{field.start}:{index:x}>")
        elif name:
            event.add_message("error_msg", name)


def decode_numfield(event, value, fields):
    """Append the numeric fields of value to the event's error text."""
    for field in fields:
        number = extract(value, field.start, field.end)
        if number or field.force:
            shown = f"{number:x}" if field.hexadecimal else str(number)
            event.add_message("error_msg", f"{field.name}: {shown}")