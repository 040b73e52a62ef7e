"""
Base Hashes for Double Hashing
==============================

A Bloom filter needs k probe positions per entry. Instead of k independent
hash functions, the filter derives all of them from two base hashes
(see ``BloomFilter.hash_values``). This module supplies both:

1. ``generic_hash`` - MurmurHash3 (128-bit, unsigned) over the entry's native
   byte representation. Used for the first base hash.
2. ``djb2`` - Daniel J. Bernstein's string hash over the entry's canonical
   text. Used for the second base hash.

Supported Entry Kinds:
---------------------
A filter accepts exactly one kind of entry, chosen from a closed set:

    INT8  UINT8  INT16  UINT16  INT32  UINT32  INT64  UINT64
    FLOAT32  FLOAT64  STRING

Numeric kinds carry a little-endian ``struct`` format code that defines their
native bit pattern. Equal values always map to equal bytes and equal text, so
both base hashes are stable for equal entries.

Reference:
    djb2: http://www.cse.yorku.ca/~oz/hash.html
"""

import struct
from enum import Enum
from typing import Any, Union

import mmh3

DJB2_SEED = 5381

# djb2 runs on an unsigned machine word
_WORD_MASK = (1 << 64) - 1


def djb2(text: str) -> int:
    """
    Compute the djb2 hash of a string.

    Recurrence: h(0) = 5381, h(i+1) = h(i) * 33 + byte(i), taken over the
    UTF-8 encoding and wrapped to 64 bits.

    Args:
        text: The string to hash

    Returns:
        int: Unsigned 64-bit hash value

    Example:
        djb2("")   # 5381
        djb2("a")  # 177670
    """
    value = DJB2_SEED
    for byte in text.encode('utf-8'):
        # 33 * value + byte
        value = ((value << 5) + value + byte) & _WORD_MASK
    return value


class EntryKind(Enum):
    """Kinds of entries a Bloom filter can hold, keyed by struct format code."""
    INT8 = 'b'
    UINT8 = 'B'
    INT16 = 'h'
    UINT16 = 'H'
    INT32 = 'i'
    UINT32 = 'I'
    INT64 = 'q'
    UINT64 = 'Q'
    FLOAT32 = 'f'
    FLOAT64 = 'd'
    STRING = 's'

    @classmethod
    def of(cls, kind: Union['EntryKind', type]) -> 'EntryKind':
        """
        Resolve an EntryKind from either an EntryKind or a Python type.

        ``str``, ``int`` and ``float`` map to STRING, INT64 and FLOAT64.

        Raises:
            TypeError: If the kind is not one of the supported kinds.
        """
        if isinstance(kind, cls):
            return kind
        if kind is str:
            return cls.STRING
        if kind is int:
            return cls.INT64
        if kind is float:
            return cls.FLOAT64
        raise TypeError(
            f"Unsupported entry kind {kind!r}: expected an EntryKind, str, int or float"
        )

    @property
    def is_integer(self) -> bool:
        return self.value in 'bBhHiIqQ'

    @property
    def is_float(self) -> bool:
        return self in (EntryKind.FLOAT32, EntryKind.FLOAT64)

    @property
    def struct_format(self) -> str:
        """Little-endian struct format for numeric kinds."""
        if self is EntryKind.STRING:
            raise TypeError("STRING entries have no fixed-width format")
        return '<' + self.value

    @property
    def bounds(self) -> tuple:
        """Inclusive (min, max) of an integer kind."""
        bits = struct.calcsize(self.struct_format) * 8
        if self.value.isupper():
            return 0, (1 << bits) - 1
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1

    def validate(self, entry: Any) -> Any:
        """
        Check that an entry belongs to this kind and normalize it.

        Floats are rounded to their stored precision and -0.0 becomes 0.0,
        so values that compare equal hash equally.

        Args:
            entry: The value to check

        Returns:
            The normalized entry

        Raises:
            TypeError: If the entry has the wrong Python type
            ValueError: If the entry does not fit the kind
        """
        if self is EntryKind.STRING:
            if not isinstance(entry, str):
                raise TypeError(f"Expected str entry, got {type(entry).__name__}")
            return entry

        # bool is an int subclass but never a valid numeric entry
        if isinstance(entry, bool):
            raise TypeError(f"Expected {self.name} entry, got bool")

        if self.is_integer:
            if not isinstance(entry, int):
                raise TypeError(f"Expected {self.name} entry, got {type(entry).__name__}")
            low, high = self.bounds
            if not low <= entry <= high:
                raise ValueError(f"{entry} is out of range for {self.name} [{low}, {high}]")
            return entry

        if not isinstance(entry, (int, float)):
            raise TypeError(f"Expected {self.name} entry, got {type(entry).__name__}")
        try:
            value = struct.unpack(self.struct_format, struct.pack(self.struct_format, entry))[0]
        except OverflowError as exc:
            raise ValueError(f"{entry} is out of range for {self.name}") from exc
        if value == 0.0:
            value = 0.0
        return value


def to_bytes(entry: Any, kind: EntryKind) -> bytes:
    """Native byte representation of a validated entry."""
    if kind is EntryKind.STRING:
        return entry.encode('utf-8')
    return struct.pack(kind.struct_format, entry)


def to_string(entry: Any, kind: EntryKind) -> str:
    """
    Canonical text of a validated entry.

    Integers use their decimal form, floats their shortest round-trip
    ``repr``. Neither depends on locale or loses precision.
    """
    if kind is EntryKind.STRING:
        return entry
    if kind.is_float:
        return repr(float(entry))
    return str(entry)


def generic_hash(entry: Any, kind: EntryKind) -> int:
    """Unsigned 128-bit MurmurHash3 of the entry's native bytes."""
    return mmh3.hash128(to_bytes(entry, kind), signed=False)
