# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Binary Canonical Serialization (BCS) for Sui transaction data.

Sui encodes ``TransactionData`` with BCS before it is signed or handed to a
sponsor. The encoding is canonical: the same logical value always produces
the same bytes, which is what lets a signature bind exactly the transaction a
sponsor inspected.

Learn more at https://github.com/diem/bcs

Examples:
    Writing and reading values::

        from sui_sponsor_sdk.bcs import Deserializer, Serializer

        ser = Serializer()
        ser.u64(1000)
        ser.str("coin")

        der = Deserializer(ser.output())
        der.u64()  # 1000
        der.str()  # "coin"

    Custom structures implement ``serialize`` / ``deserialize``::

        class Pair:
            def serialize(self, serializer):
                serializer.u8(self.left)
                serializer.u8(self.right)

            @staticmethod
            def deserialize(deserializer):
                return Pair(deserializer.u8(), deserializer.u8())
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import List

from typing_extensions import Protocol

MAX_U8 = 2**8 - 1
MAX_U16 = 2**16 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1
MAX_U128 = 2**128 - 1
MAX_U256 = 2**256 - 1


class Deserializable(Protocol):
    """Anything that can rebuild itself from a :class:`Deserializer`."""

    @classmethod
    def from_bytes(cls, indata: bytes) -> Deserializable:
        der = Deserializer(indata)
        return der.struct(cls)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        ...


class Serializable(Protocol):
    """Anything that can write itself into a :class:`Serializer`."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Deserializer:
    """Reads BCS values from a byte string.

    The deserializer keeps a cursor into its input; every read advances it.
    Reading past the end raises instead of returning short data.

    Attributes:
        _input: Stream over the input bytes.
        _length: Total number of input bytes.
    """

    _input: io.BytesIO
    _length: int

    def __init__(self, data: bytes):
        self._length = len(data)
        self._input = io.BytesIO(data)

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return self._length - self._input.tell()

    def bool(self) -> bool:
        value = self._read_int(1)
        if value == 0:
            return False
        elif value == 1:
            return True
        else:
            raise Exception("Unexpected boolean value: ", value)

    def to_bytes(self) -> bytes:
        """Read a ULEB128 length-prefixed byte string."""
        return self._read(self.uleb128())

    def fixed_bytes(self, length: int) -> bytes:
        """Read exactly ``length`` raw bytes with no length prefix."""
        return self._read(length)

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> List[typing.Any]:
        """Read a length-prefixed sequence, decoding each item with ``value_decoder``.

        Examples:
            Reading a list of u64 amounts::

                amounts = der.sequence(Deserializer.u64)
        """
        length = self.uleb128()
        values: List = []
        while len(values) < length:
            values.append(value_decoder(self))
        return values

    def str(self) -> str:
        return self.to_bytes().decode()

    def struct(self, struct: typing.Any) -> typing.Any:
        """Delegate to ``struct.deserialize``."""
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u16(self) -> int:
        return self._read_int(2)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def u128(self) -> int:
        return self._read_int(16)

    def u256(self) -> int:
        return self._read_int(32)

    def uleb128(self) -> int:
        """Read an unsigned LEB128 integer, bounded to the u32 range.

        Each byte carries seven bits of payload, least significant group
        first; a set high bit means another byte follows.

        Raises:
            Exception: If the decoded value does not fit into a u32.
        """
        value = 0
        shift = 0

        while value <= MAX_U32:
            byte = self._read_int(1)
            value |= (byte & 0x7F) << shift
            if byte & 0x80 == 0:
                break
            shift += 7

        if value > MAX_U32:
            raise Exception("Unexpectedly large uleb128 value")

        return value

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            actual_length = 0 if value is None else len(value)
            error = (
                f"Unexpected end of input. Requested: {length}, found: {actual_length}"
            )
            raise Exception(error)
        return value

    def _read_int(self, length: int) -> int:
        return int.from_bytes(self._read(length), byteorder="little", signed=False)


class Serializer:
    """Accumulates BCS-encoded values into an in-memory buffer.

    Integers are little-endian and fixed width; byte strings, strings and
    sequences carry a ULEB128 length prefix. Values are range-checked before
    they are written, so an out of range amount never silently wraps.

    Examples:
        Encoding a pure u64 argument the way Sui expects it::

            ser = Serializer()
            ser.u64(1000)
            ser.output()  # b"\\xe8\\x03\\x00\\x00\\x00\\x00\\x00\\x00"
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        """Return everything written so far."""
        return self._output.getvalue()

    def bool(self, value: bool):
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        """Write a byte string prefixed by its ULEB128 length."""
        self.uleb128(len(value))
        self._output.write(value)

    def fixed_bytes(self, value):
        """Write raw bytes with no length prefix."""
        self._output.write(value)

    @staticmethod
    def sequence_serializer(
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Bind ``value_encoder`` into a reusable sequence encoder."""
        return lambda self, values: self.sequence(values, value_encoder)

    def sequence(
        self,
        values: typing.List[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Write a length-prefixed sequence, each item encoded by ``value_encoder``."""
        self.uleb128(len(values))
        for value in values:
            self.fixed_bytes(encoder(value, value_encoder))

    def str(self, value: str):
        self.to_bytes(value.encode())

    def struct(self, value: typing.Any):
        """Delegate to ``value.serialize``."""
        value.serialize(self)

    def u8(self, value: int):
        self._write_checked(value, MAX_U8, 1, "u8")

    def u16(self, value: int):
        self._write_checked(value, MAX_U16, 2, "u16")

    def u32(self, value: int):
        self._write_checked(value, MAX_U32, 4, "u32")

    def u64(self, value: int):
        self._write_checked(value, MAX_U64, 8, "u64")

    def u128(self, value: int):
        self._write_checked(value, MAX_U128, 16, "u128")

    def u256(self, value: int):
        self._write_checked(value, MAX_U256, 32, "u256")

    def uleb128(self, value: int):
        """Write an unsigned LEB128 integer (u32 range only).

        Raises:
            Exception: If ``value`` exceeds the u32 range.
        """
        if value > MAX_U32:
            raise Exception(f"Cannot encode {value} into uleb128")

        while value >= 0x80:
            # Low seven bits with the continuation bit set.
            self.u8((value & 0x7F) | 0x80)
            value >>= 7

        self.u8(value & 0x7F)

    def _write_checked(self, value: int, maximum: int, length: int, name: str):
        if value < 0 or value > maximum:
            raise Exception(f"Cannot encode {value} into {name}")
        self._write_int(value, length)

    def _write_int(self, value: int, length: int):
        self._output.write(value.to_bytes(length, "little", signed=False))


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value with ``encoder`` and return its bytes.

    Examples:
        Pure inputs in a programmable transaction are stored pre-encoded::

            amount_bytes = encoder(1000, Serializer.u64)
    """
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_u64_is_little_endian(self):
        expected = bytes.fromhex("e803000000000000")
        self.assertEqual(encoder(1000, Serializer.u64), expected)

    def test_uleb128_known_values(self):
        self.assertEqual(encoder(0, Serializer.uleb128), b"\x00")
        self.assertEqual(encoder(127, Serializer.uleb128), b"\x7f")
        self.assertEqual(encoder(128, Serializer.uleb128), b"\x80\x01")
        self.assertEqual(encoder(300, Serializer.uleb128), b"\xac\x02")
        self.assertEqual(Deserializer(b"\xac\x02").uleb128(), 300)

    def test_uleb128_too_large(self):
        with self.assertRaises(Exception):
            encoder(MAX_U32 + 1, Serializer.uleb128)
        with self.assertRaises(Exception):
            Deserializer(b"\xff\xff\xff\xff\x7f").uleb128()

    def test_range_checks(self):
        with self.assertRaises(Exception):
            encoder(MAX_U8 + 1, Serializer.u8)
        with self.assertRaises(Exception):
            encoder(-1, Serializer.u64)

    def test_sequence_of_strings(self):
        data = encoder(["a", "bc"], Serializer.sequence_serializer(Serializer.str))
        self.assertEqual(data, b"\x02\x01a\x02bc")

        der = Deserializer(data)
        self.assertEqual(der.sequence(Deserializer.str), ["a", "bc"])
        self.assertEqual(der.remaining(), 0)

    def test_bool_error(self):
        der = Deserializer(b"\x20")
        with self.assertRaises(Exception):
            der.bool()

    def test_short_input(self):
        der = Deserializer(b"\x01\x02")
        with self.assertRaisesRegex(Exception, "Unexpected end of input"):
            der.u64()


if __name__ == "__main__":
    unittest.main()
