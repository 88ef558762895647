# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sui addresses and object ids.

Sui uses 32-byte identifiers both for accounts and for on-chain objects. They
are written as ``0x`` followed by 64 lowercase hex characters. Shorter hex
strings such as ``0x2`` are accepted on input and left-padded with zeroes, the
same normalization the Sui tooling applies.

An account address is derived from a public key by hashing the signature
scheme flag followed by the raw key bytes with BLAKE2b-256.

Examples:
    Parsing and normalizing::

        addr = SuiAddress.from_str("0x2")
        str(addr)  # "0x000...0002"

    Deriving from a key::

        addr = SuiAddress.from_key(private_key.public_key())
"""

from __future__ import annotations

import hashlib
import unittest

from . import ed25519
from .bcs import Deserializer, Serializer


class SignatureScheme:
    """Scheme flags prefixed to public keys and serialized signatures."""

    Ed25519: bytes = b"\x00"
    Secp256k1: bytes = b"\x01"
    Secp256r1: bytes = b"\x02"
    MultiSig: bytes = b"\x03"


class ParseAddressError(Exception):
    """A string or byte sequence is not a valid 32-byte Sui identifier."""


class SuiAddress:
    """A 32-byte Sui account address or object id.

    Instances are immutable and hashable, so they can be used as dictionary
    keys and compared by value.

    Attributes:
        address: The raw 32 bytes.
        LENGTH: Required byte length (32).
    """

    address: bytes
    LENGTH: int = 32

    def __init__(self, address: bytes):
        if len(address) != SuiAddress.LENGTH:
            raise ParseAddressError(
                f"Expected address of length {SuiAddress.LENGTH}, got {len(address)}"
            )
        self.address = bytes(address)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SuiAddress):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        return f"0x{self.address.hex()}"

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def from_str(address: str) -> SuiAddress:
        """Parse a hex address, with or without the ``0x`` prefix.

        Hex strings shorter than 64 characters are left-padded with zeroes.

        Args:
            address: Hex string, e.g. ``"0x2"`` or a full 64 character form.

        Returns:
            The parsed address.

        Raises:
            ParseAddressError: If the string is empty, longer than 64 hex
                characters, or contains non-hex characters.
        """
        if not isinstance(address, str):
            raise ParseAddressError(
                f"Expected a hex string, got {type(address).__name__}"
            )

        addr = address[2:] if address[0:2] in ("0x", "0X") else address
        if len(addr) < 1:
            raise ParseAddressError(
                "Hex string is too short, must be 1 to 64 chars long, excluding the "
                "leading 0x."
            )
        if len(addr) > SuiAddress.LENGTH * 2:
            raise ParseAddressError(
                "Hex string is too long, must be 1 to 64 chars long, excluding the "
                "leading 0x."
            )

        addr = addr.rjust(SuiAddress.LENGTH * 2, "0")
        try:
            return SuiAddress(bytes.fromhex(addr))
        except ValueError as e:
            raise ParseAddressError(f"Invalid hex address {address!r}") from e

    @staticmethod
    def from_key(key: ed25519.PublicKey) -> SuiAddress:
        """Derive the account address owned by ``key``.

        The address is ``blake2b256(flag || public_key_bytes)`` where the flag
        identifies the signature scheme (``0x00`` for Ed25519).
        """
        hasher = hashlib.blake2b(digest_size=32)
        hasher.update(SignatureScheme.Ed25519)
        hasher.update(key.to_crypto_bytes())
        return SuiAddress(hasher.digest())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SuiAddress:
        return SuiAddress(deserializer.fixed_bytes(SuiAddress.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


# Object ids share the address encoding.
ObjectID = SuiAddress


class Test(unittest.TestCase):
    def test_from_str_pads_short_forms(self):
        self.assertEqual(str(SuiAddress.from_str("0x2")), "0x" + "0" * 63 + "2")
        self.assertEqual(SuiAddress.from_str("0xA"), SuiAddress.from_str("a"))
        self.assertEqual(
            SuiAddress.from_str("0x000a"), SuiAddress(b"\x00" * 31 + b"\x0a")
        )

    def test_from_str_long_form(self):
        long_form = "0x" + "ab" * 32
        self.assertEqual(str(SuiAddress.from_str(long_form)), long_form)

    def test_from_str_errors(self):
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str("0x")
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str("0x" + "1" * 65)
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str("0xS")
        with self.assertRaises(ParseAddressError):
            SuiAddress(b"\x01" * 31)

    def test_from_key(self):
        key = ed25519.PrivateKey.random().public_key()
        expected = hashlib.blake2b(
            b"\x00" + key.to_crypto_bytes(), digest_size=32
        ).digest()
        self.assertEqual(SuiAddress.from_key(key).address, expected)

    def test_serialize_is_fixed_width(self):
        addr = SuiAddress.from_str("0x5")
        ser = Serializer()
        addr.serialize(ser)
        self.assertEqual(len(ser.output()), SuiAddress.LENGTH)
        self.assertEqual(SuiAddress.deserialize(Deserializer(ser.output())), addr)

    def test_hashable(self):
        self.assertEqual(
            len({SuiAddress.from_str("0x1"), SuiAddress.from_str("0x01")}), 1
        )


if __name__ == "__main__":
    unittest.main()
