# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sui account management: the key provider and signer of a sponsored send.

An :class:`Account` owns an Ed25519 private key and the address derived from
it. It is read-only after construction, so a single account may be shared by
any number of concurrent send attempts.

Secret keys are exchanged in the Sui keystore format: base64 of a one byte
scheme flag followed by the 32-byte seed. That is the format of
``sui keytool export`` and of the ``secretKey`` field in a sponsor config.

Examples:
    Load the sender from a config secret and sign a finalized draft::

        account = Account.load_key(config.secret_key)
        builder.set_sender(account.address())
        ...
        merge_gas_data(builder, gas.gas_data)
        signature = account.sign_transaction(builder)

    Persist a freshly generated account::

        account = Account.generate()
        account.store("./sender.json")
        assert Account.load("./sender.json") == account
"""

from __future__ import annotations

import base64
import binascii
import json
import tempfile
import unittest
import unittest.mock
from typing import Union

from . import ed25519
from .address import SignatureScheme, SuiAddress
from .authenticator import Intent, SuiSignature
from .bcs import Deserializer
from .exceptions import PrematureSign
from .transactions import (
    GasData,
    ObjectReference,
    TransactionBuilder,
    TransactionData,
    merge_gas_data,
)


class Account:
    """An Ed25519 keypair together with its Sui address."""

    account_address: SuiAddress
    private_key: ed25519.PrivateKey

    def __init__(self, account_address: SuiAddress, private_key: ed25519.PrivateKey):
        self.account_address = account_address
        self.private_key = private_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.account_address == other.account_address
            and self.private_key == other.private_key
        )

    def __repr__(self) -> str:
        return f"Account({self.account_address})"

    @staticmethod
    def generate() -> Account:
        private_key = ed25519.PrivateKey.random()
        account_address = SuiAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    @staticmethod
    def load_key(key: str) -> Account:
        """Import an account from a base64 keystore secret.

        Args:
            key: ``base64(flag || seed)``. The flag must be Ed25519 (``0x00``).

        Raises:
            ValueError: If the secret is not base64, does not carry the Ed25519
                flag, or the seed is not 32 bytes.
        """
        try:
            raw = base64.b64decode(key, validate=True)
        except binascii.Error as e:
            raise ValueError("Secret key is not valid base64") from e

        if raw[0:1] != SignatureScheme.Ed25519:
            raise ValueError("Secret key is not an Ed25519 keystore entry")
        private_key = ed25519.PrivateKey.from_bytes(raw[1:])
        account_address = SuiAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    def export_key(self) -> str:
        """Inverse of :meth:`load_key`."""
        seed = self.private_key.key.encode()
        return base64.b64encode(SignatureScheme.Ed25519 + seed).decode()

    @staticmethod
    def load(path: str) -> Account:
        with open(path) as file:
            data = json.load(file)
        account = Account.load_key(data["secret_key"])
        if account.address() != SuiAddress.from_str(data["address"]):
            raise ValueError(f"Address in {path} does not match its secret key")
        return account

    def store(self, path: str):
        data = {
            "address": str(self.account_address),
            "secret_key": self.export_key(),
        }
        with open(path, "w") as file:
            json.dump(data, file)

    def address(self) -> SuiAddress:
        return self.account_address

    def public_key(self) -> ed25519.PublicKey:
        return self.private_key.public_key()

    def sign(self, data: bytes) -> ed25519.Signature:
        """Sign raw bytes. Transactions go through :meth:`sign_transaction`."""
        return self.private_key.sign(data)

    def sign_transaction(
        self, transaction: Union[TransactionBuilder, bytes]
    ) -> SuiSignature:
        """Sign the finalized bytes of a transaction.

        The signature binds the exact gas terms chosen by the sponsor, so any
        later change to the draft invalidates it.

        Args:
            transaction: A draft whose gas data has been merged, or the bytes
                returned by its ``build_finalized()``.

        Raises:
            PrematureSign: If ``transaction`` is a draft with unset gas slots,
                or bytes whose gas data is still the gasless placeholder (no
                payment, zero price or zero budget). The private key is not
                used in that case.
            ValueError: If ``transaction`` bytes are not a transaction.
        """
        if isinstance(transaction, TransactionBuilder):
            missing = transaction.missing_gas_fields()
            if missing:
                raise PrematureSign(missing)
            transaction = transaction.build_finalized()
        else:
            try:
                decoded = TransactionData.deserialize(Deserializer(transaction))
            except Exception as e:
                raise ValueError("Bytes are not a TransactionData encoding") from e
            missing = decoded.missing_gas_fields()
            if missing:
                raise PrematureSign(missing)

        digest = Intent.sui_transaction().digest(transaction)
        return SuiSignature(self.private_key.sign(digest), self.public_key())

    def verify_transaction(
        self, transaction_bytes: bytes, signature: SuiSignature
    ) -> bool:
        return (
            signature.public_key == self.public_key()
            and signature.verify(transaction_bytes)
        )


class Test(unittest.TestCase):
    def finalized_builder(self, account: Account) -> TransactionBuilder:
        builder = TransactionBuilder()
        coin = builder.split_coins(builder.gas, [1000])
        builder.transfer_objects([coin.nested(0)], account.address())
        builder.set_sender(account.address())
        gas_data = GasData(
            [ObjectReference(SuiAddress.from_str("0xA"), 3, "d1")],
            SuiAddress.from_str("0x7"),
            1000,
            5_000_000,
        )
        return merge_gas_data(builder, gas_data)

    def test_load_and_store(self):
        (file, path) = tempfile.mkstemp()
        start = Account.generate()
        start.store(path)
        load = Account.load(path)

        self.assertEqual(start, load)

    def test_load_key(self):
        seed = bytes(range(32))
        secret = base64.b64encode(b"\x00" + seed).decode()
        account = Account.load_key(secret)

        self.assertEqual(account.private_key, ed25519.PrivateKey.from_bytes(seed))
        self.assertEqual(
            account.address(), SuiAddress.from_key(account.public_key())
        )
        self.assertEqual(account.export_key(), secret)

    def test_load_key_errors(self):
        with self.assertRaises(ValueError):
            Account.load_key("not base64!")
        with self.assertRaises(ValueError):
            Account.load_key(base64.b64encode(b"\x01" + bytes(32)).decode())
        with self.assertRaises(ValueError):
            Account.load_key(base64.b64encode(b"\x00" + bytes(31)).decode())

    def test_sign_transaction(self):
        account = Account.generate()
        builder = self.finalized_builder(account)

        signature = account.sign_transaction(builder)
        finalized = builder.build_finalized()
        self.assertTrue(account.verify_transaction(finalized, signature))
        self.assertEqual(account.sign_transaction(finalized), signature)
        unsigned = builder.build_unsigned()
        self.assertFalse(account.verify_transaction(unsigned, signature))
        self.assertFalse(
            Account.generate().verify_transaction(finalized, signature)
        )

    def test_sign_before_gas_merge(self):
        account = Account.generate()
        builder = TransactionBuilder()
        builder.set_sender(account.address())
        builder.set_gas_price(1000)

        with unittest.mock.patch.object(ed25519.PrivateKey, "sign") as sign:
            with self.assertRaises(PrematureSign) as cm:
                account.sign_transaction(builder)
            sign.assert_not_called()
        self.assertEqual(
            cm.exception.missing, ["gas_payment", "gas_owner", "gas_budget"]
        )

    def test_sponsored_self_transfer(self):
        # Owners and ids are hex and come back zero padded.
        sponsor = "0x" + "5" * 64
        account = Account.generate()
        builder = TransactionBuilder()
        coin = builder.split_coins(builder.gas, [1000])
        builder.transfer_objects([coin.nested(0)], account.address())
        builder.set_sender(account.address())

        gas_data = GasData.from_json(
            {
                "payment": [["0xA", 3, "d1"]],
                "owner": sponsor,
                "price": 1000,
                "budget": 5000000,
            }
        )
        merge_gas_data(builder, gas_data)
        finalized = builder.build_finalized()
        signature = account.sign_transaction(finalized)

        gas = TransactionData.deserialize(Deserializer(finalized)).gas_data
        self.assertEqual(
            gas.payment, [ObjectReference(SuiAddress.from_str("0xA"), 3, "d1")]
        )
        self.assertEqual(gas.owner, SuiAddress.from_str(sponsor))
        self.assertEqual(gas.price, 1000)
        self.assertEqual(gas.budget, 5000000)
        self.assertEqual(
            gas.to_json()["payment"], [["0x" + "0" * 63 + "a", 3, "d1"]]
        )
        self.assertTrue(account.verify_transaction(finalized, signature))

    def test_sign_gasless_bytes(self):
        account = Account.generate()
        builder = self.finalized_builder(account)

        with unittest.mock.patch.object(ed25519.PrivateKey, "sign") as sign:
            with self.assertRaises(PrematureSign) as cm:
                account.sign_transaction(builder.build_unsigned())
            sign.assert_not_called()
        self.assertEqual(
            cm.exception.missing, ["gas_payment", "gas_price", "gas_budget"]
        )

    def test_sign_rejects_garbage_bytes(self):
        with self.assertRaises(ValueError):
            Account.generate().sign_transaction(b"\x07\x01")


if __name__ == "__main__":
    unittest.main()
