# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Programmable transactions and the sponsored transaction draft.

This module translates a Sui programmable transaction to and from its
canonical BCS encoding (``TransactionData::V1``) and provides
:class:`TransactionBuilder`, the mutable draft a sponsored send is assembled
in.

A sponsored send serializes the same draft twice:

1. ``build_unsigned()`` renders the draft with placeholder gas fields so the
   gas station can inspect it and pick gas terms.
2. After :func:`merge_gas_data` applies the sponsor's :class:`GasData`,
   ``build_finalized()`` renders it with the real gas fields. Those bytes are
   what the sender signs.

Everything except the gas fields is byte-identical between the two
renderings.

Examples:
    Split 1000 MIST off the gas coin and send it back to the sender::

        builder = TransactionBuilder()
        coin = builder.split_coins(builder.gas, [1000])
        builder.transfer_objects([coin.nested(0)], account.address())
        builder.set_sender(account.address())

        unsigned = builder.build_unsigned()
        gas = await gas_station.request_gas(unsigned)
        merge_gas_data(builder, gas.gas_data)
        signature = account.sign_transaction(builder)
"""

from __future__ import annotations

import base64
import unittest
from typing import Any, Callable, Dict, List, Optional, Union

import base58

from .address import ObjectID, ParseAddressError, SuiAddress
from .authenticator import SuiSignature
from .bcs import MAX_U64, Deserializer, Serializer, encoder
from .exceptions import (
    EmptyTransferSet,
    IncompleteGasData,
    IncompleteTransaction,
    InvalidAmount,
    MalformedGasResponse,
)

GAS_DATA_FIELDS = ("payment", "owner", "price", "budget")


class ObjectReference:
    """Pins an exact version of an on-chain object: ``(object_id, version, digest)``.

    The digest is kept as the base58 string the sponsor sent and only decoded
    when the reference is encoded, so the triple round-trips verbatim.
    """

    object_id: ObjectID
    version: int
    digest: str

    def __init__(self, object_id: ObjectID, version: int, digest: str):
        self.object_id = object_id
        self.version = version
        self.digest = digest

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectReference):
            return NotImplemented
        return (
            self.object_id == other.object_id
            and self.version == other.version
            and self.digest == other.digest
        )

    def __hash__(self) -> int:
        return hash((self.object_id, self.version, self.digest))

    def __repr__(self) -> str:
        return f"ObjectReference({self.object_id}, {self.version}, {self.digest})"

    @staticmethod
    def from_json(value: Any) -> ObjectReference:
        """Materialize a ``[object_id, version, digest]`` triple.

        The triple is positional and must have exactly three elements.

        Raises:
            MalformedGasResponse: On any other shape or an unparsable element.
        """
        if not isinstance(value, (list, tuple)) or len(value) != 3:
            raise MalformedGasResponse(
                f"Object reference must be [id, version, digest], got {value!r}"
            )

        object_id, version, digest = value
        try:
            parsed_id = ObjectID.from_str(object_id)
        except ParseAddressError as e:
            raise MalformedGasResponse(f"Invalid object id {object_id!r}") from e
        if (
            isinstance(version, bool)
            or not isinstance(version, int)
            or not 0 <= version <= MAX_U64
        ):
            raise MalformedGasResponse(f"Invalid object version {version!r}")
        if not isinstance(digest, str) or not digest:
            raise MalformedGasResponse(f"Invalid object digest {digest!r}")
        try:
            base58.b58decode(digest)
        except ValueError as e:
            raise MalformedGasResponse(
                f"Object digest is not base58: {digest!r}"
            ) from e

        return ObjectReference(parsed_id, version, digest)

    def to_json(self) -> List[Any]:
        return [str(self.object_id), self.version, self.digest]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ObjectReference:
        return ObjectReference(
            ObjectID.deserialize(deserializer),
            deserializer.u64(),
            base58.b58encode(deserializer.to_bytes()).decode(),
        )

    def serialize(self, serializer: Serializer):
        self.object_id.serialize(serializer)
        serializer.u64(self.version)
        serializer.to_bytes(base58.b58decode(self.digest))


class GasData:
    """Gas terms chosen by the sponsor.

    Attributes:
        payment: Gas coins that pay for execution.
        owner: Address that owns the gas coins (the sponsor).
        price: Gas unit price in MIST.
        budget: Maximum gas the transaction may consume.
    """

    payment: List[ObjectReference]
    owner: SuiAddress
    price: int
    budget: int

    def __init__(
        self,
        payment: List[ObjectReference],
        owner: SuiAddress,
        price: int,
        budget: int,
    ):
        self.payment = payment
        self.owner = owner
        self.price = price
        self.budget = budget

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GasData):
            return NotImplemented
        return (
            self.payment == other.payment
            and self.owner == other.owner
            and self.price == other.price
            and self.budget == other.budget
        )

    def __str__(self):
        return f"""GasData:
    payment: {self.payment}
    owner: {self.owner}
    price: {self.price}
    budget: {self.budget}
"""

    @staticmethod
    def from_json(value: Any) -> GasData:
        """Parse the ``gas_data`` object of a gas station response.

        Every field is validated before a :class:`GasData` is built, so a bad
        response never yields a partially populated value.

        Raises:
            IncompleteGasData: If payment, owner, price or budget is absent
                (missing, null, or an empty payment list).
            MalformedGasResponse: If a field is present but has the wrong shape.
        """
        if not isinstance(value, dict):
            raise MalformedGasResponse(f"gas_data must be an object, got {value!r}")

        missing = [field for field in GAS_DATA_FIELDS if value.get(field) is None]
        if value.get("payment") == []:
            missing.insert(0, "payment")
        if missing:
            raise IncompleteGasData(missing)

        if not isinstance(value["payment"], list):
            raise MalformedGasResponse(
                f"gas_data.payment must be a list, got {value['payment']!r}"
            )
        payment = [ObjectReference.from_json(item) for item in value["payment"]]

        try:
            owner = SuiAddress.from_str(value["owner"])
        except ParseAddressError as e:
            raise MalformedGasResponse(f"Invalid gas owner {value['owner']!r}") from e

        return GasData(
            payment,
            owner,
            _parse_u64("price", value["price"]),
            _parse_u64("budget", value["budget"]),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "payment": [ref.to_json() for ref in self.payment],
            "owner": str(self.owner),
            "price": self.price,
            "budget": self.budget,
        }

    @staticmethod
    def deserialize(deserializer: Deserializer) -> GasData:
        return GasData(
            deserializer.sequence(ObjectReference.deserialize),
            SuiAddress.deserialize(deserializer),
            deserializer.u64(),
            deserializer.u64(),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.payment, Serializer.struct)
        self.owner.serialize(serializer)
        serializer.u64(self.price)
        serializer.u64(self.budget)


def _parse_u64(name: str, value: Any) -> int:
    # Sui JSON-RPC renders u64 as strings, the gas station as numbers.
    if isinstance(value, bool):
        raise MalformedGasResponse(
            f"gas_data.{name} must be a u64 integer, got {value!r}"
        )
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if not isinstance(value, int) or not 0 <= value <= MAX_U64:
        raise MalformedGasResponse(
            f"gas_data.{name} must be a u64 integer, got {value!r}"
        )
    return value


class Argument:
    """Reference to a value inside a programmable transaction.

    Arguments are positional handles into the transaction's input and command
    lists, never pointers to live objects: ``Argument.result(2)`` means "the
    value produced by the third command".
    """

    GAS_COIN: int = 0
    INPUT: int = 1
    RESULT: int = 2
    NESTED_RESULT: int = 3

    variant: int
    index: Optional[int]
    sub_index: Optional[int]

    def __init__(
        self, variant: int, index: Optional[int] = None, sub_index: Optional[int] = None
    ):
        self.variant = variant
        self.index = index
        self.sub_index = sub_index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Argument):
            return NotImplemented
        return (
            self.variant == other.variant
            and self.index == other.index
            and self.sub_index == other.sub_index
        )

    def __hash__(self) -> int:
        return hash((self.variant, self.index, self.sub_index))

    def __repr__(self) -> str:
        if self.variant == Argument.GAS_COIN:
            return "GasCoin"
        if self.variant == Argument.INPUT:
            return f"Input({self.index})"
        if self.variant == Argument.RESULT:
            return f"Result({self.index})"
        return f"NestedResult({self.index}, {self.sub_index})"

    @staticmethod
    def gas_coin() -> Argument:
        return Argument(Argument.GAS_COIN)

    @staticmethod
    def input(index: int) -> Argument:
        return Argument(Argument.INPUT, index)

    @staticmethod
    def result(index: int) -> Argument:
        return Argument(Argument.RESULT, index)

    @staticmethod
    def nested_result(index: int, sub_index: int) -> Argument:
        return Argument(Argument.NESTED_RESULT, index, sub_index)

    def nested(self, sub_index: int) -> Argument:
        """Address one value of a command that returns several (e.g. SplitCoins)."""
        if self.variant != Argument.RESULT:
            raise ValueError(f"Only command results can be nested, not {self!r}")
        return Argument.nested_result(self.index, sub_index)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Argument:
        variant = deserializer.uleb128()
        if variant == Argument.GAS_COIN:
            return Argument.gas_coin()
        elif variant == Argument.INPUT:
            return Argument.input(deserializer.u16())
        elif variant == Argument.RESULT:
            return Argument.result(deserializer.u16())
        elif variant == Argument.NESTED_RESULT:
            return Argument.nested_result(deserializer.u16(), deserializer.u16())
        raise Exception(f"Invalid Argument variant {variant}")

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant in (Argument.INPUT, Argument.RESULT):
            serializer.u16(self.index)
        elif self.variant == Argument.NESTED_RESULT:
            serializer.u16(self.index)
            serializer.u16(self.sub_index)


class CallArg:
    """A transaction input: pre-encoded pure bytes or an owned object reference."""

    PURE: int = 0
    OBJECT: int = 1

    variant: int
    value: Any

    def __init__(self, variant: int, value: Any):
        self.variant = variant
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallArg):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __repr__(self) -> str:
        if self.variant == CallArg.PURE:
            return f"Pure(0x{self.value.hex()})"
        return f"Object({self.value!r})"

    @staticmethod
    def pure(value: bytes) -> CallArg:
        return CallArg(CallArg.PURE, value)

    @staticmethod
    def object(reference: ObjectReference) -> CallArg:
        return CallArg(CallArg.OBJECT, reference)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> CallArg:
        variant = deserializer.uleb128()
        if variant == CallArg.PURE:
            return CallArg.pure(deserializer.to_bytes())
        elif variant == CallArg.OBJECT:
            # Only ObjectArg::ImmOrOwnedObject is produced by this client.
            object_variant = deserializer.uleb128()
            if object_variant != 0:
                raise Exception(f"Unsupported ObjectArg variant {object_variant}")
            return CallArg.object(ObjectReference.deserialize(deserializer))
        raise Exception(f"Invalid CallArg variant {variant}")

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.variant == CallArg.PURE:
            serializer.to_bytes(self.value)
        else:
            serializer.uleb128(0)
            self.value.serialize(serializer)


class TransferObjects:
    """Send ``objects`` to the address held by the ``address`` argument."""

    objects: List[Argument]
    address: Argument

    def __init__(self, objects: List[Argument], address: Argument):
        self.objects = objects
        self.address = address

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransferObjects):
            return NotImplemented
        return self.objects == other.objects and self.address == other.address

    def __repr__(self) -> str:
        return f"TransferObjects({self.objects}, {self.address!r})"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransferObjects:
        return TransferObjects(
            deserializer.sequence(Argument.deserialize),
            Argument.deserialize(deserializer),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.objects, Serializer.struct)
        self.address.serialize(serializer)


class SplitCoins:
    """Split one new coin per amount off ``coin``."""

    coin: Argument
    amounts: List[Argument]

    def __init__(self, coin: Argument, amounts: List[Argument]):
        self.coin = coin
        self.amounts = amounts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SplitCoins):
            return NotImplemented
        return self.coin == other.coin and self.amounts == other.amounts

    def __repr__(self) -> str:
        return f"SplitCoins({self.coin!r}, {self.amounts})"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SplitCoins:
        return SplitCoins(
            Argument.deserialize(deserializer),
            deserializer.sequence(Argument.deserialize),
        )

    def serialize(self, serializer: Serializer):
        self.coin.serialize(serializer)
        serializer.sequence(self.amounts, Serializer.struct)


class Command:
    """Tagged union over the commands this client emits."""

    TRANSFER_OBJECTS: int = 1
    SPLIT_COINS: int = 2

    variant: int
    value: Any

    def __init__(self, value: Any):
        if isinstance(value, TransferObjects):
            self.variant = Command.TRANSFER_OBJECTS
        elif isinstance(value, SplitCoins):
            self.variant = Command.SPLIT_COINS
        else:
            raise Exception(f"Invalid command type {type(value).__name__}")
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __repr__(self) -> str:
        return repr(self.value)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Command:
        variant = deserializer.uleb128()
        if variant == Command.TRANSFER_OBJECTS:
            return Command(TransferObjects.deserialize(deserializer))
        elif variant == Command.SPLIT_COINS:
            return Command(SplitCoins.deserialize(deserializer))
        raise Exception(f"Unsupported Command variant {variant}")

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        self.value.serialize(serializer)


class ProgrammableTransaction:
    inputs: List[CallArg]
    commands: List[Command]

    def __init__(self, inputs: List[CallArg], commands: List[Command]):
        self.inputs = inputs
        self.commands = commands

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProgrammableTransaction):
            return NotImplemented
        return self.inputs == other.inputs and self.commands == other.commands

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ProgrammableTransaction:
        return ProgrammableTransaction(
            deserializer.sequence(CallArg.deserialize),
            deserializer.sequence(Command.deserialize),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.inputs, Serializer.struct)
        serializer.sequence(self.commands, Serializer.struct)


class TransactionData:
    """``TransactionData::V1`` with a programmable transaction kind."""

    # TransactionData::V1
    VERSION: int = 0
    # TransactionKind::ProgrammableTransaction
    PROGRAMMABLE_TRANSACTION: int = 0

    kind: ProgrammableTransaction
    sender: SuiAddress
    gas_data: GasData
    # Epoch after which the transaction is rejected, None for no expiration.
    expiration: Optional[int]

    def __init__(
        self,
        kind: ProgrammableTransaction,
        sender: SuiAddress,
        gas_data: GasData,
        expiration: Optional[int] = None,
    ):
        self.kind = kind
        self.sender = sender
        self.gas_data = gas_data
        self.expiration = expiration

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionData):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.sender == other.sender
            and self.gas_data == other.gas_data
            and self.expiration == other.expiration
        )

    def __str__(self):
        return f"""TransactionData:
    sender: {self.sender}
    inputs: {self.kind.inputs}
    commands: {self.kind.commands}
    gas_data: {self.gas_data.to_json()}
    expiration: {self.expiration}
"""

    def missing_gas_fields(self) -> List[str]:
        """Gas slots still holding the gasless placeholders.

        The owner cannot be told apart from a real one, so only the payment,
        price and budget are checked.
        """
        missing = []
        if not self.gas_data.payment:
            missing.append("gas_payment")
        if self.gas_data.price == 0:
            missing.append("gas_price")
        if self.gas_data.budget == 0:
            missing.append("gas_budget")
        return missing

    @staticmethod
    def from_b64(value: str) -> TransactionData:
        return TransactionData.deserialize(Deserializer(base64.b64decode(value)))

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionData:
        version = deserializer.uleb128()
        if version != TransactionData.VERSION:
            raise Exception(f"Unsupported TransactionData version {version}")
        kind = deserializer.uleb128()
        if kind != TransactionData.PROGRAMMABLE_TRANSACTION:
            raise Exception(f"Unsupported TransactionKind {kind}")

        programmable = ProgrammableTransaction.deserialize(deserializer)
        sender = SuiAddress.deserialize(deserializer)
        gas_data = GasData.deserialize(deserializer)
        expiration = None
        if deserializer.uleb128() == 1:
            expiration = deserializer.u64()
        return TransactionData(programmable, sender, gas_data, expiration)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(TransactionData.VERSION)
        serializer.uleb128(TransactionData.PROGRAMMABLE_TRANSACTION)
        self.kind.serialize(serializer)
        self.sender.serialize(serializer)
        self.gas_data.serialize(serializer)
        if self.expiration is None:
            serializer.uleb128(0)
        else:
            serializer.uleb128(1)
            serializer.u64(self.expiration)


class TransactionBuilder:
    """Mutable draft of one sponsored transaction.

    Inputs and commands are kept in two append-only arenas; the handles the
    builder returns are indexes into them. Gas slots are independent of the
    command list and can be set, in any order, until the draft is signed.

    The draft has two named renderings: :meth:`build_unsigned` (gas slots
    replaced by placeholders, for the gas station) and :meth:`build_finalized`
    (all gas slots required, for signing).
    """

    _inputs: List[CallArg]
    _commands: List[Command]
    sender: Optional[SuiAddress]
    gas_payment: Optional[List[ObjectReference]]
    gas_owner: Optional[SuiAddress]
    gas_price: Optional[int]
    gas_budget: Optional[int]
    expiration: Optional[int]

    def __init__(self):
        self._inputs = []
        self._commands = []
        self.sender = None
        self.gas_payment = None
        self.gas_owner = None
        self.gas_price = None
        self.gas_budget = None
        self.expiration = None

    @property
    def gas(self) -> Argument:
        """The coin that pays for gas, usable as a split source."""
        return Argument.gas_coin()

    @property
    def inputs(self) -> List[CallArg]:
        return list(self._inputs)

    @property
    def commands(self) -> List[Command]:
        return list(self._commands)

    def pure(
        self,
        value: Any,
        value_encoder: Callable[[Serializer, Any], None] = Serializer.u64,
    ) -> Argument:
        """Append a pure input encoded with ``value_encoder`` and return its handle."""
        self._inputs.append(CallArg.pure(encoder(value, value_encoder)))
        return Argument.input(len(self._inputs) - 1)

    def object(self, reference: ObjectReference) -> Argument:
        """Append an owned object input and return its handle."""
        self._inputs.append(CallArg.object(reference))
        return Argument.input(len(self._inputs) - 1)

    def split_coins(
        self,
        coin: Union[Argument, ObjectReference],
        amounts: List[Union[int, Argument]],
    ) -> Argument:
        """Append a SplitCoins command.

        Args:
            coin: Coin to split, e.g. :attr:`gas` or an owned coin reference.
            amounts: Positive integer amounts (encoded as pure u64 inputs) or
                handles to amounts already in the transaction.

        Returns:
            Handle to the command result; use ``result.nested(i)`` for the
            i-th new coin.

        Raises:
            InvalidAmount: If ``amounts`` is empty or any integer amount is not
                a positive u64. Nothing is appended in that case.
        """
        if not amounts:
            raise InvalidAmount(amounts)
        for amount in amounts:
            if isinstance(amount, Argument):
                continue
            if (
                isinstance(amount, bool)
                or not isinstance(amount, int)
                or not 0 < amount <= MAX_U64
            ):
                raise InvalidAmount(amount)

        source = self._as_argument(coin)
        amount_args = [
            amount if isinstance(amount, Argument) else self.pure(amount)
            for amount in amounts
        ]
        self._commands.append(Command(SplitCoins(source, amount_args)))
        return Argument.result(len(self._commands) - 1)

    def transfer_objects(
        self,
        objects: List[Union[Argument, ObjectReference]],
        recipient: Union[SuiAddress, str, Argument],
    ) -> Argument:
        """Append a TransferObjects command sending ``objects`` to ``recipient``.

        Raises:
            EmptyTransferSet: If ``objects`` is empty.
        """
        if not objects:
            raise EmptyTransferSet()

        if isinstance(recipient, str):
            recipient = SuiAddress.from_str(recipient)
        object_args = [self._as_argument(obj) for obj in objects]
        if isinstance(recipient, SuiAddress):
            recipient = self.pure(recipient, Serializer.struct)

        self._commands.append(Command(TransferObjects(object_args, recipient)))
        return Argument.result(len(self._commands) - 1)

    def set_sender(self, sender: Union[SuiAddress, str]):
        self.sender = _address(sender)

    def set_gas_payment(self, payment: List[ObjectReference]):
        self.gas_payment = list(payment)

    def set_gas_owner(self, owner: Union[SuiAddress, str]):
        self.gas_owner = _address(owner)

    def set_gas_price(self, price: int):
        self.gas_price = price

    def set_gas_budget(self, budget: int):
        self.gas_budget = budget

    def set_expiration(self, epoch: Optional[int]):
        self.expiration = epoch

    def missing_gas_fields(self) -> List[str]:
        missing = []
        if not self.gas_payment:
            missing.append("gas_payment")
        if self.gas_owner is None:
            missing.append("gas_owner")
        if self.gas_price is None:
            missing.append("gas_price")
        if self.gas_budget is None:
            missing.append("gas_budget")
        return missing

    @property
    def is_finalized(self) -> bool:
        return not self.missing_gas_fields()

    def transaction_data(self, include_gas_fields: bool) -> TransactionData:
        """Snapshot the draft as :class:`TransactionData`.

        With ``include_gas_fields=False`` the gas slots are always rendered as
        placeholders (no payment, the sender as owner, zero price and budget),
        whatever the setters hold.

        Raises:
            IncompleteTransaction: If the sender is unset, or if
                ``include_gas_fields`` is set and any gas slot is unset.
        """
        if self.sender is None:
            raise IncompleteTransaction(["sender"])

        if include_gas_fields:
            missing = self.missing_gas_fields()
            if missing:
                raise IncompleteTransaction(missing)
            gas_data = GasData(
                list(self.gas_payment), self.gas_owner, self.gas_price, self.gas_budget
            )
        else:
            gas_data = GasData([], self.sender, 0, 0)

        return TransactionData(
            ProgrammableTransaction(list(self._inputs), list(self._commands)),
            self.sender,
            gas_data,
            self.expiration,
        )

    def serialize(self, include_gas_fields: bool = False) -> bytes:
        """Canonical BCS bytes of the draft; see :meth:`transaction_data`."""
        ser = Serializer()
        self.transaction_data(include_gas_fields).serialize(ser)
        return ser.output()

    def build_unsigned(self) -> bytes:
        """Bytes sent to the gas station: gas slots left for the sponsor to fill."""
        return self.serialize(include_gas_fields=False)

    def build_finalized(self) -> bytes:
        """Bytes the sender signs: every gas slot set."""
        return self.serialize(include_gas_fields=True)

    def _as_argument(self, value: Union[Argument, ObjectReference]) -> Argument:
        if isinstance(value, Argument):
            return value
        if isinstance(value, ObjectReference):
            return self.object(value)
        raise TypeError(f"Expected an Argument or ObjectReference, got {value!r}")


def _address(value: Union[SuiAddress, str]) -> SuiAddress:
    if isinstance(value, str):
        return SuiAddress.from_str(value)
    return value


def merge_gas_data(
    builder: TransactionBuilder, gas_data: GasData
) -> TransactionBuilder:
    """Apply the sponsor's gas terms to ``builder`` and return the same builder.

    Only the four gas slots are touched. Applying the same :class:`GasData`
    again leaves the draft unchanged.

    Raises:
        IncompleteGasData: If any of payment, owner, price or budget is absent.
    """
    missing = []
    if not gas_data.payment:
        missing.append("payment")
    if gas_data.owner is None:
        missing.append("owner")
    if gas_data.price is None:
        missing.append("price")
    if gas_data.budget is None:
        missing.append("budget")
    if missing:
        raise IncompleteGasData(missing)

    builder.set_gas_payment(gas_data.payment)
    builder.set_gas_owner(gas_data.owner)
    builder.set_gas_price(gas_data.price)
    builder.set_gas_budget(gas_data.budget)
    return builder


class SignedTransaction:
    """Finalized transaction bytes plus the sender's signature.

    ``sponsor_signature`` carries the gas station's own signature when it sent
    one with the gas data; it is forwarded untouched.
    """

    transaction_bytes: bytes
    signature: SuiSignature
    sponsor_signature: Optional[Any]

    def __init__(
        self,
        transaction_bytes: bytes,
        signature: SuiSignature,
        sponsor_signature: Optional[Any] = None,
    ):
        self.transaction_bytes = transaction_bytes
        self.signature = signature
        self.sponsor_signature = sponsor_signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignedTransaction):
            return NotImplemented
        return (
            self.transaction_bytes == other.transaction_bytes
            and self.signature == other.signature
            and self.sponsor_signature == other.sponsor_signature
        )

    def __str__(self) -> str:
        return f"SignedTransaction: {self.transaction_bytes.hex()}, {self.signature}"

    def transaction_b64(self) -> str:
        return base64.b64encode(self.transaction_bytes).decode()

    def verify(self) -> bool:
        return self.signature.verify(self.transaction_bytes)

    def to_json(self) -> Dict[str, Any]:
        """Body of the gas station's submit endpoint."""
        body = {
            "transactionBlockBytes": self.transaction_b64(),
            "signature": self.signature.b64(),
        }
        if self.sponsor_signature is not None:
            body["sponsorSignature"] = self.sponsor_signature
        return body


class Test(unittest.TestCase):
    SENDER = SuiAddress.from_str("0x5")
    SPONSOR = SuiAddress.from_str("0x7")
    PAYMENT = [ObjectReference(ObjectID.from_str("0xA"), 3, "d1")]

    def split_and_transfer(self) -> TransactionBuilder:
        builder = TransactionBuilder()
        coin = builder.split_coins(builder.gas, [1000])
        builder.transfer_objects([coin.nested(0)], self.SENDER)
        builder.set_sender(self.SENDER)
        return builder

    def test_handles_are_positional(self):
        builder = TransactionBuilder()
        coin = builder.split_coins(builder.gas, [1000, 2000])
        self.assertEqual(coin, Argument.result(0))
        transfer = builder.transfer_objects([coin.nested(0), coin.nested(1)], "0x5")
        self.assertEqual(transfer, Argument.result(1))

        self.assertEqual(len(builder.inputs), 3)
        self.assertEqual(builder.inputs[0], CallArg.pure(encoder(1000, Serializer.u64)))
        self.assertEqual(builder.inputs[2], CallArg.pure(self.SENDER.address))
        self.assertEqual(
            builder.commands[0].value,
            SplitCoins(Argument.gas_coin(), [Argument.input(0), Argument.input(1)]),
        )
        self.assertEqual(
            builder.commands[1].value,
            TransferObjects(
                [Argument.nested_result(0, 0), Argument.nested_result(0, 1)],
                Argument.input(2),
            ),
        )

    def test_invalid_amounts(self):
        builder = TransactionBuilder()
        invalid = ([0], [-5], [100, 0], [], [True], ["10"], [1, MAX_U64 + 1])
        for amounts in invalid:
            with self.assertRaises(InvalidAmount):
                builder.split_coins(builder.gas, amounts)
        self.assertEqual(builder.inputs, [])
        self.assertEqual(builder.commands, [])

        builder.split_coins(builder.gas, [MAX_U64])
        self.assertEqual(builder.inputs, [CallArg.pure(b"\xff" * 8)])

    def test_empty_transfer(self):
        builder = TransactionBuilder()
        with self.assertRaises(EmptyTransferSet):
            builder.transfer_objects([], self.SENDER)
        self.assertEqual(builder.commands, [])

    def test_sender_required(self):
        builder = TransactionBuilder()
        builder.split_coins(builder.gas, [1])
        with self.assertRaises(IncompleteTransaction) as cm:
            builder.build_unsigned()
        self.assertEqual(cm.exception.missing, ["sender"])

    def test_unsigned_ignores_gas_slots(self):
        untouched = self.split_and_transfer()
        touched = self.split_and_transfer()
        touched.set_gas_price(1000)
        touched.set_gas_owner(self.SPONSOR)
        touched.set_gas_payment(self.PAYMENT)
        touched.set_gas_budget(5_000_000)

        self.assertEqual(untouched.build_unsigned(), touched.build_unsigned())
        gas_data = TransactionData.deserialize(
            Deserializer(touched.build_unsigned())
        ).gas_data
        self.assertEqual(gas_data, GasData([], self.SENDER, 0, 0))

    def test_serialize_is_deterministic(self):
        self.assertEqual(
            self.split_and_transfer().build_unsigned(),
            self.split_and_transfer().build_unsigned(),
        )

    def test_finalized_requires_all_gas_slots(self):
        builder = self.split_and_transfer()
        builder.set_gas_price(1000)
        with self.assertRaises(IncompleteTransaction) as cm:
            builder.build_finalized()
        self.assertEqual(
            cm.exception.missing, ["gas_payment", "gas_owner", "gas_budget"]
        )

    def test_merge_and_finalize(self):
        builder = self.split_and_transfer()
        gas_data = GasData(self.PAYMENT, self.SPONSOR, 1000, 5_000_000)
        self.assertIs(merge_gas_data(builder, gas_data), builder)
        self.assertTrue(builder.is_finalized)

        once = builder.build_finalized()
        merge_gas_data(builder, gas_data)
        self.assertEqual(builder.build_finalized(), once)

        decoded = TransactionData.deserialize(Deserializer(once))
        self.assertEqual(decoded.gas_data, gas_data)
        self.assertEqual(decoded.sender, self.SENDER)

        unsigned = TransactionData.deserialize(Deserializer(builder.build_unsigned()))
        self.assertEqual(unsigned.kind, decoded.kind)

    def test_merge_rejects_incomplete(self):
        builder = self.split_and_transfer()
        with self.assertRaises(IncompleteGasData) as cm:
            merge_gas_data(builder, GasData([], self.SPONSOR, None, 10))
        self.assertEqual(cm.exception.missing, ["payment", "price"])
        self.assertEqual(builder.missing_gas_fields(), [
            "gas_payment", "gas_owner", "gas_price", "gas_budget",
        ])

    def test_gas_data_from_json(self):
        gas_data = GasData.from_json(
            {
                "payment": [["0xA", 3, "d1"]],
                "owner": "0x7",
                "price": 1000,
                "budget": "5000000",
            }
        )
        self.assertEqual(gas_data, GasData(self.PAYMENT, self.SPONSOR, 1000, 5_000_000))
        self.assertEqual(gas_data.payment[0].to_json()[1:], [3, "d1"])

    def test_gas_data_from_json_missing(self):
        with self.assertRaises(IncompleteGasData) as cm:
            GasData.from_json({"payment": [["0xA", 3, "d1"]], "owner": "0x7"})
        self.assertEqual(cm.exception.missing, ["price", "budget"])

    def test_gas_data_from_json_malformed(self):
        base = {"owner": "0x7", "price": 1, "budget": 1}
        malformed = ([["0xA", 3]], [["0xA", 3, "d1", 4]], ["0xA"], [["0xA", "3", "d1"]])
        for payment in malformed:
            with self.assertRaises(MalformedGasResponse):
                GasData.from_json({**base, "payment": payment})
        with self.assertRaises(MalformedGasResponse):
            GasData.from_json({**base, "payment": [["0xA", 3, "0OIl"]]})
        with self.assertRaises(MalformedGasResponse):
            GasData.from_json({**base, "payment": [["0xA", 3, "d1"]], "price": -1})
        with self.assertRaises(MalformedGasResponse):
            GasData.from_json({**base, "payment": [["0xA", 3, "d1"]], "owner": "0xS"})

    def test_gas_data_above_u64(self):
        builder = self.split_and_transfer()
        payment = [["0xA", 3, "d1"]]
        too_large = (
            {"price": MAX_U64 + 1, "budget": 1, "payment": payment},
            {"price": 1, "budget": str(MAX_U64 + 1), "payment": payment},
            {"price": 1, "budget": 1, "payment": [["0xA", MAX_U64 + 1, "d1"]]},
        )
        for fields in too_large:
            with self.assertRaises(MalformedGasResponse):
                merge_gas_data(builder, GasData.from_json({"owner": "0x7", **fields}))
        self.assertEqual(len(builder.missing_gas_fields()), 4)

        gas_data = GasData.from_json(
            {"owner": "0x7", "price": MAX_U64, "budget": 1, "payment": payment}
        )
        self.assertEqual(gas_data.price, MAX_U64)

    def test_object_reference_round_trip(self):
        reference = ObjectReference(
            ObjectID.from_str("0x1234"), 42, base58.b58encode(b"\x07" * 32).decode()
        )
        ser = Serializer()
        reference.serialize(ser)
        self.assertEqual(len(ser.output()), 32 + 8 + 1 + 32)
        decoded = ObjectReference.deserialize(Deserializer(ser.output()))
        self.assertEqual(decoded, reference)

    def test_owned_object_inputs(self):
        builder = TransactionBuilder()
        coin = ObjectReference(ObjectID.from_str("0xc0"), 9, "d1")
        builder.transfer_objects([coin], self.SPONSOR)
        builder.set_sender(self.SENDER)

        decoded = TransactionData.deserialize(Deserializer(builder.build_unsigned()))
        self.assertEqual(decoded.kind.inputs[0], CallArg.object(coin))

    def test_expiration(self):
        builder = self.split_and_transfer()
        builder.set_expiration(12)
        decoded = TransactionData.deserialize(Deserializer(builder.build_unsigned()))
        self.assertEqual(decoded.expiration, 12)


if __name__ == "__main__":
    unittest.main()
