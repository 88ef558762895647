import typing

from behave import then, use_step_matcher, when

from sui_sponsor_sdk.address import SuiAddress
from sui_sponsor_sdk.bcs import Deserializer, Serializer

# Use regular expressions
use_step_matcher("re")

ENCODERS: typing.Dict[str, typing.Callable[[Serializer, typing.Any], None]] = {
    "bool": Serializer.bool,
    "u8": Serializer.u8,
    "u16": Serializer.u16,
    "u32": Serializer.u32,
    "u64": Serializer.u64,
    "u128": Serializer.u128,
    "u256": Serializer.u256,
    "uleb128": Serializer.uleb128,
    "address": Serializer.struct,
    "bytes": Serializer.to_bytes,
    "string": Serializer.str,
}

DECODERS: typing.Dict[str, typing.Callable[[Deserializer], typing.Any]] = {
    "bool": Deserializer.bool,
    "u8": Deserializer.u8,
    "u16": Deserializer.u16,
    "u32": Deserializer.u32,
    "u64": Deserializer.u64,
    "u128": Deserializer.u128,
    "u256": Deserializer.u256,
    "uleb128": Deserializer.uleb128,
    "address": SuiAddress.deserialize,
    "bytes": Deserializer.to_bytes,
    "string": Deserializer.str,
}

TYPE = r"(?P<input_type>uleb128|u256|u128|u64|u32|u16|u8|bool|address|bytes|string)"


@when(r"I serialize as " + TYPE)
def when_serialize(context: typing.Any, input_type: str):
    ser = Serializer()
    try:
        ENCODERS[input_type](ser, context.input)
        context.output = ser.output()
    except Exception as e:
        context.output = e


@when(r"I deserialize as " + TYPE)
def when_deserialize(context: typing.Any, input_type: str):
    try:
        context.output = DECODERS[input_type](Deserializer(context.input))
    except Exception as e:
        context.output = e


@when(r"I serialize as sequence of " + TYPE)
def when_serialize_sequence(context: typing.Any, input_type: str):
    ser = Serializer()
    Serializer.sequence_serializer(ENCODERS[input_type])(ser, context.input)
    context.output = ser.output()


@when(r"I deserialize as sequence of " + TYPE)
def when_deserialize_sequence(context: typing.Any, input_type: str):
    context.output = Deserializer(context.input).sequence(DECODERS[input_type])


@when(r"I deserialize as fixed bytes with length (?P<length>[0-9]+)")
def when_deserialize_fixed_bytes(context: typing.Any, length: str):
    try:
        context.output = Deserializer(context.input).fixed_bytes(int(length))
    except Exception as e:
        context.output = e


@then(r"the deserialization should fail")
def then_fail_deserialization(context: typing.Any):
    assert isinstance(context.output, Exception)


@then(r"the serialization should fail")
def then_fail_serialization(context: typing.Any):
    assert isinstance(context.output, Exception)
