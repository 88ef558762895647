import typing

from behave import given, then, use_step_matcher

from sui_sponsor_sdk.address import SuiAddress

# Use regular expressions
use_step_matcher("re")

INTEGER_TYPES = ("u8", "u16", "u32", "u64", "u128", "u256", "uleb128")
TYPES = r"(?P<{}>uleb128|u256|u128|u64|u32|u16|u8|bool|address|bytes|string)"


@given(TYPES.format("input_type") + r" (?P<input_value>\S+)")
def given_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_value(input_type, input_value)


@given(r"sequence of " + TYPES.format("input_type") + r" \[(?P<input_value>.*)]")
def given_sequence_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_sequence(input_type, input_value)


@then(
    r"the result should be "
    + TYPES.format("expected_type")
    + r" (?P<expected_value>\S+)"
)
def then_result(context: typing.Any, expected_type: str, expected_value: str):
    expected = parse_value(expected_type, expected_value)
    assert context.output == expected, (
        f"Expected {expected!r} but got {context.output!r}"
    )


@then(
    r"the result should be sequence of "
    + TYPES.format("expected_type")
    + r" \[(?P<expected_value>\S*)]"
)
def then_result_sequence(context: typing.Any, expected_type: str, expected_value: str):
    expected = parse_sequence(expected_type, expected_value)
    assert context.output == expected, (
        f"Expected {expected!r} but got {context.output!r}"
    )


def parse_value(value_type: str, value: str) -> typing.Any:
    if value_type == "bool":
        return value == "true"
    if value_type in INTEGER_TYPES:
        return int(value)
    if value_type == "address":
        return SuiAddress.from_str(value)
    if value_type == "bytes":
        return parse_hex(value)
    if value_type == "string":
        return value.removeprefix('"').removesuffix('"')
    raise Exception(f"Unrecognized type {value_type}")


def parse_sequence(value_type: str, value: str) -> typing.List[typing.Any]:
    if len(value) == 0:
        return []
    return [parse_value(value_type, item) for item in value.split(",")]


def parse_hex(value: str) -> bytes:
    return bytes.fromhex(value.removeprefix("0x"))
