import typing

from behave import then, use_step_matcher, when

from sui_sponsor_sdk.address import ParseAddressError, SuiAddress

# Use regular expressions
use_step_matcher("re")


@when(r"I parse the address")
def when_parse_address(context: typing.Any):
    try:
        context.output = SuiAddress.from_str(context.input)
    except ParseAddressError as e:
        context.output = e


@when(r"I convert the address to a string")
def when_address_to_string(context: typing.Any):
    context.output = str(context.input)


@then(r"I should fail to parse the address")
def then_fail_address(context: typing.Any):
    assert isinstance(context.output, ParseAddressError), context.output
