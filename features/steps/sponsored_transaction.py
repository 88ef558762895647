import typing

from behave import given, then, use_step_matcher, when

from sui_sponsor_sdk.address import SuiAddress
from sui_sponsor_sdk.bcs import Deserializer
from sui_sponsor_sdk.exceptions import SponsorError
from sui_sponsor_sdk.transactions import (
    GasData,
    ObjectReference,
    TransactionBuilder,
    TransactionData,
    merge_gas_data,
)

# Use regular expressions
use_step_matcher("re")


@given(r"an empty draft")
def given_empty_draft(context: typing.Any):
    context.builder = TransactionBuilder()


@given(
    r"a draft splitting (?P<amount>\d+) from the gas coin to (?P<recipient>0x\w+)"
    r" sent by (?P<sender>0x\w+)"
)
def given_split_and_transfer(
    context: typing.Any, amount: str, recipient: str, sender: str
):
    builder = TransactionBuilder()
    coin = builder.split_coins(builder.gas, [int(amount)])
    builder.transfer_objects([coin.nested(0)], recipient)
    builder.set_sender(sender)
    context.builder = builder


@when(r"I split (?P<amount>-?\d+) from the gas coin")
def when_split(context: typing.Any, amount: str):
    try:
        context.output = context.builder.split_coins(
            context.builder.gas, [int(amount)]
        )
    except SponsorError as e:
        context.output = e


@when(r"I set the gas price to (?P<price>\d+)")
def when_set_gas_price(context: typing.Any, price: str):
    context.builder.set_gas_price(int(price))


@when(
    r"I merge gas coin (?P<coin>0x\w+) version (?P<version>\d+) digest (?P<digest>\w+)"
    r" owned by (?P<owner>0x\w+) at price (?P<price>\d+) with budget (?P<budget>\d+)"
)
def when_merge_gas(
    context: typing.Any,
    coin: str,
    version: str,
    digest: str,
    owner: str,
    price: str,
    budget: str,
):
    payment = [ObjectReference(SuiAddress.from_str(coin), int(version), digest)]
    gas_data = GasData(payment, SuiAddress.from_str(owner), int(price), int(budget))
    merge_gas_data(context.builder, gas_data)


@when(r"I serialize the draft (?P<mode>with|without) gas")
def when_serialize_draft(context: typing.Any, mode: str):
    try:
        encoded = context.builder.serialize(include_gas_fields=mode == "with")
        context.output = TransactionData.deserialize(Deserializer(encoded))
    except SponsorError as e:
        context.output = e


@then(r"the encoded gas data should be empty and owned by (?P<owner>0x\w+)")
def then_placeholder_gas(context: typing.Any, owner: str):
    assert context.output.gas_data == GasData([], SuiAddress.from_str(owner), 0, 0)


@then(
    r"the encoded gas payment should be (?P<coin>0x\w+) version (?P<version>\d+)"
    r" digest (?P<digest>\w+)"
)
def then_gas_payment(context: typing.Any, coin: str, version: str, digest: str):
    expected = [ObjectReference(SuiAddress.from_str(coin), int(version), digest)]
    assert context.output.gas_data.payment == expected, context.output.gas_data


@then(r"the encoded gas owner should be (?P<owner>0x\w+)")
def then_gas_owner(context: typing.Any, owner: str):
    assert context.output.gas_data.owner == SuiAddress.from_str(owner)


@then(r"the encoded gas price should be (?P<price>\d+) with budget (?P<budget>\d+)")
def then_gas_price_and_budget(context: typing.Any, price: str, budget: str):
    assert context.output.gas_data.price == int(price)
    assert context.output.gas_data.budget == int(budget)


@then(r"the draft should be missing (?P<fields>[\w,]+)")
def then_missing(context: typing.Any, fields: str):
    assert context.output.missing == fields.split(","), context.output


@then(r"the draft should be rejected with (?P<error>\w+)")
def then_rejected(context: typing.Any, error: str):
    assert type(context.output).__name__ == error, context.output
    assert context.builder.commands == []
