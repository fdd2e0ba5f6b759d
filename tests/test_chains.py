import pytest

from xmtpbot.chains import chain_name, format_eth, is_address, parse_chain_id


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("0x" + "aB" * 20, True),
        ("0x" + "ab" * 19, False),
        ("ab" * 21, False),
        ("0x" + "zz" * 20, False),
        ("not-an-address", False),
        ("", False),
    ],
)
def test_is_address(value, expected):
    assert is_address(value) is expected


def test_parse_chain_id_accepts_int_decimal_and_hex():
    assert parse_chain_id(8453) == 8453
    assert parse_chain_id("8453") == 8453
    assert parse_chain_id("0x2105") == 8453


def test_parse_chain_id_rejects_bool():
    with pytest.raises(ValueError):
        parse_chain_id(True)


def test_chain_name():
    assert chain_name("0x2105") == "Base"
    assert chain_name(5) == "chain 5"
    assert chain_name("base") == "unknown chain (base)"


def test_format_eth():
    assert format_eth(hex(10**18)) == "1"
    assert format_eth("250000000000000000") == "0.25"
    assert format_eth(0) == "0"
    assert format_eth("0x") == "0x"
