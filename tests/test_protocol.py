"""Tests for device reply tokenizing and validation."""

import pytest

from helio_controller.device import (
    DeviceCommandError,
    MalformedResponseError,
    check_response,
    format_set_command,
    parse_int_tokens,
    parse_word_tokens,
)


def test_word_reply_drops_echo_and_success_token():
    assert parse_word_tokens("getWl> OK a b c >") == ["a", "b", "c"]


def test_word_reply_with_line_breaks():
    reply = check_response("getWl\r\nOK 450 660 735 6500\r\n>")
    assert parse_word_tokens(reply) == ["450", "660", "735", "6500"]


def test_int_reply_parses_every_token():
    assert parse_int_tokens("getAllRelPower\r\nOK 0 125 1000\r\n>") == [0, 125, 1000]


def test_int_reply_with_bad_token_fails():
    with pytest.raises(MalformedResponseError):
        parse_int_tokens("getAllRelPower OK 1 2.5 3 >")


def test_word_reply_with_punctuation_fails():
    with pytest.raises(MalformedResponseError):
        parse_word_tokens("getWl OK 450 6?0 >")


def test_empty_payload_is_empty_list():
    assert parse_int_tokens("setWlsRelPower\r\nOK\r\n>") == []


@pytest.mark.parametrize(
    "raw",
    [
        "  getWl\r\nERROR busy\r\n>  ",
        "setWlsRelPower 1 2\r\nInvalid arguments>",
        "",
    ],
)
def test_reply_without_success_token_is_error(raw):
    with pytest.raises(DeviceCommandError) as excinfo:
        check_response(raw)
    assert str(excinfo.value) == raw.strip()


def test_check_response_returns_trimmed_text():
    assert check_response("\r\ngetWl OK 450 >\r\n") == "getWl OK 450 >"


def test_format_set_command():
    assert format_set_command([500, 750]) == "setWlsRelPower 500 750"
