"""Tokenizer and validator for the fixture's prompt-terminated replies.

A reply to ``command`` looks like ``<echo> OK <payload tokens...> >``: the
device echoes the command name, reports ``OK`` on success and ends every
reply with the ``>`` prompt. Anything without ``OK`` is a failure whose text
is the error detail.
"""

from __future__ import annotations

import re
from typing import Sequence

from ..constants import CMD_SET_POWER, SUCCESS_TOKEN

_TOKEN = re.compile(r"[^\s>]+")
_INTEGER = re.compile(r"\d+")
_WORD = re.compile(r"\w+")


class DeviceError(RuntimeError):
    """Base class for device communication failures."""


class DeviceConnectionError(DeviceError):
    """Raised when the transport connection cannot be established."""


class DeviceProtocolError(DeviceError):
    """Raised when the exchange with the device breaks down."""


class DeviceCommandError(DeviceProtocolError):
    """Raised when the device does not acknowledge a command.

    The message is the trimmed reply text.
    """

    def __init__(self, response: str) -> None:
        super().__init__(response)
        self.response = response


class MalformedResponseError(DeviceProtocolError):
    """Raised when an acknowledged reply carries unparseable tokens."""


def check_response(raw: str) -> str:
    """Return the trimmed reply, or raise :class:`DeviceCommandError`."""

    text = raw.strip()
    if SUCCESS_TOKEN not in text:
        raise DeviceCommandError(text)
    return text


def payload_tokens(response: str) -> list[str]:
    """Split a reply into payload tokens, dropping the echo and ``OK`` markers."""

    tokens = _TOKEN.findall(response)
    return [token for token in tokens[1:] if token != SUCCESS_TOKEN]


def parse_int_tokens(response: str) -> list[int]:
    values: list[int] = []
    for token in payload_tokens(response):
        if not _INTEGER.fullmatch(token):
            raise MalformedResponseError(
                f"expected integer in reply, got {token!r}: {response!r}"
            )
        values.append(int(token))
    return values


def parse_word_tokens(response: str) -> list[str]:
    tokens = payload_tokens(response)
    for token in tokens:
        if not _WORD.fullmatch(token):
            raise MalformedResponseError(
                f"expected word in reply, got {token!r}: {response!r}"
            )
    return tokens


def format_set_command(levels: Sequence[int]) -> str:
    return " ".join([CMD_SET_POWER, *(str(level) for level in levels)])
