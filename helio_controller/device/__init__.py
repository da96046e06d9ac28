"""Device protocol and session handling."""

from .protocol import (
    DeviceCommandError,
    DeviceConnectionError,
    DeviceError,
    DeviceProtocolError,
    MalformedResponseError,
    check_response,
    format_set_command,
    parse_int_tokens,
    parse_word_tokens,
)
from .session import DeviceSession

__all__ = [
    "DeviceCommandError",
    "DeviceConnectionError",
    "DeviceError",
    "DeviceProtocolError",
    "DeviceSession",
    "MalformedResponseError",
    "check_response",
    "format_set_command",
    "parse_int_tokens",
    "parse_word_tokens",
]
