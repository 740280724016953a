"""
Text Encoding
=============
Decoding of inbound short message bytes and encoding of outbound text.
"""

import codecs
from typing import Any, Tuple, Union

import structlog

from .models import DataCoding, EncodingType

logger = structlog.get_logger(__name__)


def _coding_value(coding: Any) -> str:
    if coding is None:
        return ""
    if isinstance(coding, int):
        # IntEnum members stringify to their name on older interpreters
        return str(int(coding))
    return str(coding).strip()


def is_ucs2(coding: Any) -> bool:
    """True when ``coding`` is the UCS-2 / UTF-16 data_coding indicator."""
    return _coding_value(coding) == str(int(DataCoding.UCS2))


def decode_utf16(raw: bytes) -> str:
    """
    Decode UTF-16 text, big-endian unless a byte-order mark says otherwise.

    The mark is stripped. A malformed or truncated sequence yields the text
    decoded up to the first bad code unit.
    """
    codec = "utf-16-be"
    if raw.startswith(codecs.BOM_UTF16_BE):
        raw = raw[len(codecs.BOM_UTF16_BE):]
    elif raw.startswith(codecs.BOM_UTF16_LE):
        codec = "utf-16-le"
        raw = raw[len(codecs.BOM_UTF16_LE):]

    try:
        return raw.decode(codec)
    except UnicodeDecodeError as e:
        logger.warning(
            "Can't decode UTF16 message",
            raw=raw.hex(),
            codec=codec,
            error=str(e),
        )
        return raw[:e.start].decode(codec, errors="ignore")


def decode_passthrough(raw: Union[bytes, str]) -> str:
    """Return text for a non-UCS2 message without transcoding it."""
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        # Latin-1 maps every byte to one character
        return raw.decode("latin-1")


def decode_text(coding: Any, raw: Union[bytes, str]) -> str:
    """
    Decode message text according to its data_coding indicator.

    Args:
        coding: data_coding value (int, str or None)
        raw: short_message or message_payload contents

    Returns:
        Decoded text; never raises on malformed input
    """
    if is_ucs2(coding):
        if isinstance(raw, str):
            raw = raw.encode("latin-1", errors="replace")
        return decode_utf16(raw)
    return decode_passthrough(raw)


def detect_encoding(text: str) -> EncodingType:
    """
    Detect the encoding an outbound message needs.

    Args:
        text: Message content

    Returns:
        EncodingType.RAW for plain ASCII, EncodingType.UCS2 otherwise
    """
    for char in text:
        if ord(char) > 0x7F:
            return EncodingType.UCS2
    return EncodingType.RAW


def encode_text(text: str) -> Tuple[int, bytes]:
    """
    Encode outbound text for submit_sm.

    Returns:
        Tuple of (data_coding, encoded bytes)
    """
    if detect_encoding(text) == EncodingType.UCS2:
        return int(DataCoding.UCS2), text.encode("utf-16-be")
    return int(DataCoding.DEFAULT), text.encode("ascii")
