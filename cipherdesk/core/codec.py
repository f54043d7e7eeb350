"""
Base64 and PEM codecs.

Converts between byte strings and the textual forms users paste into the
tools: four Base64 variants and PEM-armored DER.
"""

import base64
import binascii
import re
from enum import Enum
from typing import NamedTuple

from cipherdesk.core.errors import MalformedEncodingError

PEM_LINE_LENGTH = 64


class Base64Variant(str, Enum):
    """Supported Base64 flavours."""
    STANDARD = "standard"
    URL_SAFE = "url-safe"
    NO_PADDING = "no-padding"
    URL_SAFE_NO_PADDING = "url-safe-no-padding"


class PemLabel(str, Enum):
    """PEM labels used for RSA key material."""
    PUBLIC_KEY = "PUBLIC KEY"
    PRIVATE_KEY = "PRIVATE KEY"


class PemBlock(NamedTuple):
    """Decoded PEM components."""
    label: str
    data: bytes


_URL_SAFE = {Base64Variant.URL_SAFE, Base64Variant.URL_SAFE_NO_PADDING}
_UNPADDED = {Base64Variant.NO_PADDING, Base64Variant.URL_SAFE_NO_PADDING}

_STANDARD_ALPHABET = re.compile(r"^[A-Za-z0-9+/]*$")
_URL_SAFE_ALPHABET = re.compile(r"^[A-Za-z0-9\-_]*$")

_PEM_HEADER = re.compile(r"-----BEGIN ([A-Z0-9 ]+)-----")
_PEM_FOOTER = re.compile(r"-----END ([A-Z0-9 ]+)-----")
_WHITESPACE = re.compile(r"\s+")


def encode_base64(data: bytes, variant: Base64Variant = Base64Variant.STANDARD) -> str:
    """
    Encode bytes as Base64 text.

    Args:
        data: Bytes to encode
        variant: Alphabet and padding flavour

    Returns:
        ASCII Base64 string
    """
    variant = Base64Variant(variant)
    if variant in _URL_SAFE:
        encoded = base64.urlsafe_b64encode(data)
    else:
        encoded = base64.b64encode(data)
    if variant in _UNPADDED:
        encoded = encoded.rstrip(b"=")
    return encoded.decode("ascii")


def decode_base64(text: str, variant: Base64Variant = Base64Variant.STANDARD) -> bytes:
    """
    Decode Base64 text of the given variant.

    Padding is optional for every variant: it is stripped and re-derived from
    the length before decoding.

    Args:
        text: Base64 string
        variant: Alphabet and padding flavour

    Returns:
        Decoded bytes

    Raises:
        MalformedEncodingError: On characters outside the alphabet or a
            length that no amount of padding can fix
    """
    variant = Base64Variant(variant)
    body = text.strip().rstrip("=")

    alphabet = _URL_SAFE_ALPHABET if variant in _URL_SAFE else _STANDARD_ALPHABET
    if not alphabet.match(body):
        raise MalformedEncodingError(
            f"Invalid character for {variant.value} Base64",
            {"variant": variant.value},
        )

    remainder = len(body) % 4
    if remainder == 1:
        raise MalformedEncodingError(
            "Base64 input has an incomplete final block",
            {"variant": variant.value, "length": len(body)},
        )
    padded = body + "=" * ((4 - remainder) % 4)

    if variant in _URL_SAFE:
        padded = padded.replace("-", "+").replace("_", "/")

    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEncodingError(f"Base64 decoding failed: {e}") from e


def encode_pem(data: bytes, label: PemLabel | str) -> str:
    """
    Wrap DER bytes in PEM armor.

    Format:
        -----BEGIN {label}-----
        base64 body, 64 characters per line
        -----END {label}-----
    """
    label = PemLabel(label).value
    body = encode_base64(data)
    lines = [body[i:i + PEM_LINE_LENGTH] for i in range(0, len(body), PEM_LINE_LENGTH)]
    return "\n".join([f"-----BEGIN {label}-----", *lines, f"-----END {label}-----"])


def parse_pem(text: str) -> PemBlock:
    """
    Split PEM text into its label and decoded body.

    Raises:
        MalformedEncodingError: If the header or footer is missing, the labels
            disagree, or the body is not valid Base64
    """
    header = _PEM_HEADER.search(text)
    if header is None:
        raise MalformedEncodingError("PEM header not found")

    footer = _PEM_FOOTER.search(text, header.end())
    if footer is None:
        raise MalformedEncodingError(f"PEM footer for '{header.group(1)}' not found")

    if header.group(1) != footer.group(1):
        raise MalformedEncodingError(
            f"PEM labels do not match: BEGIN {header.group(1)} / END {footer.group(1)}"
        )

    body = _WHITESPACE.sub("", text[header.end():footer.start()])
    if not body:
        raise MalformedEncodingError("PEM body is empty")

    return PemBlock(label=header.group(1), data=decode_base64(body))


def decode_pem(text: str, label: PemLabel | str | None = None) -> bytes:
    """
    Strip PEM armor and return the DER bytes.

    Args:
        text: PEM text
        label: Expected label; any label is accepted when omitted

    Raises:
        MalformedEncodingError: If the text is not well-formed PEM or carries
            a different label
    """
    block = parse_pem(text)
    if label is not None:
        expected = PemLabel(label).value
        if block.label != expected:
            raise MalformedEncodingError(
                f"Expected PEM label '{expected}', got '{block.label}'"
            )
    return block.data


def looks_like_pem(text: str) -> bool:
    """True when the text carries a PEM header."""
    return _PEM_HEADER.search(text) is not None
