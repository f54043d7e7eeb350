"""CipherDesk error taxonomy.

Every failure the engine can report has an ``ErrorKind``. Lower layers
(codec, key material) raise the matching ``CipherDeskError`` subclass; the
transform engine recovers all of them into a ``Failure`` outcome.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""
    MALFORMED_ENCODING = "MalformedEncoding"
    INVALID_KEY_FORMAT = "InvalidKeyFormat"
    MISSING_KEY = "MissingKey"
    MISSING_IV = "MissingIV"
    IV_LENGTH_MISMATCH = "IvLengthMismatch"
    PLAINTEXT_TOO_LONG = "PlaintextTooLong"
    DECRYPTION_FAILED = "DecryptionFailed"
    SIGNATURE_REQUIRED = "SignatureRequired"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"
    OPERATION_FAILED = "OperationFailed"


# Kinds caused by an absent input rather than a bad one
MISSING_INPUT_KINDS = frozenset({
    ErrorKind.MISSING_KEY,
    ErrorKind.MISSING_IV,
    ErrorKind.SIGNATURE_REQUIRED,
})


def is_missing_input(kind: ErrorKind) -> bool:
    """True for failures that mean 'fill in this field', not 'this is wrong'."""
    return kind in MISSING_INPUT_KINDS


class CipherDeskError(Exception):
    """Base exception for CipherDesk errors.

    Attributes:
        kind: The ErrorKind this exception maps to
        message: Human-readable description
        details: Extra structured context (never key material)
    """

    kind: ErrorKind = ErrorKind.OPERATION_FAILED

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class MalformedEncodingError(CipherDeskError):
    """Base64 or PEM text could not be decoded."""
    kind = ErrorKind.MALFORMED_ENCODING


class InvalidKeyFormatError(CipherDeskError):
    """Decoded key material has the wrong size or envelope."""
    kind = ErrorKind.INVALID_KEY_FORMAT


class MissingKeyError(CipherDeskError):
    """The operation needs a key that was not supplied."""
    kind = ErrorKind.MISSING_KEY


class MissingIVError(CipherDeskError):
    """Symmetric operation without an IV/nonce."""
    kind = ErrorKind.MISSING_IV


class IvLengthMismatchError(CipherDeskError):
    """IV/nonce length does not match the cipher mode."""
    kind = ErrorKind.IV_LENGTH_MISMATCH

    def __init__(self, expected: int, actual: int, mode: str):
        super().__init__(
            f"AES-{mode} requires a {expected}-byte IV, got {actual} bytes",
            {"expected_length": expected, "actual_length": actual, "mode": mode},
        )
        self.expected = expected
        self.actual = actual


class PlaintextTooLongError(CipherDeskError):
    """Plaintext exceeds the RSA-OAEP capacity of the key."""
    kind = ErrorKind.PLAINTEXT_TOO_LONG

    def __init__(self, max_length: int, actual: int, key_size_bits: int):
        super().__init__(
            f"Plaintext is {actual} bytes; RSA-OAEP-SHA256 with a "
            f"{key_size_bits}-bit key accepts at most {max_length} bytes",
            {
                "max_length": max_length,
                "actual_length": actual,
                "key_size_bits": key_size_bits,
            },
        )
        self.max_length = max_length
        self.actual = actual


class DecryptionFailedError(CipherDeskError):
    """Authentication tag, padding or OAEP unwrap failure."""
    kind = ErrorKind.DECRYPTION_FAILED


class SignatureRequiredError(CipherDeskError):
    """Verification requested without a signature."""
    kind = ErrorKind.SIGNATURE_REQUIRED


class UnsupportedOperationError(CipherDeskError):
    """Operation is not defined for the supplied key family."""
    kind = ErrorKind.UNSUPPORTED_OPERATION


class InvalidTransitionError(Exception):
    """Controller state change that needs a reset first."""
