"""Pydantic schemas for CipherDesk."""

from cipherdesk.schemas.results import (
    ErrorView,
    KeyPairView,
    OperationResultView,
    SymmetricKeyView,
    to_camel,
)

__all__ = [
    "ErrorView",
    "KeyPairView",
    "OperationResultView",
    "SymmetricKeyView",
    "to_camel",
]
