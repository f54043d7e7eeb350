"""CipherDesk - cryptographic transform engine for AES and RSA tools.

Provides:
- Base64 / PEM codecs
- AES (GCM, CBC) and RSA (2048-4096) key generation and import
- AES-GCM, AES-CBC, RSA-OAEP-SHA256 and RSA-PSS-SHA256 transforms
- A debounced, cancelable live-conversion controller
"""

__version__ = "0.1.0"
__author__ = "CipherDesk Contributors"

from cipherdesk.core.codec import Base64Variant, decode_base64, decode_pem, encode_base64, encode_pem
from cipherdesk.core.errors import CipherDeskError, ErrorKind, InvalidTransitionError
from cipherdesk.core.key_material import (
    AlgorithmFamily,
    AsymmetricKeyPair,
    KeyKind,
    KeyMaterial,
    KeyMaterialManager,
    KeyRepresentation,
    KeyRole,
)
from cipherdesk.core.primitives import CipherMode, CryptographyProvider
from cipherdesk.core.reactive_controller import (
    ActiveSide,
    ControllerState,
    OperationPair,
    ReactiveController,
)
from cipherdesk.core.transform_engine import (
    Failure,
    Operation,
    OperationRequest,
    OperationResult,
    Success,
    TransformEngine,
    VerifyResult,
    max_plaintext_length,
)

__all__ = [
    "ActiveSide",
    "AlgorithmFamily",
    "AsymmetricKeyPair",
    "Base64Variant",
    "CipherDeskError",
    "CipherMode",
    "ControllerState",
    "CryptographyProvider",
    "ErrorKind",
    "Failure",
    "InvalidTransitionError",
    "KeyKind",
    "KeyMaterial",
    "KeyMaterialManager",
    "KeyRepresentation",
    "KeyRole",
    "Operation",
    "OperationPair",
    "OperationRequest",
    "OperationResult",
    "ReactiveController",
    "Success",
    "TransformEngine",
    "VerifyResult",
    "decode_base64",
    "decode_pem",
    "encode_base64",
    "encode_pem",
    "max_plaintext_length",
]
