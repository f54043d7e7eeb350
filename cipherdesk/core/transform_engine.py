"""Transform Engine.

Dispatches encrypt / decrypt / sign / verify requests to the right
algorithm:

- Symmetric keys: AES-GCM or AES-CBC, selected by the request mode
- RSA public/private keys: RSA-OAEP-SHA256 for encrypt/decrypt,
  RSA-PSS-SHA256 (32-byte salt) for sign/verify

Every request goes Validate -> Execute -> Result. Preconditions (key present,
IV length, OAEP capacity) are checked before the primitive is called, and
every failure comes back as a ``Failure`` outcome rather than an exception.
Payloads are byte strings; Base64/PEM handling belongs to the caller.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from cipherdesk.config import get_settings
from cipherdesk.core.errors import (
    CipherDeskError,
    DecryptionFailedError,
    ErrorKind,
    InvalidKeyFormatError,
    IvLengthMismatchError,
    MissingIVError,
    MissingKeyError,
    PlaintextTooLongError,
    SignatureRequiredError,
    UnsupportedOperationError,
)
from cipherdesk.core.key_material import (
    AsymmetricKeyPair,
    KeyKind,
    KeyMaterial,
    KeyMaterialManager,
    KeyRole,
    RSA_KEY_SIZES,
    SYMMETRIC_KEY_SIZES,
)
from cipherdesk.core.logging import conversion_context, get_logger, log_operation
from cipherdesk.core.primitives import CipherMode, CryptographyProvider, PrimitiveProvider

logger = get_logger(__name__)

SHA256_DIGEST_SIZE = 32
PSS_SALT_LENGTH = 32
RSA_OAEP_ALGORITHM = "RSA-OAEP-SHA256"
RSA_PSS_ALGORITHM = "RSA-PSS-SHA256"


class Operation(str, Enum):
    """The four transform operations."""
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    SIGN = "sign"
    VERIFY = "verify"


@dataclass
class OperationRequest:
    """One transform request; all buffers are already decoded."""
    operation: Operation
    payload: bytes
    key: KeyMaterial | None
    mode: CipherMode | None = None  # Symmetric only
    iv: bytes | None = None
    signature: bytes | None = None  # Verify only

    def __post_init__(self) -> None:
        self.operation = Operation(self.operation)
        if self.mode is not None:
            self.mode = CipherMode(self.mode)

    def __repr__(self) -> str:
        return (
            f"OperationRequest(operation={self.operation.value}, "
            f"payload_length={len(self.payload)}, key={self.key!r}, mode={self.mode})"
        )


@dataclass(frozen=True)
class Success:
    """Full transformed payload."""
    data: bytes


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a well-formed verify request."""
    valid: bool


@dataclass(frozen=True)
class Failure:
    """Typed failure."""
    kind: ErrorKind
    message: str
    details: dict = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: CipherDeskError) -> "Failure":
        return cls(kind=error.kind, message=error.message, details=dict(error.details))


Outcome = Union[Success, VerifyResult, Failure]


@dataclass(frozen=True)
class OperationResult:
    """Result of a transform request."""
    operation: Operation
    algorithm: str | None
    outcome: Outcome
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return not isinstance(self.outcome, Failure)

    @property
    def data(self) -> bytes | None:
        return self.outcome.data if isinstance(self.outcome, Success) else None

    @property
    def valid(self) -> bool | None:
        return self.outcome.valid if isinstance(self.outcome, VerifyResult) else None

    @property
    def failure(self) -> Failure | None:
        return self.outcome if isinstance(self.outcome, Failure) else None


def max_plaintext_length(key_size_bits: int) -> int:
    """Largest RSA-OAEP-SHA256 plaintext for a modulus size, in bytes."""
    return key_size_bits // 8 - 2 * SHA256_DIGEST_SIZE - 2


class TransformEngine:
    """Runs transform requests against a primitive provider.

    Configuration setters hold the defaults used for key generation and for
    symmetric requests that do not name a mode. Requests themselves carry
    their key material; the engine keeps no reference to it.

    Usage:
        engine = TransformEngine()
        key = await engine.generate_key()
        iv = await engine.generate_nonce()
        result = await engine.convert(
            OperationRequest(Operation.ENCRYPT, b"hello", key, iv=iv)
        )
    """

    def __init__(
        self,
        provider: PrimitiveProvider | None = None,
        key_manager: KeyMaterialManager | None = None,
    ):
        settings = get_settings()
        self._provider = provider or CryptographyProvider()
        self._key_manager = key_manager or KeyMaterialManager(self._provider)
        self._aes_key_size = settings.default_aes_key_size
        self._rsa_key_size = settings.default_rsa_key_size
        self._mode = CipherMode(settings.default_aes_mode)

    # ==================== Configuration ====================

    @property
    def key_manager(self) -> KeyMaterialManager:
        return self._key_manager

    @property
    def mode(self) -> CipherMode:
        return self._mode

    @property
    def aes_key_size(self) -> int:
        return self._aes_key_size

    @property
    def rsa_key_size(self) -> int:
        return self._rsa_key_size

    def set_mode(self, mode: CipherMode | str) -> None:
        self._mode = CipherMode(mode)

    def set_aes_key_size(self, key_size_bits: int) -> None:
        if key_size_bits not in SYMMETRIC_KEY_SIZES:
            raise ValueError(f"AES key size must be 128, 192, or 256 bits, got {key_size_bits}")
        self._aes_key_size = key_size_bits

    def set_rsa_key_size(self, key_size_bits: int) -> None:
        if key_size_bits not in RSA_KEY_SIZES:
            raise ValueError(f"RSA key size must be 2048, 3072, or 4096 bits, got {key_size_bits}")
        self._rsa_key_size = key_size_bits

    # ==================== Generation ====================

    @log_operation("AES key generation")
    async def generate_key(self, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> KeyMaterial:
        """Generate an AES key of the configured size."""
        return await asyncio.to_thread(
            self._key_manager.generate_symmetric_key, self._aes_key_size, role
        )

    async def generate_nonce(self, mode: CipherMode | str | None = None) -> bytes:
        """Generate an IV for the given (or configured) mode."""
        return await asyncio.to_thread(self._key_manager.generate_nonce, mode or self._mode)

    @log_operation("RSA key pair generation")
    async def generate_key_pair(self, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> AsymmetricKeyPair:
        """Generate an RSA key pair of the configured size off the event loop."""
        return await asyncio.to_thread(
            self._key_manager.generate_asymmetric_key_pair, self._rsa_key_size, role
        )

    # ==================== Conversion ====================

    async def convert(self, request: OperationRequest) -> OperationResult:
        """Run one request; never raises for a domain failure."""
        with conversion_context():
            start = time.monotonic()
            algorithm = None
            try:
                algorithm = self.algorithm_for(request)
                self._validate(request)
                outcome = await asyncio.to_thread(self._execute, request)
            except CipherDeskError as e:
                outcome = Failure.from_error(e)
            except Exception as e:
                outcome = self._unexpected(request, e)

            duration_ms = round((time.monotonic() - start) * 1000, 2)
            self._log_outcome(request, algorithm, outcome, duration_ms)
            return OperationResult(
                operation=request.operation,
                algorithm=algorithm,
                outcome=outcome,
                duration_ms=duration_ms,
            )

    def algorithm_for(self, request: OperationRequest) -> str | None:
        """Name of the algorithm a request would run, if determinable."""
        if request.key is None:
            return None
        if request.key.is_symmetric:
            return (request.mode or self._mode).algorithm_name
        if request.operation in (Operation.ENCRYPT, Operation.DECRYPT):
            return RSA_OAEP_ALGORITHM
        return RSA_PSS_ALGORITHM

    # ==================== Validation ====================

    def check(self, request: OperationRequest) -> Failure | None:
        """Run the preconditions only; returns the first failure, if any."""
        try:
            self._validate(request)
        except CipherDeskError as e:
            return Failure.from_error(e)
        return None

    def _validate(self, request: OperationRequest) -> None:
        key = request.key
        if key is None or not key.data:
            raise MissingKeyError(f"A key is required to {request.operation.value}")

        if key.is_symmetric:
            self._validate_symmetric(request, key)
        else:
            self._validate_asymmetric(request, key)

    def _validate_symmetric(self, request: OperationRequest, key: KeyMaterial) -> None:
        if request.operation not in (Operation.ENCRYPT, Operation.DECRYPT):
            raise UnsupportedOperationError(
                f"AES keys cannot {request.operation.value}; use an RSA key pair"
            )
        if len(key.data) * 8 not in SYMMETRIC_KEY_SIZES:
            raise InvalidKeyFormatError(
                f"AES key must be 16, 24, or 32 bytes, got {len(key.data)}",
                {"actual_length": len(key.data)},
            )

        mode = request.mode or self._mode
        if not request.iv:
            raise MissingIVError(f"AES-{mode.value} requires an IV")
        if len(request.iv) != mode.nonce_size:
            raise IvLengthMismatchError(mode.nonce_size, len(request.iv), mode.value)

    def _validate_asymmetric(self, request: OperationRequest, key: KeyMaterial) -> None:
        operation = request.operation

        if operation in (Operation.ENCRYPT, Operation.VERIFY):
            if key.kind != KeyKind.PUBLIC:
                raise MissingKeyError(f"RSA {operation.value} requires a public key")
        elif key.kind != KeyKind.PRIVATE:
            raise MissingKeyError(f"RSA {operation.value} requires a private key")

        if operation == Operation.ENCRYPT:
            limit = max_plaintext_length(key.key_size_bits)
            if len(request.payload) > limit:
                raise PlaintextTooLongError(limit, len(request.payload), key.key_size_bits)

        if operation == Operation.VERIFY and not request.signature:
            raise SignatureRequiredError("Verification requires a signature")

    # ==================== Execution ====================

    def _execute(self, request: OperationRequest) -> Outcome:
        key = request.key
        operation = request.operation

        if key.is_symmetric:
            mode = request.mode or self._mode
            if operation == Operation.ENCRYPT:
                return Success(self._provider.aes_encrypt(mode, key.data, request.iv, request.payload))
            return Success(self._provider.aes_decrypt(mode, key.data, request.iv, request.payload))

        if operation == Operation.ENCRYPT:
            return Success(self._provider.rsa_oaep_encrypt(key.data, request.payload))
        if operation == Operation.DECRYPT:
            return Success(self._provider.rsa_oaep_decrypt(key.data, request.payload))
        if operation == Operation.SIGN:
            return Success(self._provider.rsa_pss_sign(key.data, PSS_SALT_LENGTH, request.payload))
        if operation == Operation.VERIFY:
            return VerifyResult(
                self._provider.rsa_pss_verify(
                    key.data, PSS_SALT_LENGTH, request.payload, request.signature
                )
            )
        raise UnsupportedOperationError(f"Unknown operation: {operation}")

    def _unexpected(self, request: OperationRequest, error: Exception) -> Failure:
        """Map an error the provider did not classify."""
        logger.error(
            "Primitive provider raised an unexpected error",
            operation=request.operation.value,
            error_type=type(error).__name__,
            exc_info=True,
        )
        if request.operation == Operation.DECRYPT:
            return Failure.from_error(DecryptionFailedError("Decryption failed"))
        return Failure(
            kind=ErrorKind.OPERATION_FAILED,
            message=f"{request.operation.value.capitalize()} failed",
        )

    def _log_outcome(
        self,
        request: OperationRequest,
        algorithm: str | None,
        outcome: Outcome,
        duration_ms: float,
    ) -> None:
        fields: dict[str, Any] = {
            "operation": request.operation.value,
            "algorithm": algorithm,
            "payload_length": len(request.payload),
            "duration_ms": duration_ms,
        }
        if isinstance(outcome, Failure):
            logger.info("Conversion failed", error_kind=outcome.kind.value, **fields)
        else:
            logger.debug("Conversion completed", **fields)
