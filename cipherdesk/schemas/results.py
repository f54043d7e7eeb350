"""Display schemas for transform results and generated keys.

Shapes what a display or export layer shows: text fields only, Base64 or PEM,
with camelCase aliases.
"""

from pydantic import BaseModel, ConfigDict, Field

from cipherdesk.core.codec import encode_base64
from cipherdesk.core.key_material import (
    AsymmetricKeyPair,
    KeyMaterial,
    KeyMaterialManager,
    KeyRepresentation,
    KeyRole,
)
from cipherdesk.core.transform_engine import (
    Failure,
    Operation,
    OperationResult,
    Success,
    VerifyResult,
    max_plaintext_length,
)


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class ErrorView(BaseModel):
    """A typed failure."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    kind: str = Field(description="ErrorKind name (e.g., DecryptionFailed)")
    message: str = Field(description="Human-readable description")
    details: dict = Field(default_factory=dict, description="Structured context")

    @classmethod
    def from_failure(cls, failure: Failure) -> "ErrorView":
        return cls(kind=failure.kind.value, message=failure.message, details=failure.details)


class OperationResultView(BaseModel):
    """Result of one encrypt / decrypt / sign / verify request."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    operation: str = Field(description="encrypt, decrypt, sign or verify")
    algorithm: str | None = Field(default=None, description="e.g., AES-GCM, RSA-OAEP-SHA256")
    ok: bool = Field(description="False when the request failed")
    output: str | None = Field(
        default=None,
        description="Base64 ciphertext/signature, or UTF-8 plaintext for decrypt",
    )
    valid: bool | None = Field(default=None, description="Verify verdict")
    error: ErrorView | None = Field(default=None, description="Failure, if any")
    duration_ms: float = Field(default=0.0, description="Wall time of the request")

    @classmethod
    def from_result(cls, result: OperationResult) -> "OperationResultView":
        outcome = result.outcome
        output = None
        valid = None
        error = None

        if isinstance(outcome, Success):
            if result.operation == Operation.DECRYPT:
                output = outcome.data.decode("utf-8", errors="replace")
            else:
                output = encode_base64(outcome.data)
        elif isinstance(outcome, VerifyResult):
            valid = outcome.valid
        else:
            error = ErrorView.from_failure(outcome)

        return cls(
            operation=result.operation.value,
            algorithm=result.algorithm,
            ok=result.ok,
            output=output,
            valid=valid,
            error=error,
            duration_ms=result.duration_ms,
        )


class SymmetricKeyView(BaseModel):
    """Generated AES key and IV."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    algorithm: str = Field(description="AES-GCM or AES-CBC")
    key_size_bits: int = Field(description="128, 192 or 256")
    key: str = Field(description="Base64 key")
    iv: str | None = Field(default=None, description="Base64 IV/nonce")

    @classmethod
    def from_material(
        cls, material: KeyMaterial, algorithm: str, iv: bytes | None = None
    ) -> "SymmetricKeyView":
        return cls(
            algorithm=algorithm,
            key_size_bits=material.key_size_bits,
            key=encode_base64(material.data),
            iv=encode_base64(iv) if iv is not None else None,
        )


class KeyPairView(BaseModel):
    """Generated RSA key pair in PEM."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    key_size_bits: int = Field(description="Modulus size")
    role: str = Field(description="encrypt-decrypt or sign-verify")
    public_key: str = Field(description="SPKI public key, PEM")
    private_key: str = Field(description="PKCS#8 private key, PEM")
    max_plaintext_length: int | None = Field(
        default=None,
        description="Largest RSA-OAEP plaintext in bytes (encrypt-decrypt keys only)",
    )

    @classmethod
    def from_key_pair(
        cls, key_pair: AsymmetricKeyPair, manager: KeyMaterialManager | None = None
    ) -> "KeyPairView":
        manager = manager or KeyMaterialManager()
        public_key = key_pair.public_key
        limit = None
        if public_key.role == KeyRole.ENCRYPT_DECRYPT:
            limit = max_plaintext_length(public_key.key_size_bits)
        return cls(
            key_size_bits=public_key.key_size_bits,
            role=public_key.role.value,
            public_key=manager.export_key(public_key, KeyRepresentation.PEM),
            private_key=manager.export_key(key_pair.private_key, KeyRepresentation.PEM),
            max_plaintext_length=limit,
        )
