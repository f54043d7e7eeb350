"""Key Material Manager.

Generates and imports the key material the transform engine consumes:
- Symmetric AES keys (128/192/256-bit)
- AES nonces/IVs sized for the selected mode
- RSA key pairs (2048/3072/4096-bit, e = 65537) as SPKI / PKCS#8 DER

Key material is immutable and owned by the caller; nothing here keeps a
reference after returning.
"""

from dataclasses import dataclass
from enum import Enum

from cipherdesk.core.codec import (
    PemLabel,
    decode_base64,
    encode_base64,
    encode_pem,
    looks_like_pem,
    parse_pem,
)
from cipherdesk.core.errors import InvalidKeyFormatError, MalformedEncodingError
from cipherdesk.core.logging import get_logger
from cipherdesk.core.primitives import (
    RSA_PUBLIC_EXPONENT,
    CipherMode,
    CryptographyProvider,
    PrimitiveProvider,
    load_private_key,
    load_public_key,
)

logger = get_logger(__name__)

SYMMETRIC_KEY_SIZES = (128, 192, 256)
RSA_KEY_SIZES = (2048, 3072, 4096)


class AlgorithmFamily(str, Enum):
    """Key families."""
    SYMMETRIC = "symmetric"
    ASYMMETRIC = "asymmetric"


class KeyRepresentation(str, Enum):
    """External representation of key material."""
    RAW = "raw"
    BASE64 = "base64"
    PEM = "pem"


class KeyRole(str, Enum):
    """What the key is meant for."""
    ENCRYPT_DECRYPT = "encrypt-decrypt"
    SIGN_VERIFY = "sign-verify"


class KeyKind(str, Enum):
    """Which half of the material this is."""
    SECRET = "secret"  # Symmetric
    PUBLIC = "public"  # SPKI DER
    PRIVATE = "private"  # PKCS#8 DER


@dataclass(frozen=True)
class KeyMaterial:
    """Decoded key material plus the metadata needed to use it."""
    algorithm_family: AlgorithmFamily
    key_size_bits: int
    representation: KeyRepresentation
    role: KeyRole
    kind: KeyKind
    data: bytes

    def __repr__(self) -> str:
        # Never print the key bytes
        return (
            f"KeyMaterial(family={self.algorithm_family.value}, "
            f"bits={self.key_size_bits}, kind={self.kind.value}, "
            f"role={self.role.value}, representation={self.representation.value})"
        )

    @property
    def is_symmetric(self) -> bool:
        return self.algorithm_family == AlgorithmFamily.SYMMETRIC

    @property
    def key_size_bytes(self) -> int:
        return self.key_size_bits // 8


@dataclass(frozen=True)
class AsymmetricKeyPair:
    """RSA key pair."""
    public_key: KeyMaterial
    private_key: KeyMaterial


_PEM_LABELS = {
    KeyKind.PUBLIC: PemLabel.PUBLIC_KEY,
    KeyKind.PRIVATE: PemLabel.PRIVATE_KEY,
}


class KeyMaterialManager:
    """Generates, imports and exports key material."""

    def __init__(self, provider: PrimitiveProvider | None = None):
        self._provider = provider or CryptographyProvider()

    # ==================== Generation ====================

    def generate_symmetric_key(
        self,
        key_size_bits: int = 256,
        role: KeyRole = KeyRole.ENCRYPT_DECRYPT,
    ) -> KeyMaterial:
        """Generate a random AES key.

        Args:
            key_size_bits: 128, 192 or 256

        Returns:
            KeyMaterial holding key_size_bits / 8 random bytes
        """
        if key_size_bits not in SYMMETRIC_KEY_SIZES:
            raise InvalidKeyFormatError(
                f"AES key size must be 128, 192, or 256 bits, got {key_size_bits}",
                {"key_size_bits": key_size_bits},
            )
        data = self._provider.generate_random_bytes(key_size_bits // 8)
        logger.debug("Generated symmetric key", key_size_bits=key_size_bits)
        return KeyMaterial(
            algorithm_family=AlgorithmFamily.SYMMETRIC,
            key_size_bits=key_size_bits,
            representation=KeyRepresentation.BASE64,
            role=role,
            kind=KeyKind.SECRET,
            data=data,
        )

    def generate_nonce(self, mode: CipherMode | str) -> bytes:
        """Generate a random IV: 12 bytes for GCM, 16 for CBC."""
        mode = CipherMode(mode)
        return self._provider.generate_random_bytes(mode.nonce_size)

    def generate_asymmetric_key_pair(
        self,
        modulus_bits: int = 2048,
        role: KeyRole = KeyRole.ENCRYPT_DECRYPT,
    ) -> AsymmetricKeyPair:
        """Generate an RSA key pair with public exponent 65537.

        Args:
            modulus_bits: 2048, 3072 or 4096

        Returns:
            AsymmetricKeyPair with SPKI public and PKCS#8 private material
        """
        if modulus_bits not in RSA_KEY_SIZES:
            raise InvalidKeyFormatError(
                f"RSA key size must be 2048, 3072, or 4096 bits, got {modulus_bits}",
                {"key_size_bits": modulus_bits},
            )
        public_der, private_der = self._provider.rsa_generate_key_pair(
            modulus_bits, RSA_PUBLIC_EXPONENT
        )
        return AsymmetricKeyPair(
            public_key=self._asymmetric(public_der, modulus_bits, KeyKind.PUBLIC, role),
            private_key=self._asymmetric(private_der, modulus_bits, KeyKind.PRIVATE, role),
        )

    # ==================== Import ====================

    def import_key(
        self,
        encoded: str | bytes,
        representation: KeyRepresentation | str,
        role: KeyRole = KeyRole.ENCRYPT_DECRYPT,
        family: AlgorithmFamily = AlgorithmFamily.SYMMETRIC,
        kind: KeyKind | None = None,
    ) -> KeyMaterial:
        """Decode key material from an external representation.

        Args:
            encoded: PEM or Base64 text, or raw bytes
            representation: How ``encoded`` is represented
            role: Intended use of the key
            family: Symmetric (AES) or asymmetric (RSA)
            kind: PUBLIC or PRIVATE for RSA; taken from the PEM label or
                detected from the DER envelope when omitted

        Returns:
            Validated KeyMaterial

        Raises:
            MalformedEncodingError: If the text does not decode
            InvalidKeyFormatError: If the decoded bytes are not a usable key
        """
        representation = KeyRepresentation(representation)
        family = AlgorithmFamily(family)

        if representation == KeyRepresentation.PEM:
            if family == AlgorithmFamily.SYMMETRIC:
                raise InvalidKeyFormatError("Symmetric keys have no PEM form")
            block = parse_pem(_as_text(encoded))
            pem_kind = _kind_for_label(block.label)
            if kind is not None and kind != pem_kind:
                raise InvalidKeyFormatError(
                    f"Expected a {kind.value} key, got PEM label '{block.label}'"
                )
            kind, data = pem_kind, block.data
        elif representation == KeyRepresentation.BASE64:
            data = decode_base64(_as_text(encoded))
        else:
            data = encoded.encode("utf-8") if isinstance(encoded, str) else bytes(encoded)

        if family == AlgorithmFamily.SYMMETRIC:
            return self._import_symmetric(data, representation, role)
        return self._import_asymmetric(data, representation, role, kind)

    def import_symmetric_key(self, text: str, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> KeyMaterial:
        """Import a Base64 AES key as typed into a key field."""
        return self.import_key(text, KeyRepresentation.BASE64, role, AlgorithmFamily.SYMMETRIC)

    def import_public_key(self, text: str, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> KeyMaterial:
        """Import an RSA public key from PEM (or bare Base64 SPKI)."""
        return self._import_rsa_text(text, role, KeyKind.PUBLIC)

    def import_private_key(self, text: str, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> KeyMaterial:
        """Import an RSA private key from PEM (or bare Base64 PKCS#8)."""
        return self._import_rsa_text(text, role, KeyKind.PRIVATE)

    # ==================== Export ====================

    def export_key(
        self,
        material: KeyMaterial,
        representation: KeyRepresentation | str | None = None,
    ) -> str | bytes:
        """Render key material; RAW returns bytes, the others text."""
        representation = KeyRepresentation(representation or material.representation)

        if representation == KeyRepresentation.RAW:
            return material.data
        if representation == KeyRepresentation.BASE64:
            return encode_base64(material.data)
        if material.is_symmetric:
            raise InvalidKeyFormatError("Symmetric keys have no PEM form")
        return encode_pem(material.data, _PEM_LABELS[material.kind])

    # ==================== Helpers ====================

    def _import_rsa_text(self, text: str, role: KeyRole, kind: KeyKind) -> KeyMaterial:
        representation = KeyRepresentation.PEM if looks_like_pem(text) else KeyRepresentation.BASE64
        return self.import_key(text, representation, role, AlgorithmFamily.ASYMMETRIC, kind)

    def _import_symmetric(
        self, data: bytes, representation: KeyRepresentation, role: KeyRole
    ) -> KeyMaterial:
        key_size_bits = len(data) * 8
        if key_size_bits not in SYMMETRIC_KEY_SIZES:
            raise InvalidKeyFormatError(
                f"AES key must be 16, 24, or 32 bytes, got {len(data)}",
                {"actual_length": len(data)},
            )
        return KeyMaterial(
            algorithm_family=AlgorithmFamily.SYMMETRIC,
            key_size_bits=key_size_bits,
            representation=representation,
            role=role,
            kind=KeyKind.SECRET,
            data=data,
        )

    def _import_asymmetric(
        self,
        data: bytes,
        representation: KeyRepresentation,
        role: KeyRole,
        kind: KeyKind | None,
    ) -> KeyMaterial:
        # Both SPKI and PKCS#8 are a DER SEQUENCE
        if len(data) < 2 or data[0] != 0x30:
            raise InvalidKeyFormatError("Key is not a DER SEQUENCE")

        if kind is None:
            kind = _detect_kind(data)
        if kind == KeyKind.PUBLIC:
            modulus_bits = load_public_key(data).key_size
        elif kind == KeyKind.PRIVATE:
            modulus_bits = load_private_key(data).key_size
        else:
            raise InvalidKeyFormatError("RSA key kind must be public or private")

        if modulus_bits not in RSA_KEY_SIZES:
            raise InvalidKeyFormatError(
                f"RSA modulus of {modulus_bits} bits is not supported "
                f"(expected 2048, 3072, or 4096)",
                {"key_size_bits": modulus_bits},
            )
        logger.debug("Imported RSA key", key_kind=kind.value, key_size_bits=modulus_bits)
        return self._asymmetric(data, modulus_bits, kind, role, representation)

    def _asymmetric(
        self,
        der: bytes,
        modulus_bits: int,
        kind: KeyKind,
        role: KeyRole,
        representation: KeyRepresentation = KeyRepresentation.PEM,
    ) -> KeyMaterial:
        return KeyMaterial(
            algorithm_family=AlgorithmFamily.ASYMMETRIC,
            key_size_bits=modulus_bits,
            representation=representation,
            role=role,
            kind=kind,
            data=der,
        )


def _as_text(encoded: str | bytes) -> str:
    if isinstance(encoded, str):
        return encoded
    try:
        return encoded.decode("ascii")
    except UnicodeDecodeError as e:
        raise MalformedEncodingError("Encoded key is not ASCII text") from e


def _kind_for_label(label: str) -> KeyKind:
    if label == PemLabel.PUBLIC_KEY.value:
        return KeyKind.PUBLIC
    if label == PemLabel.PRIVATE_KEY.value:
        return KeyKind.PRIVATE
    raise InvalidKeyFormatError(
        f"Unsupported PEM label '{label}' (expected PUBLIC KEY or PRIVATE KEY)"
    )


def _detect_kind(data: bytes) -> KeyKind:
    """Tell SPKI from PKCS#8 by trying to parse each."""
    try:
        load_public_key(data)
        return KeyKind.PUBLIC
    except InvalidKeyFormatError:
        pass
    try:
        load_private_key(data)
        return KeyKind.PRIVATE
    except InvalidKeyFormatError as e:
        raise InvalidKeyFormatError(
            "Key is neither an SPKI public key nor a PKCS#8 private key"
        ) from e


__all__ = [
    "AlgorithmFamily",
    "AsymmetricKeyPair",
    "KeyKind",
    "KeyMaterial",
    "KeyMaterialManager",
    "KeyRepresentation",
    "KeyRole",
    "RSA_KEY_SIZES",
    "SYMMETRIC_KEY_SIZES",
]
