"""Cryptographic primitive provider.

The transform engine never touches a cipher directly; it goes through a
``PrimitiveProvider``. ``CryptographyProvider`` is the default implementation
on top of the ``cryptography`` package:

- AES-GCM (96-bit nonce, 128-bit tag appended to the ciphertext)
- AES-CBC with PKCS#7 padding
- RSA key generation with SPKI / PKCS#8 DER export
- RSA-OAEP with SHA-256 (MGF1-SHA256, no label)
- RSA-PSS with SHA-256 (MGF1-SHA256) and caller-chosen salt length

Decrypt failures are reported as ``DecryptionFailedError`` with no detail
about which check failed.
"""

import os
from enum import Enum
from typing import Protocol

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cipherdesk.core.errors import DecryptionFailedError, InvalidKeyFormatError


class CipherMode(str, Enum):
    """Supported AES modes."""
    GCM = "GCM"
    CBC = "CBC"

    @property
    def nonce_size(self) -> int:
        """Required IV/nonce length in bytes."""
        return NONCE_SIZES[self]

    @property
    def algorithm_name(self) -> str:
        return f"AES-{self.value}"


NONCE_SIZES = {
    CipherMode.GCM: 12,  # 96 bits recommended for GCM
    CipherMode.CBC: 16,  # One AES block
}

AES_BLOCK_BITS = 128
RSA_PUBLIC_EXPONENT = 65537

# Fixed message for every OAEP unwrap failure
OAEP_FAILURE_MESSAGE = "RSA-OAEP decryption failed"


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def _pss(salt_length: int) -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=salt_length,
    )


def load_public_key(spki_der: bytes) -> rsa.RSAPublicKey:
    """Load an RSA public key from SPKI DER."""
    try:
        key = serialization.load_der_public_key(spki_der)
    except (ValueError, TypeError) as e:
        raise InvalidKeyFormatError(f"Not a valid SPKI public key: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidKeyFormatError(f"Expected an RSA public key, got {type(key).__name__}")
    spki = key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    if spki != spki_der:
        raise InvalidKeyFormatError("Public key is not wrapped in a SubjectPublicKeyInfo envelope")
    return key


def load_private_key(pkcs8_der: bytes) -> rsa.RSAPrivateKey:
    """Load an RSA private key from PKCS#8 DER."""
    try:
        key = serialization.load_der_private_key(pkcs8_der, password=None)
    except (ValueError, TypeError) as e:
        raise InvalidKeyFormatError(f"Not a valid PKCS#8 private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidKeyFormatError(f"Expected an RSA private key, got {type(key).__name__}")
    pkcs8 = key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    if pkcs8 != pkcs8_der:
        raise InvalidKeyFormatError("Private key is not wrapped in a PKCS#8 envelope")
    return key


class PrimitiveProvider(Protocol):
    """Operations the transform engine needs from a crypto backend."""

    def generate_random_bytes(self, n: int) -> bytes: ...

    def aes_encrypt(self, mode: CipherMode, key: bytes, iv: bytes, plaintext: bytes) -> bytes: ...

    def aes_decrypt(self, mode: CipherMode, key: bytes, iv: bytes, ciphertext: bytes) -> bytes: ...

    def rsa_generate_key_pair(self, modulus_bits: int, exponent: int) -> tuple[bytes, bytes]: ...

    def rsa_oaep_encrypt(self, public_key: bytes, plaintext: bytes) -> bytes: ...

    def rsa_oaep_decrypt(self, private_key: bytes, ciphertext: bytes) -> bytes: ...

    def rsa_pss_sign(self, private_key: bytes, salt_length: int, message: bytes) -> bytes: ...

    def rsa_pss_verify(
        self, public_key: bytes, salt_length: int, message: bytes, signature: bytes
    ) -> bool: ...


class CryptographyProvider:
    """Primitive provider backed by the ``cryptography`` package."""

    def generate_random_bytes(self, n: int) -> bytes:
        return os.urandom(n)

    # ==================== AES ====================

    def aes_encrypt(self, mode: CipherMode, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        """Encrypt; GCM output is ciphertext || 16-byte tag."""
        if mode == CipherMode.GCM:
            return AESGCM(key).encrypt(iv, plaintext, None)

        padder = sym_padding.PKCS7(AES_BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def aes_decrypt(self, mode: CipherMode, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """Decrypt; raises DecryptionFailedError on tag or padding mismatch."""
        if mode == CipherMode.GCM:
            try:
                return AESGCM(key).decrypt(iv, ciphertext, None)
            except InvalidTag as e:
                raise DecryptionFailedError("AES-GCM authentication failed") from e

        if not ciphertext or len(ciphertext) % (AES_BLOCK_BITS // 8):
            raise DecryptionFailedError("AES-CBC ciphertext is not a whole number of blocks")
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            unpadder = sym_padding.PKCS7(AES_BLOCK_BITS).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionFailedError("AES-CBC padding check failed") from e

    # ==================== RSA ====================

    def rsa_generate_key_pair(self, modulus_bits: int, exponent: int) -> tuple[bytes, bytes]:
        """Generate a key pair; returns (SPKI DER, PKCS#8 DER)."""
        private_key = rsa.generate_private_key(
            public_exponent=exponent,
            key_size=modulus_bits,
        )
        public_der = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        private_der = private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return public_der, private_der

    def rsa_oaep_encrypt(self, public_key: bytes, plaintext: bytes) -> bytes:
        return load_public_key(public_key).encrypt(plaintext, _oaep())

    def rsa_oaep_decrypt(self, private_key: bytes, ciphertext: bytes) -> bytes:
        key = load_private_key(private_key)
        try:
            return key.decrypt(ciphertext, _oaep())
        except ValueError as e:
            raise DecryptionFailedError(OAEP_FAILURE_MESSAGE) from e

    def rsa_pss_sign(self, private_key: bytes, salt_length: int, message: bytes) -> bytes:
        return load_private_key(private_key).sign(message, _pss(salt_length), hashes.SHA256())

    def rsa_pss_verify(
        self, public_key: bytes, salt_length: int, message: bytes, signature: bytes
    ) -> bool:
        key = load_public_key(public_key)
        try:
            key.verify(signature, message, _pss(salt_length), hashes.SHA256())
            return True
        except InvalidSignature:
            return False
