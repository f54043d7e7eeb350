#!/usr/bin/env python3
"""
AES Round Trip Example

Demonstrates AES-GCM and AES-CBC encryption with the transform engine,
including how failures come back as typed results.
"""

import asyncio

from cipherdesk import (
    CipherMode,
    Operation,
    OperationRequest,
    TransformEngine,
    encode_base64,
)


async def main():
    engine = TransformEngine()

    print("CipherDesk AES Round Trip Example")
    print("=" * 50)

    # Example 1: Generate key material
    print("\n1. Generating an AES-256 key and GCM nonce...")
    key = await engine.generate_key()
    iv = await engine.generate_nonce(CipherMode.GCM)
    print(f"   Key: {encode_base64(key.data)}")
    print(f"   IV:  {encode_base64(iv)}")

    # Example 2: Encrypt
    print("\n2. Encrypting with AES-GCM...")
    plaintext = "This is sensitive text".encode("utf-8")
    encrypted = await engine.convert(
        OperationRequest(Operation.ENCRYPT, plaintext, key, mode=CipherMode.GCM, iv=iv)
    )
    print(f"   Ciphertext: {encode_base64(encrypted.data)} ({len(encrypted.data)} bytes)")

    # Example 3: Decrypt
    print("\n3. Decrypting...")
    decrypted = await engine.convert(
        OperationRequest(Operation.DECRYPT, encrypted.data, key, mode=CipherMode.GCM, iv=iv)
    )
    print(f"   Decrypted: {decrypted.data.decode('utf-8')}")
    assert decrypted.data == plaintext, "Decryption failed!"
    print("   Verification: PASSED")

    # Example 4: CBC needs a 16-byte IV
    print("\n4. Using a GCM nonce with AES-CBC...")
    result = await engine.convert(
        OperationRequest(Operation.ENCRYPT, plaintext, key, mode=CipherMode.CBC, iv=iv)
    )
    print(f"   {result.failure.kind.value}: {result.failure.message}")

    # Example 5: Tampering is detected
    print("\n5. Flipping one ciphertext bit...")
    tampered = bytes([encrypted.data[0] ^ 0x01]) + encrypted.data[1:]
    result = await engine.convert(
        OperationRequest(Operation.DECRYPT, tampered, key, mode=CipherMode.GCM, iv=iv)
    )
    print(f"   {result.failure.kind.value}: {result.failure.message}")

    print("\n" + "=" * 50)
    print("Example completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
