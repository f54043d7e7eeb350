#!/usr/bin/env python3
"""
RSA Example

Demonstrates RSA-OAEP encryption and RSA-PSS signatures, with keys moved
through PEM the way a user would paste them.
"""

import asyncio

from cipherdesk import (
    KeyMaterialManager,
    KeyRole,
    Operation,
    OperationRequest,
    TransformEngine,
    encode_base64,
    max_plaintext_length,
)


async def main():
    engine = TransformEngine()
    manager: KeyMaterialManager = engine.key_manager

    print("CipherDesk RSA Example")
    print("=" * 50)

    # Example 1: Generate and export a key pair
    print("\n1. Generating a 2048-bit RSA key pair...")
    key_pair = await engine.generate_key_pair(KeyRole.SIGN_VERIFY)
    public_pem = manager.export_key(key_pair.public_key)
    private_pem = manager.export_key(key_pair.private_key)
    print(f"   {public_pem.splitlines()[0]} ... ({len(public_pem)} chars)")
    print(f"   {private_pem.splitlines()[0]} ... ({len(private_pem)} chars)")

    # Example 2: Import from PEM
    print("\n2. Importing the PEM text back...")
    public_key = manager.import_public_key(public_pem)
    private_key = manager.import_private_key(private_pem)
    print(f"   {public_key!r}")

    # Example 3: Sign and verify
    print("\n3. Signing with RSA-PSS-SHA256...")
    message = b"Transfer 100 credits to account 42"
    signed = await engine.convert(OperationRequest(Operation.SIGN, message, private_key))
    print(f"   Signature: {encode_base64(signed.data)[:48]}...")

    verified = await engine.convert(
        OperationRequest(Operation.VERIFY, message, public_key, signature=signed.data)
    )
    print(f"   Original message valid: {verified.valid}")

    forged = await engine.convert(
        OperationRequest(Operation.VERIFY, message.replace(b"100", b"900"), public_key,
                         signature=signed.data)
    )
    print(f"   Altered message valid:  {forged.valid}")

    # Example 4: OAEP capacity
    limit = max_plaintext_length(public_key.key_size_bits)
    print(f"\n4. RSA-OAEP-SHA256 accepts at most {limit} bytes with this key...")
    result = await engine.convert(
        OperationRequest(Operation.ENCRYPT, b"x" * (limit + 1), public_key)
    )
    print(f"   {result.failure.kind.value}: {result.failure.message}")

    print("\n" + "=" * 50)
    print("Example completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
