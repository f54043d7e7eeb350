#!/usr/bin/env python3
"""
Live Conversion Example

Drives the reactive controller the way a tool page does: keystrokes are
debounced, the output follows the latest input, and swap turns the page
from encrypt into decrypt.
"""

import asyncio

from cipherdesk import ReactiveController, TransformEngine


async def main():
    controller = ReactiveController(TransformEngine(), debounce_ms=100)
    controller.subscribe(
        lambda state: state.error and print(f"   ! {state.error.kind.value}")
    )

    print("CipherDesk Live Conversion Example")
    print("=" * 50)

    print("\n1. Generating key and IV...")
    await controller.generate_key()
    await controller.generate_iv()

    print("\n2. Typing 'hello world' one character at a time...")
    typed = ""
    for char in "hello world":
        typed += char
        controller.set_input(typed)
        await asyncio.sleep(0.01)
    state = await controller.wait_idle()
    print(f"   Ciphertext: {state.output_buffer}")

    print("\n3. Swapping to decrypt...")
    controller.swap()
    state = await controller.wait_idle()
    print(f"   Plaintext: {state.output_buffer}")

    print("\n4. Pasting garbage and pausing...")
    controller.set_input("definitely not base64")
    state = await controller.wait_idle()
    print(f"   Output: {state.output_buffer!r}")

    print("\n" + "=" * 50)
    print("Example completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
