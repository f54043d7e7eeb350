#!/usr/bin/env python3
"""CipherDesk CLI.

Runs the AES and RSA transforms from the command line.

Usage:
    cipherdesk keygen aes --bits 256 --mode GCM
    cipherdesk keygen rsa --bits 2048 --out-dir ./keys
    cipherdesk aes encrypt --key <b64> --iv <b64> --text "hello"
    echo <b64> | cipherdesk aes decrypt --key <b64> --iv <b64>
    cipherdesk rsa sign --private-key keys/private.pem --text "hello"
    cipherdesk rsa verify --public-key keys/public.pem --signature <b64> --text "hello"

Exit Codes:
    0 - Success (or valid signature)
    1 - Operation failed (or invalid signature)
    2 - Configuration error
    3 - Invalid arguments
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from cipherdesk import __version__
from cipherdesk.config import get_settings
from cipherdesk.core.codec import decode_base64, encode_base64
from cipherdesk.core.errors import CipherDeskError
from cipherdesk.core.key_material import KeyMaterial, KeyRole
from cipherdesk.core.logging import get_logger, setup_logging
from cipherdesk.core.primitives import CipherMode
from cipherdesk.core.transform_engine import (
    Failure,
    Operation,
    OperationRequest,
    OperationResult,
    Success,
    TransformEngine,
    VerifyResult,
)
from cipherdesk.schemas import KeyPairView, OperationResultView, SymmetricKeyView

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_ARGS = 3


# =============================================================================
# Terminal Colors
# =============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    @classmethod
    def disable(cls):
        for attr in ["RED", "GREEN", "YELLOW", "CYAN", "BOLD", "RESET"]:
            setattr(cls, attr, "")


def colored(text: str, color: str) -> str:
    return f"{color}{text}{Colors.RESET}"


def print_error(message: str) -> None:
    print(colored(f"✗ {message}", Colors.RED), file=sys.stderr)


# =============================================================================
# Argument helpers
# =============================================================================

class ArgumentError(Exception):
    """Command-line input that cannot be used."""


def read_input(args) -> str:
    """Payload text from --text, --input-file or stdin."""
    if args.text is not None:
        return args.text
    if args.input_file:
        try:
            return Path(args.input_file).read_text(encoding="utf-8")
        except OSError as e:
            raise ArgumentError(f"Cannot read {args.input_file}: {e.strerror}") from e
    return sys.stdin.read()


def read_key_text(value: str) -> str:
    """A key argument is either a file path or the key itself."""
    if os.path.isfile(value):
        return Path(value).read_text(encoding="utf-8")
    return value


def decode_argument(name: str, value: str) -> bytes:
    try:
        return decode_base64(value)
    except CipherDeskError as e:
        raise ArgumentError(f"--{name}: {e.message}") from e


def build_payload(operation: Operation, text: str) -> bytes:
    """Decrypt reads Base64 ciphertext; everything else reads UTF-8 text."""
    if operation == Operation.DECRYPT:
        return decode_base64(text.strip())
    return text.encode("utf-8")


# =============================================================================
# Output
# =============================================================================

def report(result: OperationResult, as_json: bool) -> int:
    view = OperationResultView.from_result(result)

    if as_json:
        print(view.model_dump_json(by_alias=True, indent=2))
    elif isinstance(result.outcome, Success):
        print(view.output)
    elif isinstance(result.outcome, VerifyResult):
        if result.outcome.valid:
            print(colored("✓ Signature is valid", Colors.GREEN))
        else:
            print(colored("✗ Signature is invalid", Colors.RED))
    else:
        print_error(f"[{view.error.kind}] {view.error.message}")

    if isinstance(result.outcome, VerifyResult):
        return EXIT_OK if result.outcome.valid else EXIT_FAILURE
    return EXIT_OK if result.ok else EXIT_FAILURE


async def run_transform(
    engine: TransformEngine,
    args,
    operation: Operation,
    key: KeyMaterial,
    **request_fields,
) -> int:
    text = read_input(args)
    try:
        payload = build_payload(operation, text)
    except CipherDeskError as e:
        result = OperationResult(operation=operation, algorithm=None, outcome=Failure.from_error(e))
        return report(result, args.json)

    request = OperationRequest(operation=operation, payload=payload, key=key, **request_fields)
    result = await engine.convert(request)
    return report(result, args.json)


# =============================================================================
# Command: keygen
# =============================================================================

async def cmd_keygen(args, engine: TransformEngine) -> int:
    """Generate AES keys, IVs or RSA key pairs."""
    if args.kind == "nonce":
        mode = CipherMode(args.mode)
        iv = await engine.generate_nonce(mode)
        if args.json:
            print(json.dumps({"mode": mode.value, "iv": encode_base64(iv)}, indent=2))
        else:
            print(encode_base64(iv))
        return EXIT_OK

    if args.kind == "aes":
        mode = CipherMode(args.mode)
        engine.set_aes_key_size(args.bits)
        key = await engine.generate_key()
        iv = await engine.generate_nonce(mode)
        view = SymmetricKeyView.from_material(key, mode.algorithm_name, iv)
        if args.json:
            print(view.model_dump_json(by_alias=True, indent=2))
        else:
            print(f"{colored('Algorithm:', Colors.BOLD)} {view.algorithm}-{view.key_size_bits}")
            print(f"{colored('Key:', Colors.BOLD)}       {view.key}")
            print(f"{colored('IV:', Colors.BOLD)}        {view.iv}")
        return EXIT_OK

    engine.set_rsa_key_size(args.bits)
    key_pair = await engine.generate_key_pair(KeyRole(args.role))
    view = KeyPairView.from_key_pair(key_pair, engine.key_manager)

    if args.out_dir:
        out_dir = Path(args.out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        (out_dir / "public.pem").write_text(view.public_key + "\n", encoding="utf-8")
        private_path = out_dir / "private.pem"
        private_path.write_text(view.private_key + "\n", encoding="utf-8")
        os.chmod(private_path, 0o600)
        logger.info("Wrote RSA key pair", key_size_bits=view.key_size_bits, path=str(out_dir))

    if args.json:
        print(view.model_dump_json(by_alias=True, indent=2))
    elif args.out_dir:
        print(colored(f"✓ Wrote public.pem and private.pem to {args.out_dir}", Colors.GREEN))
    else:
        print(view.public_key)
        print(view.private_key)
    return EXIT_OK


# =============================================================================
# Command: aes
# =============================================================================

async def cmd_aes(args, engine: TransformEngine) -> int:
    """AES-GCM / AES-CBC encrypt and decrypt."""
    key = engine.key_manager.import_symmetric_key(args.key)
    iv = decode_argument("iv", args.iv)
    operation = Operation(args.action)
    return await run_transform(
        engine, args, operation, key, mode=CipherMode(args.mode), iv=iv
    )


# =============================================================================
# Command: rsa
# =============================================================================

async def cmd_rsa(args, engine: TransformEngine) -> int:
    """RSA-OAEP encrypt/decrypt and RSA-PSS sign/verify."""
    operation = Operation(args.action)
    manager = engine.key_manager

    if operation in (Operation.ENCRYPT, Operation.VERIFY):
        key = manager.import_public_key(read_key_text(args.public_key))
    else:
        key = manager.import_private_key(read_key_text(args.private_key))

    signature = None
    if operation == Operation.VERIFY:
        signature = decode_argument("signature", args.signature)

    return await run_transform(engine, args, operation, key, signature=signature)


# =============================================================================
# Parser
# =============================================================================

def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--text", "-t", help="Input text (default: read stdin)")
    source.add_argument("--input-file", "-i", help="Read input from a file")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="cipherdesk",
        description="CipherDesk - AES and RSA transforms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate an AES-256-GCM key and nonce
  cipherdesk keygen aes

  # Encrypt and decrypt
  cipherdesk aes encrypt --key <key> --iv <iv> --text "hello"
  cipherdesk aes decrypt --key <key> --iv <iv> --text <ciphertext>

  # Sign with RSA-PSS and verify
  cipherdesk keygen rsa --role sign-verify --out-dir keys
  cipherdesk rsa sign --private-key keys/private.pem --text "hello"
  cipherdesk rsa verify --public-key keys/public.pem --signature <sig> --text "hello"
        """
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--json", action="store_true", help="Print JSON output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # keygen command
    keygen_parser = subparsers.add_parser("keygen", help="Generate keys and IVs")
    keygen_sub = keygen_parser.add_subparsers(dest="kind", required=True)

    aes_key = keygen_sub.add_parser("aes", help="AES key plus a fresh IV")
    aes_key.add_argument("--bits", type=int, choices=[128, 192, 256],
                         default=settings.default_aes_key_size)
    aes_key.add_argument("--mode", choices=["GCM", "CBC"], default=settings.default_aes_mode)

    nonce = keygen_sub.add_parser("nonce", help="IV/nonce for an AES mode")
    nonce.add_argument("--mode", choices=["GCM", "CBC"], default=settings.default_aes_mode)

    rsa_key = keygen_sub.add_parser("rsa", help="RSA key pair")
    rsa_key.add_argument("--bits", type=int, choices=[2048, 3072, 4096],
                         default=settings.default_rsa_key_size)
    rsa_key.add_argument("--role", choices=[r.value for r in KeyRole],
                         default=KeyRole.ENCRYPT_DECRYPT.value)
    rsa_key.add_argument("--out-dir", "-o", help="Write public.pem and private.pem here")

    # aes command
    aes_parser = subparsers.add_parser("aes", help="AES-GCM / AES-CBC")
    aes_sub = aes_parser.add_subparsers(dest="action", required=True)
    for action in ("encrypt", "decrypt"):
        p = aes_sub.add_parser(action, help=f"{action.capitalize()} with AES")
        p.add_argument("--key", "-k", required=True, help="Base64 AES key")
        p.add_argument("--iv", required=True, help="Base64 IV/nonce")
        p.add_argument("--mode", choices=["GCM", "CBC"], default=settings.default_aes_mode)
        add_input_arguments(p)

    # rsa command
    rsa_parser = subparsers.add_parser("rsa", help="RSA-OAEP / RSA-PSS")
    rsa_sub = rsa_parser.add_subparsers(dest="action", required=True)

    p = rsa_sub.add_parser("encrypt", help="Encrypt with RSA-OAEP-SHA256")
    p.add_argument("--public-key", required=True, help="PEM file or PEM/Base64 text")
    add_input_arguments(p)

    p = rsa_sub.add_parser("decrypt", help="Decrypt with RSA-OAEP-SHA256")
    p.add_argument("--private-key", required=True, help="PEM file or PEM/Base64 text")
    add_input_arguments(p)

    p = rsa_sub.add_parser("sign", help="Sign with RSA-PSS-SHA256")
    p.add_argument("--private-key", required=True, help="PEM file or PEM/Base64 text")
    add_input_arguments(p)

    p = rsa_sub.add_parser("verify", help="Verify an RSA-PSS-SHA256 signature")
    p.add_argument("--public-key", required=True, help="PEM file or PEM/Base64 text")
    p.add_argument("--signature", "-s", required=True, help="Base64 signature")
    add_input_arguments(p)

    return parser


COMMANDS = {
    "keygen": cmd_keygen,
    "aes": cmd_aes,
    "rsa": cmd_rsa,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print_error(f"Configuration error: {e}")
        return EXIT_CONFIG

    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help and --version exit 0; usage errors exit 2, reported as 3
        return EXIT_OK if e.code == 0 else EXIT_ARGS

    if args.no_color or not sys.stdout.isatty():
        Colors.disable()

    if not args.command:
        parser.print_help()
        return EXIT_OK

    setup_logging(json_output=settings.log_json, level=settings.log_level)

    engine = TransformEngine()
    try:
        return asyncio.run(COMMANDS[args.command](args, engine))
    except ArgumentError as e:
        print_error(str(e))
        return EXIT_ARGS
    except CipherDeskError as e:
        # Key material supplied on the command line did not import
        print_error(str(e))
        return EXIT_ARGS


if __name__ == "__main__":
    sys.exit(main())
