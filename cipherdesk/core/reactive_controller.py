"""Reactive Controller.

Drives live conversion for one tool page:

- Every input or configuration change schedules a debounced conversion
- Each schedule bumps a generation counter; a result whose generation is no
  longer current is dropped instead of being written to the output
- One state machine covers both operation pairs (encrypt/decrypt and
  sign/verify); ``swap()`` flips the active side

Text crosses into bytes here: encrypt/sign/verify read UTF-8 text, decrypt
reads Base64, and results come back as Base64 (ciphertext, signature), UTF-8
text (plaintext) or a verdict string.

Must be used from inside a running asyncio event loop.

Usage:
    controller = ReactiveController(TransformEngine())
    await controller.generate_key()
    await controller.generate_iv()
    controller.set_input("hello world")
    await controller.wait_idle()
    print(controller.state.output_buffer)
"""

import asyncio
import dataclasses
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from cipherdesk.config import get_settings
from cipherdesk.core.codec import decode_base64, encode_base64
from cipherdesk.core.errors import (
    CipherDeskError,
    InvalidTransitionError,
    MalformedEncodingError,
    is_missing_input,
)
from cipherdesk.core.key_material import (
    AlgorithmFamily,
    AsymmetricKeyPair,
    KeyKind,
    KeyMaterial,
    KeyRole,
)
from cipherdesk.core.logging import controller_id_var, get_logger
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

logger = get_logger(__name__)

VERDICT_VALID = "Signature is valid"
VERDICT_INVALID = "Signature is invalid"

# Tolerance for timer wake-ups that land a hair before the debounce deadline
_CLOCK_SLACK = 0.001


class OperationPair(str, Enum):
    """Operations that can be swapped into each other."""
    ENCRYPT_DECRYPT = "encrypt-decrypt"
    SIGN_VERIFY = "sign-verify"

    @property
    def operations(self) -> tuple[Operation, Operation]:
        """(forward, reverse) operations of the pair."""
        if self == OperationPair.ENCRYPT_DECRYPT:
            return Operation.ENCRYPT, Operation.DECRYPT
        return Operation.SIGN, Operation.VERIFY

    @classmethod
    def for_operation(cls, operation: Operation) -> "OperationPair":
        for pair in cls:
            if operation in pair.operations:
                return pair
        raise ValueError(f"Unknown operation: {operation}")


class ActiveSide(str, Enum):
    """Which half of the pair is active."""
    FORWARD = "forward"  # encrypt / sign
    REVERSE = "reverse"  # decrypt / verify

    def flipped(self) -> "ActiveSide":
        return ActiveSide.REVERSE if self == ActiveSide.FORWARD else ActiveSide.FORWARD


@dataclass
class ControllerState:
    """Snapshot of a controller."""
    operation_pair: OperationPair
    active_side: ActiveSide
    input_buffer: str = ""
    output_buffer: str = ""
    error: Failure | None = None
    signature: bytes | None = None
    generation: int = 0

    @property
    def operation(self) -> Operation:
        forward, reverse = self.operation_pair.operations
        return forward if self.active_side == ActiveSide.FORWARD else reverse


Listener = Callable[[ControllerState], None]


class ReactiveController:
    """Debounced, cancelable conversion pipeline for one tool page.

    Args:
        engine: Transform engine used for every conversion
        pair: Operation pair the page starts in
        family: SYMMETRIC for AES pages, ASYMMETRIC for RSA pages
        debounce_ms: Override for the configured debounce delay
        surface_errors_while_typing: Override for the configured policy
    """

    def __init__(
        self,
        engine: TransformEngine,
        pair: OperationPair = OperationPair.ENCRYPT_DECRYPT,
        family: AlgorithmFamily = AlgorithmFamily.SYMMETRIC,
        debounce_ms: int | None = None,
        surface_errors_while_typing: bool | None = None,
    ):
        settings = get_settings()
        family = AlgorithmFamily(family)
        pair = OperationPair(pair)
        if family == AlgorithmFamily.SYMMETRIC and pair == OperationPair.SIGN_VERIFY:
            raise ValueError("AES pages only support the encrypt/decrypt pair")

        self._engine = engine
        self._family = family
        self._debounce = (settings.debounce_ms if debounce_ms is None else debounce_ms) / 1000
        self._surface_while_typing = (
            settings.surface_errors_while_typing
            if surface_errors_while_typing is None
            else surface_errors_while_typing
        )
        self._id = uuid.uuid4().hex

        self._state = ControllerState(operation_pair=pair, active_side=ActiveSide.FORWARD)

        # Configuration; owned by this controller only
        self._secret_key: KeyMaterial | None = None
        self._public_key: KeyMaterial | None = None
        self._private_key: KeyMaterial | None = None
        self._iv: bytes | None = None
        self._mode: CipherMode = engine.mode
        self._key_size: int = (
            engine.aes_key_size if family == AlgorithmFamily.SYMMETRIC else engine.rsa_key_size
        )

        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._last_input_at: float | None = None
        self._listeners: list[Listener] = []

    # ==================== Read access ====================

    @property
    def state(self) -> ControllerState:
        """Copy of the current state."""
        return dataclasses.replace(self._state)

    @property
    def family(self) -> AlgorithmFamily:
        return self._family

    @property
    def mode(self) -> CipherMode:
        return self._mode

    @property
    def key_size(self) -> int:
        return self._key_size

    @property
    def iv(self) -> bytes | None:
        return self._iv

    @property
    def is_pending(self) -> bool:
        """True while a debounce timer or conversion is outstanding."""
        return (self._timer is not None and not self._timer.done()) or any(
            not task.done() for task in self._in_flight
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a state snapshot after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ==================== Input ====================

    def set_input(self, text: str) -> None:
        """Replace the input buffer and schedule a conversion."""
        self._state.input_buffer = text
        self._last_input_at = asyncio.get_running_loop().time()
        self._schedule()

    # ==================== Configuration ====================

    def set_key(self, material: KeyMaterial | None, kind: KeyKind | None = None) -> None:
        """Install key material in the slot matching its kind.

        Pass ``None`` together with ``kind`` to clear a slot.
        """
        kind = material.kind if material is not None else kind
        if kind is None:
            raise ValueError("kind is required when clearing a key")
        if material is not None and material.is_symmetric != (
            self._family == AlgorithmFamily.SYMMETRIC
        ):
            raise ValueError(
                f"{material.algorithm_family.value} key does not fit a "
                f"{self._family.value} controller"
            )

        if kind == KeyKind.SECRET:
            self._secret_key = material
        elif kind == KeyKind.PUBLIC:
            self._public_key = material
        else:
            self._private_key = material
        self._invalidate()

    def set_key_pair(self, key_pair: AsymmetricKeyPair) -> None:
        """Install both halves of an RSA key pair."""
        if self._family != AlgorithmFamily.ASYMMETRIC:
            raise ValueError("RSA key pairs need an asymmetric controller")
        self._public_key = key_pair.public_key
        self._private_key = key_pair.private_key
        self._invalidate()

    def set_iv(self, iv: bytes | None) -> None:
        self._iv = iv
        self._invalidate()

    def set_mode(self, mode: CipherMode | str) -> None:
        self._mode = CipherMode(mode)
        self._invalidate()

    def set_key_size(self, key_size_bits: int) -> None:
        """Key size used by the generate_* helpers."""
        self._key_size = key_size_bits
        self._invalidate()

    def set_signature(self, signature: bytes | None) -> None:
        """Signature checked by verify."""
        self._state.signature = signature
        self._invalidate()

    # ==================== Generation ====================

    async def generate_key(self, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> KeyMaterial:
        """Generate and install an AES key of the configured size."""
        material = await asyncio.to_thread(
            self._engine.key_manager.generate_symmetric_key, self._key_size, role
        )
        self.set_key(material)
        return material

    async def generate_iv(self) -> bytes:
        """Generate and install an IV sized for the current mode."""
        iv = await asyncio.to_thread(self._engine.key_manager.generate_nonce, self._mode)
        self.set_iv(iv)
        return iv

    async def generate_key_pair(self, role: KeyRole = KeyRole.ENCRYPT_DECRYPT) -> AsymmetricKeyPair:
        """Generate and install an RSA key pair of the configured size."""
        key_pair = await asyncio.to_thread(
            self._engine.key_manager.generate_asymmetric_key_pair, self._key_size, role
        )
        self.set_key_pair(key_pair)
        return key_pair

    # ==================== Transitions ====================

    def swap(self) -> None:
        """Flip to the opposite operation of the current pair.

        Encrypt/decrypt exchanges the input and output buffers so the last
        output becomes the next input. Sign/verify keeps the message as input;
        the signature produced by sign stays in the signature slot.
        """
        state = self._state
        if state.operation_pair == OperationPair.ENCRYPT_DECRYPT:
            state.input_buffer, state.output_buffer = state.output_buffer, state.input_buffer
        else:
            state.output_buffer = ""
        state.active_side = state.active_side.flipped()
        state.error = None
        self._last_input_at = None
        logger.debug("Swapped operation", operation=state.operation.value)
        self._schedule()

    def select_operation(self, operation: Operation | str) -> None:
        """Pick an operation within the current pair."""
        operation = Operation(operation)
        forward, reverse = self._state.operation_pair.operations
        if operation not in (forward, reverse):
            raise InvalidTransitionError(
                f"Cannot select {operation.value} from the "
                f"{self._state.operation_pair.value} pair; reset() first"
            )
        if operation == self._state.operation:
            return
        self._state.active_side = ActiveSide.FORWARD if operation == forward else ActiveSide.REVERSE
        self._invalidate()

    def reset(self, pair: OperationPair | str | None = None) -> None:
        """Re-enter the page, optionally in another pair, with cleared buffers."""
        pair = OperationPair(pair) if pair is not None else self._state.operation_pair
        if self._family == AlgorithmFamily.SYMMETRIC and pair == OperationPair.SIGN_VERIFY:
            raise InvalidTransitionError("AES pages only support the encrypt/decrypt pair")
        self._cancel_timer()
        self._state = ControllerState(
            operation_pair=pair,
            active_side=ActiveSide.FORWARD,
            generation=self._state.generation + 1,
        )
        self._last_input_at = None
        self._notify()

    def clear(self) -> None:
        """Empty input, output, error and signature."""
        self._cancel_timer()
        state = self._state
        state.generation += 1
        state.input_buffer = ""
        state.output_buffer = ""
        state.error = None
        state.signature = None
        self._notify()

    # ==================== Scheduling ====================

    async def convert_now(self) -> ControllerState:
        """Run the pipeline immediately, skipping the debounce delay."""
        self._cancel_timer()
        self._state.generation += 1
        await self._run(self._state.generation)
        return self.state

    async def wait_idle(self) -> ControllerState:
        """Wait until no timer or conversion is outstanding."""
        while True:
            tasks = [t for t in (self._timer, *self._in_flight) if t is not None and not t.done()]
            if not tasks:
                return self.state
            await asyncio.gather(*tasks, return_exceptions=True)

    def _invalidate(self) -> None:
        """Configuration changed: the current output no longer applies."""
        self._state.output_buffer = ""
        self._state.error = None
        self._schedule()

    def _schedule(self) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_timer()
        self._state.generation += 1
        self._timer = loop.create_task(self._debounced(self._state.generation))
        self._notify()

    def _cancel_timer(self) -> None:
        # Only timers still sleeping are cancelled; running conversions finish
        # and are dropped by the generation check.
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _debounced(self, generation: int) -> None:
        await asyncio.sleep(self._debounce)
        task = asyncio.current_task()
        if self._timer is task:
            self._timer = None
        self._in_flight.add(task)
        try:
            await self._run(generation)
        finally:
            self._in_flight.discard(task)

    # ==================== Pipeline ====================

    async def _run(self, generation: int) -> None:
        token = controller_id_var.set(self._id)
        try:
            state = self._state
            operation = state.operation

            if not state.input_buffer.strip():
                self._apply(generation, output="", error=None)
                return

            request, boundary_failure = self._build_request(state, operation)
            if boundary_failure is not None:
                self._apply_failure(generation, boundary_failure)
                return

            result = await self._engine.convert(request)
            if generation != self._state.generation:
                logger.debug(
                    "Discarding superseded result",
                    operation=operation.value,
                    generation=generation,
                    current_generation=self._state.generation,
                )
                return
            self._apply_result(generation, result)
        finally:
            controller_id_var.reset(token)

    def _build_request(
        self, state: ControllerState, operation: Operation
    ) -> tuple[OperationRequest, Failure | None]:
        request = OperationRequest(
            operation=operation,
            payload=b"",
            key=self._key_for(operation),
            mode=self._mode if self._family == AlgorithmFamily.SYMMETRIC else None,
            iv=self._iv,
            signature=state.signature,
        )

        try:
            if operation == Operation.DECRYPT:
                request.payload = decode_base64(state.input_buffer)
            else:
                try:
                    request.payload = state.input_buffer.encode("utf-8")
                except UnicodeEncodeError as e:
                    raise MalformedEncodingError(
                        "Input contains characters that cannot be encoded as UTF-8",
                        {"position": e.start},
                    ) from e
        except CipherDeskError as e:
            # A missing key or IV outranks a half-typed input
            missing = self._engine.check(request)
            if missing is not None and is_missing_input(missing.kind):
                return request, missing
            return request, Failure.from_error(e)
        return request, None

    def _key_for(self, operation: Operation) -> KeyMaterial | None:
        if self._family == AlgorithmFamily.SYMMETRIC:
            return self._secret_key
        if operation in (Operation.ENCRYPT, Operation.VERIFY):
            return self._public_key
        return self._private_key

    def _apply_result(self, generation: int, result: OperationResult) -> None:
        outcome = result.outcome
        if isinstance(outcome, Success):
            if result.operation == Operation.DECRYPT:
                output = outcome.data.decode("utf-8", errors="replace")
            else:
                output = encode_base64(outcome.data)
            if result.operation == Operation.SIGN:
                self._state.signature = outcome.data
            self._apply(generation, output=output, error=None)
        elif isinstance(outcome, VerifyResult):
            self._apply(
                generation,
                output=VERDICT_VALID if outcome.valid else VERDICT_INVALID,
                error=None,
            )
        else:
            self._apply_failure(generation, outcome)

    def _apply_failure(self, generation: int, failure: Failure) -> None:
        surfaced = failure if self._should_surface(failure) else None
        if surfaced is None:
            logger.debug("Suppressed error while typing", error_kind=failure.kind.value)
        self._apply(generation, output="", error=surfaced)

    def _should_surface(self, failure: Failure) -> bool:
        if is_missing_input(failure.kind) or self._surface_while_typing:
            return True
        if self._last_input_at is None:
            return True
        elapsed = asyncio.get_running_loop().time() - self._last_input_at
        return elapsed + _CLOCK_SLACK >= self._debounce

    def _apply(self, generation: int, output: str, error: Failure | None) -> None:
        if generation != self._state.generation:
            return
        self._state.output_buffer = output
        self._state.error = error
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)


__all__ = [
    "ActiveSide",
    "ControllerState",
    "OperationPair",
    "ReactiveController",
    "VERDICT_INVALID",
    "VERDICT_VALID",
]
