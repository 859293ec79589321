"""
The invocation protocol: one synchronous ``Run`` over bound tensors.

Every precondition is checked before the engine is called; a failure
inside the engine surfaces as InferenceFailedError with the engine's
message unchanged. Nothing is rolled back: outputs may hold partial
results after a failed run.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from .._logging import scoped_logger
from ..exceptions import OutputCountMismatchError, ValidationError
from ..tensor.batch import HandleBatch
from ..tensor.owned import OwnedTensor
from .names import NameTable

if TYPE_CHECKING:
    from ..session.run_options import RunOptions
    from ..session.session import Session

__all__ = ["invoke"]

log = scoped_logger("run")


def _as_names(names: NameTable | Iterable[str | bytes]) -> NameTable:
    if isinstance(names, NameTable):
        return names
    return NameTable(names)


def _as_batch(handles: HandleBatch | Iterable[OwnedTensor]) -> HandleBatch:
    if isinstance(handles, HandleBatch):
        return handles
    # Borrowed: the caller keeps ownership of its handles
    return HandleBatch.borrow(handles)


def invoke(
    session: Session,
    input_names: NameTable | Iterable[str | bytes],
    inputs: HandleBatch | Iterable[OwnedTensor],
    outputs: HandleBatch | Iterable[OwnedTensor],
    output_names: NameTable | Iterable[str | bytes] | None = None,
    *,
    run_options: RunOptions | None = None,
) -> None:
    """
    Run ``session`` once, reading ``inputs`` and writing into ``outputs``.

    Args:
        session: An open Session.
        input_names: Input names, parallel to ``inputs``.
        inputs: Input handles (a HandleBatch or a sequence of OwnedTensor).
        outputs: Output handles. Each must be bound writable.
        output_names: Output names, parallel to ``outputs``. ``None`` uses
            the session's declared outputs in declaration order.
        run_options: Shared RunOptions, or ``None`` for session defaults.

    Raises:
        ValidationError: Input name and handle counts differ
            (``code="INPUT_COUNT_MISMATCH"``).
        OutputCountMismatchError: Output handle count differs from the
            output names in use.
        StateError: A handle is released, or an output is read-only.
        InferenceFailedError: The engine reported an error.

    Thread safety: concurrent calls must use disjoint handles. A handle
    must never be an input of one run and an output of another at the same
    time. ``run_options`` may be shared.

    Example:
        >>> invoke(session, ["x"], [x], [y])          # declared outputs
        >>> y.view()
    """
    in_names = _as_names(input_names)
    in_batch = _as_batch(inputs)
    out_batch = _as_batch(outputs)

    if len(in_names) != len(in_batch):
        raise ValidationError(
            f"{len(in_names)} input names for {len(in_batch)} input tensors",
            code="INPUT_COUNT_MISMATCH",
            details={"input_names": len(in_names), "inputs": len(in_batch)},
        )

    if output_names is None:
        out_names = session.output_table
        if len(out_batch) != len(out_names):
            raise OutputCountMismatchError(
                f"session declares {len(out_names)} outputs, got {len(out_batch)} output tensors",
                details={"declared": list(out_names.names), "outputs": len(out_batch)},
            )
    else:
        out_names = _as_names(output_names)
        if len(out_batch) != len(out_names):
            raise OutputCountMismatchError(
                f"{len(out_names)} output names for {len(out_batch)} output tensors",
                details={"output_names": len(out_names), "outputs": len(out_batch)},
            )

    session_ptr = session.ptr
    in_values = in_batch.as_pointer_array()
    out_values = out_batch.as_mutable_pointer_array()
    options_ptr = run_options.ptr if run_options is not None else None

    log.debug(
        "Running session",
        extra={"inputs": list(in_names.names), "outputs": list(out_names.names)},
    )
    session.api.run(
        session_ptr,
        options_ptr,
        in_names.as_pointer_array(),
        in_values,
        len(in_names),
        out_names.as_pointer_array(),
        len(out_names),
        out_values,
    )
    log.debug("Run complete", extra={"outputs": list(out_names.names)})
