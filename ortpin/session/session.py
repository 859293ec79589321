"""
Session - a loaded model, plus the process-wide engine environment.
"""

from __future__ import annotations

import os
import threading
from typing import Any

from .._bindings import NativeApi, resolve_api
from .._logging import scoped_logger
from .._native import LoggingLevel
from ..exceptions import StateError, ValidationError
from ..run.invoke import invoke
from ..run.names import NameTable
from ..tensor.batch import HandleBatch
from ..tensor.owned import OwnedTensor
from .metadata import ModelMetadata
from .run_options import RunOptions

__all__ = ["Session"]

log = scoped_logger("session")

_ENV_LOG_ID = b"ortpin"

# One OrtEnv per API table, created on first use and kept for the process
_envs: dict[int, tuple[NativeApi, int]] = {}
_envs_lock = threading.Lock()


def _env_log_level() -> int:
    raw = os.environ.get("ORTPIN_ORT_LOG_LEVEL")
    if raw is None:
        return int(LoggingLevel.WARNING)
    try:
        return int(LoggingLevel(int(raw)))
    except ValueError:
        log.warning(
            "Ignoring invalid ORTPIN_ORT_LOG_LEVEL",
            extra={"value": raw, "default": int(LoggingLevel.WARNING)},
        )
        return int(LoggingLevel.WARNING)


def _shared_env(api: NativeApi) -> int:
    with _envs_lock:
        entry = _envs.get(id(api))
        if entry is None or entry[0] is not api:
            env = api.create_env(_env_log_level(), _ENV_LOG_ID)
            entry = (api, env)
            _envs[id(api)] = entry
        return entry[1]


class Session:
    """
    A loaded ONNX model.

    Args:
        model: Path to a ``.onnx`` file (``str`` or ``os.PathLike``), or the
            serialized model as ``bytes``.
        api: Native API. Defaults to the process-wide table.

    Raises:
        ValidationError: ``model`` is neither a path nor bytes.
        NativeError: The engine could not load the model.

    Input and output names are read once at load time.

    Example:
        >>> import numpy as np
        >>> from ortpin import Session, OwnedTensor
        >>> with Session("model.onnx") as session:
        ...     x = OwnedTensor.bind_immutable([1, 4], np.ones(4, np.float32))
        ...     y = OwnedTensor.bind_mutable([1, 2], np.zeros(2, np.float32))
        ...     session.run_io(session.input_names, [x], [y])
        ...     print(y.view())
    """

    def __init__(self, model: str | os.PathLike | bytes, *, api: NativeApi | None = None) -> None:
        self._ptr: int | None = None
        if isinstance(model, (bytes, bytearray, memoryview)):
            source = "bytes"
        elif isinstance(model, (str, os.PathLike)):
            source = "path"
        else:
            raise ValidationError(
                f"model must be a path or bytes, got {type(model).__name__}",
                code="INVALID_MODEL",
                details={"type": type(model).__name__},
            )

        self._api = resolve_api(api)
        env = _shared_env(self._api)
        options = self._api.create_session_options()
        try:
            if source == "bytes":
                ptr = self._api.create_session_from_array(env, bytes(model), options)
            else:
                ptr = self._api.create_session(env, os.fsdecode(os.fspath(model)), options)
        finally:
            self._api.release_session_options(options)
        self._ptr = ptr

        try:
            self._inputs = NameTable(self._api.session_input_names(ptr))
            self._outputs = NameTable(self._api.session_output_names(ptr))
        except Exception:
            self.close()
            raise

        log.info(
            "Loaded model",
            extra={
                "source": source if source == "bytes" else os.fspath(model),
                "inputs": list(self._inputs.names),
                "outputs": list(self._outputs.names),
            },
        )

    # =========================================================================
    # Properties
    # =========================================================================

    def _check_open(self) -> None:
        if self._ptr is None:
            raise StateError("Session is closed.", code="STATE_ERROR")

    @property
    def ptr(self) -> int:
        """Raw ``OrtSession*`` address."""
        self._check_open()
        return self._ptr  # type: ignore[return-value]

    @property
    def api(self) -> NativeApi:
        return self._api

    @property
    def input_names(self) -> tuple[str, ...]:
        """Declared input names, in model order."""
        return self._inputs.names

    @property
    def output_names(self) -> tuple[str, ...]:
        """Declared output names, in model order."""
        return self._outputs.names

    @property
    def input_table(self) -> NameTable:
        return self._inputs

    @property
    def output_table(self) -> NameTable:
        """Declared outputs as a NameTable, used when a run names no outputs."""
        return self._outputs

    def metadata(self) -> ModelMetadata:
        """Read the model's metadata. Close the result when done."""
        self._check_open()
        ptr = self._api.session_model_metadata(self._ptr)  # type: ignore[arg-type]
        return ModelMetadata(ptr, self._api)

    # =========================================================================
    # Running
    # =========================================================================

    def run_io(
        self,
        input_names: NameTable | list[str],
        inputs: HandleBatch | list[OwnedTensor],
        outputs: HandleBatch | list[OwnedTensor],
        run_options: RunOptions | None = None,
    ) -> None:
        """
        Run with outputs matched, in order, to the model's declared outputs.

        Raises:
            OutputCountMismatchError: ``len(outputs)`` differs from the
                number of declared outputs.
        """
        invoke(self, input_names, inputs, outputs, None, run_options=run_options)

    def run_with_io(
        self,
        input_names: NameTable | list[str],
        inputs: HandleBatch | list[OwnedTensor],
        output_names: NameTable | list[str],
        outputs: HandleBatch | list[OwnedTensor],
        run_options: RunOptions | None = None,
    ) -> None:
        """Run with explicit output names, parallel to ``outputs``."""
        invoke(self, input_names, inputs, outputs, output_names, run_options=run_options)

    def run_with_batches(
        self,
        input_names: NameTable,
        inputs: HandleBatch,
        output_names: NameTable,
        outputs: HandleBatch,
        run_options: RunOptions | None = None,
    ) -> None:
        """
        Run with prebuilt tables, reusing their pointer arrays as they are.

        Suited to repeated runs over the same bound buffers: refill the
        input buffers through ``view_mut()`` and call again.
        """
        for label, value, expected in (
            ("input_names", input_names, NameTable),
            ("inputs", inputs, HandleBatch),
            ("output_names", output_names, NameTable),
            ("outputs", outputs, HandleBatch),
        ):
            if not isinstance(value, expected):
                raise ValidationError(
                    f"{label} must be a {expected.__name__}, got {type(value).__name__}",
                    details={"argument": label, "type": type(value).__name__},
                )
        invoke(self, input_names, inputs, outputs, output_names, run_options=run_options)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._ptr is None

    def close(self) -> None:
        """Release the native session. Safe to call multiple times."""
        if getattr(self, "_ptr", None):
            self._api.release_session(self._ptr)
            self._ptr = None

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __del__(self):
        try:
            self.close()
        except Exception:
            # Ignore errors during interpreter shutdown when globals may be cleared
            pass

    def __repr__(self) -> str:
        if self._ptr is None:
            return "Session(closed)"
        return f"Session(inputs={list(self.input_names)}, outputs={list(self.output_names)})"
