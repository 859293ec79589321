"""
FFI bindings for the onnxruntime C API.

Provides the one process-wide, lazily built function table
(``get_api()``) and the ctypes call wrappers that handle out-params,
``OrtStatus*`` checking, and allocator-owned strings. Every other module
talks to the engine through an object with the ``NativeApi`` surface, passed
in explicitly (``api=``) or defaulting to ``get_api()``; tests inject a
pure-Python fake through the same parameter.

Native references (``OrtValue*``, ``OrtSession*``, ...) are carried as
plain ``int`` addresses, as elsewhere in ortpin.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import importlib.util
import os
import sys
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from ._logging import scoped_logger
from ._native import ORTCHAR_P, OrtApi, setup_signatures
from .exceptions import (
    InferenceFailedError,
    LibraryNotFoundError,
    NativeCreateFailedError,
    NativeError,
)

__all__ = [
    "NativeApi",
    "OrtApiTable",
    "DEFAULT_API_VERSION",
    "load_library",
    "get_api",
    "resolve_api",
]

log = scoped_logger("native")

DEFAULT_API_VERSION = 14

# Model metadata string accessors, keyed by ModelMetadata property name
_METADATA_FIELDS = {
    "producer": "ModelMetadataGetProducerName",
    "graph_name": "ModelMetadataGetGraphName",
    "domain": "ModelMetadataGetDomain",
    "description": "ModelMetadataGetDescription",
}


class NativeApi(Protocol):
    """Method surface every ortpin component uses to reach the engine.

    Creation methods return the new native reference as an ``int``.
    Failures raise ``NativeError`` (or the subclass named on the method)
    carrying the engine's message and ``OrtErrorCode``.
    """

    def create_env(self, log_level: int, log_id: bytes) -> int: ...

    def release_env(self, env: int) -> None: ...

    def create_session_options(self) -> int: ...

    def release_session_options(self, options: int) -> None: ...

    def create_session(self, env: int, model_path: str, options: int) -> int: ...

    def create_session_from_array(self, env: int, model_data: bytes, options: int) -> int: ...

    def release_session(self, session: int) -> None: ...

    def session_input_names(self, session: int) -> list[str]: ...

    def session_output_names(self, session: int) -> list[str]: ...

    def create_run_options(self) -> int: ...

    def release_run_options(self, run_options: int) -> None: ...

    def run_options_set_tag(self, run_options: int, tag: bytes) -> None: ...

    def run_options_set_terminate(self, run_options: int) -> None: ...

    def run_options_unset_terminate(self, run_options: int) -> None: ...

    def create_cpu_memory_info(self, allocator_type: int, mem_type: int) -> int: ...

    def release_memory_info(self, memory_info: int) -> None: ...

    def create_tensor_with_data(
        self,
        memory_info: int,
        data: int,
        nbytes: int,
        shape: Sequence[int],
        element_type: int,
    ) -> int:
        """Wrap caller memory as an OrtValue. Raises NativeCreateFailedError."""
        ...

    def is_tensor(self, value: int) -> bool: ...

    def release_value(self, value: int) -> None: ...

    def run(
        self,
        session: int,
        run_options: int | None,
        input_names: Any,
        inputs: Any,
        input_count: int,
        output_names: Any,
        output_count: int,
        outputs: Any,
    ) -> None:
        """Call Run with ctypes pointer arrays. Raises InferenceFailedError."""
        ...

    def session_model_metadata(self, session: int) -> int: ...

    def release_model_metadata(self, metadata: int) -> None: ...

    def model_metadata_string(self, metadata: int, field: str) -> str: ...

    def model_metadata_lookup(self, metadata: int, key: bytes) -> str | None: ...

    def model_metadata_version(self, metadata: int) -> int: ...


# =============================================================================
# Function table wrapper
# =============================================================================


class OrtApiTable:
    """``NativeApi`` backed by the real ``OrtApi`` function table.

    Args:
        lib: Loaded onnxruntime shared library.
        version: Requested ``ORT_API_VERSION``. The library returns NULL
            for versions newer than it supports.

    Raises:
        LibraryNotFoundError: If the library does not provide the version.
    """

    def __init__(self, lib: ctypes.CDLL, version: int = DEFAULT_API_VERSION) -> None:
        setup_signatures(lib)
        base = lib.OrtGetApiBase()
        if not base:
            raise LibraryNotFoundError(
                "OrtGetApiBase returned NULL",
                details={"library": getattr(lib, "_name", None)},
            )
        raw_version = base.contents.GetVersionString()
        self.version_string = raw_version.decode("utf-8") if raw_version else "unknown"
        api_ptr = base.contents.GetApi(version)
        if not api_ptr:
            raise LibraryNotFoundError(
                f"onnxruntime {self.version_string} does not provide OrtApi version {version}",
                details={"requested_version": version, "library_version": self.version_string},
            )
        # Keep the library loaded for as long as the table is reachable
        self._lib = lib
        self._fns: OrtApi = api_ptr.contents
        self._allocator: int | None = None
        self._allocator_lock = threading.Lock()

    def _check(
        self,
        status: int | None,
        operation: str,
        error_cls: type[NativeError] = NativeError,
    ) -> None:
        """Raise ``error_cls`` for a non-NULL status, releasing the status first."""
        if not status:
            return
        code = self._fns.GetErrorCode(status)
        raw = self._fns.GetErrorMessage(status)
        message = raw.decode("utf-8", errors="replace") if raw else "unknown native error"
        self._fns.ReleaseStatus(status)
        log.error(message, extra={"operation": operation, "original_code": code})
        raise error_cls(message, details={"operation": operation}, original_code=code)

    def _default_allocator(self) -> int:
        # The default allocator is owned by the library and never released
        with self._allocator_lock:
            if self._allocator is None:
                out = ctypes.c_void_p()
                self._check(
                    self._fns.GetAllocatorWithDefaultOptions(ctypes.byref(out)),
                    "GetAllocatorWithDefaultOptions",
                )
                self._allocator = out.value
            return self._allocator

    def _take_string(self, ptr: int | None) -> str:
        """Decode an allocator-owned C string and free it, even if decoding fails."""
        if not ptr:
            return ""
        try:
            return ctypes.string_at(ptr).decode("utf-8")
        finally:
            self._check(
                self._fns.AllocatorFree(self._default_allocator(), ptr),
                "AllocatorFree",
            )

    # -- environment / session ------------------------------------------------

    def create_env(self, log_level: int, log_id: bytes) -> int:
        out = ctypes.c_void_p()
        self._check(self._fns.CreateEnv(log_level, log_id, ctypes.byref(out)), "CreateEnv")
        return out.value

    def release_env(self, env: int) -> None:
        self._fns.ReleaseEnv(env)

    def create_session_options(self) -> int:
        out = ctypes.c_void_p()
        self._check(self._fns.CreateSessionOptions(ctypes.byref(out)), "CreateSessionOptions")
        return out.value

    def release_session_options(self, options: int) -> None:
        self._fns.ReleaseSessionOptions(options)

    def create_session(self, env: int, model_path: str, options: int) -> int:
        out = ctypes.c_void_p()
        path_arg = model_path if ORTCHAR_P is ctypes.c_wchar_p else os.fsencode(model_path)
        self._check(
            self._fns.CreateSession(env, path_arg, options, ctypes.byref(out)),
            "CreateSession",
        )
        return out.value

    def create_session_from_array(self, env: int, model_data: bytes, options: int) -> int:
        out = ctypes.c_void_p()
        self._check(
            self._fns.CreateSessionFromArray(
                env, model_data, len(model_data), options, ctypes.byref(out)
            ),
            "CreateSessionFromArray",
        )
        return out.value

    def release_session(self, session: int) -> None:
        self._fns.ReleaseSession(session)

    def _session_names(self, session: int, count_fn: str, name_fn: str) -> list[str]:
        count = ctypes.c_size_t()
        self._check(getattr(self._fns, count_fn)(session, ctypes.byref(count)), count_fn)
        allocator = self._default_allocator()
        names = []
        for i in range(count.value):
            out = ctypes.c_void_p()
            self._check(
                getattr(self._fns, name_fn)(session, i, allocator, ctypes.byref(out)),
                name_fn,
            )
            names.append(self._take_string(out.value))
        return names

    def session_input_names(self, session: int) -> list[str]:
        return self._session_names(session, "SessionGetInputCount", "SessionGetInputName")

    def session_output_names(self, session: int) -> list[str]:
        return self._session_names(session, "SessionGetOutputCount", "SessionGetOutputName")

    # -- run options ----------------------------------------------------------

    def create_run_options(self) -> int:
        out = ctypes.c_void_p()
        self._check(self._fns.CreateRunOptions(ctypes.byref(out)), "CreateRunOptions")
        return out.value

    def release_run_options(self, run_options: int) -> None:
        self._fns.ReleaseRunOptions(run_options)

    def run_options_set_tag(self, run_options: int, tag: bytes) -> None:
        self._check(self._fns.RunOptionsSetRunTag(run_options, tag), "RunOptionsSetRunTag")

    def run_options_set_terminate(self, run_options: int) -> None:
        self._check(self._fns.RunOptionsSetTerminate(run_options), "RunOptionsSetTerminate")

    def run_options_unset_terminate(self, run_options: int) -> None:
        self._check(self._fns.RunOptionsUnsetTerminate(run_options), "RunOptionsUnsetTerminate")

    # -- tensors --------------------------------------------------------------

    def create_cpu_memory_info(self, allocator_type: int, mem_type: int) -> int:
        out = ctypes.c_void_p()
        self._check(
            self._fns.CreateCpuMemoryInfo(allocator_type, mem_type, ctypes.byref(out)),
            "CreateCpuMemoryInfo",
        )
        return out.value

    def release_memory_info(self, memory_info: int) -> None:
        self._fns.ReleaseMemoryInfo(memory_info)

    def create_tensor_with_data(
        self,
        memory_info: int,
        data: int,
        nbytes: int,
        shape: Sequence[int],
        element_type: int,
    ) -> int:
        dims = (ctypes.c_int64 * len(shape))(*shape)
        out = ctypes.c_void_p()
        self._check(
            self._fns.CreateTensorWithDataAsOrtValue(
                memory_info,
                data,
                nbytes,
                dims,
                len(shape),
                element_type,
                ctypes.byref(out),
            ),
            "CreateTensorWithDataAsOrtValue",
            NativeCreateFailedError,
        )
        if not out.value:
            raise NativeCreateFailedError(
                "CreateTensorWithDataAsOrtValue returned a NULL value",
                details={"operation": "CreateTensorWithDataAsOrtValue"},
            )
        return out.value

    def is_tensor(self, value: int) -> bool:
        out = ctypes.c_int()
        self._check(
            self._fns.IsTensor(value, ctypes.byref(out)), "IsTensor", NativeCreateFailedError
        )
        return out.value == 1

    def release_value(self, value: int) -> None:
        self._fns.ReleaseValue(value)

    def run(
        self,
        session: int,
        run_options: int | None,
        input_names: Any,
        inputs: Any,
        input_count: int,
        output_names: Any,
        output_count: int,
        outputs: Any,
    ) -> None:
        self._check(
            self._fns.Run(
                session,
                run_options,
                input_names,
                inputs,
                input_count,
                output_names,
                output_count,
                outputs,
            ),
            "Run",
            InferenceFailedError,
        )

    # -- model metadata -------------------------------------------------------

    def session_model_metadata(self, session: int) -> int:
        out = ctypes.c_void_p()
        self._check(
            self._fns.SessionGetModelMetadata(session, ctypes.byref(out)),
            "SessionGetModelMetadata",
        )
        return out.value

    def release_model_metadata(self, metadata: int) -> None:
        self._fns.ReleaseModelMetadata(metadata)

    def model_metadata_string(self, metadata: int, field: str) -> str:
        fn_name = _METADATA_FIELDS[field]
        out = ctypes.c_void_p()
        self._check(
            getattr(self._fns, fn_name)(metadata, self._default_allocator(), ctypes.byref(out)),
            fn_name,
        )
        return self._take_string(out.value)

    def model_metadata_lookup(self, metadata: int, key: bytes) -> str | None:
        out = ctypes.c_void_p()
        self._check(
            self._fns.ModelMetadataLookupCustomMetadataMap(
                metadata, self._default_allocator(), key, ctypes.byref(out)
            ),
            "ModelMetadataLookupCustomMetadataMap",
        )
        if not out.value:
            return None
        return self._take_string(out.value)

    def model_metadata_version(self, metadata: int) -> int:
        out = ctypes.c_int64()
        self._check(
            self._fns.ModelMetadataGetVersion(metadata, ctypes.byref(out)),
            "ModelMetadataGetVersion",
        )
        return out.value


# =============================================================================
# Library discovery
# =============================================================================


def _wheel_library() -> Path | None:
    """Locate the shared library bundled in the onnxruntime wheel, without importing it."""
    spec = importlib.util.find_spec("onnxruntime")
    if spec is None or not spec.submodule_search_locations:
        return None
    capi = Path(next(iter(spec.submodule_search_locations))) / "capi"
    if sys.platform == "win32":
        patterns = ["onnxruntime.dll"]
    elif sys.platform == "darwin":
        patterns = ["libonnxruntime.*dylib"]
    else:
        patterns = ["libonnxruntime.so*"]
    for pattern in patterns:
        matches = sorted(capi.glob(pattern))
        if matches:
            return matches[0]
    return None


def _find_library() -> str | None:
    env_path = os.environ.get("ORTPIN_ORT_LIBRARY")
    if env_path:
        return env_path
    wheel = _wheel_library()
    if wheel is not None:
        return str(wheel)
    return ctypes.util.find_library("onnxruntime")


def load_library() -> ctypes.CDLL:
    """Load the onnxruntime shared library.

    Search order: ``ORTPIN_ORT_LIBRARY``, the ``onnxruntime`` wheel's
    ``capi/`` directory, then the system library path.

    Raises:
        LibraryNotFoundError: If no library is found or it fails to load.
    """
    path = _find_library()
    if path is None:
        raise LibraryNotFoundError(
            "onnxruntime shared library not found. "
            "Set ORTPIN_ORT_LIBRARY or install the onnxruntime package.",
        )
    try:
        lib = ctypes.CDLL(path)
    except OSError as e:
        raise LibraryNotFoundError(
            f"Cannot load onnxruntime library: {e}", details={"path": path}
        ) from e
    log.info("Loaded onnxruntime library", extra={"path": path})
    return lib


# =============================================================================
# Process-wide table
# =============================================================================

_api: OrtApiTable | None = None
_api_lock = threading.Lock()


def _requested_version() -> int:
    raw = os.environ.get("ORTPIN_ORT_API_VERSION")
    if not raw:
        return DEFAULT_API_VERSION
    try:
        return int(raw)
    except ValueError:
        log.warning(
            "Ignoring non-integer ORTPIN_ORT_API_VERSION",
            extra={"value": raw, "default": DEFAULT_API_VERSION},
        )
        return DEFAULT_API_VERSION


def get_api() -> OrtApiTable:
    """Return the process-wide function table, loading the library on first use."""
    global _api
    if _api is None:
        with _api_lock:
            if _api is None:
                _api = OrtApiTable(load_library(), _requested_version())
    return _api


def resolve_api(api: NativeApi | None) -> NativeApi:
    """Return ``api`` when injected, else the process-wide table."""
    return api if api is not None else get_api()
