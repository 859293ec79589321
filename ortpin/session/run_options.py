"""Per-run options (``OrtRunOptions``), shareable across threads."""

from __future__ import annotations

from typing import Any

from .._bindings import NativeApi, resolve_api
from .._logging import scoped_logger
from ..exceptions import InvalidNameError, StateError, ValidationError

__all__ = ["RunOptions"]

log = scoped_logger("run")


class RunOptions:
    """
    Owner of one ``OrtRunOptions``.

    A single RunOptions may be passed to runs on several threads at once.
    Calling :meth:`terminate` from another thread asks every run using it to
    stop; the engine decides when and how. Keep a reference for as long as
    any run uses it.

    Example:
        >>> opts = RunOptions(tag="batch-7")
        >>> # in another thread: opts.terminate()
        >>> session.run_io(["x"], [x], [y], run_options=opts)
    """

    def __init__(self, *, tag: str | None = None, api: NativeApi | None = None) -> None:
        self._ptr: int | None = None
        self._api = resolve_api(api)
        self._tag: str | None = None
        self._ptr = self._api.create_run_options()
        if tag is not None:
            try:
                self.tag = tag
            except Exception:
                self.close()
                raise

    def _check_open(self) -> None:
        if self._ptr is None:
            raise StateError("RunOptions is closed.", code="STATE_ERROR")

    @property
    def ptr(self) -> int:
        """Raw ``OrtRunOptions*`` address."""
        self._check_open()
        return self._ptr  # type: ignore[return-value]

    @property
    def tag(self) -> str | None:
        """Run tag shown in engine logs. Only the last value set is kept here."""
        return self._tag

    @tag.setter
    def tag(self, value: str) -> None:
        self._check_open()
        if not isinstance(value, str):
            raise ValidationError(
                f"tag must be str, got {type(value).__name__}",
                details={"type": type(value).__name__},
            )
        encoded = value.encode("utf-8")
        if b"\x00" in encoded:
            raise InvalidNameError(f"tag contains a NUL byte: {value!r}")
        self._api.run_options_set_tag(self._ptr, encoded)  # type: ignore[arg-type]
        self._tag = value

    def terminate(self) -> None:
        """Ask runs using these options to stop as soon as possible."""
        self._check_open()
        self._api.run_options_set_terminate(self._ptr)  # type: ignore[arg-type]
        log.info("Run termination requested", extra={"tag": self._tag})

    def unset_terminate(self) -> None:
        """Clear a previous :meth:`terminate` so the options can be reused."""
        self._check_open()
        self._api.run_options_unset_terminate(self._ptr)  # type: ignore[arg-type]

    @property
    def closed(self) -> bool:
        return self._ptr is None

    def close(self) -> None:
        """Release the native options. Safe to call multiple times."""
        if getattr(self, "_ptr", None):
            self._api.release_run_options(self._ptr)
            self._ptr = None

    def __enter__(self) -> RunOptions:
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
        state = "closed" if self._ptr is None else "open"
        return f"RunOptions(tag={self._tag!r}, {state})"
