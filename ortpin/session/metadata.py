"""Model metadata (``OrtModelMetadata``)."""

from __future__ import annotations

from typing import Any

from .._bindings import NativeApi
from ..exceptions import InvalidNameError, StateError, ValidationError

__all__ = ["ModelMetadata"]


class ModelMetadata:
    """
    Metadata recorded in a loaded model.

    Obtained from :meth:`Session.metadata`. Every string is copied out of
    engine-allocated memory, which is freed right away.

    Example:
        >>> with session.metadata() as meta:
        ...     print(meta.producer, meta.version)
        ...     print(meta.custom("author"))
    """

    def __init__(self, ptr: int, api: NativeApi) -> None:
        self._ptr: int | None = ptr
        self._api = api

    def _live(self) -> int:
        if self._ptr is None:
            raise StateError("ModelMetadata is closed.", code="STATE_ERROR")
        return self._ptr

    @property
    def producer(self) -> str:
        """Name of the tool that produced the model."""
        return self._api.model_metadata_string(self._live(), "producer")

    @property
    def graph_name(self) -> str:
        return self._api.model_metadata_string(self._live(), "graph_name")

    @property
    def domain(self) -> str:
        return self._api.model_metadata_string(self._live(), "domain")

    @property
    def description(self) -> str:
        return self._api.model_metadata_string(self._live(), "description")

    @property
    def version(self) -> int:
        """Model version number."""
        return self._api.model_metadata_version(self._live())

    def custom(self, key: str) -> str | None:
        """
        Look up a custom metadata entry.

        Returns:
            The value, or ``None`` when the model has no such key.
        """
        if not isinstance(key, str):
            raise ValidationError(
                f"metadata key must be str, got {type(key).__name__}",
                details={"type": type(key).__name__},
            )
        encoded = key.encode("utf-8")
        if b"\x00" in encoded:
            raise InvalidNameError(f"metadata key contains a NUL byte: {key!r}")
        return self._api.model_metadata_lookup(self._live(), encoded)

    def close(self) -> None:
        if getattr(self, "_ptr", None):
            self._api.release_model_metadata(self._ptr)
            self._ptr = None

    def __enter__(self) -> ModelMetadata:
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
            return "ModelMetadata(closed)"
        return f"ModelMetadata(graph_name={self.graph_name!r}, version={self.version})"
