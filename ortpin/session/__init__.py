"""
Loaded models and the objects a run is configured with.

Classes
-------
Session
    A loaded ONNX model; runs bound tensors through it.
RunOptions
    Per-run options, shareable across threads (tag, terminate).
ModelMetadata
    Producer, graph name, domain, description, version, custom entries.
"""

from .metadata import ModelMetadata
from .run_options import RunOptions
from .session import Session

__all__ = ["Session", "RunOptions", "ModelMetadata"]
