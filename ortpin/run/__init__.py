"""
Running a session over bound tensors.

Functions
---------
invoke
    One synchronous run: names + handles in, handles written out.

Classes
-------
NameTable
    Tensor names as a C string array.
"""

from .invoke import invoke
from .names import NameTable

__all__ = ["invoke", "NameTable"]
