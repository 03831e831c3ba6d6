# Sparse matrix representations used to assemble linear systems

from ._coo import SparseCooMatrix

__all__ = [
    "SparseCooMatrix",
]
