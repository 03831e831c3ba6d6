from .base import Variable
from .lie_groups import LieGroupVariable, VectorVariable, SO2Variable, SE2Variable

__all__ = [
    "Variable",
    "LieGroupVariable",
    "VectorVariable",
    "SO2Variable",
    "SE2Variable"
]
