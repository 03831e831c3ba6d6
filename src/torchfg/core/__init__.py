from .values import Values
from .noise import NoiseModel
from .factor import NonlinearFactor, PriorFactor, BetweenFactor, FunctionFactor
from .graph import NonlinearFactorGraph

__all__ = [
    "Values",
    "NoiseModel",
    "NonlinearFactor",
    "PriorFactor",
    "BetweenFactor",
    "FunctionFactor",
    "NonlinearFactorGraph"
]
