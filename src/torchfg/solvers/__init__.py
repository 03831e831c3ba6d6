from .params import Verbosity, OrderingType, NonlinearOptimizerParams, GaussNewtonParams
from .optimizer import NonlinearOptimizer, check_convergence
from .gauss_newton import GaussNewtonOptimizer

__all__ = [
    "Verbosity",
    "OrderingType",
    "NonlinearOptimizerParams",
    "GaussNewtonParams",
    "NonlinearOptimizer",
    "check_convergence",
    "GaussNewtonOptimizer"
]
