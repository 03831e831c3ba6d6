# Top-level __init__.py for torchfg package

# Variables
from .variables.base import Variable
from .variables.lie_groups import LieGroupVariable, VectorVariable, SO2Variable, SE2Variable

# Nonlinear problem definition
from .core.values import Values
from .core.noise import NoiseModel
from .core.factor import NonlinearFactor, PriorFactor, BetweenFactor, FunctionFactor
from .core.graph import NonlinearFactorGraph

# Linear algebra
from .linear.ordering import Ordering
from .linear.vector_values import VectorValues
from .linear.gaussian_graph import GaussianFactorGraph
from .linear.elimination import Elimination, Factorization

# Optimizers
from .solvers.params import Verbosity, OrderingType, NonlinearOptimizerParams, GaussNewtonParams
from .solvers.optimizer import NonlinearOptimizer, check_convergence
from .solvers.gauss_newton import GaussNewtonOptimizer

# Errors
from .errors import TorchFGError, InvalidInputError, OrderingMismatchError, SingularSystemError

# Utilities (DEVICE, DTYPE are set globally but can be exposed if needed)
from .utils.misc import DEVICE, DEFAULT_DTYPE

__all__ = [
    "Variable", "LieGroupVariable", "VectorVariable", "SO2Variable", "SE2Variable",
    "Values", "NoiseModel", "NonlinearFactor", "PriorFactor", "BetweenFactor", "FunctionFactor",
    "NonlinearFactorGraph",
    "Ordering", "VectorValues", "GaussianFactorGraph", "Elimination", "Factorization",
    "Verbosity", "OrderingType", "NonlinearOptimizerParams", "GaussNewtonParams",
    "NonlinearOptimizer", "check_convergence", "GaussNewtonOptimizer",
    "TorchFGError", "InvalidInputError", "OrderingMismatchError", "SingularSystemError",
    "DEVICE", "DEFAULT_DTYPE"
]

__version__ = "0.1.0"
