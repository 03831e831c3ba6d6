import abc
import math

from .params import NonlinearOptimizerParams, Verbosity
from ..core.graph import NonlinearFactorGraph
from ..core.values import Values

def check_convergence(params: NonlinearOptimizerParams, current_error: float, new_error: float) -> bool:
    """
    Decides whether an iteration that took the error from `current_error` to
    `new_error` ends the optimization.

    Converged when the new error is at or below `params.error_tol`, when both
    the absolute and the relative decrease fall below their tolerances, or when
    the error did not decrease at all (a Gauss-Newton step is never rejected, so
    continuing would not help).
    """
    verbose = params.verbosity >= Verbosity.ERROR
    if not math.isfinite(new_error):
        if verbose: print(f"Error: new error is {new_error}. Stopping.")
        return True
    if new_error <= params.error_tol:
        if verbose: print(f"Converged: error {new_error:.6e} is below error_tol {params.error_tol:.6e}.")
        return True

    absolute_decrease = current_error - new_error
    if absolute_decrease < 0:
        if verbose: print(f"Warning: error increased from {current_error:.6e} to {new_error:.6e}. Stopping.")
        return True
    relative_decrease = absolute_decrease / current_error

    converged = absolute_decrease <= params.absolute_error_tol and relative_decrease <= params.relative_error_tol
    if converged and verbose:
        print(f"Converged: absolute decrease {absolute_decrease:.6e}, relative decrease {relative_decrease:.6e}.")
    return converged


class NonlinearOptimizer(abc.ABC):
    """
    Immutable state of an iterative nonlinear least-squares optimizer.

    A state is never modified: `iterate`, `update` and `clone` return new
    states, so any state can be kept and iterated again independently.

    Attributes:
        graph (NonlinearFactorGraph): The factors being minimised. Read-only and shared by
            every state derived from this one; copy it to build a modified graph.
        values (Values): Current estimate.
        params (NonlinearOptimizerParams): Configuration.
        error (float): `graph.error(values)`.
        iterations (int): Number of iterations that produced this state.
    """
    def __init__(self, graph: NonlinearFactorGraph, values: Values, params: NonlinearOptimizerParams,
                 error: float, iterations: int):
        self._graph = graph
        self._values = values
        self._params = params
        self._error = error
        self._iterations = iterations

    @property
    def graph(self) -> NonlinearFactorGraph:
        return self._graph

    @property
    def values(self) -> Values:
        return self._values

    @property
    def params(self) -> NonlinearOptimizerParams:
        return self._params

    @property
    def error(self) -> float:
        return self._error

    @property
    def iterations(self) -> int:
        return self._iterations

    @abc.abstractmethod
    def iterate(self) -> 'NonlinearOptimizer':
        """Performs one iteration and returns the resulting state."""
        pass

    @abc.abstractmethod
    def update(self, new_graph=None, new_values=None, new_params=None) -> 'NonlinearOptimizer':
        """Returns a copy with the given fields replaced; `error` and `iterations` are kept."""
        pass

    @abc.abstractmethod
    def clone(self) -> 'NonlinearOptimizer':
        pass

    def optimize(self) -> 'NonlinearOptimizer':
        """
        Iterates until `check_convergence` is satisfied or `params.max_iterations`
        is reached. Exceptions raised by `iterate` propagate.

        Returns:
            NonlinearOptimizer: The final state.
        """
        verbosity = self.params.verbosity
        current = self

        if verbosity >= Verbosity.ERROR: print(f"Initial error: {current.error:.6e}")
        if verbosity >= Verbosity.VALUES: print(current.values)
        if current.error <= self.params.error_tol:
            if verbosity >= Verbosity.ERROR: print("Converged: initial error is below error_tol.")
            return current

        while current.iterations < self.params.max_iterations:
            new = current.iterate()
            if verbosity >= Verbosity.ERROR: print(f"{new.iterations:4} | error: {new.error:12.6e}")
            if verbosity >= Verbosity.VALUES: print(new.values)
            converged = check_convergence(self.params, current.error, new.error)
            current = new
            if converged:
                break
        else:
            if verbosity >= Verbosity.ERROR: print("Reached max iterations.")
        return current

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(iterations={self.iterations}, error={self.error:.6e}, "
                f"factors={len(self.graph)}, variables={len(self.values)})")
