from typing import Optional

from .optimizer import NonlinearOptimizer
from .params import GaussNewtonParams, OrderingType, Verbosity
from ..core.graph import NonlinearFactorGraph
from ..core.values import Values
from ..errors import InvalidInputError
from ..linear.elimination import solve
from ..linear.gaussian_graph import GaussianFactorGraph
from ..linear.ordering import Ordering

def _check_inputs(graph, values) -> None:
    if not isinstance(graph, NonlinearFactorGraph):
        raise InvalidInputError(f"Expected a NonlinearFactorGraph, got {type(graph).__name__}.")
    if len(graph) == 0:
        raise InvalidInputError("Cannot optimize an empty factor graph.")
    if not isinstance(values, Values):
        raise InvalidInputError(f"Expected Values, got {type(values).__name__}.")
    missing = graph.missing_keys(values)
    if missing:
        raise InvalidInputError(f"No initial value for variables {missing}.")

def _check_params(params) -> None:
    if not isinstance(params, GaussNewtonParams):
        raise TypeError(f"GaussNewtonOptimizer needs GaussNewtonParams, got {type(params).__name__}.")


class GaussNewtonOptimizer(NonlinearOptimizer):
    """
    Gauss-Newton optimization as an immutable state machine.

    Each `iterate()` linearizes the graph at the current values, solves the
    resulting linear least-squares problem by variable elimination and retracts
    the values along the solution. The step is taken even if the error grows.

    Args:
        graph (NonlinearFactorGraph): The factors to minimise. Copied shallowly into a
            read-only graph, so adding factors to `graph` later does not affect this optimizer.
        values (Values): Initial estimate for every variable of `graph`.
        params (Optional[GaussNewtonParams], optional): Defaults to GaussNewtonParams().

    Raises:
        InvalidInputError: If `graph` is empty or `values` lacks one of its variables.
        TypeError: If `params` is not a GaussNewtonParams.
    """
    def __init__(self, graph: NonlinearFactorGraph, values: Values, params: Optional[GaussNewtonParams] = None):
        params = params if params is not None else GaussNewtonParams()
        _check_params(params)
        _check_inputs(graph, values)
        graph = NonlinearFactorGraph(graph, read_only=True)
        super().__init__(graph, values, params, graph.error(values), 0)

    @classmethod
    def _from_state(cls, graph: NonlinearFactorGraph, values: Values, params: GaussNewtonParams,
                    error: float, iterations: int) -> 'GaussNewtonOptimizer':
        optimizer = cls.__new__(cls)
        NonlinearOptimizer.__init__(optimizer, graph, values, params, error, iterations)
        return optimizer

    def _ordering(self, linear: GaussianFactorGraph) -> Ordering:
        if self.params.has_ordering:
            return self.params.ordering
        if self.params.ordering_type == OrderingType.NATURAL:
            return Ordering.natural(linear)
        if self.params.ordering_type == OrderingType.MIN_DEGREE:
            return Ordering.min_degree(linear)
        raise ValueError(f"Unknown ordering type: {self.params.ordering_type!r}")

    def iterate(self) -> 'GaussNewtonOptimizer':
        """
        Performs one Gauss-Newton iteration.

        Returns:
            GaussNewtonOptimizer: A new state with the updated values and error and
            `iterations + 1`. This state is left unchanged.

        Raises:
            OrderingMismatchError: If `params.ordering` is not a permutation of the
                linearized graph's variables.
            SingularSystemError: If the linear system cannot be eliminated.
        """
        verbosity = self.params.verbosity
        linear = self.graph.linearize(self.values)
        ordering = self._ordering(linear)
        ordering.validate(linear.keys())

        if verbosity >= Verbosity.LINEAR:
            A, b = linear.jacobian(ordering)
            print(f"Linear system over {[var.name for var in ordering]}:")
            print(f"A =\n{A.to_dense()}")
            print(f"b = {b}")

        delta = solve(linear, ordering, self.params.elimination, self.params.factorization)
        if verbosity >= Verbosity.DELTA: print(f"delta: {delta}")

        new_values = self.values.retract(delta)
        new_error = self.graph.error(new_values)
        return self._from_state(self.graph, new_values, self.params, new_error, self.iterations + 1)

    def update(self, new_graph: Optional[NonlinearFactorGraph] = None, new_values: Optional[Values] = None,
               new_params: Optional[GaussNewtonParams] = None) -> 'GaussNewtonOptimizer':
        """
        Returns a copy with the supplied fields replaced wholesale.

        `error` and `iterations` are carried over as they are, even when the graph
        or values change.

        Raises:
            InvalidInputError: If the resulting graph and values are inconsistent.
            TypeError: If `new_params` is not a GaussNewtonParams.
        """
        graph = self.graph
        values = self.values
        params = self.params
        if new_params is not None:
            _check_params(new_params)
            params = new_params
        if new_graph is not None or new_values is not None:
            graph = new_graph if new_graph is not None else graph
            values = new_values if new_values is not None else values
            _check_inputs(graph, values)
            if new_graph is not None:
                graph = NonlinearFactorGraph(new_graph, read_only=True)
        return self._from_state(graph, values, params, self.error, self.iterations)

    def clone(self) -> 'GaussNewtonOptimizer':
        return self.update()
