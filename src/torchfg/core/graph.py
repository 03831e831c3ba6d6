from typing import Iterable, Iterator, List, Mapping, Optional, Sequence

import torch

from .factor import NonlinearFactor
from ..linear.gaussian_graph import GaussianFactorGraph
from ..variables.lie_groups import LieGroupVariable

class NonlinearFactorGraph:
    """
    A collection of nonlinear factors whose summed error is minimised.

    The optimizer never modifies a graph; it linearizes it and evaluates its
    error at new values.

    Args:
        factors (Optional[Iterable[NonlinearFactor]]): Initial factors.
        read_only (bool, optional): Store the factors as a tuple and reject `add`.

    Attributes:
        factors (Sequence[NonlinearFactor]): The factors, in insertion order.
        read_only (bool): Whether `add` is rejected.
    """
    def __init__(self, factors: Optional[Iterable[NonlinearFactor]] = None, read_only: bool = False):
        factors = list(factors) if factors is not None else []
        self.factors: Sequence[NonlinearFactor] = tuple(factors) if read_only else factors
        self.read_only = read_only

    def add(self, factor: NonlinearFactor) -> None:
        if self.read_only:
            raise TypeError("Cannot add to a read-only graph; copy it with NonlinearFactorGraph(graph) first.")
        if not isinstance(factor, NonlinearFactor):
            raise TypeError(f"Expected a NonlinearFactor, got {type(factor).__name__}.")
        self.factors.append(factor)

    def __iter__(self) -> Iterator[NonlinearFactor]:
        return iter(self.factors)

    def __len__(self) -> int:
        return len(self.factors)

    def keys(self) -> List[LieGroupVariable]:
        """
        All variables referenced by the factors, in order of first appearance.
        """
        seen = set()
        ordered = []
        for factor in self.factors:
            for var in factor.variables:
                if var not in seen:
                    seen.add(var)
                    ordered.append(var)
        return ordered

    def missing_keys(self, values: Mapping[LieGroupVariable, torch.Tensor]) -> List[LieGroupVariable]:
        """Variables referenced by the graph that have no entry in `values`."""
        return [var for var in self.keys() if var not in values]

    def error(self, values: Mapping[LieGroupVariable, torch.Tensor]) -> float:
        """Total error: the sum of every factor's 0.5 * ||whitened residual||^2."""
        return sum(factor.error(values) for factor in self.factors)

    def linearize(self, values: Mapping[LieGroupVariable, torch.Tensor]) -> GaussianFactorGraph:
        """
        Linearizes every factor at `values`.

        Returns:
            GaussianFactorGraph: One JacobianFactor per factor, same order.
        """
        return GaussianFactorGraph(factor.linearize(values) for factor in self.factors)

    def __repr__(self) -> str:
        lines = [f"{self.__class__.__name__} with {len(self.factors)} factors:"]
        lines.extend(f"  {i}: {factor}" for i, factor in enumerate(self.factors))
        return "\n".join(lines)
