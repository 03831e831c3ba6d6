import torch
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .factors import GaussianFactor, JacobianFactor
from .ordering import Ordering
from .vector_values import VectorValues
from ..sparse._coo import SparseCooMatrix
from ..variables.base import Variable
from ..utils.misc import DEVICE, DEFAULT_DTYPE

class GaussianFactorGraph:
    """
    A linear factor graph: the local approximation of a nonlinear graph at a
    linearization point. Its minimiser is the Gauss-Newton step.

    Args:
        factors (Optional[Iterable[GaussianFactor]]): Initial factors.
    """
    def __init__(self, factors: Optional[Iterable[GaussianFactor]] = None):
        self.factors: List[GaussianFactor] = list(factors) if factors is not None else []

    def add(self, factor: GaussianFactor) -> None:
        self.factors.append(factor)

    def __iter__(self) -> Iterator[GaussianFactor]:
        return iter(self.factors)

    def __len__(self) -> int:
        return len(self.factors)

    def keys(self) -> List[Variable]:
        """All variables, in order of first appearance."""
        return list(self.dims().keys())

    def dims(self) -> Dict[Variable, int]:
        """
        Tangent dimension of every variable in the graph.

        Raises:
            ValueError: If two factors disagree on a variable's dimension.
        """
        dims: Dict[Variable, int] = {}
        for factor in self.factors:
            for var in factor.keys:
                dim = factor.dims[var]
                if dims.setdefault(var, dim) != dim:
                    raise ValueError(f"Variable {var.name} has dimension {dims[var]} in one factor and {dim} in another.")
        return dims

    def error(self, delta: VectorValues) -> float:
        """Total linear error 0.5 * ||A delta - b||^2 (summed over factors)."""
        return sum(factor.error(delta) for factor in self.factors)

    def jacobian(self, ordering: Optional[Ordering] = None) -> Tuple[SparseCooMatrix, torch.Tensor]:
        """
        Stacks every JacobianFactor into one sparse matrix.

        Args:
            ordering (Optional[Ordering]): Column order. Defaults to first appearance.

        Returns:
            Tuple[SparseCooMatrix, torch.Tensor]:
                - A: Shape (total rows, total tangent dim).
                - b: Shape (total rows,).
        """
        dims = self.dims()
        ordering = ordering if ordering is not None else Ordering(dims.keys())
        ordering.validate(dims.keys())

        col_offsets, offset = ordering.column_offsets(dims)

        blocks = []
        rhs = []
        row = 0
        for factor in self.factors:
            if not isinstance(factor, JacobianFactor):
                raise TypeError(f"Cannot stack a {type(factor).__name__} into a Jacobian.")
            for var, block in zip(factor.keys, factor.blocks):
                blocks.append((row, col_offsets[var], block))
            rhs.append(factor.b)
            row += factor.rows

        A = SparseCooMatrix.from_blocks(blocks, (row, offset), dtype=DEFAULT_DTYPE, device=DEVICE)
        b = torch.cat(rhs) if rhs else torch.empty(0, device=DEVICE, dtype=DEFAULT_DTYPE)
        return A, b

    def hessian(self, ordering: Optional[Ordering] = None) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Dense information form of the whole graph.

        Returns:
            Tuple[torch.Tensor, torch.Tensor]:
                - G = A^T A, shape (n, n).
                - g = A^T b, shape (n,).
        """
        dims = self.dims()
        ordering = ordering if ordering is not None else Ordering(dims.keys())
        ordering.validate(dims.keys())

        col_offsets, offset = ordering.column_offsets(dims)

        augmented = torch.zeros(offset + 1, offset + 1, device=DEVICE, dtype=DEFAULT_DTYPE)
        for factor in self.factors:
            index = factor.scatter_index(col_offsets, offset)
            augmented[index.unsqueeze(1), index.unsqueeze(0)] += factor.augmented_information()
        return augmented[:offset, :offset], augmented[:offset, offset]

    def __repr__(self) -> str:
        lines = [f"{self.__class__.__name__} with {len(self.factors)} factors:"]
        lines.extend(f"  {i}: {factor}" for i, factor in enumerate(self.factors))
        return "\n".join(lines)
