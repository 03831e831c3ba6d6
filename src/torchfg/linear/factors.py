import torch
from typing import Dict, List, Mapping, Sequence, Tuple

from .vector_values import VectorValues
from ..variables.base import Variable
from ..utils.misc import as_tensor

class GaussianFactor:
    """
    Common interface of the linear factors produced by linearization and elimination.

    Attributes:
        keys (Tuple[Variable, ...]): Variables the factor involves, in column order.
        dims (Dict[Variable, int]): Tangent dimension of each variable.
    """
    keys: Tuple[Variable, ...]
    dims: Dict[Variable, int]

    def augmented_information(self) -> torch.Tensor:
        """
        The augmented information matrix [[A^T A, A^T b], [b^T A, b^T b]] with
        columns laid out following `keys`. Shape (n + 1, n + 1).
        """
        raise NotImplementedError

    def error(self, delta: VectorValues) -> float:
        raise NotImplementedError

    def scatter_index(self, col_offsets: Mapping[Variable, int], rhs_col: int) -> torch.Tensor:
        """
        Maps this factor's augmented columns (keys, then the RHS) into a larger layout.

        Args:
            col_offsets (Mapping[Variable, int]): Start column of each variable in the larger layout.
            rhs_col (int): Column of the RHS in the larger layout.

        Returns:
            torch.Tensor: Long tensor of shape (total_dim + 1,).
        """
        parts = [torch.arange(col_offsets[var], col_offsets[var] + self.dims[var]) for var in self.keys]
        parts.append(torch.tensor([rhs_col]))
        return torch.cat(parts)

    @property
    def total_dim(self) -> int:
        return sum(self.dims[var] for var in self.keys)


class JacobianFactor(GaussianFactor):
    """
    A linear least-squares factor with error 0.5 * ||sum_j A_j x_j - b||^2.

    Args:
        keys (Sequence[Variable]): Variables, one per block.
        blocks (Sequence[torch.Tensor]): Jacobian blocks A_j, each of shape (rows, dim_j).
        b (torch.Tensor): Right-hand side, shape (rows,).
    """
    def __init__(self, keys: Sequence[Variable], blocks: Sequence[torch.Tensor], b: torch.Tensor):
        if len(keys) != len(blocks):
            raise ValueError(f"Got {len(keys)} keys but {len(blocks)} Jacobian blocks.")
        if len(set(keys)) != len(keys):
            raise ValueError(f"JacobianFactor keys must be unique, got {list(keys)}.")
        self.b = as_tensor(b).reshape(-1)
        self.keys = tuple(keys)
        self.blocks: List[torch.Tensor] = []
        self.dims = {}
        for var, block in zip(self.keys, blocks):
            block = as_tensor(block)
            if block.ndim != 2 or block.shape[0] != self.b.shape[0]:
                raise ValueError(f"Block for {var.name} has shape {tuple(block.shape)}, expected ({self.b.shape[0]}, dim).")
            self.blocks.append(block)
            self.dims[var] = block.shape[1]

    @property
    def rows(self) -> int:
        return self.b.shape[0]

    def matrix(self) -> torch.Tensor:
        """The stacked [A | b] matrix. Shape (rows, n + 1)."""
        return torch.cat(self.blocks + [self.b.unsqueeze(1)], dim=1)

    def augmented_information(self) -> torch.Tensor:
        Ab = self.matrix()
        return Ab.T @ Ab

    def error(self, delta: VectorValues) -> float:
        r = -self.b.clone()
        for var, block in zip(self.keys, self.blocks):
            r = r + block @ delta[var]
        return 0.5 * torch.sum(r ** 2).item()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(keys={list(self.keys)}, rows={self.rows})"


class HessianFactor(GaussianFactor):
    """
    A linear factor in information form, error 0.5 * (x^T G x - 2 x^T g + f).
    Produced by Cholesky/LDL elimination as the marginal on a separator.

    Args:
        keys (Sequence[Variable]): Variables, in column order.
        dims (Mapping[Variable, int]): Tangent dimension of each variable.
        augmented (torch.Tensor): [[G, g], [g^T, f]], shape (n + 1, n + 1).
    """
    def __init__(self, keys: Sequence[Variable], dims: Mapping[Variable, int], augmented: torch.Tensor):
        self.keys = tuple(keys)
        self.dims = {var: dims[var] for var in self.keys}
        self.augmented = as_tensor(augmented)
        n = self.total_dim
        if tuple(self.augmented.shape) != (n + 1, n + 1):
            raise ValueError(f"Augmented information must be ({n + 1}, {n + 1}), got {tuple(self.augmented.shape)}.")

    def augmented_information(self) -> torch.Tensor:
        return self.augmented

    def error(self, delta: VectorValues) -> float:
        x = delta.vector(self.keys)
        n = x.shape[0]
        G, g, f = self.augmented[:n, :n], self.augmented[:n, n], self.augmented[n, n]
        return 0.5 * (x @ G @ x - 2.0 * x @ g + f).item()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(keys={list(self.keys)})"
