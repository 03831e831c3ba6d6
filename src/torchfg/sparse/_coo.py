import torch
from dataclasses import dataclass
from typing import List, Tuple

@dataclass
class SparseCooMatrix:
    """
    Represents a sparse matrix in Coordinate (COO) format.
    Used to assemble the stacked Jacobian of a linear factor graph, where each
    factor contributes a dense block at (factor rows, variable columns).

    Attributes:
        values (torch.Tensor): A 1D tensor containing the non-zero values of the sparse matrix.
            Shape: (nnz,)
        row_indices (torch.Tensor): A 1D tensor containing the row indices of the non-zero values.
            Shape: (nnz,)
        col_indices (torch.Tensor): A 1D tensor containing the column indices of the non-zero values.
            Shape: (nnz,)
        shape (Tuple[int, int]): A tuple representing the dimensions (rows, cols) of the sparse matrix.
    """
    values: torch.Tensor
    row_indices: torch.Tensor
    col_indices: torch.Tensor
    shape: Tuple[int, int]

    def __post_init__(self):
        if not (self.values.ndim == 1 and
                self.row_indices.ndim == 1 and
                self.col_indices.ndim == 1):
            raise ValueError("values, row_indices, and col_indices must be 1D tensors.")
        if not (self.values.shape[0] == self.row_indices.shape[0] == self.col_indices.shape[0]):
            raise ValueError("values, row_indices, and col_indices must have the same length (nnz).")
        if not (len(self.shape) == 2 and self.shape[0] >= 0 and self.shape[1] >= 0):
            raise ValueError("Shape must be a 2-tuple of non-negative integers (rows, cols).")
        if self.row_indices.numel() > 0:
            if not (self.row_indices.max() < self.shape[0] and self.col_indices.max() < self.shape[1]):
                raise ValueError("Row/column indices are out of bounds for the given shape.")
            if self.row_indices.min() < 0 or self.col_indices.min() < 0:
                raise ValueError("Row/column indices must be non-negative.")

    @classmethod
    def from_blocks(cls, blocks: List[Tuple[int, int, torch.Tensor]], shape: Tuple[int, int],
                    dtype: torch.dtype, device: torch.device) -> 'SparseCooMatrix':
        """
        Assembles a matrix from dense blocks.

        Args:
            blocks (List[Tuple[int, int, torch.Tensor]]): (row_offset, col_offset, block) triples.
                Blocks may overlap; overlapping entries are summed on conversion.
            shape (Tuple[int, int]): Shape of the assembled matrix.

        Returns:
            SparseCooMatrix: The assembled matrix, one entry per block element.
        """
        values, rows, cols = [], [], []
        for row_offset, col_offset, block in blocks:
            r, c = torch.meshgrid(
                torch.arange(block.shape[0], device=device) + row_offset,
                torch.arange(block.shape[1], device=device) + col_offset,
                indexing="ij",
            )
            values.append(block.reshape(-1).to(device=device, dtype=dtype))
            rows.append(r.reshape(-1))
            cols.append(c.reshape(-1))
        if not values:
            empty_idx = torch.empty(0, dtype=torch.long, device=device)
            return cls(torch.empty(0, dtype=dtype, device=device), empty_idx, empty_idx.clone(), shape)
        return cls(torch.cat(values), torch.cat(rows), torch.cat(cols), shape)

    @property
    def nnz(self) -> int:
        return self.values.shape[0]

    def to_dense(self) -> torch.Tensor:
        """
        Converts the sparse COO matrix to a dense PyTorch tensor.

        Returns:
            torch.Tensor: The dense representation of the matrix.
                Shape: (self.shape[0], self.shape[1])
        """
        return self.to_torch_sparse_coo().to_dense()

    def to_torch_sparse_coo(self) -> torch.Tensor:
        """
        Converts this SparseCooMatrix to a PyTorch sparse COO tensor.

        Returns:
            torch.Tensor: A PyTorch sparse COO tensor.
        """
        return torch.sparse_coo_tensor(
            indices=torch.stack([self.row_indices, self.col_indices]),
            values=self.values,
            size=self.shape,
            device=self.values.device,
            dtype=self.values.dtype
        )

    def matvec(self, x: torch.Tensor) -> torch.Tensor:
        """Computes A @ x without densifying. x has shape (cols,)."""
        out = torch.zeros(self.shape[0], device=self.values.device, dtype=self.values.dtype)
        return out.index_add_(0, self.row_indices, self.values * x[self.col_indices])

    def rmatvec(self, y: torch.Tensor) -> torch.Tensor:
        """Computes A^T @ y without densifying. y has shape (rows,)."""
        out = torch.zeros(self.shape[1], device=self.values.device, dtype=self.values.dtype)
        return out.index_add_(0, self.col_indices, self.values * y[self.row_indices])

    @classmethod
    def from_torch_sparse_coo(cls, tensor: torch.Tensor) -> 'SparseCooMatrix':
        """
        Creates a SparseCooMatrix from a PyTorch sparse COO tensor.

        Args:
            tensor (torch.Tensor): A PyTorch sparse COO tensor.

        Returns:
            SparseCooMatrix: An instance of SparseCooMatrix, built from the coalesced tensor.

        Raises:
            ValueError: If the input tensor is not a sparse COO tensor.
        """
        if tensor.layout != torch.sparse_coo:
            raise ValueError("Input tensor must be a PyTorch sparse COO tensor.")

        tensor_coalesced = tensor.coalesce()
        indices = tensor_coalesced.indices()
        return cls(tensor_coalesced.values(), indices[0], indices[1], tuple(tensor_coalesced.shape))

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}("
                f"nnz={self.nnz}, "
                f"shape={self.shape})")
