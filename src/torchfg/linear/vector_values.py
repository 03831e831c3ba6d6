import torch
from typing import Dict, Iterable, Iterator, Mapping, Optional

from ..variables.base import Variable
from ..utils.misc import as_tensor, DEVICE, DEFAULT_DTYPE

class VectorValues(Mapping):
    """
    Tangent-space vectors indexed by variable: the solution ("delta") of a
    linear system. Read-only once built.

    Args:
        deltas (Optional[Mapping[Variable, torch.Tensor]]): Initial content. Each
            tensor is flattened to 1D.
    """
    def __init__(self, deltas: Optional[Mapping[Variable, torch.Tensor]] = None):
        self._deltas: Dict[Variable, torch.Tensor] = {}
        for var, delta in (deltas or {}).items():
            self._deltas[var] = as_tensor(delta).reshape(-1)

    def __getitem__(self, var: Variable) -> torch.Tensor:
        return self._deltas[var]

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._deltas)

    def __len__(self) -> int:
        return len(self._deltas)

    def dims(self) -> Dict[Variable, int]:
        return {var: delta.shape[0] for var, delta in self._deltas.items()}

    @classmethod
    def zero(cls, dims: Mapping[Variable, int]) -> 'VectorValues':
        """All-zero deltas for the given variable dimensions."""
        return cls({var: torch.zeros(dim, device=DEVICE, dtype=DEFAULT_DTYPE) for var, dim in dims.items()})

    def vector(self, ordering: Iterable[Variable]) -> torch.Tensor:
        """
        Concatenates the deltas following `ordering`.

        Returns:
            torch.Tensor: Shape (sum of dims,).
        """
        parts = [self._deltas[var] for var in ordering]
        if not parts:
            return torch.empty(0, device=DEVICE, dtype=DEFAULT_DTYPE)
        return torch.cat(parts)

    @classmethod
    def from_vector(cls, vector: torch.Tensor, ordering: Iterable[Variable],
                    dims: Mapping[Variable, int]) -> 'VectorValues':
        """Inverse of `vector`: splits a stacked vector back into per-variable pieces."""
        deltas = {}
        offset = 0
        for var in ordering:
            dim = dims[var]
            deltas[var] = vector[offset:offset + dim]
            offset += dim
        if offset != vector.shape[0]:
            raise ValueError(f"Vector of length {vector.shape[0]} does not match total dimension {offset}.")
        return cls(deltas)

    def norm(self) -> float:
        """Euclidean norm of the stacked vector."""
        if not self._deltas:
            return 0.0
        return torch.linalg.norm(torch.cat(list(self._deltas.values()))).item()

    def __repr__(self) -> str:
        body = ", ".join(f"{var.name}: {delta.tolist()}" for var, delta in self._deltas.items())
        return f"{self.__class__.__name__}({{{body}}})"
