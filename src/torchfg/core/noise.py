import torch
from typing import Optional, Union

from ..utils.misc import as_tensor

class NoiseModel:
    """
    Diagonal Gaussian noise used to whiten residuals: r_w = r / sigma.

    Args:
        sigmas (Optional[torch.Tensor]): Per-component standard deviations, shape (dim,).
            None means unit noise of any dimension.
    """
    def __init__(self, sigmas: Optional[torch.Tensor] = None):
        if sigmas is not None:
            sigmas = as_tensor(sigmas).reshape(-1)
            if torch.any(sigmas <= 0):
                raise ValueError(f"Noise sigmas must be positive, got {sigmas.tolist()}.")
        self.sigmas = sigmas

    @classmethod
    def unit(cls) -> 'NoiseModel':
        return cls(None)

    @classmethod
    def isotropic(cls, dim: int, sigma: float) -> 'NoiseModel':
        return cls(torch.full((dim,), float(sigma)))

    @classmethod
    def diagonal(cls, sigmas: Union[torch.Tensor, list]) -> 'NoiseModel':
        return cls(as_tensor(sigmas))

    def whiten(self, residual: torch.Tensor) -> torch.Tensor:
        if self.sigmas is None:
            return residual
        if self.sigmas.shape[0] != residual.shape[-1]:
            raise ValueError(f"Noise model of dimension {self.sigmas.shape[0]} cannot whiten a residual of dimension {residual.shape[-1]}.")
        return residual / self.sigmas

    def __repr__(self) -> str:
        if self.sigmas is None:
            return f"{self.__class__.__name__}(unit)"
        return f"{self.__class__.__name__}(sigmas={self.sigmas.tolist()})"
