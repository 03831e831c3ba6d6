import torch
import abc
from typing import Tuple

from .base import Variable
from ..lie_math.se2 import wrap_angle, se2_exp_map, se2_log_map, se2_compose, se2_inverse
from ..utils.misc import as_tensor, DEVICE, DEFAULT_DTYPE

class LieGroupVariable(Variable, abc.ABC):
    """
    Abstract base class for variables living on a Lie group (or a vector space).

    Subclasses define the manifold structure used by the optimizer: the tangent
    dimension, the retraction that applies a tangent-space delta to a value, and
    its local inverse. Values are plain tensors of shape `value_shape`.
    """

    @property
    @abc.abstractmethod
    def tangent_dim(self) -> int:
        """int: The dimension of the tangent space for this Lie group."""
        pass

    @property
    @abc.abstractmethod
    def value_shape(self) -> Tuple[int, ...]:
        """Tuple[int, ...]: Shape of a single value of this variable."""
        pass

    @abc.abstractmethod
    def retract(self, value: torch.Tensor, delta: torch.Tensor) -> torch.Tensor:
        """
        Applies a tangent space update to a value.

        Args:
            value (torch.Tensor): Current value, shape `value_shape`.
            delta (torch.Tensor): Update in the tangent space, shape (tangent_dim,).

        Returns:
            torch.Tensor: The updated value, shape `value_shape`.
        """
        pass

    @abc.abstractmethod
    def local_coordinates(self, value1: torch.Tensor, value2: torch.Tensor) -> torch.Tensor:
        """
        Tangent vector `d` such that `retract(value1, d) == value2`.

        Returns:
            torch.Tensor: Shape (tangent_dim,).
        """
        pass

    @abc.abstractmethod
    def compose(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        pass

    @abc.abstractmethod
    def inverse(self, a: torch.Tensor) -> torch.Tensor:
        pass

    @abc.abstractmethod
    def identity(self) -> torch.Tensor:
        """Returns the identity element for this group."""
        pass

    def between(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        """Relative element a^-1 * b."""
        return self.compose(self.inverse(a), b)

    def check_value(self, value) -> torch.Tensor:
        """
        Coerces `value` to a tensor on DEVICE/DEFAULT_DTYPE and checks its shape.

        Raises:
            ValueError: If the shape does not match `value_shape`.
        """
        tensor = as_tensor(value)
        if tensor.ndim == 0 and self.value_shape == (1,):
            tensor = tensor.reshape(1)
        if tuple(tensor.shape) != self.value_shape:
            raise ValueError(f"Value for {self.name} must have shape {self.value_shape}, got {tuple(tensor.shape)}.")
        return tensor


class VectorVariable(LieGroupVariable):
    """
    A variable in R^n. Retraction is plain addition.

    Args:
        dim (int): Dimension of the vector.
        name (str, optional): Name of the variable.
    """
    def __init__(self, dim: int, name: str = ""):
        if dim <= 0:
            raise ValueError(f"VectorVariable dimension must be positive, got {dim}.")
        super().__init__(name)
        self.dim = dim

    @property
    def tangent_dim(self) -> int:
        return self.dim

    @property
    def value_shape(self) -> Tuple[int, ...]:
        return (self.dim,)

    def retract(self, value: torch.Tensor, delta: torch.Tensor) -> torch.Tensor:
        return value + delta

    def local_coordinates(self, value1: torch.Tensor, value2: torch.Tensor) -> torch.Tensor:
        return value2 - value1

    def compose(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return a + b

    def inverse(self, a: torch.Tensor) -> torch.Tensor:
        return -a

    def identity(self) -> torch.Tensor:
        return torch.zeros(self.dim, device=DEVICE, dtype=DEFAULT_DTYPE)


class SO2Variable(LieGroupVariable):
    """
    A planar rotation stored as a single angle of shape (1,), kept in (-pi, pi].
    """
    @property
    def tangent_dim(self) -> int:
        return 1

    @property
    def value_shape(self) -> Tuple[int, ...]:
        return (1,)

    def retract(self, value: torch.Tensor, delta: torch.Tensor) -> torch.Tensor:
        return wrap_angle(value + delta)

    def local_coordinates(self, value1: torch.Tensor, value2: torch.Tensor) -> torch.Tensor:
        return wrap_angle(value2 - value1)

    def compose(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return wrap_angle(a + b)

    def inverse(self, a: torch.Tensor) -> torch.Tensor:
        return wrap_angle(-a)

    def identity(self) -> torch.Tensor:
        return torch.zeros(1, device=DEVICE, dtype=DEFAULT_DTYPE)

    def check_value(self, value) -> torch.Tensor:
        return wrap_angle(super().check_value(value))


class SE2Variable(LieGroupVariable):
    """
    A planar pose stored as (x, y, theta).
    Retraction is right-multiplication by the exponential: T_new = T * Exp(delta),
    so deltas are expressed in the body frame.
    """
    @property
    def tangent_dim(self) -> int:
        return 3

    @property
    def value_shape(self) -> Tuple[int, ...]:
        return (3,)

    def retract(self, value: torch.Tensor, delta: torch.Tensor) -> torch.Tensor:
        return se2_compose(value, se2_exp_map(delta))

    def local_coordinates(self, value1: torch.Tensor, value2: torch.Tensor) -> torch.Tensor:
        return se2_log_map(se2_compose(se2_inverse(value1), value2))

    def compose(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return se2_compose(a, b)

    def inverse(self, a: torch.Tensor) -> torch.Tensor:
        return se2_inverse(a)

    def identity(self) -> torch.Tensor:
        return torch.zeros(3, device=DEVICE, dtype=DEFAULT_DTYPE)

    def check_value(self, value) -> torch.Tensor:
        tensor = super().check_value(value)
        return torch.cat([tensor[:2], wrap_angle(tensor[2:])])
