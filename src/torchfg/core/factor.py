import torch
import abc
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from .noise import NoiseModel
from ..linear.factors import JacobianFactor
from ..variables.lie_groups import LieGroupVariable
from ..utils.misc import as_tensor, DEVICE, DEFAULT_DTYPE

class NonlinearFactor(abc.ABC):
    """
    Abstract base class for the nonlinear measurement constraints of a factor graph.

    The error of a factor is 0.5 * ||whiten(residual)||^2. Linearization uses
    automatic differentiation of the residual with respect to a tangent-space
    delta on every variable, unless a subclass provides `analytical_jacobian`.

    Args:
        variables (Sequence[LieGroupVariable]): The variables this factor depends on.
        noise (Optional[NoiseModel], optional): Measurement noise. Defaults to unit noise.
        name (str, optional): An optional name for the factor.

    Attributes:
        variables (List[LieGroupVariable]): The variables involved in this factor.
        noise (NoiseModel): Whitening applied to the residual.
        name (str): Name of the factor.
    """
    def __init__(self, variables: Sequence[LieGroupVariable], noise: Optional[NoiseModel] = None,
                 name: Optional[str] = None):
        if not variables:
            raise ValueError("A factor must involve at least one variable.")
        if len(set(variables)) != len(variables):
            raise ValueError(f"Factor variables must be unique, got {list(variables)}.")
        self.variables: List[LieGroupVariable] = list(variables)
        self.noise = noise if noise is not None else NoiseModel.unit()
        self.name = name if name else self.__class__.__name__

    @property
    def keys(self) -> Tuple[LieGroupVariable, ...]:
        return tuple(self.variables)

    @abc.abstractmethod
    def residual(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> torch.Tensor:
        """
        Computes the (unwhitened) residual vector for this factor.

        Args:
            var_values (Mapping[LieGroupVariable, torch.Tensor]): Values of (at least)
                this factor's variables.

        Returns:
            torch.Tensor: The residual vector, shape (ResidualDim,).
        """
        pass

    def analytical_jacobian(
        self,
        var_values: Mapping[LieGroupVariable, torch.Tensor]
    ) -> Optional[Tuple[List[torch.Tensor], torch.Tensor]]:
        """
        Optionally implemented by subclasses to skip autograd.

        Returns:
            Optional[Tuple[List[torch.Tensor], torch.Tensor]]:
                - One unwhitened Jacobian block d_residual / d_delta per variable,
                  each of shape (ResidualDim, tangent_dim), in `self.variables` order.
                - The unwhitened residual at `var_values`.
            None (the default) means "use autograd".
        """
        return None

    def whitened_residual(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> torch.Tensor:
        return self.noise.whiten(self.residual(var_values).reshape(-1))

    def error(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> float:
        """0.5 * squared norm of the whitened residual."""
        r = self.whitened_residual(var_values)
        return 0.5 * torch.sum(r ** 2).item()

    def linearize(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> JacobianFactor:
        """
        First-order approximation of this factor around `var_values`.

        The returned JacobianFactor has blocks A_j = d r_w / d delta_j and
        right-hand side b = -r_w, so its minimiser is the Gauss-Newton step.

        Returns:
            JacobianFactor: Over `self.variables`, in that order.
        """
        point = {var: var_values[var] for var in self.variables}

        analytical_result = self.analytical_jacobian(point)
        if analytical_result is not None:
            blocks, res = analytical_result
            res = res.reshape(-1)
            if len(blocks) != len(self.variables):
                raise ValueError(f"analytical_jacobian of '{self.name}' returned {len(blocks)} blocks for {len(self.variables)} variables.")
            whitened_blocks = []
            for var, block in zip(self.variables, blocks):
                if tuple(block.shape) != (res.shape[0], var.tangent_dim):
                    raise ValueError(
                        f"Analytical Jacobian block for {var.name} in '{self.name}' has shape {tuple(block.shape)}, "
                        f"expected ({res.shape[0]}, {var.tangent_dim})."
                    )
                # Row-wise whitening.
                whitened_blocks.append(self.noise.whiten(block.T).T)
            return JacobianFactor(self.variables, whitened_blocks, -self.noise.whiten(res))

        def residual_wrt_delta_closure(*deltas: torch.Tensor) -> torch.Tensor:
            retracted = dict(point)
            for var, delta in zip(self.variables, deltas):
                retracted[var] = var.retract(point[var], delta)
            return self.whitened_residual(retracted)

        zero_deltas = tuple(
            torch.zeros(var.tangent_dim, device=DEVICE, dtype=DEFAULT_DTYPE, requires_grad=True)
            for var in self.variables
        )
        jac_blocks = torch.autograd.functional.jacobian(residual_wrt_delta_closure, zero_deltas,
                                                        strict=False, vectorize=False, create_graph=False)
        r = self.whitened_residual(point).detach()
        blocks = [block.detach().reshape(r.shape[0], var.tangent_dim) for var, block in zip(self.variables, jac_blocks)]
        return JacobianFactor(self.variables, blocks, -r)

    def __repr__(self) -> str:
        return f"{self.name}({', '.join(var.name for var in self.variables)})"


class PriorFactor(NonlinearFactor):
    """
    Pulls a variable towards a fixed value: residual = local_coordinates(prior, x).

    Args:
        variable (LieGroupVariable): The constrained variable.
        prior (torch.Tensor): Target value, shape `variable.value_shape`.
        noise (Optional[NoiseModel], optional): Measurement noise.
    """
    def __init__(self, variable: LieGroupVariable, prior, noise: Optional[NoiseModel] = None):
        super().__init__([variable], noise, name=f"Prior_{variable.name}")
        self.variable = variable
        self.prior = variable.check_value(prior)

    def residual(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> torch.Tensor:
        return self.variable.local_coordinates(self.prior, var_values[self.variable])


class BetweenFactor(NonlinearFactor):
    """
    Relative measurement between two variables of the same group:
    residual = local_coordinates(measured, x1^-1 * x2).

    Args:
        var1 (LieGroupVariable): The reference variable.
        var2 (LieGroupVariable): The measured variable.
        measured (torch.Tensor): The measured relative element.
        noise (Optional[NoiseModel], optional): Measurement noise.
    """
    def __init__(self, var1: LieGroupVariable, var2: LieGroupVariable, measured,
                 noise: Optional[NoiseModel] = None):
        if type(var1) is not type(var2) or var1.value_shape != var2.value_shape:
            raise ValueError(f"BetweenFactor needs two variables of the same group, got {var1!r} and {var2!r}.")
        super().__init__([var1, var2], noise, name=f"Between_{var1.name}_{var2.name}")
        self.var1 = var1
        self.var2 = var2
        self.measured = var1.check_value(measured)

    def residual(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> torch.Tensor:
        relative = self.var1.between(var_values[self.var1], var_values[self.var2])
        return self.var1.local_coordinates(self.measured, relative)


class FunctionFactor(NonlinearFactor):
    """
    A factor defined by a plain function of the variables' values.

    Args:
        variables (Sequence[LieGroupVariable]): Arguments of `fn`, in order.
        fn (Callable[..., torch.Tensor]): Returns the residual given one tensor per variable.
            Must be built from differentiable torch operations.
        noise (Optional[NoiseModel], optional): Measurement noise.
        name (Optional[str], optional): Name of the factor.
    """
    def __init__(self, variables: Sequence[LieGroupVariable], fn: Callable[..., torch.Tensor],
                 noise: Optional[NoiseModel] = None, name: Optional[str] = None):
        super().__init__(variables, noise, name)
        self.fn = fn

    def residual(self, var_values: Mapping[LieGroupVariable, torch.Tensor]) -> torch.Tensor:
        result = self.fn(*[var_values[var] for var in self.variables])
        return result if isinstance(result, torch.Tensor) else as_tensor(result)
