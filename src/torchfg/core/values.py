import torch
from typing import Dict, Iterator, Mapping, Optional

from ..linear.vector_values import VectorValues
from ..variables.lie_groups import LieGroupVariable

class Values(Mapping):
    """
    Immutable assignment of a value to each variable.

    Never modified in place: `insert`, `update` and `retract` return new
    containers, so a `Values` can be shared freely between optimizer states.
    Variables untouched by an operation keep sharing the same tensor.

    Args:
        assignments (Optional[Mapping[LieGroupVariable, torch.Tensor]]): Initial
            values; each is checked and coerced by its variable's `check_value`.
    """
    def __init__(self, assignments: Optional[Mapping[LieGroupVariable, torch.Tensor]] = None):
        self._values: Dict[LieGroupVariable, torch.Tensor] = {}
        for var, value in (assignments or {}).items():
            if not isinstance(var, LieGroupVariable):
                raise TypeError(f"Values keys must be LieGroupVariables, got {type(var).__name__}.")
            self._values[var] = var.check_value(value)

    @classmethod
    def _wrap(cls, values: Dict[LieGroupVariable, torch.Tensor]) -> 'Values':
        # Skips validation: `values` is already checked.
        out = cls.__new__(cls)
        out._values = values
        return out

    def __getitem__(self, var: LieGroupVariable) -> torch.Tensor:
        return self._values[var]

    def __iter__(self) -> Iterator[LieGroupVariable]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def insert(self, var: LieGroupVariable, value) -> 'Values':
        """
        Returns a copy with `var` added.

        Raises:
            KeyError: If `var` already has a value.
        """
        if var in self._values:
            raise KeyError(f"Variable {var.name} already has a value; use update().")
        return self.update(var, value)

    def update(self, var: LieGroupVariable, value) -> 'Values':
        """Returns a copy with the value of `var` set (added or replaced)."""
        new_values = dict(self._values)
        new_values[var] = var.check_value(value)
        return Values._wrap(new_values)

    def dims(self) -> Dict[LieGroupVariable, int]:
        return {var: var.tangent_dim for var in self._values}

    def retract(self, delta: VectorValues) -> 'Values':
        """
        Applies a tangent-space delta through each variable's retraction.

        Args:
            delta (VectorValues): Updates for a subset of the variables.

        Returns:
            Values: New values. Variables absent from `delta` keep their tensor.

        Raises:
            KeyError: If `delta` names a variable without a value.
        """
        new_values = dict(self._values)
        for var, d in delta.items():
            if var not in self._values:
                raise KeyError(f"Delta given for {var.name}, which has no value.")
            new_values[var] = var.retract(self._values[var], d)
        return Values._wrap(new_values)

    def local_coordinates(self, other: 'Values') -> VectorValues:
        """Tangent vectors taking `self` to `other`, for variables present in both."""
        return VectorValues({var: var.local_coordinates(value, other[var])
                             for var, value in self._values.items() if var in other})

    def __repr__(self) -> str:
        body = ", ".join(f"{var.name}: {value.tolist()}" for var, value in self._values.items())
        return f"{self.__class__.__name__}({{{body}}})"
