import dataclasses
import enum
from typing import Optional

from ..linear.elimination import Elimination, Factorization
from ..linear.ordering import Ordering

class Verbosity(enum.IntEnum):
    """How much an optimizer prints. Each level includes the ones below it."""
    SILENT = 0
    ERROR = 1
    VALUES = 2
    DELTA = 3
    LINEAR = 4

class OrderingType(enum.Enum):
    """Heuristic used to compute an elimination ordering when none is given."""
    MIN_DEGREE = "MIN_DEGREE"
    NATURAL = "NATURAL"


def _enum_name(value, enum_cls) -> str:
    try:
        return enum_cls(value).name
    except (ValueError, TypeError):
        return "(invalid)"


@dataclasses.dataclass(frozen=True)
class NonlinearOptimizerParams:
    """
    Configuration shared by the nonlinear optimizers.

    Instances are immutable; use `dataclasses.replace(params, field=value)` to
    derive a changed copy.

    Args:
        max_iterations (int): Maximum number of iterations run by `optimize()`.
        relative_error_tol (float): Stop when the relative error decrease is below this
            (together with `absolute_error_tol`).
        absolute_error_tol (float): Stop when the absolute error decrease is below this
            (together with `relative_error_tol`).
        error_tol (float): Stop as soon as the error is at or below this value.
        verbosity (Verbosity): What to print while optimizing.
    """
    max_iterations: int = 100
    relative_error_tol: float = 1e-5
    absolute_error_tol: float = 1e-5
    error_tol: float = 0.0
    verbosity: Verbosity = Verbosity.SILENT

    def __post_init__(self):
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}.")
        for name in ("relative_error_tol", "absolute_error_tol", "error_tol"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}.")
        object.__setattr__(self, "verbosity", Verbosity(self.verbosity))

    def _summary_lines(self):
        return [
            f"  max_iterations:      {self.max_iterations}",
            f"  relative_error_tol:  {self.relative_error_tol}",
            f"  absolute_error_tol:  {self.absolute_error_tol}",
            f"  error_tol:           {self.error_tol}",
            f"  verbosity:           {_enum_name(self.verbosity, Verbosity)}",
        ]

    def summary(self, header: str = "") -> str:
        """
        Human-readable description of every field.

        Enum fields holding a value outside their enum are shown as "(invalid)";
        this method never raises on such values.
        """
        lines = [header or f"{self.__class__.__name__}:"]
        lines.extend(self._summary_lines())
        return "\n".join(lines)

    def print(self, header: str = "") -> None:
        print(self.summary(header))


@dataclasses.dataclass(frozen=True)
class GaussNewtonParams(NonlinearOptimizerParams):
    """
    Parameters of `GaussNewtonOptimizer`.

    Args:
        elimination (Elimination): MULTIFRONTAL (Bayes tree) or SEQUENTIAL (Bayes net).
        factorization (Factorization): Dense factorization used per elimination step.
        ordering (Optional[Ordering]): Elimination ordering used verbatim. None or an
            empty ordering means one is computed at every iteration.
        ordering_type (OrderingType): Heuristic for the computed ordering.
    """
    elimination: Elimination = Elimination.MULTIFRONTAL
    factorization: Factorization = Factorization.LDL
    ordering: Optional[Ordering] = None
    ordering_type: OrderingType = OrderingType.MIN_DEGREE

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "elimination", Elimination(self.elimination))
        object.__setattr__(self, "factorization", Factorization(self.factorization))
        object.__setattr__(self, "ordering_type", OrderingType(self.ordering_type))
        if self.ordering is not None and not isinstance(self.ordering, Ordering):
            object.__setattr__(self, "ordering", Ordering(self.ordering))

    @property
    def has_ordering(self) -> bool:
        return self.ordering is not None and len(self.ordering) > 0

    def _summary_lines(self):
        if self.has_ordering:
            ordering = "[" + ", ".join(getattr(var, "name", str(var)) for var in self.ordering) + "]"
        else:
            ordering = "(computed)"
        return super()._summary_lines() + [
            f"  elimination:         {_enum_name(self.elimination, Elimination)}",
            f"  factorization:       {_enum_name(self.factorization, Factorization)}",
            f"  ordering:            {ordering}",
            f"  ordering_type:       {_enum_name(self.ordering_type, OrderingType)}",
        ]
