import torch


class TorchFGError(Exception):
    """Base class for all errors raised by torchfg."""


class InvalidInputError(TorchFGError, ValueError):
    """
    Raised when an optimizer is constructed from an inconsistent graph/values pair,
    e.g. an empty graph or a variable the graph references with no assignment.
    """


class OrderingMismatchError(TorchFGError, ValueError):
    """
    Raised when an elimination ordering is not a permutation of exactly the
    variables of the linear system being solved.

    Attributes:
        missing (list): Variables of the system absent from the ordering.
        extra (list): Variables in the ordering that the system does not contain.
        duplicates (list): Variables listed more than once.
    """
    def __init__(self, missing=(), extra=(), duplicates=()):
        self.missing = list(missing)
        self.extra = list(extra)
        self.duplicates = list(duplicates)
        parts = []
        if self.missing: parts.append(f"missing {self.missing}")
        if self.extra: parts.append(f"not in system {self.extra}")
        if self.duplicates: parts.append(f"duplicated {self.duplicates}")
        super().__init__("Ordering does not match the linear system: " + ", ".join(parts))


class SingularSystemError(TorchFGError, torch.linalg.LinAlgError):
    """
    Raised when a factorization cannot eliminate a variable, i.e. the linear
    system is rank deficient under the chosen method.

    Attributes:
        variables (list): The frontal variables being eliminated when the failure occurred.
    """
    def __init__(self, message: str, variables=()):
        self.variables = list(variables)
        super().__init__(message)
