import torch
from typing import Dict, List, Mapping, Optional, Sequence

from .vector_values import VectorValues
from ..variables.base import Variable

class GaussianConditional:
    """
    The result of eliminating frontal variables: the linear constraint
    R x_f = d - S x_s, where x_s are the separator (parent) variables.

    Args:
        frontals (Sequence[Variable]): Eliminated variables, in elimination order.
        parents (Sequence[Variable]): Separator variables, in elimination order.
        dims (Mapping[Variable, int]): Tangent dimension of every involved variable.
        R (torch.Tensor): Upper triangular, shape (nF, nF).
        S (torch.Tensor): Shape (nF, nS).
        d (torch.Tensor): Shape (nF,).
    """
    def __init__(self, frontals: Sequence[Variable], parents: Sequence[Variable],
                 dims: Mapping[Variable, int], R: torch.Tensor, S: torch.Tensor, d: torch.Tensor):
        self.frontals = tuple(frontals)
        self.parents = tuple(parents)
        self.dims = {var: dims[var] for var in self.frontals + self.parents}
        self.R = R
        self.S = S
        self.d = d

    def solve(self, solution: Mapping[Variable, torch.Tensor]) -> Dict[Variable, torch.Tensor]:
        """
        Back-substitutes the parents' values to recover the frontal values.

        Args:
            solution (Mapping[Variable, torch.Tensor]): Values of (at least) all parents.

        Returns:
            Dict[Variable, torch.Tensor]: Values of the frontal variables.
        """
        rhs = self.d
        if self.parents:
            x_parents = torch.cat([solution[var] for var in self.parents])
            rhs = rhs - self.S @ x_parents
        x = torch.linalg.solve_triangular(self.R, rhs.unsqueeze(1), upper=True).squeeze(1)
        out = {}
        offset = 0
        for var in self.frontals:
            out[var] = x[offset:offset + self.dims[var]]
            offset += self.dims[var]
        return out

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(frontals={list(self.frontals)}, parents={list(self.parents)})"


def _back_substitute(conditionals: Sequence[GaussianConditional], ordering: Sequence[Variable]) -> VectorValues:
    # Conditionals are in elimination order, so every parent is solved before its children.
    solution: Dict[Variable, torch.Tensor] = {}
    for conditional in reversed(conditionals):
        solution.update(conditional.solve(solution))
    return VectorValues({var: solution[var] for var in ordering})


class GaussianBayesNet:
    """
    Chain of conditionals from sequential elimination, one per variable.

    Attributes:
        conditionals (List[GaussianConditional]): In elimination order.
    """
    def __init__(self, conditionals: Sequence[GaussianConditional]):
        self.conditionals: List[GaussianConditional] = list(conditionals)

    def __len__(self) -> int:
        return len(self.conditionals)

    def optimize(self) -> VectorValues:
        """Solves by back-substitution, last eliminated variable first."""
        ordering = [var for conditional in self.conditionals for var in conditional.frontals]
        return _back_substitute(self.conditionals, ordering)


class GaussianBayesTreeClique:
    """
    A node of the Bayes tree: a conditional on several frontal variables whose
    separator is contained in the parent clique.
    """
    def __init__(self, conditional: GaussianConditional, parent: Optional['GaussianBayesTreeClique'] = None):
        self.conditional = conditional
        self.parent = parent
        self.children: List['GaussianBayesTreeClique'] = []

    @property
    def frontals(self):
        return self.conditional.frontals

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(frontals={list(self.frontals)}, separator={list(self.conditional.parents)})"


class GaussianBayesTree:
    """
    Result of multifrontal elimination.

    Attributes:
        cliques (List[GaussianBayesTreeClique]): Every clique, children before parents.
        roots (List[GaussianBayesTreeClique]): Cliques with an empty separator.
    """
    def __init__(self, cliques: Sequence[GaussianBayesTreeClique]):
        self.cliques: List[GaussianBayesTreeClique] = list(cliques)
        self.roots = [clique for clique in self.cliques if clique.parent is None]

    def __len__(self) -> int:
        return len(self.cliques)

    def optimize(self) -> VectorValues:
        """Solves top-down from the roots."""
        ordering = [var for clique in self.cliques for var in clique.frontals]
        return _back_substitute([clique.conditional for clique in self.cliques], ordering)
