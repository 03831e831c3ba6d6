import enum
import torch
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .conditional import GaussianBayesNet, GaussianBayesTree, GaussianBayesTreeClique, GaussianConditional
from .factors import GaussianFactor, HessianFactor, JacobianFactor
from .gaussian_graph import GaussianFactorGraph
from .ordering import Ordering
from .vector_values import VectorValues
from ..errors import SingularSystemError
from ..variables.base import Variable
from ..utils.misc import DEVICE, DEFAULT_DTYPE, SINGULAR_RTOL

class Elimination(enum.Enum):
    """How variables are grouped during elimination."""
    MULTIFRONTAL = "MULTIFRONTAL"
    SEQUENTIAL = "SEQUENTIAL"

class Factorization(enum.Enum):
    """Dense factorization applied at every elimination step."""
    LDL = "LDL"
    QR = "QR"
    CHOLESKY = "CHOLESKY"


# --- Dense elimination kernels ---
# Each kernel eliminates `frontals` from the product of `factors` and returns the
# conditional on the frontals plus the marginal factor on the separator (None
# when the separator is empty).
#
# Pivots are tested against `reference`, the per-variable diagonal of A^T A
# of the graph before any elimination.

def information_diagonal(factors: Iterable[GaussianFactor]) -> Dict[Variable, torch.Tensor]:
    """
    Sums the diagonal of A^T A of every factor, per variable.

    Returns:
        Dict[Variable, torch.Tensor]: One tensor of shape (dim,) per variable.
    """
    reference: Dict[Variable, torch.Tensor] = {}
    for factor in factors:
        diag = torch.diagonal(factor.augmented_information())
        offset = 0
        for var in factor.keys:
            dim = factor.dims[var]
            part = diag[offset:offset + dim]
            reference[var] = reference[var] + part if var in reference else part.clone()
            offset += dim
    return reference

def _layout(factors: Sequence[GaussianFactor], frontals: Sequence[Variable],
            positions: Mapping[Variable, int], dims: Mapping[Variable, int]):
    frontal_set = set(frontals)
    separator = sorted({var for factor in factors for var in factor.keys if var not in frontal_set},
                       key=positions.__getitem__)
    col_offsets, total = Ordering(list(frontals) + separator).column_offsets(dims)
    n_frontal = sum(dims[var] for var in frontals)
    return separator, col_offsets, total, n_frontal

def _frontal_reference(factors: Sequence[GaussianFactor], frontals: Sequence[Variable],
                       dims: Mapping[Variable, int],
                       reference: Optional[Mapping[Variable, torch.Tensor]]) -> torch.Tensor:
    if reference is None:
        reference = information_diagonal(factors)
    zeros = torch.zeros(0, device=DEVICE, dtype=DEFAULT_DTYPE)
    parts = [reference[var] if var in reference else zeros.new_zeros(dims[var]) for var in frontals]
    return torch.cat(parts) if parts else zeros

def _singular(frontals: Sequence[Variable], method: str, detail: str) -> SingularSystemError:
    names = ", ".join(var.name for var in frontals)
    return SingularSystemError(f"{method} elimination of [{names}] failed: {detail}", variables=frontals)

def _check_pivots(pivots: torch.Tensor, ref: torch.Tensor, frontals: Sequence[Variable], method: str):
    """Raises if any squared pivot is not above SINGULAR_RTOL times its reference diagonal."""
    bad = (pivots <= SINGULAR_RTOL * ref) | (ref <= 0)
    if bad.any():
        j = int(torch.nonzero(bad)[0].item())
        raise _singular(frontals, method,
                        f"pivot {pivots[j].item():.3e} at column {j} is negligible against "
                        f"the original information {ref[j].item():.3e}")

def eliminate_qr(factors: Sequence[GaussianFactor], frontals: Sequence[Variable],
                 positions: Mapping[Variable, int], dims: Mapping[Variable, int],
                 reference: Optional[Mapping[Variable, torch.Tensor]] = None
                 ) -> Tuple[GaussianConditional, Optional[JacobianFactor]]:
    """
    Householder QR of the stacked [A | b] of all factors.
    Works on the Jacobian directly, so it never squares the condition number.
    R_jj^2 is compared with the squared norm of the variable's original columns.
    """
    separator, col_offsets, n, n_frontal = _layout(factors, frontals, positions, dims)

    row_blocks = []
    for factor in factors:
        if not isinstance(factor, JacobianFactor):
            raise TypeError(f"QR elimination requires JacobianFactors, got {type(factor).__name__}.")
        block = torch.zeros(factor.rows, n + 1, device=DEVICE, dtype=DEFAULT_DTYPE)
        block[:, factor.scatter_index(col_offsets, n)] = factor.matrix()
        row_blocks.append(block)
    Ab = torch.cat(row_blocks) if row_blocks else torch.zeros(0, n + 1, device=DEVICE, dtype=DEFAULT_DTYPE)

    m = Ab.shape[0]
    if m < n_frontal:
        raise _singular(frontals, "QR", f"{m} rows cannot determine {n_frontal} unknowns")

    R = torch.linalg.qr(Ab, mode="r").R
    diag = torch.diagonal(R[:n_frontal, :n_frontal])
    _check_pivots(diag ** 2, _frontal_reference(factors, frontals, dims, reference), frontals, "QR")

    conditional = GaussianConditional(frontals, separator, dims,
                                      R[:n_frontal, :n_frontal], R[:n_frontal, n_frontal:n], R[:n_frontal, n])
    if not separator:
        return conditional, None
    # Rows past n only carry the constant part of the error.
    remaining = R[n_frontal:min(R.shape[0], n), n_frontal:]
    blocks = []
    for var in separator:
        start = col_offsets[var] - n_frontal
        blocks.append(remaining[:, start:start + dims[var]])
    return conditional, JacobianFactor(separator, blocks, remaining[:, -1])

def _combine_information(factors: Sequence[GaussianFactor], col_offsets: Mapping[Variable, int], n: int) -> torch.Tensor:
    augmented = torch.zeros(n + 1, n + 1, device=DEVICE, dtype=DEFAULT_DTYPE)
    for factor in factors:
        index = factor.scatter_index(col_offsets, n)
        augmented[index.unsqueeze(1), index.unsqueeze(0)] += factor.augmented_information()
    return augmented

def _ldl(H: torch.Tensor, ref: torch.Tensor, frontals: Sequence[Variable]) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Unpivoted H = L D L^T with unit lower triangular L.

    Raises:
        SingularSystemError: If a pivot D[j] is not above SINGULAR_RTOL * ref[j].
    """
    n = H.shape[0]
    L = torch.eye(n, device=H.device, dtype=H.dtype)
    D = torch.zeros(n, device=H.device, dtype=H.dtype)
    for j in range(n):
        D[j] = H[j, j] - torch.sum(L[j, :j] ** 2 * D[:j])
        _check_pivots(D[j:j + 1], ref[j:j + 1], frontals, "LDL")
        L[j + 1:, j] = (H[j + 1:, j] - L[j + 1:, :j] @ (L[j, :j] * D[:j])) / D[j]
    return L, D

def _eliminate_information(factors, frontals, positions, dims, method: Factorization, reference=None):
    separator, col_offsets, n, n_frontal = _layout(factors, frontals, positions, dims)
    H = _combine_information(factors, col_offsets, n)
    H_ff = H[:n_frontal, :n_frontal]
    ref = _frontal_reference(factors, frontals, dims, reference)

    if method == Factorization.CHOLESKY:
        L, info = torch.linalg.cholesky_ex(H_ff)
        if info.item() != 0:
            raise _singular(frontals, "Cholesky", "frontal information block is not positive definite")
        _check_pivots(torch.diagonal(L) ** 2, ref, frontals, "Cholesky")
        R = L.T
    else:
        L, D = _ldl(H_ff, ref, frontals)
        R = torch.sqrt(D).unsqueeze(1) * L.T

    # R^T [S | d] = H_f,(s,b)
    Sd = torch.linalg.solve_triangular(R.T, H[:n_frontal, n_frontal:], upper=False)
    conditional = GaussianConditional(frontals, separator, dims, R, Sd[:, :-1], Sd[:, -1])
    if not separator:
        return conditional, None
    schur = H[n_frontal:, n_frontal:] - Sd.T @ Sd
    return conditional, HessianFactor(separator, dims, schur)

def eliminate_cholesky(factors: Sequence[GaussianFactor], frontals: Sequence[Variable],
                       positions: Mapping[Variable, int], dims: Mapping[Variable, int],
                       reference: Optional[Mapping[Variable, torch.Tensor]] = None
                       ) -> Tuple[GaussianConditional, Optional[HessianFactor]]:
    """Partial Cholesky of the augmented information matrix; marginal is the Schur complement."""
    return _eliminate_information(factors, frontals, positions, dims, Factorization.CHOLESKY, reference)

def eliminate_ldl(factors: Sequence[GaussianFactor], frontals: Sequence[Variable],
                  positions: Mapping[Variable, int], dims: Mapping[Variable, int],
                  reference: Optional[Mapping[Variable, torch.Tensor]] = None
                  ) -> Tuple[GaussianConditional, Optional[HessianFactor]]:
    """Like `eliminate_cholesky`, but factors the frontal block as L D L^T and checks every pivot."""
    return _eliminate_information(factors, frontals, positions, dims, Factorization.LDL, reference)

_KERNELS = {
    Factorization.QR: eliminate_qr,
    Factorization.CHOLESKY: eliminate_cholesky,
    Factorization.LDL: eliminate_ldl,
}

def _kernel(factorization: Factorization):
    try:
        return _KERNELS[factorization]
    except KeyError:
        raise ValueError(f"Unknown factorization method: {factorization!r}") from None


# --- Sequential elimination ---

def eliminate_sequential(graph: GaussianFactorGraph, ordering: Ordering,
                         factorization: Factorization = Factorization.LDL) -> GaussianBayesNet:
    """
    Eliminates one variable at a time following `ordering`.

    Each step removes every factor touching the variable, eliminates it and
    puts the marginal on its separator back into the pool.
    """
    kernel = _kernel(factorization)
    dims = graph.dims()
    ordering.validate(dims.keys())
    positions = ordering.positions()
    reference = information_diagonal(graph)

    pool: List[GaussianFactor] = list(graph)
    conditionals = []
    for var in ordering:
        involved = [factor for factor in pool if var in factor.keys]
        pool = [factor for factor in pool if var not in factor.keys]
        conditional, marginal = kernel(involved, (var,), positions, dims, reference)
        conditionals.append(conditional)
        if marginal is not None:
            pool.append(marginal)
    return GaussianBayesNet(conditionals)


# --- Multifrontal elimination ---

class SymbolicClique:
    """A clique of the junction tree: frontal variables eliminated together, and their separator."""
    def __init__(self, frontals: List[Variable], separator: List[Variable]):
        self.frontals = frontals
        self.separator = separator
        self.parent: Optional['SymbolicClique'] = None
        self.children: List['SymbolicClique'] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(frontals={self.frontals}, separator={self.separator})"

def elimination_tree(graph, ordering: Ordering) -> Tuple[Dict[Variable, Optional[Variable]], Dict[Variable, List[Variable]]]:
    """
    Symbolic elimination.

    Returns:
        Tuple[Dict, Dict]:
            - parent: The first-eliminated separator variable of each variable (None for roots).
            - separator: Separator of each variable, sorted by elimination position.
    """
    positions = ordering.positions()
    gathered: Dict[Variable, set] = {var: set() for var in ordering}
    for factor in graph:
        if factor.keys:
            first = min(factor.keys, key=positions.__getitem__)
            gathered[first].update(factor.keys)

    parent: Dict[Variable, Optional[Variable]] = {}
    separator: Dict[Variable, List[Variable]] = {}
    for var in ordering:
        sep = sorted(gathered[var] - {var}, key=positions.__getitem__)
        separator[var] = sep
        parent[var] = sep[0] if sep else None
        if sep:
            gathered[sep[0]].update(sep)
    return parent, separator

def junction_tree(graph, ordering: Ordering) -> List[SymbolicClique]:
    """
    Groups the elimination tree into cliques.

    A variable joins the clique of its only child when that child's separator is
    exactly the variable plus the variable's own separator, so chains of nested
    separators are eliminated as one dense front.

    Returns:
        List[SymbolicClique]: Every clique, children before parents.
    """
    parent, separator = elimination_tree(graph, ordering)
    children: Dict[Variable, List[Variable]] = defaultdict(list)
    for var in ordering:
        if parent[var] is not None:
            children[parent[var]].append(var)

    clique_of: Dict[Variable, SymbolicClique] = {}
    cliques: List[SymbolicClique] = []
    for var in ordering:
        kids = children[var]
        if len(kids) == 1 and set(separator[kids[0]]) == {var} | set(separator[var]):
            clique = clique_of[kids[0]]
            clique.frontals.append(var)
            clique.separator = separator[var]
        else:
            clique = SymbolicClique([var], separator[var])
            cliques.append(clique)
        clique_of[var] = clique

    for clique in cliques:
        up = parent[clique.frontals[-1]]
        if up is not None:
            clique.parent = clique_of[up]
            clique.parent.children.append(clique)
    return cliques

def eliminate_multifrontal(graph: GaussianFactorGraph, ordering: Ordering,
                           factorization: Factorization = Factorization.LDL) -> GaussianBayesTree:
    """
    Eliminates the junction tree bottom-up. Each clique combines the original
    factors whose first variable it owns with the marginals sent up by its
    children, eliminates all of its frontals at once, and sends its own
    marginal to its parent.
    """
    kernel = _kernel(factorization)
    dims = graph.dims()
    ordering.validate(dims.keys())
    positions = ordering.positions()
    reference = information_diagonal(graph)
    cliques = junction_tree(graph, ordering)

    owner = {var: clique for clique in cliques for var in clique.frontals}
    inbox: Dict[int, List[GaussianFactor]] = {id(clique): [] for clique in cliques}
    for factor in graph:
        if factor.keys:
            first = min(factor.keys, key=positions.__getitem__)
            inbox[id(owner[first])].append(factor)

    numeric: Dict[int, GaussianBayesTreeClique] = {}
    for clique in cliques:
        conditional, marginal = kernel(inbox[id(clique)], clique.frontals, positions, dims, reference)
        numeric[id(clique)] = GaussianBayesTreeClique(conditional)
        if marginal is not None:
            inbox[id(clique.parent)].append(marginal)

    for clique in cliques:
        if clique.parent is not None:
            node = numeric[id(clique)]
            node.parent = numeric[id(clique.parent)]
            node.parent.children.append(node)
    return GaussianBayesTree([numeric[id(clique)] for clique in cliques])


def solve(graph: GaussianFactorGraph, ordering: Ordering,
          elimination: Elimination = Elimination.MULTIFRONTAL,
          factorization: Factorization = Factorization.LDL) -> VectorValues:
    """
    Minimises the linear graph's error by elimination and back-substitution.

    Args:
        graph (GaussianFactorGraph): The linear system.
        ordering (Ordering): A permutation of exactly the graph's variables.
        elimination (Elimination): MULTIFRONTAL or SEQUENTIAL.
        factorization (Factorization): LDL, QR or CHOLESKY.

    Returns:
        VectorValues: The solution, one entry per variable of the graph, in `ordering` order.

    Raises:
        OrderingMismatchError: If `ordering` does not match the graph's variables.
        SingularSystemError: If an elimination step is rank deficient.
    """
    if elimination == Elimination.SEQUENTIAL:
        solution = eliminate_sequential(graph, ordering, factorization).optimize()
    elif elimination == Elimination.MULTIFRONTAL:
        solution = eliminate_multifrontal(graph, ordering, factorization).optimize()
    else:
        raise ValueError(f"Unknown elimination algorithm: {elimination!r}")
    return VectorValues({var: solution[var] for var in ordering})
