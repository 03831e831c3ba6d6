from typing import Dict, Iterable, Iterator, List, Mapping, Sequence, Set, Tuple

from ..errors import OrderingMismatchError
from ..variables.base import Variable

class Ordering(Sequence):
    """
    An elimination ordering: the sequence in which variables are eliminated.
    The ordering strongly affects fill-in and therefore speed, but any
    permutation of the system's variables gives the same solution.

    Args:
        variables (Iterable[Variable]): The variables, first eliminated first.
    """
    def __init__(self, variables: Iterable[Variable] = ()):
        self._variables: tuple = tuple(variables)

    def __getitem__(self, index):
        return self._variables[index]

    def __len__(self) -> int:
        return len(self._variables)

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables)

    def __eq__(self, other):
        if isinstance(other, Ordering):
            return self._variables == other._variables
        return NotImplemented

    def __hash__(self):
        return hash(self._variables)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({list(self._variables)})"

    def positions(self) -> Dict[Variable, int]:
        """Maps each variable to its position in the ordering."""
        return {var: i for i, var in enumerate(self._variables)}

    def column_offsets(self, dims: Mapping[Variable, int]) -> Tuple[Dict[Variable, int], int]:
        """
        Start column of each variable when their tangent vectors are stacked in this order.

        Returns:
            Tuple[Dict[Variable, int], int]: The offsets and the total dimension.
        """
        offsets = {}
        total = 0
        for var in self._variables:
            offsets[var] = total
            total += dims[var]
        return offsets, total

    def validate(self, keys: Iterable[Variable]) -> None:
        """
        Checks that this ordering is a permutation of exactly `keys`.

        Raises:
            OrderingMismatchError: On any omission, extra variable or duplicate.
        """
        keys = list(keys)
        key_set = set(keys)
        seen: Set[Variable] = set()
        duplicates = []
        for var in self._variables:
            if var in seen and var not in duplicates:
                duplicates.append(var)
            seen.add(var)
        missing = [var for var in keys if var not in seen]
        extra = [var for var in self._variables if var not in key_set]
        if missing or extra or duplicates:
            raise OrderingMismatchError(missing=missing, extra=extra, duplicates=duplicates)

    @classmethod
    def natural(cls, graph) -> 'Ordering':
        """Variables in order of first appearance in `graph`'s factors."""
        return cls(_first_appearance(graph))

    @classmethod
    def min_degree(cls, graph) -> 'Ordering':
        """
        Fill-reducing ordering by greedy minimum degree.

        At every step the variable with the fewest neighbours in the (filled-in)
        variable adjacency graph is eliminated and its neighbours are connected
        to each other. Ties go to the variable that appears first in `graph`,
        which keeps the result deterministic.

        Args:
            graph: Any factor graph whose factors expose `keys`.

        Returns:
            Ordering: A permutation of the variables of `graph`.
        """
        variables = _first_appearance(graph)
        rank = {var: i for i, var in enumerate(variables)}
        adjacency: Dict[Variable, Set[Variable]] = {var: set() for var in variables}
        for factor in graph:
            for var in factor.keys:
                adjacency[var].update(k for k in factor.keys if k != var)

        remaining = set(variables)
        order: List[Variable] = []
        while remaining:
            best = min(remaining, key=lambda v: (len(adjacency[v]), rank[v]))
            neighbours = adjacency.pop(best)
            for var in neighbours:
                adjacency[var].discard(best)
                adjacency[var].update(n for n in neighbours if n != var)
            remaining.discard(best)
            order.append(best)
        return cls(order)


def _first_appearance(graph) -> List[Variable]:
    seen: Set[Variable] = set()
    ordered: List[Variable] = []
    for factor in graph:
        for var in factor.keys:
            if var not in seen:
                seen.add(var)
                ordered.append(var)
    return ordered
