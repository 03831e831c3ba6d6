from .vector_values import VectorValues
from .factors import GaussianFactor, JacobianFactor, HessianFactor
from .gaussian_graph import GaussianFactorGraph
from .ordering import Ordering
from .conditional import GaussianConditional, GaussianBayesNet, GaussianBayesTree, GaussianBayesTreeClique
from .elimination import (Elimination, Factorization, solve, eliminate_sequential, eliminate_multifrontal,
                          elimination_tree, junction_tree)

__all__ = [
    "VectorValues",
    "GaussianFactor",
    "JacobianFactor",
    "HessianFactor",
    "GaussianFactorGraph",
    "Ordering",
    "GaussianConditional",
    "GaussianBayesNet",
    "GaussianBayesTree",
    "GaussianBayesTreeClique",
    "Elimination",
    "Factorization",
    "solve",
    "eliminate_sequential",
    "eliminate_multifrontal",
    "elimination_tree",
    "junction_tree"
]
