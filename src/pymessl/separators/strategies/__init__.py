"""Concrete strategy implementations for separator components."""

from .permutation import (
    AssignmentKLPermutationStrategy,
    ExhaustiveKLPermutationStrategy,
    KLPermutationStrategy,
    ScoreMatrixPermutationStrategy,
    pairwise_symmetric_kl,
    symmetric_kl,
)

__all__ = [
    "ScoreMatrixPermutationStrategy",
    "ExhaustiveKLPermutationStrategy",
    "AssignmentKLPermutationStrategy",
    "KLPermutationStrategy",
    "symmetric_kl",
    "pairwise_symmetric_kl",
]
