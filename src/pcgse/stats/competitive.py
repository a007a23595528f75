"""
Shared pieces of the competitive gene set tests.

Both set-level statistics (mean difference and rank sum) compare gene set
members against all non-members, need the same size checks, and, when the
correlation adjustment is enabled, the same per-set mean inter-gene
correlation.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pcgse.core.gene_sets import GeneSetCollection
from pcgse.exceptions import DegenerateGroupError, DegenerateInputError, InvalidInputError
from pcgse.stats.correlation import mean_pairwise_correlation

__all__ = [
    'MIN_SET_SIZE',
    'as_statistic_matrix',
    'check_set_sizes',
    'inter_gene_correlations',
    'two_sided_p_value',
]

MIN_SET_SIZE = 2


def check_set_sizes(gene_sets: GeneSetCollection) -> None:
    """
    Ensure every gene set has at least 2 members and 2 non-members.

    Single-member sets are rejected rather than tested without adjustment:
    neither the within-set variance nor the mean pairwise correlation exists.

    Raises:
        DegenerateGroupError: Naming every offending gene set
    """
    sizes = gene_sets.sizes
    n_features = gene_sets.n_features
    too_small = sizes[sizes < MIN_SET_SIZE]
    too_large = sizes[n_features - sizes < MIN_SET_SIZE]

    problems = []
    if len(too_small) > 0:
        problems.append(
            f"{len(too_small)} gene set(s) with fewer than {MIN_SET_SIZE} members: "
            f"{_describe(too_small)}"
        )
    if len(too_large) > 0:
        problems.append(
            f"{len(too_large)} gene set(s) with fewer than {MIN_SET_SIZE} non-members: "
            f"{_describe(too_large)}"
        )
    if problems:
        raise DegenerateGroupError("; ".join(problems))


def inter_gene_correlations(
    data: NDArray[np.float64],
    gene_sets: GeneSetCollection,
) -> NDArray[np.float64]:
    """
    Mean pairwise correlation among the members of each gene set.

    Args:
        data: Data matrix (n_observations x n_features)
        gene_sets: Collection whose sets all have at least 2 members

    Returns:
        Array of shape (n_gene_sets,)
    """
    if data is None:
        raise InvalidInputError("The data matrix is required for the correlation adjustment")
    if data.shape[1] != gene_sets.n_features:
        raise InvalidInputError(
            f"Data matrix has {data.shape[1]} columns, gene sets span {gene_sets.n_features}"
        )
    if data.shape[0] <= 2:
        raise DegenerateInputError(
            f"Correlation-adjusted tests use n-2 degrees of freedom and need "
            f"n > 2 observations (got n={data.shape[0]})"
        )
    return np.array([
        mean_pairwise_correlation(data, indexes) for _, indexes in gene_sets
    ])


def as_statistic_matrix(gene_statistics: NDArray[np.float64], n_features: int) -> NDArray[np.float64]:
    """Coerce gene-level statistics to a finite (n_features x n_components) matrix."""
    gene_statistics = np.asarray(gene_statistics, dtype=np.float64)
    if gene_statistics.ndim == 1:
        gene_statistics = gene_statistics[:, np.newaxis]
    if gene_statistics.ndim != 2 or gene_statistics.shape[0] != n_features:
        raise InvalidInputError(
            f"gene_statistics must have shape ({n_features}, n_components), "
            f"got {gene_statistics.shape}"
        )
    if not np.isfinite(gene_statistics).all():
        raise InvalidInputError("gene_statistics must be finite")
    return gene_statistics


def two_sided_p_value(lower: NDArray[np.float64], upper: NDArray[np.float64]) -> NDArray[np.float64]:
    """2 * min(lower tail, upper tail), capped at 1."""
    return np.minimum(2.0 * np.minimum(lower, upper), 1.0)


def _describe(sizes) -> str:
    shown = [f"{name} ({size})" for name, size in sizes.head(5).items()]
    return ", ".join(shown) + (", ..." if len(sizes) > 5 else "")
