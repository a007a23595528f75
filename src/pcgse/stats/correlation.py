"""
Correlation utilities for PCGSE.

Provides:
- Column-wise Pearson correlation of a data matrix with a score vector
- Fisher's Z-transformation scaled to unit variance
- Mean pairwise (inter-gene) correlation and the Camera variance inflation factor
- Multiple testing correction of p-values
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pcgse.core.components import constant_columns
from pcgse.exceptions import (
    ConfigurationError,
    DegenerateGroupError,
    DegenerateInputError,
    InvalidInputError,
)

__all__ = [
    'correlate_columns',
    'fisher_z_transform',
    'mean_pairwise_correlation',
    'variance_inflation_factor',
    'apply_fdr_correction',
]

# Largest |r| passed to atanh; keeps Fisher z finite for (near) perfect correlation
_MAX_ABS_CORRELATION = 1.0 - 1e-12


def correlate_columns(
    data: NDArray[np.float64],
    vector: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Pearson correlation between every column of ``data`` and ``vector``.

    Equivalent to R's ``cor(data, vector)`` but vectorized over columns.

    Args:
        data: Matrix of shape (n_observations, n_features)
        vector: Array of shape (n_observations,)

    Returns:
        Correlations of shape (n_features,), clipped to [-1, 1]

    Raises:
        DegenerateInputError: If ``vector`` or a column of ``data`` is constant
    """
    data = np.asarray(data, dtype=np.float64)
    vector = np.asarray(vector, dtype=np.float64)
    if data.shape[0] != vector.shape[0]:
        raise InvalidInputError(
            f"data has {data.shape[0]} observations but vector has {vector.shape[0]}"
        )

    if constant_columns(vector):
        raise DegenerateInputError("Cannot correlate with a constant score vector")
    if np.any(constant_columns(data)):
        raise DegenerateInputError("Cannot correlate a constant column with the score vector")

    centered = data - data.mean(axis=0)
    v_centered = vector - vector.mean()

    column_norms = np.sqrt((centered ** 2).sum(axis=0))
    v_norm = np.sqrt((v_centered ** 2).sum())

    r = centered.T @ v_centered / (column_norms * v_norm)
    return np.clip(r, -1.0, 1.0)


def fisher_z_transform(r: NDArray[np.float64] | float, n: int) -> NDArray[np.float64]:
    """
    Fisher's Z-transformation scaled by its standard error: sqrt(n-3) * atanh(r).

    atanh(r) is approximately normal with variance 1/(n-3), so the scaled
    value is approximately standard normal under rho = 0.

    Args:
        r: Pearson correlation coefficient(s)
        n: Number of observations the correlations were computed from

    Returns:
        Fisher z statistic(s), same shape as ``r``

    Raises:
        DegenerateInputError: If n <= 3, where the 1/(n-3) variance is
            undefined (n=3) or negative (n<3)

    References:
        Fisher, R.A. (1915). Frequency distribution of the values of the
        correlation coefficient in samples from an indefinitely large population.
        Biometrika, 10(4), 507-521.
    """
    if n <= 3:
        raise DegenerateInputError(
            f"Fisher Z transformation requires n > 3 observations (got n={n}); "
            f"sqrt(n-3) is zero or imaginary for smaller samples"
        )
    # Clip to avoid infinity at |r|=1
    r = np.clip(np.asarray(r, dtype=np.float64), -_MAX_ABS_CORRELATION, _MAX_ABS_CORRELATION)
    return np.sqrt(n - 3) * np.arctanh(r)


def mean_pairwise_correlation(data: NDArray[np.float64], member_indexes: NDArray[np.intp]) -> float:
    """
    Mean pairwise correlation among the member columns of ``data``.

    This is the inter-gene correlation estimate of Barry et al. (2008), used
    by Camera (Wu & Smyth, NAR 2012): computed from the raw data rather than
    from the gene-level statistics. Negative values are kept as is.

    Args:
        data: Data matrix of shape (n_observations, n_features)
        member_indexes: Column indexes of the gene set members

    Returns:
        (sum of the correlation matrix - m) / (m * (m - 1)), i.e. the mean of
        the off-diagonal correlations

    Raises:
        DegenerateGroupError: If fewer than 2 members (no pairs to average)
    """
    m = len(member_indexes)
    if m < 2:
        raise DegenerateGroupError(
            f"Mean pairwise correlation needs at least 2 members, got {m}"
        )

    corr_matrix = np.corrcoef(data[:, member_indexes], rowvar=False)

    # Sum of all entries minus diagonal (m ones), divided by m*(m-1) off-diag entries
    return float((corr_matrix.sum() - m) / (m * (m - 1)))


def variance_inflation_factor(mean_correlation: float, set_size: int) -> float:
    """Camera variance inflation factor VIF = 1 + (m-1) * rho_bar."""
    return 1.0 + (set_size - 1) * mean_correlation


def apply_fdr_correction(
    p_values: NDArray[np.float64],
    method: str = "BH",
) -> NDArray[np.float64]:
    """
    Apply multiple testing correction.

    Args:
        p_values: Array of raw p-values.
        method: Correction method:
            - "BH": Benjamini-Hochberg (controls FDR)
            - "BY": Benjamini-Yekutieli (controls FDR under dependence)
            - "bonferroni": Bonferroni (controls FWER)

    Returns:
        Array of adjusted p-values.
    """
    from statsmodels.stats.multitest import multipletests

    p_values = np.asarray(p_values, dtype=np.float64)
    if p_values.size == 0:
        return p_values.copy()

    method_map = {"BH": "fdr_bh", "BY": "fdr_by", "bonferroni": "bonferroni"}
    if method not in method_map:
        raise ConfigurationError(
            f"Unknown correction method '{method}'. Use 'BH', 'BY', or 'bonferroni'"
        )
    _, adjusted, _, _ = multipletests(p_values, method=method_map[method])
    return adjusted
