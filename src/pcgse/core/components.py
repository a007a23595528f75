"""
Principal component basis of a data matrix.

PCGSE tests gene sets against principal components computed on the sample
correlation matrix: every variable is centered and scaled to unit sample
variance before decomposition. Under that convention the loadings of a
component are proportional to the Pearson correlations between each variable
and the component scores, which is what makes loadings, correlations and
Fisher-z statistics interchangeable measures of association.

The decomposition itself is delegated to scikit-learn.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from pcgse.exceptions import ConfigurationError, DegenerateInputError

__all__ = ['ComponentBasis', 'constant_columns', 'standardize']

logger = logging.getLogger(__name__)

# Spread below this fraction of a column's magnitude is rounding noise
_RELATIVE_SPREAD_TOLERANCE = 1e-12


def constant_columns(values: NDArray[np.float64]) -> NDArray[np.bool_]:
    """
    Flag columns whose values do not vary.

    The test is relative to each column's magnitude (range <= 1e-12 * max |x|),
    so it does not depend on the units of the data. An all-zero column is
    constant.

    Args:
        values: Array of shape (n_observations,) or (n_observations, n_columns)

    Returns:
        Boolean mask, one entry per column (a 0-d array for 1-D input)
    """
    values = np.asarray(values, dtype=np.float64)
    spread = np.ptp(values, axis=0)
    magnitude = np.abs(values).max(axis=0)
    return spread <= _RELATIVE_SPREAD_TOLERANCE * magnitude


def standardize(data: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Center each column and scale it by its sample standard deviation (ddof=1).

    Raises:
        DegenerateInputError: If a column is constant
    """
    data = np.asarray(data, dtype=np.float64)
    centered = data - data.mean(axis=0)
    scale = data.std(axis=0, ddof=1)
    constant = np.flatnonzero(constant_columns(data))
    if len(constant) > 0:
        raise DegenerateInputError(
            f"Cannot scale {len(constant)} constant column(s) to unit variance "
            f"(first: column {constant[0]})"
        )
    return centered / scale


class ComponentBasis:
    """
    Scores and loadings of the principal components of a data matrix.

    Attributes:
        scores: Component scores (n_observations x n_components)
        loadings: Component loadings / rotation (n_features x n_components)
        sdev: Standard deviation of each component's scores, or None if the
            basis was supplied without it

    Shape Invariants:
        - scores.shape[1] == loadings.shape[1]

    The arrays are copied on construction and marked read-only, so a single
    basis can be shared across every component and gene set of a run.
    """

    def __init__(
        self,
        scores: NDArray[np.float64],
        loadings: NDArray[np.float64],
        sdev: NDArray[np.float64] | None = None,
    ):
        scores = np.array(scores, dtype=np.float64)
        loadings = np.array(loadings, dtype=np.float64)
        if scores.ndim != 2 or loadings.ndim != 2:
            raise ConfigurationError(
                f"scores and loadings must be 2D, got shapes {scores.shape} and {loadings.shape}"
            )
        if scores.shape[1] != loadings.shape[1]:
            raise ConfigurationError(
                f"scores have {scores.shape[1]} components but loadings have {loadings.shape[1]}"
            )
        if not (np.isfinite(scores).all() and np.isfinite(loadings).all()):
            raise ConfigurationError("scores and loadings must be finite")

        if sdev is not None:
            sdev = np.array(sdev, dtype=np.float64)
            if sdev.shape != (scores.shape[1],):
                raise ConfigurationError(
                    f"sdev must have one entry per component ({scores.shape[1]}), "
                    f"got shape {sdev.shape}"
                )
            sdev.setflags(write=False)

        scores.setflags(write=False)
        loadings.setflags(write=False)
        self.scores = scores
        self.loadings = loadings
        self.sdev = sdev

    @classmethod
    def from_data(
        cls,
        data: NDArray[np.float64],
        n_components: int | None = None,
    ) -> ComponentBasis:
        """
        Compute the basis by PCA of the centered and scaled data.

        Args:
            data: Data matrix (n_observations x n_features)
            n_components: Number of components to keep. Defaults to all,
                min(n_observations, n_features).

        Returns:
            ComponentBasis with unit-norm loadings and scores equal to the
            projection of the standardized data onto the loadings.
        """
        from sklearn.decomposition import PCA

        standardized = standardize(data)
        n_obs, n_features = standardized.shape
        max_components = min(n_obs, n_features)
        if n_components is None:
            n_components = max_components
        if not 1 <= n_components <= max_components:
            raise ConfigurationError(
                f"n_components must be in [1, {max_components}], got {n_components}"
            )

        pca = PCA(n_components=n_components, svd_solver="full")
        scores = pca.fit_transform(standardized)
        logger.debug(
            "PCA on %d x %d standardized matrix: first component explains %.1f%% of variance",
            n_obs, n_features, 100 * pca.explained_variance_ratio_[0],
        )
        return cls(
            scores=scores,
            loadings=pca.components_.T,
            sdev=np.sqrt(pca.explained_variance_),
        )

    @property
    def n_components(self) -> int:
        return self.scores.shape[1]

    @property
    def n_observations(self) -> int:
        return self.scores.shape[0]

    @property
    def n_features(self) -> int:
        return self.loadings.shape[0]

    @property
    def explained_variance_ratio(self) -> NDArray[np.float64] | None:
        """
        Share of the total variance explained by each component (None without sdev).

        The total is n_features, the trace of the correlation matrix, so the
        shares are unchanged when only the leading components are retained.
        """
        if self.sdev is None:
            return None
        return self.sdev ** 2 / self.n_features

    def check_compatible(self, n_observations: int, n_features: int) -> None:
        """
        Ensure the basis was computed from a matrix of the given shape.

        Raises:
            ConfigurationError: On shape mismatch
        """
        if self.n_observations != n_observations or self.n_features != n_features:
            raise ConfigurationError(
                f"Component basis covers {self.n_observations} observations x "
                f"{self.n_features} features, data matrix is "
                f"{n_observations} x {n_features}"
            )

    def __repr__(self) -> str:
        return (
            f"ComponentBasis({self.n_components} components, "
            f"{self.n_observations} observations, {self.n_features} features)"
        )
