"""
Gene-level statistics: association of every variable with a principal component.

Because the PCA is performed on the correlation matrix, all three supported
statistics measure correlation between a variable and a component:

    loading  the component's loading for the variable
    cor      Pearson correlation between the variable and the component scores
    z        Fisher-transformed correlation, sqrt(n-3) * atanh(r)

An optional absolute-value transform turns a signed test ("does the set load
in one direction?") into a magnitude test ("does the set load at all?").
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from pcgse.core.components import ComponentBasis
from pcgse.exceptions import ConfigurationError, DegenerateInputError
from pcgse.options import GeneStatistic, Transformation
from pcgse.stats.correlation import correlate_columns, fisher_z_transform

__all__ = ['compute_gene_statistics', 'compute_gene_statistic_matrix']


def compute_gene_statistics(
    data: NDArray[np.float64],
    basis: ComponentBasis,
    pc_index: int,
    gene_statistic: GeneStatistic | str = GeneStatistic.Z,
    transformation: Transformation | str = Transformation.NONE,
) -> NDArray[np.float64]:
    """
    Compute one gene-level statistic per variable for a single component.

    Args:
        data: Data matrix (n_observations x n_features)
        basis: Principal component basis of ``data``
        pc_index: 0-based component index
        gene_statistic: "loading", "cor" or "z"
        transformation: "none" or "abs.value"

    Returns:
        Array of shape (n_features,)

    Raises:
        ConfigurationError: If ``pc_index`` is out of range or an option is unknown
        DegenerateInputError: For "z" with n <= 3 observations, or a
            component with zero variance
    """
    gene_statistic = GeneStatistic.parse(gene_statistic)
    transformation = Transformation.parse(transformation)
    if not 0 <= pc_index < basis.n_components:
        raise ConfigurationError(
            f"pc_index {pc_index} out of range for {basis.n_components} components"
        )
    if basis.sdev is not None and basis.sdev[pc_index] <= 1e-12 * basis.sdev.max():
        raise DegenerateInputError(
            f"Component {pc_index} has zero variance (rank-deficient data); "
            f"its loadings and scores carry no signal"
        )

    if gene_statistic is GeneStatistic.LOADING:
        statistics = np.array(basis.loadings[:, pc_index], dtype=np.float64)
    else:
        statistics = correlate_columns(data, basis.scores[:, pc_index])
        if gene_statistic is GeneStatistic.Z:
            statistics = fisher_z_transform(statistics, n=data.shape[0])

    if transformation is Transformation.ABS_VALUE:
        statistics = np.abs(statistics)

    return statistics


def compute_gene_statistic_matrix(
    data: NDArray[np.float64],
    basis: ComponentBasis,
    pc_indexes: Sequence[int],
    gene_statistic: GeneStatistic | str = GeneStatistic.Z,
    transformation: Transformation | str = Transformation.NONE,
) -> NDArray[np.float64]:
    """
    Stack gene-level statistics for several components.

    Returns:
        Array of shape (n_features, len(pc_indexes)); column j holds the
        statistics for ``pc_indexes[j]``.
    """
    columns = [
        compute_gene_statistics(data, basis, pc_index, gene_statistic, transformation)
        for pc_index in pc_indexes
    ]
    return np.column_stack(columns) if columns else np.empty((data.shape[1], 0))
