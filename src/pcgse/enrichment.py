"""
Principal component gene set enrichment (PCGSE).

Computes the statistical association between gene sets and the principal
components of a data matrix using a two-stage competitive test:

    1. A gene-level statistic measures the association of every variable
       with the component: its loading, its Pearson correlation with the
       component scores, or the Fisher-transformed correlation.
    2. A set-level statistic (standardized mean difference or standardized
       rank sum) compares gene set members with all other variables, and
       its significance is assessed against a competitive null, optionally
       adjusting for inter-gene correlation (Camera VIF).

The data are centered and scaled before PCA, so the decomposition is of the
sample correlation matrix and all three gene-level statistics measure
correlation between variables and components.

References:
    Frost, Li & Moore (2015). Principal component gene set enrichment
    (PCGSE). BioData Mining 8:25.

    Barry, Nobel & Wright (2008). A statistical framework for testing
    functional categories in microarray data. Ann. Appl. Stat. 2(1), 286-315.

    Wu & Smyth (2012). Camera: a competitive gene set test accounting for
    inter-gene correlation. NAR 40(17):e133.

Warning convention:
    warnings.warn() -- user-facing (statistical caveats of an option)
    logger.info() -- operator-facing (progress, PCA computed, run summary)
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pcgse.config import PCGSEConfig
from pcgse.core.components import ComponentBasis, constant_columns
from pcgse.core.gene_sets import resolve_gene_sets
from pcgse.exceptions import (
    ConfigurationError,
    DegenerateInputError,
    InvalidInputError,
    UnsupportedFeatureError,
)
from pcgse.options import GeneSetStatistic, GeneSetTest, GeneStatistic
from pcgse.stats.competitive import check_set_sizes
from pcgse.stats.gene_statistics import compute_gene_statistic_matrix
from pcgse.stats.mean_diff import mean_diff_test
from pcgse.stats.rank_sum import rank_sum_test
from pcgse.stats.results import EnrichmentResult

__all__ = ['pcgse', 'run_pcgse']

logger = logging.getLogger(__name__)


def pcgse(
    data: NDArray[np.float64] | pd.DataFrame,
    gene_sets,
    components: ComponentBasis | None = None,
    pc_indexes: Sequence[int] | int = (0,),
    gene_statistic: str = "z",
    transformation: str = "none",
    gene_set_statistic: str = "mean.diff",
    gene_set_test: str = "cor.adj.parametric",
    nperm: int = 9999,
) -> EnrichmentResult:
    """
    Test gene sets for enrichment against principal components.

    Args:
        data: Data matrix, observations x variables. Must be specified.
        gene_sets: Gene set membership. Either a binary membership matrix
            (gene sets x variables; ndarray or DataFrame indexed by set name),
            a mapping of set name to 0-based member indexes or to feature ids
            (column names of ``data``), or a list of index lists.
        components: Precomputed :class:`ComponentBasis` of ``data``. If None,
            PCA is computed on the centered and scaled data.
        pc_indexes: 0-based indexes of the components to test. Defaults to
            the first component.
        gene_statistic: Gene-level statistic (default "z"):
            "loading": the PC loading of the variable
            "cor": Pearson correlation between the PC and the variable
            "z": Fisher-transformed Pearson correlation
        transformation: "none" (default) or "abs.value" to test absolute
            gene-level statistics
        gene_set_statistic: "mean.diff" (default, U_D of Barry et al.) or
            "rank.sum" (U_W of Barry et al.)
        gene_set_test: Competitive test (default "cor.adj.parametric"):
            "parametric": two-sample t-test / z-test assuming i.i.d.
                gene-level statistics; inflated type I error, for comparison only
            "cor.adj.parametric": variance inflated by the mean pairwise
                correlation of the set members (Camera); t-test with n-2 df
                for the mean difference, z-test for the rank sum
            "permutation": not supported; raises UnsupportedFeatureError
        nperm: Number of permutations, only meaningful for "permutation".

    Returns:
        EnrichmentResult with ``statistics`` and ``p_values`` (gene sets x
        components). p-values are two-sided and uncorrected.

    Raises:
        ConfigurationError: Missing inputs, unknown or incompatible options
        UnsupportedFeatureError: gene_set_test is "permutation"
        DegenerateGroupError: A gene set has < 2 members or non-members
        DegenerateInputError: Too few observations or constant variables

    Example:
        >>> result = pcgse(data, {"stress": [0, 4, 9], "growth": [1, 2, 3]},
        ...                pc_indexes=[0, 1])
        >>> result.p_values
    """
    _require_inputs(data, gene_sets)
    config = PCGSEConfig(
        pc_indexes=pc_indexes,
        gene_statistic=gene_statistic,
        transformation=transformation,
        gene_set_statistic=gene_set_statistic,
        gene_set_test=gene_set_test,
        nperm=nperm,
    )
    return run_pcgse(data, gene_sets, config=config, components=components)


def run_pcgse(
    data: NDArray[np.float64] | pd.DataFrame,
    gene_sets,
    config: PCGSEConfig | Mapping | None = None,
    components: ComponentBasis | None = None,
) -> EnrichmentResult:
    """
    Run PCGSE with a configuration object.

    All validation happens before any matrix computation. See :func:`pcgse`
    for the meaning of each option.

    Args:
        data: Data matrix, observations x variables
        gene_sets: Gene set membership in any supported representation
        config: PCGSEConfig, a mapping accepted by ``PCGSEConfig.from_dict``,
            or None for the defaults
        components: Optional precomputed ComponentBasis of ``data``
    """
    _require_inputs(data, gene_sets)
    if config is None:
        config = PCGSEConfig()
    elif isinstance(config, Mapping):
        config = PCGSEConfig.from_dict(config)
    elif not isinstance(config, PCGSEConfig):
        raise ConfigurationError(
            f"config must be a PCGSEConfig or a mapping, got {type(config).__name__}"
        )

    matrix, feature_ids = _validate_data(data)
    n_obs, n_features = matrix.shape
    collection = resolve_gene_sets(gene_sets, n_features, feature_ids)

    if config.gene_set_test is GeneSetTest.PERMUTATION:
        if not collection.from_matrix_input:
            raise ConfigurationError(
                "gene_sets must be specified as a binary membership matrix "
                "if gene_set_test is 'permutation'"
            )
        raise UnsupportedFeatureError(
            "Permutation-based gene set testing is not supported; "
            "use gene_set_test='cor.adj.parametric'"
        )

    if config.gene_set_test is GeneSetTest.PARAMETRIC:
        warnings.warn(
            "The 'parametric' test option ignores the correlation between gene-level "
            "test statistics and therefore has an inflated type I error rate. "
            "This option should only be used for evaluation purposes.",
            UserWarning,
            stacklevel=2,
        )

    check_set_sizes(collection)
    if config.gene_statistic is GeneStatistic.Z and n_obs <= 3:
        raise DegenerateInputError(
            f"gene_statistic 'z' requires more than 3 observations (got {n_obs})"
        )
    if config.cor_adjustment and n_obs <= 2:
        raise DegenerateInputError(
            f"gene_set_test 'cor.adj.parametric' requires more than 2 observations (got {n_obs})"
        )

    if components is not None:
        if not isinstance(components, ComponentBasis):
            raise ConfigurationError(
                f"components must be a ComponentBasis, got {type(components).__name__}"
            )
        components.check_compatible(n_obs, n_features)
        n_available = components.n_components
    else:
        n_available = min(n_obs, n_features)

    out_of_range = [k for k in config.pc_indexes if k >= n_available]
    if out_of_range:
        raise ConfigurationError(
            f"pc_indexes {out_of_range} out of range: only {n_available} components available"
        )

    if components is None:
        components = ComponentBasis.from_data(matrix, n_components=max(config.pc_indexes) + 1)
        logger.info(
            f"Computed PCA of {n_obs} x {n_features} correlation structure "
            f"({components.n_components} components retained)"
        )

    logger.info(
        f"PCGSE: {len(collection)} gene sets x {len(config.pc_indexes)} components "
        f"(gene_statistic={config.gene_statistic.value}, "
        f"transformation={config.transformation.value}, "
        f"gene_set_statistic={config.gene_set_statistic.value}, "
        f"gene_set_test={config.gene_set_test.value})"
    )

    gene_statistics = compute_gene_statistic_matrix(
        matrix,
        components,
        config.pc_indexes,
        config.gene_statistic,
        config.transformation,
    )

    if config.gene_set_statistic is GeneSetStatistic.MEAN_DIFF:
        engine = mean_diff_test
    else:
        engine = rank_sum_test
    statistics, p_values = engine(
        gene_statistics,
        collection,
        cor_adjustment=config.cor_adjustment,
        data=matrix,
    )

    result = EnrichmentResult.from_arrays(
        statistics,
        p_values,
        set_names=collection.names,
        set_sizes=collection.sizes.tolist(),
        pc_indexes=tuple(config.pc_indexes),
        gene_statistic=config.gene_statistic,
        transformation=config.transformation,
        gene_set_statistic=config.gene_set_statistic,
        gene_set_test=config.gene_set_test,
        metadata={"n_observations": n_obs, "n_features": n_features},
    )

    n_significant = int((result.p_values.to_numpy() < 0.05).sum())
    logger.info(f"PCGSE complete: {n_significant} (gene set, component) pairs with p < 0.05")
    return result


def _require_inputs(data, gene_sets) -> None:
    if data is None:
        raise ConfigurationError("data must be specified")
    if gene_sets is None:
        raise ConfigurationError("gene_sets must be specified")


def _validate_data(
    data: NDArray[np.float64] | pd.DataFrame,
) -> tuple[NDArray[np.float64], pd.Index | None]:
    """Return the data as a float matrix plus its feature ids (None for arrays)."""
    feature_ids = None
    if isinstance(data, pd.DataFrame):
        feature_ids = data.columns
        values = data.to_numpy()
    else:
        values = data

    try:
        matrix = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"data must be numeric: {e}") from e

    if matrix.ndim != 2:
        raise InvalidInputError(f"data must be 2D (observations x variables), got shape {matrix.shape}")
    if not np.isfinite(matrix).all():
        raise InvalidInputError("data must not contain missing or infinite values")

    n_obs, n_features = matrix.shape
    if n_obs < 2:
        raise DegenerateInputError(f"data must have at least 2 observations, got {n_obs}")
    if n_features < 4:
        raise InvalidInputError(
            f"data must have at least 4 variables (2 in a gene set, 2 outside), got {n_features}"
        )

    constant = np.flatnonzero(constant_columns(matrix))
    if len(constant) > 0:
        raise DegenerateInputError(
            f"data has {len(constant)} constant variable(s) (first: column {constant[0]}); "
            f"correlations with constant variables are undefined"
        )
    return matrix, feature_ids
