"""
Statistical engine of PCGSE.

Exports core functions for:
- Gene-level statistics (loading, correlation, Fisher z) per component
- Competitive gene set tests (mean difference, rank sum), with optional
  Camera-style correlation adjustment
- Correlation utilities and multiple testing correction
"""

from .correlation import (
    apply_fdr_correction,
    correlate_columns,
    fisher_z_transform,
    mean_pairwise_correlation,
    variance_inflation_factor,
)
from .gene_statistics import compute_gene_statistic_matrix, compute_gene_statistics
from .mean_diff import mean_diff_test, standardized_mean_difference
from .rank_sum import rank_sum_test, rank_sum_variance, standardized_rank_sum
from .results import EnrichmentResult, component_label

__all__ = [
    "apply_fdr_correction",
    "correlate_columns",
    "fisher_z_transform",
    "mean_pairwise_correlation",
    "variance_inflation_factor",
    "compute_gene_statistics",
    "compute_gene_statistic_matrix",
    "mean_diff_test",
    "standardized_mean_difference",
    "rank_sum_test",
    "rank_sum_variance",
    "standardized_rank_sum",
    "EnrichmentResult",
    "component_label",
]
