"""
Result type of a PCGSE run.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from pcgse.options import GeneSetStatistic, GeneSetTest, GeneStatistic, Transformation
from pcgse.stats.correlation import apply_fdr_correction

__all__ = ['EnrichmentResult', 'component_label']


def component_label(pc_index: int) -> str:
    """Column label for a 0-based component index (0 -> 'PC1')."""
    return f"PC{pc_index + 1}"


@dataclass(frozen=True)
class EnrichmentResult:
    """
    Gene set enrichment statistics and p-values per principal component.

    Attributes:
        statistics: Set-level test statistic (gene sets x components). The
            sign gives the direction: positive when members have larger
            gene-level statistics than non-members.
        p_values: Two-sided competitive p-values (gene sets x components).
            No multiple testing correction is applied.
        set_sizes: Number of members per gene set
        pc_indexes: 0-based component indexes, in column order
        gene_statistic: Gene-level statistic used
        transformation: Transformation applied to the gene-level statistics
        gene_set_statistic: Set-level statistic used
        gene_set_test: Competitive test used

    Row order follows the input gene set order; column order follows
    ``pc_indexes``. Columns are labelled ``PC1``, ``PC2``, ...

    Example:
        >>> result = pcgse(data, gene_sets, pc_indexes=[0, 1])
        >>> result.p_values.loc["set1", "PC1"]
        >>> result.adjusted_p_values("BH")
    """

    statistics: pd.DataFrame
    p_values: pd.DataFrame
    set_sizes: pd.Series
    pc_indexes: tuple[int, ...]
    gene_statistic: GeneStatistic
    transformation: Transformation
    gene_set_statistic: GeneSetStatistic
    gene_set_test: GeneSetTest
    metadata: dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_arrays(
        cls,
        statistics: np.ndarray,
        p_values: np.ndarray,
        set_names: list[Hashable],
        set_sizes: list[int],
        pc_indexes: tuple[int, ...],
        *,
        gene_statistic: GeneStatistic,
        transformation: Transformation,
        gene_set_statistic: GeneSetStatistic,
        gene_set_test: GeneSetTest,
        metadata: dict[str, object] | None = None,
    ) -> EnrichmentResult:
        """Label raw (gene sets x components) arrays and wrap them."""
        index = pd.Index(set_names, name="gene_set")
        columns = pd.Index([component_label(k) for k in pc_indexes], name="component")
        return cls(
            statistics=pd.DataFrame(statistics, index=index, columns=columns),
            p_values=pd.DataFrame(p_values, index=index, columns=columns),
            set_sizes=pd.Series(set_sizes, index=index, dtype=int, name="size"),
            pc_indexes=tuple(int(k) for k in pc_indexes),
            gene_statistic=gene_statistic,
            transformation=transformation,
            gene_set_statistic=gene_set_statistic,
            gene_set_test=gene_set_test,
            metadata=dict(metadata or {}),
        )

    @property
    def statistic_type(self) -> str:
        """'t' for the mean difference, 'z' for the rank sum."""
        return "t" if self.gene_set_statistic is GeneSetStatistic.MEAN_DIFF else "z"

    def adjusted_p_values(self, method: str = "BH") -> pd.DataFrame:
        """
        Multiple-testing-adjusted p-values, corrected separately per component.

        Args:
            method: "BH", "BY", or "bonferroni"

        Returns:
            New DataFrame shaped like ``p_values``; ``p_values`` is unchanged.
        """
        adjusted = np.column_stack([
            apply_fdr_correction(self.p_values[column].to_numpy(), method)
            for column in self.p_values.columns
        ])
        return pd.DataFrame(adjusted, index=self.p_values.index, columns=self.p_values.columns)

    def to_frame(self, adjust: str | None = None) -> pd.DataFrame:
        """
        Long format: one row per (gene set, component).

        Args:
            adjust: Optional correction method; adds an ``adjusted_p_value`` column

        Returns:
            DataFrame with columns gene_set, component, size, statistic, p_value
        """
        n_sets, n_components = self.statistics.shape
        frame = pd.DataFrame({
            "gene_set": np.repeat(self.statistics.index.to_numpy(), n_components),
            "component": np.tile(self.statistics.columns.to_numpy(), n_sets),
            "size": np.repeat(self.set_sizes.to_numpy(), n_components),
            "statistic": self.statistics.to_numpy().ravel(),
            "p_value": self.p_values.to_numpy().ravel(),
        })
        if adjust is not None:
            frame["adjusted_p_value"] = self.adjusted_p_values(adjust).to_numpy().ravel()
        return frame

    def to_dict(self) -> dict[str, object]:
        """Plain-Python summary, suitable for JSON serialization."""
        return {
            "gene_statistic": self.gene_statistic.value,
            "transformation": self.transformation.value,
            "gene_set_statistic": self.gene_set_statistic.value,
            "gene_set_test": self.gene_set_test.value,
            "pc_indexes": list(self.pc_indexes),
            "set_sizes": self.set_sizes.to_dict(),
            "statistics": self.statistics.to_dict(orient="index"),
            "p_values": self.p_values.to_dict(orient="index"),
        }
