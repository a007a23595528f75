"""
Option sets for PCGSE.

Each enum value is the option string accepted by the public API (the same
spellings used by the PCGSE R package, e.g. ``"abs.value"`` or
``"cor.adj.parametric"``). ``parse()`` coerces strings to members and raises
:class:`~pcgse.exceptions.ConfigurationError` for anything else.
"""

from __future__ import annotations

from enum import Enum

from pcgse.exceptions import ConfigurationError

__all__ = [
    'GeneStatistic',
    'Transformation',
    'GeneSetStatistic',
    'GeneSetTest',
]


class _Option(Enum):
    """Enum base with string parsing shared by all option sets."""

    @classmethod
    def parse(cls, value: "_Option | str"):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value:
                    return member
        valid = ", ".join(f"'{m.value}'" for m in cls)
        raise ConfigurationError(
            f"{cls._option_name()} must be one of {valid}, got {value!r}"
        )

    @classmethod
    def _option_name(cls) -> str:
        return cls.__name__


class GeneStatistic(_Option):
    """
    Gene-level statistic measuring association between a variable and a PC.

    Attributes:
        LOADING: PC loading of the variable
        COR: Pearson correlation between the variable and the PC scores
        Z: Fisher-transformed correlation, sqrt(n-3) * atanh(r)
    """

    LOADING = "loading"
    COR = "cor"
    Z = "z"

    @classmethod
    def _option_name(cls) -> str:
        return "gene_statistic"


class Transformation(_Option):
    """Optional element-wise transform of the gene-level statistics."""

    NONE = "none"
    ABS_VALUE = "abs.value"

    @classmethod
    def _option_name(cls) -> str:
        return "transformation"


class GeneSetStatistic(_Option):
    """
    Set-level statistic computed from the gene-level statistics.

    Attributes:
        MEAN_DIFF: Standardized mean difference (U_D of Barry et al.)
        RANK_SUM: Standardized Wilcoxon rank sum (U_W of Barry et al.)
    """

    MEAN_DIFF = "mean.diff"
    RANK_SUM = "rank.sum"

    @classmethod
    def _option_name(cls) -> str:
        return "gene_set_statistic"


class GeneSetTest(_Option):
    """
    Competitive test used to assess the set-level statistic.

    Attributes:
        PARAMETRIC: Two-sample t-test or z-test assuming i.i.d. gene statistics
        COR_ADJ_PARAMETRIC: Camera-style test with variance inflation from the
            mean inter-gene correlation
        PERMUTATION: Sample-label permutation test (not supported)
    """

    PARAMETRIC = "parametric"
    COR_ADJ_PARAMETRIC = "cor.adj.parametric"
    PERMUTATION = "permutation"

    @classmethod
    def _option_name(cls) -> str:
        return "gene_set_test"

    @property
    def cor_adjustment(self) -> bool:
        return self is GeneSetTest.COR_ADJ_PARAMETRIC
