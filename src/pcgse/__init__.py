"""
PCGSE - Principal Component Gene Set Enrichment

Tests the competitive enrichment of gene sets (or any variable groups) with
respect to the principal components of an observations x variables matrix.
"""

__version__ = "0.1.0"

from pcgse.config import PCGSEConfig, load_config
from pcgse.core.components import ComponentBasis
from pcgse.core.gene_sets import GeneSetCollection, resolve_gene_sets
from pcgse.enrichment import pcgse, run_pcgse
from pcgse.exceptions import (
    ConfigurationError,
    DegenerateGroupError,
    DegenerateInputError,
    InvalidInputError,
    PCGSEError,
    UnsupportedFeatureError,
)
from pcgse.options import GeneSetStatistic, GeneSetTest, GeneStatistic, Transformation
from pcgse.stats.results import EnrichmentResult

__all__ = [
    "pcgse",
    "run_pcgse",
    "PCGSEConfig",
    "load_config",
    "ComponentBasis",
    "GeneSetCollection",
    "resolve_gene_sets",
    "EnrichmentResult",
    "GeneStatistic",
    "Transformation",
    "GeneSetStatistic",
    "GeneSetTest",
    "PCGSEError",
    "ConfigurationError",
    "InvalidInputError",
    "UnsupportedFeatureError",
    "DegenerateGroupError",
    "DegenerateInputError",
]
