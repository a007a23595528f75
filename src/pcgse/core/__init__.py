"""
Core data structures: gene set membership and the principal component basis.
"""

from pcgse.core.components import ComponentBasis, standardize
from pcgse.core.gene_sets import GeneSetCollection, complement_indexes, resolve_gene_sets

__all__ = [
    "ComponentBasis",
    "GeneSetCollection",
    "complement_indexes",
    "resolve_gene_sets",
    "standardize",
]
