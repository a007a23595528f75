"""
Canonical gene set membership.

Gene sets reach PCGSE in one of several representations:

    - a binary membership matrix (gene sets x variables), as a NumPy array or
      a DataFrame whose index holds the set names
    - a mapping (or sequence) of member index lists, 0-based
    - a mapping of member feature ids, resolved against the data columns

:func:`resolve_gene_sets` converts any of these once into a
:class:`GeneSetCollection`, the single representation used by the test
engines. Degenerate sets (0 or 1 members) are representable here so that the
matrix round trip is exact; the test engines reject them.

Examples:
    >>> import numpy as np
    >>> from pcgse.core.gene_sets import GeneSetCollection
    >>> membership = np.array([[1, 1, 0, 0], [0, 1, 1, 1]])
    >>> sets = GeneSetCollection.from_matrix(membership, names=["A", "B"])
    >>> sets["B"]
    array([1, 2, 3])
    >>> (sets.to_matrix() == membership).all()
    True
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pcgse.exceptions import ConfigurationError, InvalidInputError

__all__ = ['GeneSetCollection', 'complement_indexes', 'resolve_gene_sets']


class GeneSetCollection:
    """
    Immutable, ordered collection of gene sets over a fixed variable space.

    Attributes:
        names: Gene set identifiers, in input order
        n_features: Number of variables (p) the indexes refer to
        from_matrix_input: True if built from a binary membership matrix

    Invariants:
        - Every member index lies in [0, n_features)
        - Member indexes are unique and sorted within each set
        - Set names are unique
    """

    def __init__(
        self,
        names: Sequence[Hashable],
        members: Sequence[Iterable[int]],
        n_features: int,
        *,
        from_matrix_input: bool = False,
    ):
        """
        Initialize a collection with validation.

        Args:
            names: One name per gene set
            members: One iterable of 0-based variable indexes per gene set
            n_features: Size of the variable space
            from_matrix_input: Whether the membership was supplied as a
                binary matrix (needed by the permutation option check)

        Raises:
            InvalidInputError: If names and members disagree in length, names
                repeat, or an index is out of range or duplicated
        """
        if n_features < 1:
            raise InvalidInputError(f"n_features must be positive, got {n_features}")
        if len(names) != len(members):
            raise InvalidInputError(
                f"Got {len(names)} gene set names for {len(members)} gene sets"
            )

        names = list(names)
        name_index = pd.Index(names, dtype=object)
        duplicated = name_index[name_index.duplicated()]
        if len(duplicated) > 0:
            raise InvalidInputError(f"Duplicate gene set names: {list(duplicated)}")

        canonical = []
        for name, indexes in zip(names, members):
            canonical.append(_canonical_indexes(name, indexes, n_features))

        self._names = tuple(names)
        self._positions = {name: i for i, name in enumerate(names)}
        self._members = tuple(canonical)
        self._n_features = int(n_features)
        self._from_matrix_input = from_matrix_input

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_matrix(
        cls,
        matrix: NDArray | pd.DataFrame,
        names: Sequence[Hashable] | None = None,
    ) -> GeneSetCollection:
        """
        Build from a binary membership matrix (gene sets x variables).

        For every row, the members are the column indexes whose value is 1.
        Row names come from ``names``, else from the DataFrame index, else
        default to ``set1``, ``set2``, ...

        Raises:
            InvalidInputError: If the matrix is not 2-D or holds values other
                than 0 and 1
        """
        if isinstance(matrix, pd.DataFrame):
            if names is None:
                names = list(matrix.index)
            values = matrix.to_numpy()
        else:
            values = np.asarray(matrix)

        if values.ndim != 2:
            raise InvalidInputError(
                f"Gene set membership matrix must be 2D, got shape {values.shape}"
            )
        if values.size and not np.isin(values, (0, 1)).all():
            raise InvalidInputError("Gene set membership matrix must be binary (0/1)")

        if names is None:
            names = _default_names(values.shape[0])

        members = [np.flatnonzero(row == 1) for row in values]
        return cls(names, members, values.shape[1], from_matrix_input=True)

    @classmethod
    def from_index_lists(
        cls,
        index_sets: Mapping[str, Iterable[int]] | Sequence[Iterable[int]],
        n_features: int,
    ) -> GeneSetCollection:
        """
        Build from member index lists (0-based).

        Args:
            index_sets: Mapping of set name to member indexes, or a sequence
                of member index lists (named ``set1``, ``set2``, ...)
            n_features: Number of variables in the data matrix
        """
        if isinstance(index_sets, Mapping):
            names = list(index_sets.keys())
            members = list(index_sets.values())
        else:
            members = list(index_sets)
            names = _default_names(len(members))
        return cls(names, members, n_features)

    @classmethod
    def from_feature_names(
        cls,
        named_sets: Mapping[str, Iterable[str]],
        feature_ids: Sequence[str] | pd.Index,
    ) -> GeneSetCollection:
        """
        Build from feature ids (e.g. gene symbols) matched against data columns.

        Raises:
            InvalidInputError: If a feature id is not among ``feature_ids``
                or feature ids are not unique
        """
        feature_index = pd.Index(feature_ids)
        if not feature_index.is_unique:
            raise InvalidInputError("Feature ids must be unique to resolve gene sets by name")

        names = []
        members = []
        for name, ids in named_sets.items():
            ids = list(ids)
            positions = feature_index.get_indexer(ids)
            missing = [fid for fid, pos in zip(ids, positions) if pos < 0]
            if missing:
                raise InvalidInputError(
                    f"Gene set '{name}' references {len(missing)} unknown feature(s): "
                    f"{missing[:5]}{'...' if len(missing) > 5 else ''}"
                )
            names.append(name)
            members.append(positions)
        return cls(names, members, len(feature_index))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def names(self) -> list[Hashable]:
        return list(self._names)

    @property
    def n_features(self) -> int:
        return self._n_features

    @property
    def from_matrix_input(self) -> bool:
        return self._from_matrix_input

    @property
    def sizes(self) -> pd.Series:
        """Number of members per gene set, indexed by set name."""
        return pd.Series(
            [len(m) for m in self._members], index=pd.Index(self._names, name="gene_set"),
            dtype=int, name="size",
        )

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[tuple[Hashable, NDArray[np.intp]]]:
        for name, indexes in zip(self._names, self._members):
            yield name, indexes.copy()

    def __getitem__(self, key: Hashable) -> NDArray[np.intp]:
        """
        Member indexes of a gene set, looked up by name.

        Integer keys that are not set names are taken as positions; when set
        names are themselves integers, the name wins.
        """
        if key in self._positions:
            return self._members[self._positions[key]].copy()
        if isinstance(key, (int, np.integer)) and not isinstance(key, bool):
            return self._members[key].copy()
        raise KeyError(key)

    def complement(self, key: Hashable) -> NDArray[np.intp]:
        """Indexes of the variables that are not members of the gene set."""
        return complement_indexes(self[key], self._n_features)

    def to_matrix(self) -> NDArray[np.int8]:
        """Binary membership matrix (gene sets x variables)."""
        matrix = np.zeros((len(self), self._n_features), dtype=np.int8)
        for row, indexes in enumerate(self._members):
            matrix[row, indexes] = 1
        return matrix

    def to_frame(self, feature_ids: Sequence[str] | None = None) -> pd.DataFrame:
        """Binary membership matrix as a DataFrame indexed by gene set name."""
        columns = pd.Index(feature_ids) if feature_ids is not None else None
        return pd.DataFrame(
            self.to_matrix(), index=pd.Index(self._names, name="gene_set"), columns=columns
        )

    def __repr__(self) -> str:
        return (
            f"GeneSetCollection({len(self)} gene sets over {self._n_features} features)"
        )


def resolve_gene_sets(
    gene_sets,
    n_features: int,
    feature_ids: Sequence[str] | pd.Index | None = None,
) -> GeneSetCollection:
    """
    Resolve any supported membership representation into a collection.

    Args:
        gene_sets: A :class:`GeneSetCollection`, a binary matrix (ndarray or
            DataFrame), a mapping of names to index or feature-id lists, or a
            sequence of index lists
        n_features: Number of variables in the data matrix
        feature_ids: Column identifiers of the data matrix, used when sets
            are given as feature ids

    Raises:
        ConfigurationError: If ``gene_sets`` is missing or of an unsupported type
        InvalidInputError: If the membership does not match the data matrix
    """
    if gene_sets is None:
        raise ConfigurationError("gene_sets must be specified")

    if isinstance(gene_sets, GeneSetCollection):
        collection = gene_sets
    elif isinstance(gene_sets, (np.ndarray, pd.DataFrame)):
        collection = GeneSetCollection.from_matrix(gene_sets)
    elif isinstance(gene_sets, Mapping):
        if _holds_feature_ids(gene_sets.values()):
            if feature_ids is None:
                raise InvalidInputError(
                    "Gene sets given as feature ids require a data matrix with named columns"
                )
            collection = GeneSetCollection.from_feature_names(gene_sets, feature_ids)
        else:
            collection = GeneSetCollection.from_index_lists(gene_sets, n_features)
    elif isinstance(gene_sets, Sequence) and not isinstance(gene_sets, str):
        collection = GeneSetCollection.from_index_lists(gene_sets, n_features)
    else:
        raise ConfigurationError(
            "gene_sets must be a binary membership matrix, a mapping of gene set "
            f"members or a list of index lists, got {type(gene_sets).__name__}"
        )

    if collection.n_features != n_features:
        raise InvalidInputError(
            f"Gene sets span {collection.n_features} features but the data "
            f"matrix has {n_features} columns"
        )
    return collection


def complement_indexes(members: NDArray[np.intp], n_features: int) -> NDArray[np.intp]:
    """Sorted indexes in [0, n_features) that are not in ``members``."""
    mask = np.ones(n_features, dtype=bool)
    mask[members] = False
    return np.flatnonzero(mask)


def _canonical_indexes(name: Hashable, indexes: Iterable[int], n_features: int) -> NDArray[np.intp]:
    values = np.asarray(list(indexes))
    if values.size == 0:
        return np.array([], dtype=np.intp)
    if values.ndim != 1:
        raise InvalidInputError(f"Gene set '{name}' members must be a flat list of indexes")
    if not np.issubdtype(values.dtype, np.integer):
        raise InvalidInputError(
            f"Gene set '{name}' members must be integer indexes, got dtype {values.dtype}"
        )
    if values.min() < 0 or values.max() >= n_features:
        raise InvalidInputError(
            f"Gene set '{name}' has indexes outside [0, {n_features})"
        )
    unique = np.unique(values)
    if len(unique) != len(values):
        raise InvalidInputError(f"Gene set '{name}' contains duplicate indexes")
    return unique.astype(np.intp)


def _default_names(n_sets: int) -> list[str]:
    return [f"set{i + 1}" for i in range(n_sets)]


def _holds_feature_ids(member_lists: Iterable[Iterable]) -> bool:
    for members in member_lists:
        for member in members:
            return isinstance(member, str)
    return False
