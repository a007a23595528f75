"""
Configuration for PCGSE runs.

A run is described by a :class:`PCGSEConfig`. Configs can be built in code
or loaded from YAML or JSON files; keys may use underscores
(``gene_statistic``), the dotted spellings of the PCGSE R package
(``gene.statistic``) or dashes (``gene-statistic``).

Example config file::

    pc_indexes: [0, 1, 2]
    gene_statistic: z
    transformation: none
    gene_set_statistic: mean.diff
    gene_set_test: cor.adj.parametric
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import yaml

from pcgse.exceptions import ConfigurationError
from pcgse.options import GeneSetStatistic, GeneSetTest, GeneStatistic, Transformation

__all__ = ['PCGSEConfig', 'load_config']


@dataclass
class PCGSEConfig:
    """
    Options of a PCGSE run.

    Values are validated and coerced to enums on construction, so an invalid
    config fails before any data is touched.

    Attributes:
        pc_indexes: 0-based indexes of the components to test (default: first)
        gene_statistic: "loading", "cor" or "z"
        transformation: "none" or "abs.value"
        gene_set_statistic: "mean.diff" or "rank.sum"
        gene_set_test: "parametric", "cor.adj.parametric" or "permutation"
            (permutation is rejected when the run starts)
        nperm: Number of permutations; reserved for the permutation test
    """
    pc_indexes: List[int] = field(default_factory=lambda: [0])
    gene_statistic: GeneStatistic = GeneStatistic.Z
    transformation: Transformation = Transformation.NONE
    gene_set_statistic: GeneSetStatistic = GeneSetStatistic.MEAN_DIFF
    gene_set_test: GeneSetTest = GeneSetTest.COR_ADJ_PARAMETRIC
    nperm: int = 9999

    def __post_init__(self):
        self.gene_statistic = GeneStatistic.parse(self.gene_statistic)
        self.transformation = Transformation.parse(self.transformation)
        self.gene_set_statistic = GeneSetStatistic.parse(self.gene_set_statistic)
        self.gene_set_test = GeneSetTest.parse(self.gene_set_test)
        self.pc_indexes = _parse_pc_indexes(self.pc_indexes)

        if isinstance(self.nperm, bool) or not isinstance(self.nperm, (int, np.integer)) or self.nperm < 1:
            raise ConfigurationError(f"nperm must be a positive integer, got {self.nperm!r}")
        self.nperm = int(self.nperm)

        if (
            self.gene_set_test is GeneSetTest.PERMUTATION
            and self.gene_statistic is GeneStatistic.LOADING
        ):
            raise ConfigurationError(
                "gene_statistic cannot be 'loading' if gene_set_test is 'permutation': "
                "loadings cannot be recomputed per permuted observation"
            )

    @property
    def cor_adjustment(self) -> bool:
        return self.gene_set_test.cor_adjustment

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> PCGSEConfig:
        """
        Build a config from a mapping, accepting dotted and dashed key spellings.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = str(key).replace(".", "_").replace("-", "_")
            if name not in known:
                raise ConfigurationError(
                    f"Unknown config key '{key}'. Valid keys: {', '.join(sorted(known))}"
                )
            if name in kwargs:
                raise ConfigurationError(f"Config key '{name}' given more than once")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form, using the option strings."""
        return {
            "pc_indexes": list(self.pc_indexes),
            "gene_statistic": self.gene_statistic.value,
            "transformation": self.transformation.value,
            "gene_set_statistic": self.gene_set_statistic.value,
            "gene_set_test": self.gene_set_test.value,
            "nperm": self.nperm,
        }


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file: {e}") from e


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file: {e}") from e


# File suffix -> parser returning the decoded document
_PARSERS = {
    '.yaml': _parse_yaml,
    '.yml': _parse_yaml,
    '.json': _parse_json,
}


def _read_config_mapping(config_path: Path) -> Dict[str, Any]:
    """Decode a config file into a plain mapping; an empty document gives {}."""
    parser = _PARSERS.get(config_path.suffix.lower())
    if parser is None:
        raise ConfigurationError(
            f"Unsupported config format: {config_path.suffix or '(no suffix)'}. "
            f"Use one of {', '.join(sorted(_PARSERS))}"
        )

    document = parser(config_path.read_text())
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigurationError(
            f"{config_path.name} must hold a mapping of option names to values, "
            f"got {type(document).__name__}"
        )
    return document


def load_config(config_path: Path | str) -> PCGSEConfig:
    """
    Read run options from a YAML or JSON file.

    Missing options keep their defaults, so an empty file yields the default
    run (first component, Fisher z, mean difference, Camera-adjusted test).

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the format is unsupported, the document does
            not parse, or an option is unknown or invalid

    Example:
        A file ``rank_sum.json`` containing
        ``{"pc.indexes": [0, 1], "gene.set.statistic": "rank.sum"}``::

            >>> config = load_config("rank_sum.json")
            >>> config.pc_indexes, config.gene_set_statistic.value
            ([0, 1], 'rank.sum')
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return PCGSEConfig.from_dict(_read_config_mapping(config_path))
