"""Tests for gene-level statistics (loading, correlation, Fisher z)."""

import numpy as np
import pytest

from pcgse.core.components import ComponentBasis
from pcgse.exceptions import ConfigurationError, DegenerateInputError
from pcgse.options import GeneStatistic, Transformation
from pcgse.stats.gene_statistics import compute_gene_statistic_matrix, compute_gene_statistics


@pytest.fixture
def basis(small_data):
    return ComponentBasis.from_data(small_data, n_components=4)


class TestGeneStatistics:
    """One statistic per variable for a single component."""

    def test_loading(self, small_data, basis):
        stats = compute_gene_statistics(small_data, basis, 1, "loading")
        np.testing.assert_array_equal(stats, basis.loadings[:, 1])

    def test_loading_is_a_copy(self, small_data, basis):
        stats = compute_gene_statistics(small_data, basis, 0, GeneStatistic.LOADING)
        stats[0] = 123.0
        assert basis.loadings[0, 0] != 123.0

    def test_cor_matches_corrcoef(self, small_data, basis):
        stats = compute_gene_statistics(small_data, basis, 0, "cor")
        expected = [
            np.corrcoef(small_data[:, j], basis.scores[:, 0])[0, 1]
            for j in range(small_data.shape[1])
        ]
        np.testing.assert_allclose(stats, expected, atol=1e-10)

    def test_z_is_fisher_transformed_cor(self, small_data, basis):
        n = small_data.shape[0]
        r = compute_gene_statistics(small_data, basis, 2, "cor")
        z = compute_gene_statistics(small_data, basis, 2, "z")
        np.testing.assert_allclose(z, np.sqrt(n - 3) * np.arctanh(r))

    def test_cor_proportional_to_loading(self, small_data, basis):
        """On the correlation matrix, cor = loading * sdev."""
        r = compute_gene_statistics(small_data, basis, 0, "cor")
        loading = compute_gene_statistics(small_data, basis, 0, "loading")
        np.testing.assert_allclose(r, loading * basis.sdev[0], atol=1e-8)

    @pytest.mark.parametrize("statistic", ["loading", "cor", "z"])
    def test_abs_value(self, small_data, basis, statistic):
        signed = compute_gene_statistics(small_data, basis, 0, statistic, "none")
        magnitude = compute_gene_statistics(
            small_data, basis, 0, statistic, Transformation.ABS_VALUE
        )
        assert np.all(magnitude >= 0)
        np.testing.assert_allclose(magnitude, np.abs(signed))

    def test_signal_genes_dominate_first_component(self, small_data, basis):
        z = np.abs(compute_gene_statistics(small_data, basis, 0, "z"))
        assert z[:5].min() > z[5:].max()

    @pytest.mark.parametrize("pc_index", [-1, 4])
    def test_pc_index_out_of_range(self, small_data, basis, pc_index):
        with pytest.raises(ConfigurationError, match="out of range"):
            compute_gene_statistics(small_data, basis, pc_index)

    def test_unknown_statistic(self, small_data, basis):
        with pytest.raises(ConfigurationError, match="gene_statistic"):
            compute_gene_statistics(small_data, basis, 0, "t")

    def test_unknown_transformation(self, small_data, basis):
        with pytest.raises(ConfigurationError, match="transformation"):
            compute_gene_statistics(small_data, basis, 0, "z", "square")

    def test_z_requires_more_than_three_observations(self):
        data = np.random.default_rng(2).normal(size=(3, 6))
        basis = ComponentBasis.from_data(data, n_components=1)
        with pytest.raises(DegenerateInputError, match="n > 3"):
            compute_gene_statistics(data, basis, 0, "z")
        # cor is still defined
        assert compute_gene_statistics(data, basis, 0, "cor").shape == (6,)

    def test_zero_variance_component_rejected(self):
        data = np.random.default_rng(4).normal(size=(5, 10))
        basis = ComponentBasis.from_data(data)
        # centering leaves rank 4, so the fifth component is rounding noise
        with pytest.raises(DegenerateInputError, match="zero variance"):
            compute_gene_statistics(data, basis, 4, "cor")
        assert compute_gene_statistics(data, basis, 3, "cor").shape == (10,)


class TestGeneStatisticMatrix:

    def test_columns_follow_pc_indexes(self, small_data, basis):
        matrix = compute_gene_statistic_matrix(small_data, basis, [3, 0], "cor")
        assert matrix.shape == (small_data.shape[1], 2)
        np.testing.assert_allclose(
            matrix[:, 0], compute_gene_statistics(small_data, basis, 3, "cor")
        )
        np.testing.assert_allclose(
            matrix[:, 1], compute_gene_statistics(small_data, basis, 0, "cor")
        )
