"""
Tests for the mean difference gene set test.

Verifies:
1. Without correlation adjustment the statistic is the pooled two-sample t-test
2. The adjusted statistic applies VIF = 1 + (m1-1)*rho_bar and n-2 df
3. Positive inter-gene correlation makes the test more conservative
4. Type I error of the unadjusted test under i.i.d. gene statistics
5. Degenerate sets are rejected
"""

import numpy as np
import pytest
from scipy import stats

from pcgse.core.gene_sets import GeneSetCollection
from pcgse.exceptions import DegenerateGroupError, InvalidInputError
from pcgse.stats.mean_diff import mean_diff_test, standardized_mean_difference
from conftest import generate_correlated_block


def _collection(index_sets, n_features):
    return GeneSetCollection.from_index_lists(index_sets, n_features)


class TestStandardizedMeanDifference:

    def test_matches_scipy_ttest(self):
        rng = np.random.default_rng(10)
        in_set = rng.normal(0.5, 1.0, size=12)
        out_set = rng.normal(0.0, 1.3, size=80)

        t_stat = standardized_mean_difference(in_set, out_set)

        expected = stats.ttest_ind(in_set, out_set, equal_var=True).statistic
        assert float(t_stat) == pytest.approx(expected, rel=1e-10)

    def test_vif_shrinks_statistic(self):
        rng = np.random.default_rng(11)
        in_set = rng.normal(1.0, 1.0, size=10)
        out_set = rng.normal(0.0, 1.0, size=50)

        plain = standardized_mean_difference(in_set, out_set)
        inflated = standardized_mean_difference(in_set, out_set, vif=4.0)

        m1, m2 = 10, 50
        ratio = np.sqrt(1 / m1 + 1 / m2) / np.sqrt(4.0 / m1 + 1 / m2)
        assert float(inflated) == pytest.approx(float(plain) * ratio)

    def test_vectorized_over_columns(self):
        rng = np.random.default_rng(12)
        in_set = rng.normal(size=(8, 3))
        out_set = rng.normal(size=(30, 3))
        t_stat = standardized_mean_difference(in_set, out_set)
        for k in range(3):
            assert t_stat[k] == pytest.approx(
                float(standardized_mean_difference(in_set[:, k], out_set[:, k]))
            )

    def test_too_few_members(self):
        with pytest.raises(DegenerateGroupError):
            standardized_mean_difference(np.array([1.0]), np.arange(10.0))

    def test_zero_pooled_variance(self):
        with pytest.raises(DegenerateGroupError, match="zero pooled variance"):
            standardized_mean_difference(np.ones(5), np.zeros(20))

    def test_tiny_statistics_are_not_degenerate(self):
        rng = np.random.default_rng(5)
        in_set, out_set = rng.normal(0.5, 1, 6), rng.normal(0, 1, 30)
        np.testing.assert_allclose(
            standardized_mean_difference(in_set * 1e-13, out_set * 1e-13),
            standardized_mean_difference(in_set, out_set),
            rtol=1e-8,
        )


class TestMeanDiffTest:

    def test_unadjusted_matches_ttest(self):
        rng = np.random.default_rng(20)
        gene_stats = rng.normal(size=60)
        gene_stats[:6] += 1.5
        sets = _collection({"up": [0, 1, 2, 3, 4, 5], "random": [10, 25, 33, 47]}, 60)

        statistics, p_values = mean_diff_test(gene_stats, sets, cor_adjustment=False)

        for i, (_, members) in enumerate(sets):
            result = stats.ttest_ind(
                gene_stats[members], gene_stats[sets.complement(i)], equal_var=True
            )
            assert statistics[i, 0] == pytest.approx(result.statistic, rel=1e-10)
            assert p_values[i, 0] == pytest.approx(result.pvalue, rel=1e-8)
        assert statistics[0, 0] > 0

    def test_adjusted_matches_manual_formula(self):
        n, p = 40, 50
        data = generate_correlated_block(n, p, slice(0, 8), correlation=0.4, seed=21)
        gene_stats = np.random.default_rng(22).normal(size=p)
        gene_stats[:8] += 1.0
        members = np.arange(8)
        sets = _collection({"block": members}, p)

        statistics, p_values = mean_diff_test(gene_stats, sets, data=data)

        corr = np.corrcoef(data[:, members], rowvar=False)
        rho = (corr.sum() - 8) / (8 * 7)
        vif = 1 + 7 * rho
        in_set, out_set = gene_stats[:8], gene_stats[8:]
        pooled = np.sqrt(
            (7 * in_set.var(ddof=1) + 41 * out_set.var(ddof=1)) / (8 + 42 - 2)
        )
        t_expected = (in_set.mean() - out_set.mean()) / (pooled * np.sqrt(vif / 8 + 1 / 42))
        p_expected = 2 * stats.t.sf(abs(t_expected), df=n - 2)

        assert statistics[0, 0] == pytest.approx(t_expected, rel=1e-10)
        assert p_values[0, 0] == pytest.approx(p_expected, rel=1e-8)

    def test_correlation_adjustment_is_conservative(self):
        n, p = 40, 100
        data = generate_correlated_block(n, p, slice(0, 10), correlation=0.8, seed=23)
        gene_stats = np.random.default_rng(24).normal(size=p)
        gene_stats[:10] += 1.0
        sets = _collection({"block": range(10)}, p)

        t_plain, p_plain = mean_diff_test(gene_stats, sets, cor_adjustment=False)
        t_adj, p_adj = mean_diff_test(gene_stats, sets, cor_adjustment=True, data=data)

        assert abs(t_adj[0, 0]) < abs(t_plain[0, 0])
        assert p_adj[0, 0] > p_plain[0, 0]

    def test_type_i_error_unadjusted(self):
        """i.i.d. gene statistics: rejection rate at alpha=0.05 is close to nominal."""
        rng = np.random.default_rng(25)
        n_features, n_replicates = 100, 2000
        # every column of the statistic matrix is an independent replicate
        gene_stats = rng.normal(size=(n_features, n_replicates))
        sets = _collection({"half": range(50)}, n_features)

        _, p_values = mean_diff_test(gene_stats, sets, cor_adjustment=False)

        rejection_rate = (p_values[0] < 0.05).mean()
        assert 0.035 < rejection_rate < 0.065

    def test_shape_and_order(self):
        rng = np.random.default_rng(26)
        gene_stats = rng.normal(size=(30, 3))
        sets = _collection({"b": [0, 1, 2], "a": [5, 6, 7, 8]}, 30)

        statistics, p_values = mean_diff_test(gene_stats, sets, cor_adjustment=False)

        assert statistics.shape == p_values.shape == (2, 3)
        assert np.all((p_values >= 0) & (p_values <= 1))
        expected = standardized_mean_difference(gene_stats[[5, 6, 7, 8]], gene_stats[sets.complement(1)])
        np.testing.assert_allclose(statistics[1], expected)

    def test_single_member_set_rejected(self):
        sets = _collection({"ok": [0, 1], "single": [5]}, 20)
        with pytest.raises(DegenerateGroupError, match="single"):
            mean_diff_test(np.random.default_rng(0).normal(size=20), sets, cor_adjustment=False)

    def test_set_without_non_members_rejected(self):
        sets = _collection({"all_but_one": range(19)}, 20)
        with pytest.raises(DegenerateGroupError, match="non-members"):
            mean_diff_test(np.random.default_rng(0).normal(size=20), sets, cor_adjustment=False)

    def test_adjustment_requires_data(self):
        sets = _collection({"a": [0, 1, 2]}, 20)
        with pytest.raises(InvalidInputError, match="data matrix is required"):
            mean_diff_test(np.random.default_rng(0).normal(size=20), sets, cor_adjustment=True)

    def test_statistic_length_mismatch(self):
        sets = _collection({"a": [0, 1, 2]}, 20)
        with pytest.raises(InvalidInputError, match="shape"):
            mean_diff_test(np.zeros(19), sets, cor_adjustment=False)
