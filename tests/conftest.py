"""
Pytest configuration and shared fixtures.

This module provides synthetic data generators and shared fixtures for all test suites.
"""

import numpy as np
import pandas as pd
import pytest


def generate_pc_structured_matrix(
    n_samples: int = 50,
    n_genes: int = 200,
    n_signal_genes: int = 10,
    signal_strength: float = 5.0,
    seed: int = 42,
) -> np.ndarray:
    """
    Generate a data matrix whose first principal component is driven by a gene block.

    Args:
        n_samples: Number of observations (rows)
        n_genes: Number of variables (columns)
        n_signal_genes: Number of leading variables sharing a latent factor
        signal_strength: Loading of the signal genes on the latent factor
        seed: Random seed for reproducibility

    Returns:
        Array of shape (n_samples, n_genes)

    Design:
        - All variables have independent standard normal noise
        - The first ``n_signal_genes`` variables add ``signal_strength`` times a
          shared latent factor, giving pairwise correlation
          s^2 / (s^2 + 1) among them and none with the other variables
        - The signal block therefore loads exclusively on PC1
    """
    rng = np.random.default_rng(seed)
    data = rng.normal(size=(n_samples, n_genes))
    latent = rng.normal(size=n_samples)
    data[:, :n_signal_genes] += signal_strength * latent[:, np.newaxis]
    return data


def generate_correlated_block(
    n_samples: int,
    n_genes: int,
    block: slice,
    correlation: float,
    seed: int = 0,
) -> np.ndarray:
    """
    Generate standard normal variables where ``block`` columns share pairwise correlation.

    Uses a one-factor model: x = sqrt(rho) * f + sqrt(1 - rho) * e.
    """
    rng = np.random.default_rng(seed)
    data = rng.normal(size=(n_samples, n_genes))
    factor = rng.normal(size=n_samples)
    data[:, block] = (
        np.sqrt(correlation) * factor[:, np.newaxis]
        + np.sqrt(1 - correlation) * data[:, block]
    )
    return data


def disjoint_membership(n_genes: int, n_sets: int) -> np.ndarray:
    """Binary membership matrix of ``n_sets`` consecutive, equal-size, disjoint gene sets."""
    set_size = n_genes // n_sets
    membership = np.zeros((n_sets, n_genes), dtype=int)
    for i in range(n_sets):
        membership[i, i * set_size:(i + 1) * set_size] = 1
    return membership


@pytest.fixture
def pc_structured_data():
    """200 genes x 50 samples; genes 0-9 load exclusively on PC1."""
    return generate_pc_structured_matrix()


@pytest.fixture
def disjoint_sets():
    """20 disjoint gene sets of 10 genes each over 200 genes."""
    return disjoint_membership(n_genes=200, n_sets=20)


@pytest.fixture
def small_data():
    """Small matrix (60 samples x 40 genes) for fast unit tests; genes 0-4 drive PC1."""
    return generate_pc_structured_matrix(
        n_samples=60, n_genes=40, n_signal_genes=5, signal_strength=3.0, seed=7
    )


@pytest.fixture
def small_frame(small_data):
    """``small_data`` as a DataFrame with gene symbol columns."""
    return pd.DataFrame(
        small_data,
        index=[f"SAMPLE_{i:03d}" for i in range(small_data.shape[0])],
        columns=[f"GENE_{j:03d}" for j in range(small_data.shape[1])],
    )


@pytest.fixture
def small_sets():
    """Four named gene sets over the 40 genes of ``small_data``."""
    return {
        "signal": [0, 1, 2, 3, 4],
        "mixed": [3, 4, 10, 11, 12, 13],
        "null_a": list(range(20, 30)),
        "null_b": [31, 33, 35, 37, 39],
    }
