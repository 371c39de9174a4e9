#!/usr/bin/env python
"""
Unit tests for the scaling and cell metadata helpers.
"""

import numpy as np
import pandas as pd
import pytest

from cluster_stats_utils import (
    CLUSTER_COLORS,
    filter_cells,
    filter_experiment_info,
    make_experiment_info,
    make_toy_data,
    scale_quantiles,
    split_cells,
    z_normalize,
)


@pytest.fixture
def cell_data():
    """Six cells over two clusters, three samples and two groups."""
    return pd.DataFrame({
        "cluster_id": pd.Categorical(["k1", "k2", "k1", "k1", "k2", "k2"]),
        "sample_id": pd.Categorical(["s2", "s1", "s2", "s3", "s3", "s2"],
                                    categories=["s1", "s2", "s3"]),
        "group_id": pd.Categorical(["g1", "g2", "g1", "g2", "g2", "g1"]),
    }, index=[f"cell{i}" for i in range(1, 7)])


class TestScaling:
    """Tests for row-wise scaling."""

    def test_scale_quantiles_full_range(self):
        x = pd.DataFrame([[0.0, 5.0, 10.0], [2.0, 4.0, 6.0]])

        result = scale_quantiles(x, low=0, high=1)

        np.testing.assert_allclose(result.to_numpy(), [[0, 0.5, 1], [0, 0.5, 1]])

    def test_scale_quantiles_clips(self):
        x = pd.DataFrame([np.arange(101, dtype=float)])

        result = scale_quantiles(x)

        assert result.to_numpy().min() == 0
        assert result.to_numpy().max() == 1
        assert result.iloc[0, 50] == pytest.approx(0.5)

    def test_z_normalize(self):
        x = pd.DataFrame([[1.0, 2.0, 3.0], [4.0, 4.0, 4.0]], index=["a", "b"])

        result = z_normalize(x)

        np.testing.assert_allclose(result.loc["a"], [-1, 0, 1])
        np.testing.assert_allclose(result.loc["b"], [0, 0, 0])

    def test_z_normalize_clips(self):
        x = pd.DataFrame([[0.0] * 9 + [100.0]])

        result = z_normalize(x, th=2.5)

        assert result.iloc[0, -1] == 2.5
        assert result.to_numpy().min() >= -2.5


class TestCellMetadata:
    """Tests for cell metadata helpers."""

    def test_experiment_info(self, cell_data):
        ei = make_experiment_info(cell_data)

        assert ei["sample_id"].tolist() == ["s2", "s1", "s3"]
        assert ei["group_id"].tolist() == ["g1", "g2", "g2"]
        assert ei["n_cells"].tolist() == [3.0, 1.0, 2.0]
        assert list(ei["sample_id"].cat.categories) == ["s1", "s2", "s3"]

    def test_experiment_info_plain_strings(self, cell_data):
        ei = make_experiment_info(cell_data.astype(str))

        assert ei["sample_id"].tolist() == ["s2", "s1", "s3"]
        assert not isinstance(ei["sample_id"].dtype, pd.CategoricalDtype)

    def test_split_cells_nested(self, cell_data):
        result = split_cells(cell_data)

        assert result == {
            "k1": {"s2": ["cell1", "cell3"], "s3": ["cell4"]},
            "k2": {"s1": ["cell2"], "s2": ["cell6"], "s3": ["cell5"]},
        }

    def test_split_cells_single_level(self, cell_data):
        result = split_cells(cell_data, by=["group_id"])

        assert result == {"g1": ["cell1", "cell3", "cell6"], "g2": ["cell2", "cell4", "cell5"]}

    def test_filter_cells_drops_levels(self, cell_data):
        result = filter_cells(cell_data, ["k1"], ["s2", "s3"])

        assert result.index.tolist() == ["cell1", "cell3", "cell4"]
        assert list(result["cluster_id"].cat.categories) == ["k1"]
        assert list(result["sample_id"].cat.categories) == ["s2", "s3"]

    def test_filter_experiment_info(self, cell_data):
        """Experiment info keeps only samples left after filtering cells."""
        ei = make_experiment_info(cell_data)
        cd = filter_cells(cell_data, ["k1"], ["s1", "s2"])

        result = filter_experiment_info(ei, cd)

        assert result["sample_id"].tolist() == ["s2"]
        assert result["n_cells"].tolist() == [3.0]
        assert list(result["sample_id"].cat.categories) == ["s2"]
        assert list(result["group_id"].cat.categories) == ["g1"]
        assert len(ei) == 3

    def test_cluster_colors(self):
        assert len(CLUSTER_COLORS) == 30
        assert all(c.startswith("#") and len(c) == 7 for c in CLUSTER_COLORS)


class TestToyData:
    """Tests for the synthetic dataset."""

    def test_shapes(self):
        toy = make_toy_data(dim=(20, 50), seed=1)

        assert toy.counts.shape == (20, 50)
        assert list(toy.cell_data.index) == list(toy.counts.columns)
        assert (toy.counts.to_numpy() >= 0).all()
        assert toy.experiment_info["n_cells"].sum() == 50

    def test_seed_reproducible(self):
        a = make_toy_data(dim=(10, 10), seed=7)
        b = make_toy_data(dim=(10, 10), seed=7)

        pd.testing.assert_frame_equal(a.counts, b.counts)
        pd.testing.assert_frame_equal(a.cell_data, b.cell_data)

    def test_metadata_levels(self):
        toy = make_toy_data(dim=(5, 500), seed=3)

        assert set(toy.cell_data["cluster_id"].cat.categories) <= {f"k{i}" for i in range(1, 6)}
        assert set(toy.cell_data["group_id"].cat.categories) <= {"g1", "g2", "g3"}
        for sid, gid in zip(toy.cell_data["sample_id"], toy.cell_data["group_id"]):
            assert sid.endswith(f".{gid}")
