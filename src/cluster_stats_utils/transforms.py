#!/usr/bin/env python
"""
Stateless helpers around expression matrices and cell metadata.

Matrices are genes (rows) x cells or samples (columns). Cell metadata is a
DataFrame indexed by cell label with at least `cluster_id`, `sample_id` and
`group_id` columns; experiment info holds one row per sample.
"""

from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


CLUSTER_COLORS = [
    "#DC050C", "#FB8072", "#1965B0", "#7BAFDE", "#882E72",
    "#B17BA6", "#FF7F00", "#FDB462", "#E7298A", "#E78AC3",
    "#33A02C", "#B2DF8A", "#55A1B1", "#8DD3C7", "#A6761D",
    "#E6AB02", "#7570B3", "#BEAED4", "#666666", "#999999",
    "#aa8282", "#d4b7b7", "#8600bf", "#ba5ce3", "#808000",
    "#aeae5c", "#1e90ff", "#00bfff", "#56ff0d", "#ffff00",
]


def scale_quantiles(x: pd.DataFrame, low: float = 0.01, high: float = 0.99) -> pd.DataFrame:
    """
    Scale each row to [0, 1] using its `low` and `high` quantiles as bounds.

    Args:
        x: Numeric matrix; missing values are ignored when computing quantiles
        low: Quantile mapped to 0
        high: Quantile mapped to 1

    Returns:
        pandas.DataFrame: Scaled copy of `x`, clipped to [0, 1]
    """
    qs = x.quantile([low, high], axis=1)
    lo, hi = qs.loc[low], qs.loc[high]
    scaled = x.sub(lo, axis=0).div(hi - lo, axis=0)
    return scaled.clip(lower=0, upper=1)


def z_normalize(x: pd.DataFrame, th: float = 2.5) -> pd.DataFrame:
    """Row-wise z-scores clipped to [-th, th]; constant rows are only centred."""
    sds = x.std(axis=1, ddof=1)
    sds[sds == 0] = 1
    z = x.sub(x.mean(axis=1), axis=0).div(sds, axis=0)
    return z.clip(lower=-th, upper=th)


def make_experiment_info(cell_data: pd.DataFrame) -> pd.DataFrame:
    """
    Summarise cell metadata into one row per sample.

    Args:
        cell_data: Cell metadata with `sample_id` and `group_id` columns

    Returns:
        pandas.DataFrame: Columns `sample_id`, `group_id` and `n_cells`, ordered
            by first appearance of each sample. Categorical inputs keep their
            levels.
    """
    first = cell_data.drop_duplicates(subset="sample_id", keep="first")
    sids = first["sample_id"].tolist()
    counts = cell_data["sample_id"].value_counts()

    ei = pd.DataFrame({
        "sample_id": sids,
        "group_id": first["group_id"].tolist(),
        "n_cells": [float(counts[s]) for s in sids],
    })
    for col in ("sample_id", "group_id"):
        if isinstance(cell_data[col].dtype, pd.CategoricalDtype):
            ei[col] = pd.Categorical(ei[col], categories=cell_data[col].cat.categories)
    return ei


def split_cells(cell_data: pd.DataFrame, by: Sequence[str] = ("cluster_id", "sample_id")) -> dict:
    """
    Split cell labels by one or more metadata columns.

    Returns a nested dict with one level per column in `by` (keys sorted) whose
    leaves are lists of cell labels, e.g. `{cluster_id: {sample_id: [cell, ...]}}`.
    Only observed combinations are included.
    """
    by = list(by)
    first, rest = by[0], by[1:]
    out = {}
    for key, group in cell_data.groupby(first, sort=True, observed=True):
        out[key] = split_cells(group, rest) if rest else group.index.tolist()
    return out


def filter_cells(cell_data: pd.DataFrame,
                 cluster_ids: Sequence,
                 sample_ids: Sequence) -> pd.DataFrame:
    """
    Keep cells from the given clusters and samples.

    Unused categorical levels are dropped and non-categorical metadata columns
    are converted to categoricals. The matching experiment info is trimmed
    separately with `filter_experiment_info`.

    Args:
        cell_data: Cell metadata with `cluster_id` and `sample_id` columns
        cluster_ids: Clusters to keep
        sample_ids: Samples to keep

    Returns:
        pandas.DataFrame: Filtered copy of `cell_data`
    """
    keep = cell_data["cluster_id"].isin(cluster_ids) & cell_data["sample_id"].isin(sample_ids)
    cd = cell_data.loc[keep].copy()
    for col in cd.columns:
        if isinstance(cd[col].dtype, pd.CategoricalDtype):
            cd[col] = cd[col].cat.remove_unused_categories()
        else:
            cd[col] = pd.Categorical(cd[col])
    return cd


def filter_experiment_info(experiment_info: pd.DataFrame, cell_data: pd.DataFrame) -> pd.DataFrame:
    """
    Restrict experiment info to the samples still present in `cell_data`.

    Args:
        experiment_info: One row per sample with a `sample_id` column
        cell_data: Cell metadata, typically the output of `filter_cells`

    Returns:
        pandas.DataFrame: Rows of samples present in `cell_data`, with unused
            categorical levels dropped
    """
    ei = experiment_info[experiment_info["sample_id"].isin(cell_data["sample_id"].unique())]
    ei = ei.reset_index(drop=True)
    for col in ei.columns:
        if isinstance(ei[col].dtype, pd.CategoricalDtype):
            ei[col] = ei[col].cat.remove_unused_categories()
    return ei


class ToyData(NamedTuple):
    """Container returned by `make_toy_data`."""
    counts: pd.DataFrame
    cell_data: pd.DataFrame
    experiment_info: pd.DataFrame


def make_toy_data(dim: Tuple[int, int] = (200, 800), seed: Optional[int] = None) -> ToyData:
    """
    Generate a small synthetic count dataset for testing.

    Counts are negative binomial with size 2 and mean 4. Cells are assigned at
    random to 5 clusters, 4 samples and 3 groups; sample ids are suffixed with
    their group (e.g. `s1.g2`).

    Args:
        dim: Number of genes and cells
        seed: Seed for `numpy.random.default_rng`

    Returns:
        ToyData: `counts` (genes x cells), `cell_data` and the matching
            `experiment_info`
    """
    rng = np.random.default_rng(seed)
    n_genes, n_cells = dim
    genes = [f"gene{i + 1}" for i in range(n_genes)]
    cells = [f"cell{i + 1}" for i in range(n_cells)]

    size, mu = 2, 4
    y = rng.negative_binomial(size, size / (size + mu), size=(n_genes, n_cells))
    counts = pd.DataFrame(y, index=genes, columns=cells)

    kids = rng.choice([f"k{i + 1}" for i in range(5)], n_cells)
    sids = rng.choice([f"s{i + 1}" for i in range(4)], n_cells)
    gids = rng.choice([f"g{i + 1}" for i in range(3)], n_cells)
    cell_data = pd.DataFrame({
        "cluster_id": pd.Categorical(kids),
        "sample_id": pd.Categorical([f"{s}.{g}" for s, g in zip(sids, gids)]),
        "group_id": pd.Categorical(gids),
    }, index=cells)

    return ToyData(counts=counts, cell_data=cell_data, experiment_info=make_experiment_info(cell_data))
