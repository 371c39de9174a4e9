"""
Utilities for per-cluster, per-sample analyses of single-cell data.

This package provides the filtering and multiple testing helpers used around
differential testing of clustered data:

- Greedy filtering of cluster-by-sample count matrices
- Global p-value adjustment pooled across comparisons for each cluster
- Row-wise scaling and cell metadata helpers
"""

__version__ = "0.1.0"

# Import main functionality to expose at package level
from cluster_stats_utils.exceptions import (
    ClusterStatsError,
    InvalidInput,
    SchemaError,
    ShapeError,
)
from cluster_stats_utils.matrix_filter import prune_matrix
from cluster_stats_utils.p_adjust import adjust_globally, correct_p_values
from cluster_stats_utils.transforms import (
    CLUSTER_COLORS,
    filter_cells,
    filter_experiment_info,
    make_experiment_info,
    make_toy_data,
    scale_quantiles,
    split_cells,
    z_normalize,
)

__all__ = [
    "ClusterStatsError",
    "InvalidInput",
    "SchemaError",
    "ShapeError",
    "prune_matrix",
    "adjust_globally",
    "correct_p_values",
    "CLUSTER_COLORS",
    "filter_cells",
    "filter_experiment_info",
    "make_experiment_info",
    "make_toy_data",
    "scale_quantiles",
    "split_cells",
    "z_normalize",
]
