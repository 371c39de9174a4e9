#!/usr/bin/env python
"""
Global multiple testing correction for per-cluster differential results.

Differential testing is usually run separately for every comparison
(contrast) and every cluster, and each result table already carries
p-values adjusted within that table. This module recomputes the adjustment
per cluster across all comparisons at once: the raw p-values of a cluster
are pooled over comparisons, corrected together, and the corrected values
are written back into each comparison's table right after its locally
adjusted column.

Results are organised as a two-level mapping,
``{comparison_id: {cluster_id: DataFrame}}``, with the same cluster ids
under every comparison.
"""

import logging
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests, multitest_alias

from cluster_stats_utils.exceptions import SchemaError, ShapeError

# Configure logging
logger = logging.getLogger(__name__)

GroupedResults = Dict[str, Dict[str, pd.DataFrame]]

P_VAL_COL = "p_val"
LOCAL_ADJ_COL = "p_adj.loc"
GLOBAL_ADJ_COL = "p_adj.glb"
DEFAULT_METHOD = "holm"

# Short names mapped to statsmodels method names
MTC_METHOD_MAP = {
    'holm': 'holm',
    'bonf': 'bonferroni',
    'sidak': 'sidak',
    'bh': 'fdr_bh',
    'by': 'fdr_by',
}


def _resolve_method(method: str) -> str:
    key = method.lower()
    key = MTC_METHOD_MAP.get(key, key)
    if key not in multitest_alias:
        raise ValueError(
            f"Unknown multiple testing correction method: {method!r} "
            f"(expected one of {sorted(set(MTC_METHOD_MAP) | set(multitest_alias))})"
        )
    return key


def correct_p_values(p_values: Sequence[float], method: str = DEFAULT_METHOD) -> np.ndarray:
    """
    Apply a multiple testing correction to a sequence of p-values.

    Missing values are kept in place and do not count as tests.

    Args:
        p_values: Raw p-values
        method: Short name ('holm', 'bonf', 'sidak', 'bh', 'by') or any method
            name or alias accepted by statsmodels' multipletests (see
            `statsmodels.stats.multitest.multitest_alias`)

    Returns:
        numpy.ndarray: Corrected p-values, same length and order as the input
    """
    sm_method = _resolve_method(method)
    p = np.asarray(p_values, dtype=float)
    corrected = np.full(p.shape, np.nan)

    mask = ~np.isnan(p)
    if mask.any():
        _, corrected_pvals, _, _ = multipletests(p[mask], method=sm_method)
        corrected[mask] = corrected_pvals

    return corrected


def _check_cluster_ids(results: GroupedResults) -> List[str]:
    """Return cluster ids in the order of the first comparison, after checking shape."""
    comparisons = list(results)
    for k in comparisons:
        if not isinstance(results[k], dict):
            raise ShapeError(f"Results for comparison {k!r} are not a mapping of clusters to tables")

    cluster_ids = list(results[comparisons[0]])
    expected = set(cluster_ids)

    for k in comparisons:
        tables = results[k]
        if set(tables) != expected:
            missing = sorted(map(str, expected - set(tables)))
            extra = sorted(map(str, set(tables) - expected))
            raise ShapeError(
                f"Cluster ids for comparison {k!r} differ from comparison {comparisons[0]!r} "
                f"(missing: {missing}, unexpected: {extra})"
            )
        for c, table in tables.items():
            if not isinstance(table, pd.DataFrame):
                raise ShapeError(f"Result for comparison {k!r}, cluster {c!r} is not a DataFrame")

    return cluster_ids


def _check_columns(results: GroupedResults, p_col: str, local_col: str, global_col: str) -> None:
    for k, tables in results.items():
        for c, table in tables.items():
            for col in (p_col, local_col):
                n_found = (table.columns == col).sum()
                if n_found == 0:
                    raise SchemaError(
                        f"Table for comparison {k!r}, cluster {c!r} has no {col!r} column"
                    )
                if n_found > 1:
                    raise SchemaError(
                        f"Table for comparison {k!r}, cluster {c!r} has {n_found} {col!r} columns"
                    )
            if global_col in table.columns:
                raise SchemaError(
                    f"Table for comparison {k!r}, cluster {c!r} already has a {global_col!r} column"
                )


def adjust_globally(results: GroupedResults,
                    method: str = DEFAULT_METHOD,
                    p_col: str = P_VAL_COL,
                    local_col: str = LOCAL_ADJ_COL,
                    global_col: str = GLOBAL_ADJ_COL) -> GroupedResults:
    """
    Add globally adjusted p-values to every cluster's result tables.

    For each cluster the raw p-values of all comparisons are concatenated
    (in comparison order), corrected in a single call, split back into
    per-comparison segments and inserted as `global_col` directly after
    `local_col`.

    Args:
        results: Nested mapping comparison id -> cluster id -> results table
        method: Multiple testing correction method (see `correct_p_values`)
        p_col: Column holding raw p-values
        local_col: Column holding locally adjusted p-values
        global_col: Name of the column to insert

    Returns:
        dict: New nested mapping with the same keys and row order; the
            input tables are not modified

    Raises:
        ShapeError: If cluster ids differ across comparisons
        SchemaError: If a table is missing `p_col` or `local_col`, has either
            of them more than once, or already has `global_col`
        ValueError: If `method` is not a known correction method
    """
    if not results:
        return {}

    sm_method = _resolve_method(method)
    cluster_ids = _check_cluster_ids(results)
    _check_columns(results, p_col, local_col, global_col)

    comparisons = list(results)
    logger.info(
        "Applying global %s correction over %d comparison(s) for %d cluster(s)",
        sm_method, len(comparisons), len(cluster_ids)
    )

    adjusted = {k: {} for k in comparisons}
    for c in cluster_ids:
        # get p-values
        p_vals = [results[k][c][p_col].to_numpy(dtype=float) for k in comparisons]
        ns = [len(p) for p in p_vals]

        pooled = np.concatenate(p_vals)
        p_adj = correct_p_values(pooled, sm_method)
        logger.debug("Cluster %r: corrected %d pooled p-values (segments %s)", c, len(pooled), ns)

        # re-split by comparison
        segments = np.split(p_adj, np.cumsum(ns)[:-1])

        for k, segment in zip(comparisons, segments):
            table = results[k][c].copy()
            i = table.columns.get_loc(local_col)
            table.insert(i + 1, global_col, segment)
            adjusted[k][c] = table

    return adjusted
