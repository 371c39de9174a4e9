#!/usr/bin/env python
"""
Greedy row/column filtering of count matrices.

The filter repeatedly drops the row or column with the smallest total among
those that still contain an entry below a minimum value, until every
remaining entry clears the minimum. It is typically run on a cluster-by-sample
cell count table before per-cluster testing, to discard clusters and samples
with too few cells.

Removal policy:
1. Only rows/columns holding at least one sub-threshold entry are candidates.
2. Row and column totals are recomputed on the current matrix each iteration.
3. The candidate row and the candidate column with the smallest totals are
   selected (first in positional order on ties).
4. The row is removed if its total is less than or equal to the column's,
   otherwise the column is removed.
5. Filtering stops as soon as a dimension is reduced to a single entry.
"""

import logging
from typing import Union

import numpy as np
import pandas as pd

from cluster_stats_utils.exceptions import InvalidInput

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 100


def _as_numeric_frame(matrix: Union[pd.DataFrame, np.ndarray]) -> pd.DataFrame:
    """
    Validate a matrix and return a copy of it as a DataFrame.

    Args:
        matrix: DataFrame or 2D array-like of counts

    Returns:
        pandas.DataFrame: Copy of the input with its labels preserved

    Raises:
        InvalidInput: If the matrix is not 2D, has an empty dimension,
            contains non-numeric columns or missing values
    """
    if isinstance(matrix, pd.DataFrame):
        df = matrix.copy()
    else:
        values = np.asarray(matrix)
        if values.ndim != 2:
            raise InvalidInput(f"Expected a 2D matrix, got {values.ndim} dimension(s)")
        df = pd.DataFrame(values)

    if df.shape[0] == 0 or df.shape[1] == 0:
        raise InvalidInput(f"Matrix must have at least one row and one column, got shape {df.shape}")

    non_numeric = [
        col for col, dtype in df.dtypes.items()
        if pd.api.types.is_bool_dtype(dtype) or not pd.api.types.is_numeric_dtype(dtype)
    ]
    if non_numeric:
        raise InvalidInput(f"Matrix contains non-numeric columns: {non_numeric}")

    if df.isna().to_numpy().any():
        raise InvalidInput("Matrix contains missing values")

    return df


def prune_matrix(matrix: Union[pd.DataFrame, np.ndarray],
                 threshold: float = DEFAULT_THRESHOLD) -> pd.DataFrame:
    """
    Remove rows/columns until all entries are at least `threshold`.

    Each iteration removes the row or column with the smallest summed value
    among those containing an entry below `threshold`, preferring rows on
    ties. Iteration stops once every entry clears the threshold or a
    dimension has been reduced to size 1. A removal that would leave no rows
    or no columns is never made, so the result may still contain
    sub-threshold entries when the matrix is (or becomes) a single row or
    column.

    Args:
        matrix: Counts with labelled rows and columns (array-likes get
            positional labels)
        threshold: Minimum value every retained entry should reach

    Returns:
        pandas.DataFrame: The filtered matrix; the input is left untouched

    Raises:
        InvalidInput: For an empty, non-numeric or incomplete matrix, or a
            negative threshold
    """
    if threshold < 0:
        raise InvalidInput(f"Threshold must be non-negative, got {threshold}")

    m = _as_numeric_frame(matrix)
    n_rows, n_cols = m.shape
    logger.info("Filtering %d x %d matrix with threshold %s", n_rows, n_cols, threshold)

    n_removed = 0
    while True:
        values = m.to_numpy()
        below = values < threshold
        if not below.any():
            break

        # get candidate rows/cols for removal
        row_candidates = np.flatnonzero(below.any(axis=1))
        col_candidates = np.flatnonzero(below.any(axis=0))

        row_sums = values.sum(axis=1)
        col_sums = values.sum(axis=0)

        # np.argmin returns the first minimum
        r = row_candidates[np.argmin(row_sums[row_candidates])]
        c = col_candidates[np.argmin(col_sums[col_candidates])]

        remove_row = row_sums[r] <= col_sums[c]
        if (remove_row and m.shape[0] == 1) or (not remove_row and m.shape[1] == 1):
            logger.debug("Removal would empty the matrix; stopping at shape %s", m.shape)
            break

        if remove_row:
            logger.debug("Removing row %r (sum %s)", m.index[r], row_sums[r])
            m = m.iloc[np.arange(m.shape[0]) != r, :]
        else:
            logger.debug("Removing column %r (sum %s)", m.columns[c], col_sums[c])
            m = m.iloc[:, np.arange(m.shape[1]) != c]
        n_removed += 1

        if 1 in m.shape:
            logger.debug("Matrix reduced to shape %s; stopping", m.shape)
            break

    logger.info(
        "Removed %d row(s) and %d column(s) in %d iteration(s); %d x %d matrix retained",
        n_rows - m.shape[0], n_cols - m.shape[1], n_removed, m.shape[0], m.shape[1]
    )
    return m
