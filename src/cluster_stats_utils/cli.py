#!/usr/bin/env python
"""
Command-line interface for the cluster statistics utilities.

This module wraps the matrix filter and the global p-value adjustment for use
on tabular files. It handles argument parsing, logging configuration and
file I/O; the computations themselves live in the library modules.

Usage:
    cluster-stats prune --input counts.csv --output pruned.csv --threshold 100
    cluster-stats adjust --input results.tsv --output adjusted.tsv --method bh --verbose
"""

import logging
import sys
from pathlib import Path

import click
import pandas as pd

from cluster_stats_utils.matrix_filter import DEFAULT_THRESHOLD, prune_matrix
from cluster_stats_utils.p_adjust import (
    DEFAULT_METHOD,
    GLOBAL_ADJ_COL,
    LOCAL_ADJ_COL,
    MTC_METHOD_MAP,
    P_VAL_COL,
    adjust_globally,
)

# Configure root logger
logger = logging.getLogger()


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    # Clear any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    console_handler.setLevel(level)

    logger.addHandler(console_handler)


def _normalize_sep(sep: str) -> str:
    return '\t' if sep == '\\t' else sep


@click.group()
def main() -> None:
    """Filtering and multiple testing helpers for per-cluster analyses."""


@main.command()
@click.option('--input', 'input_path', type=click.Path(exists=True), required=True,
              help="Matrix file with row labels in the first column and a header row.")
@click.option('--output', 'output_path', type=click.Path(), required=True,
              help="Where to write the filtered matrix.")
@click.option('--threshold', default=DEFAULT_THRESHOLD, type=float, show_default=True,
              help="Minimum value every retained entry should reach.")
@click.option('--sep', default=',', show_default=True,
              help="Field separator of the input and output files.")
@click.option('--verbose', is_flag=True, default=False,
              help="Enable verbose (debug) logging.")
def prune(input_path: str, output_path: str, threshold: float, sep: str, verbose: bool) -> None:
    """
    Remove the weakest rows/columns of a matrix until all entries reach THRESHOLD.

    Examples:
        cluster-stats prune --input counts.csv --output pruned.csv --threshold 50
    """
    setup_logging(verbose)
    sep = _normalize_sep(sep)

    try:
        logger.info("Reading matrix from %s", input_path)
        matrix = pd.read_csv(input_path, sep=sep, index_col=0)
        logger.debug("Matrix head:\n%s", matrix.head())

        pruned = prune_matrix(matrix, threshold)

        output = Path(output_path)
        output.parent.mkdir(exist_ok=True, parents=True)
        pruned.to_csv(output, sep=sep)
        logger.info("Filtered matrix saved to %s", output)
    except Exception as e:
        logger.exception("Error during matrix filtering: %s", str(e))
        raise


@main.command()
@click.option('--input', 'input_path', type=click.Path(exists=True), required=True,
              help="Long-format results table with one row per comparison, cluster and feature.")
@click.option('--output', 'output_path', type=click.Path(), required=True,
              help="Where to write the results with globally adjusted p-values.")
@click.option('--method', type=click.Choice(list(MTC_METHOD_MAP), case_sensitive=False),
              default=DEFAULT_METHOD, show_default=True,
              help=("Multiple testing correction applied across comparisons: "
                    "`holm` = Holm; `bonf` = Bonferroni; `sidak` = Šidák; "
                    "`bh` = Benjamini–Hochberg (FDR); `by` = Benjamini–Yekutieli."))
@click.option('--comparison-col', default='contrast', show_default=True,
              help="Column identifying the comparison.")
@click.option('--cluster-col', default='cluster_id', show_default=True,
              help="Column identifying the cluster.")
@click.option('--sep', default='\t', show_default=True,
              help="Field separator of the input and output files.")
@click.option('--verbose', is_flag=True, default=False,
              help="Enable verbose (debug) logging.")
def adjust(input_path: str, output_path: str, method: str, comparison_col: str,
           cluster_col: str, sep: str, verbose: bool) -> None:
    """
    Add globally adjusted p-values to per-cluster differential results.

    P-values of each cluster are corrected jointly across all comparisons and
    written to a `p_adj.glb` column placed right after `p_adj.loc`.

    Examples:
        cluster-stats adjust --input results.tsv --output adjusted.tsv --method bh
    """
    setup_logging(verbose)
    sep = _normalize_sep(sep)

    try:
        logger.info("Reading results from %s", input_path)
        df = pd.read_csv(input_path, sep=sep)
        for col in (comparison_col, cluster_col):
            if col not in df.columns:
                raise click.UsageError(f"Input has no {col!r} column")
            n_missing = df[col].isna().sum()
            if n_missing:
                raise click.UsageError(f"{n_missing} row(s) of the input have no {col!r} value")

        if df.empty:
            # adjust the header alone so the output keeps its columns
            results = {None: {None: df}}
        else:
            results = {
                k: {c: tbl.reset_index(drop=True)
                    for c, tbl in df_k.groupby(cluster_col, sort=False)}
                for k, df_k in df.groupby(comparison_col, sort=False)
            }
        logger.debug("Split results into %d comparison(s)", len(results))

        adjusted = adjust_globally(results, method=method, p_col=P_VAL_COL,
                                   local_col=LOCAL_ADJ_COL, global_col=GLOBAL_ADJ_COL)

        out_df = pd.concat(
            [tbl for tables in adjusted.values() for tbl in tables.values()],
            ignore_index=True
        )
        output = Path(output_path)
        output.parent.mkdir(exist_ok=True, parents=True)
        out_df.to_csv(output, sep=sep, index=False)
        logger.info("Adjusted results saved to %s", output)
    except Exception as e:
        logger.exception("Error during global p-value adjustment: %s", str(e))
        raise


if __name__ == "__main__":
    main()
