"""
Heatmap assembly for degheatmap
Aligns two independently clustered cohorts onto one sample order and
scales rows to relative expression
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .cluster_analysis import ClusterResult
from .error_handling import ColumnSetMismatchError, NoSignificantGenesError


@dataclass(frozen=True, eq=False)
class AssembledRows:
    """Concatenated raw matrix, up rows first, columns in primary order"""
    matrix: np.ndarray
    row_labels: List[str]
    col_labels: List[str]
    n_up: int


@dataclass(frozen=True, eq=False)
class AssembledHeatmap:
    """Display-ready heatmap: relative expression plus fold-change strip"""
    matrix: np.ndarray
    row_labels: List[str]
    col_labels: List[str]
    fold_changes: np.ndarray
    heatmap_domain: Tuple[float, float] = (-1.0, 1.0)
    logfc_domain: Tuple[float, float] = (-2.0, 2.0)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    def to_dict(self) -> Dict:
        """Plain lists for the rendering layer"""
        return {
            'z': self.matrix.tolist(),
            'x': list(self.col_labels),
            'y': list(self.row_labels),
            'logFCs': self.fold_changes.tolist(),
            'zmin': self.heatmap_domain[0],
            'zmax': self.heatmap_domain[1],
            'logfc_zmin': self.logfc_domain[0],
            'logfc_zmax': self.logfc_domain[1],
        }


def select_primary(up: Optional[ClusterResult],
                   down: Optional[ClusterResult]) -> Tuple[Optional[str], Optional[ClusterResult]]:
    """The up cohort defines the column order when present, else the down cohort"""
    if up is not None:
        return 'up', up
    if down is not None:
        return 'down', down
    return None, None


def reconcile_columns(primary: ClusterResult, secondary: ClusterResult) -> np.ndarray:
    """
    Map the primary's displayed column order onto the secondary's columns

    Returns:
        align_indices where align_indices[i] is the index, within the
        secondary's native col_labels, of the sample shown at position i

    Raises:
        ColumnSetMismatchError: if the two results cover different samples
    """
    primary_order_labels = primary.ordered_col_labels
    lookup = {label: j for j, label in enumerate(secondary.col_labels)}

    missing = [label for label in primary_order_labels if label not in lookup]
    extra = sorted(set(secondary.col_labels) - set(primary.col_labels))
    if missing or extra:
        logger.error(
            f"Column set mismatch between clustering results: "
            f"missing from secondary {missing[:5]}, only in secondary {extra[:5]}"
        )
        raise ColumnSetMismatchError(
            f"Clustering results cover different samples "
            f"({len(missing)} missing, {len(extra)} extra)",
            missing=missing,
            extra=extra
        )

    return np.array([lookup[label] for label in primary_order_labels], dtype=int)


def order_rows(result: ClusterResult, column_indices: Sequence[int]) -> Tuple[np.ndarray, List[str]]:
    """Rows in the result's own dendrogram order, columns picked by column_indices"""
    matrix = result.matrix[np.ix_(result.row_order, np.asarray(column_indices, dtype=int))]
    return matrix, result.ordered_row_labels


def assemble_rows(up: Optional[ClusterResult], down: Optional[ClusterResult]) -> AssembledRows:
    """
    Concatenate the clustered cohorts, up-regulated rows first

    Each cohort keeps its own row order. The primary cohort's columns follow
    its col_order; the secondary's are reprojected onto that same order.
    """
    primary_name, primary = select_primary(up, down)
    if primary is None:
        raise NoSignificantGenesError("No clustered cohorts to assemble")

    col_labels = primary.ordered_col_labels
    n_cols = len(col_labels)

    blocks = {}
    for name, result in (('up', up), ('down', down)):
        if result is None:
            blocks[name] = (np.empty((0, n_cols)), [])
        elif name == primary_name:
            blocks[name] = order_rows(result, result.col_order)
        else:
            blocks[name] = order_rows(result, reconcile_columns(primary, result))

    up_matrix, up_labels = blocks['up']
    down_matrix, down_labels = blocks['down']
    matrix = np.vstack([up_matrix, down_matrix])

    logger.info(
        f"Assembled {matrix.shape[0]} x {matrix.shape[1]} heatmap "
        f"({len(up_labels)} up, {len(down_labels)} down, columns from {primary_name})"
    )
    return AssembledRows(
        matrix=matrix,
        row_labels=up_labels + down_labels,
        col_labels=col_labels,
        n_up=len(up_labels)
    )


def normalize_relative_expression(matrix: np.ndarray) -> np.ndarray:
    """
    Scale each row to relative expression in [-1, 1]

    Rows are centered on their mean and divided by their largest absolute
    deviation. Rows with no variation become all zeros.
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape[0] == 0 or matrix.shape[1] == 0:
        return matrix.copy()

    centered = matrix - matrix.mean(axis=1, keepdims=True)
    max_abs = np.abs(centered).max(axis=1, keepdims=True)

    scaled = np.zeros_like(centered)
    np.divide(centered, max_abs, out=scaled, where=max_abs != 0)
    return scaled


def map_fold_changes(row_labels: Sequence[str], lookup: Dict[str, float]) -> np.ndarray:
    """Fold change per row label; genes absent from lookup get 0.0"""
    missing = [gene for gene in row_labels if gene not in lookup]
    if missing:
        logger.warning(f"No fold change for {len(missing)} heatmap genes, using 0.0: {missing[:5]}")
    return np.array([lookup.get(gene, 0.0) for gene in row_labels], dtype=float)
