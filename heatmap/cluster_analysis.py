"""
Cluster Analysis for degheatmap
Clustering request/result records and an in-process hierarchical clusterer
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from scipy.cluster.hierarchy import linkage, leaves_list
from sklearn.preprocessing import StandardScaler

from .error_handling import ClusteringFailedError


@dataclass(frozen=True)
class ClusteringRequest:
    """One clustering job: a cohort's genes against a dataset's sample matrix"""
    gene_ids: Tuple[str, ...]
    dataset_id: str
    method: str = 'ward'
    metric: str = 'euclidean'
    cluster_rows: bool = True
    cluster_cols: bool = True
    cohort: Optional[str] = None

    def to_payload(self) -> Dict:
        """JSON body for the clustering endpoint"""
        return {
            'gene_ids': list(self.gene_ids),
            'top_n_genes': len(self.gene_ids),
            'method': self.method,
            'metric': self.metric,
            'cluster_rows': self.cluster_rows,
            'cluster_cols': self.cluster_cols,
        }


def _as_order(order, size: int, axis: str) -> np.ndarray:
    if order is None:
        return np.arange(size)
    order = np.asarray(order)
    if order.size == 0:
        order = order.astype(int)
    elif not np.issubdtype(order.dtype, np.integer):
        raise ValueError(f"{axis}_order must contain integer indices, got dtype {order.dtype}")
    _check_permutation(order, size, axis)
    return order.astype(int)


def _check_permutation(order: np.ndarray, size: int, axis: str):
    if order.ndim != 1:
        raise ValueError(f"{axis}_order must be 1-D, got {order.ndim} dimension(s)")
    if len(order) != size:
        raise ValueError(f"{axis}_order has length {len(order)}, expected {size}")
    if size and not np.array_equal(np.sort(order), np.arange(size)):
        raise ValueError(f"{axis}_order is not a permutation of 0..{size - 1}")


@dataclass(frozen=True, eq=False)
class ClusterResult:
    """
    Output of one clustering call

    The matrix is kept in its native row/column order; row_order and
    col_order are the dendrogram leaf orders as index permutations into it.
    Labels always travel with the axis they describe.
    """
    matrix: np.ndarray
    row_labels: Tuple[str, ...]
    col_labels: Tuple[str, ...]
    row_order: Optional[np.ndarray] = None
    col_order: Optional[np.ndarray] = None

    def __post_init__(self):
        matrix = np.asarray(self.matrix, dtype=float)
        if matrix.size == 0 and matrix.ndim != 2:
            matrix = matrix.reshape(len(self.row_labels), len(self.col_labels))
        if matrix.ndim != 2:
            raise ValueError(f"matrix must be 2-D, got {matrix.ndim} dimension(s)")
        n_rows, n_cols = len(self.row_labels), len(self.col_labels)
        if matrix.shape != (n_rows, n_cols):
            raise ValueError(
                f"matrix shape {matrix.shape} does not match labels ({n_rows}, {n_cols})"
            )
        if len(set(self.col_labels)) != n_cols:
            raise ValueError("col_labels contain duplicate sample identifiers")

        row_order = _as_order(self.row_order, n_rows, "row")
        col_order = _as_order(self.col_order, n_cols, "col")

        # frozen dataclass: normalise fields in place
        object.__setattr__(self, 'matrix', matrix)
        object.__setattr__(self, 'row_labels', tuple(str(x) for x in self.row_labels))
        object.__setattr__(self, 'col_labels', tuple(str(x) for x in self.col_labels))
        object.__setattr__(self, 'row_order', row_order)
        object.__setattr__(self, 'col_order', col_order)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    @property
    def ordered_row_labels(self) -> List[str]:
        return [self.row_labels[i] for i in self.row_order]

    @property
    def ordered_col_labels(self) -> List[str]:
        return [self.col_labels[j] for j in self.col_order]

    @classmethod
    def from_payload(cls, payload: Dict, cluster_rows: bool = True,
                     cluster_cols: bool = True) -> 'ClusterResult':
        """
        Build a ClusterResult from the clustering service JSON response

        The value matrix may be under 'data' or 'z'. A missing order is
        accepted as identity only for an axis that was not clustered.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

        matrix = payload.get('data', payload.get('z'))
        if matrix is None:
            raise ValueError("Response has no value matrix ('data' or 'z')")
        if not isinstance(matrix, list):
            raise ValueError(f"Value matrix must be a list of rows, got {type(matrix).__name__}")
        for key in ('row_labels', 'col_labels'):
            if key not in payload:
                raise ValueError(f"Response is missing '{key}'")
            if not isinstance(payload[key], list):
                raise ValueError(f"'{key}' must be a list, got {type(payload[key]).__name__}")

        row_order = payload.get('row_order')
        col_order = payload.get('col_order')
        if row_order is None and cluster_rows:
            raise ValueError("Response is missing 'row_order'")
        if col_order is None and cluster_cols:
            raise ValueError("Response is missing 'col_order'")
        for key, order in (('row_order', row_order), ('col_order', col_order)):
            if order is not None and not isinstance(order, list):
                raise ValueError(f"'{key}' must be a list, got {type(order).__name__}")

        return cls(
            matrix=np.asarray(matrix, dtype=float),
            row_labels=tuple(payload['row_labels']),
            col_labels=tuple(payload['col_labels']),
            row_order=row_order,
            col_order=col_order
        )


def leaf_order(data: np.ndarray, method: str = 'ward', metric: str = 'euclidean') -> np.ndarray:
    """Dendrogram leaf order of the rows of data"""
    if len(data) < 2:
        return np.arange(len(data))
    return leaves_list(linkage(data, method=method, metric=metric))


def run_hierarchical_clustering(
    data: pd.DataFrame,
    method: str = 'ward',
    metric: str = 'euclidean',
    cluster_rows: bool = True,
    cluster_cols: bool = True
) -> ClusterResult:
    """
    Perform hierarchical clustering on expression data

    Args:
        data: Expression matrix (genes x samples)
        method: Linkage method ('single', 'complete', 'average', 'ward')
        metric: Distance metric ('euclidean', 'correlation', 'cosine')
        cluster_rows: Whether to order genes by their dendrogram
        cluster_cols: Whether to order samples by their dendrogram

    Returns:
        ClusterResult holding the unscaled values in native order
    """
    # Standardize samples for distance computation only
    scaled = StandardScaler().fit_transform(data.values)

    row_order = leaf_order(scaled, method, metric) if cluster_rows else None
    col_order = leaf_order(scaled.T, method, metric) if cluster_cols else None

    return ClusterResult(
        matrix=data.values,
        row_labels=tuple(data.index),
        col_labels=tuple(data.columns),
        row_order=row_order,
        col_order=col_order
    )


class LocalClusterer:
    """
    Clusters cohorts in-process against an expression matrix

    Drop-in replacement for the remote clustering service when the
    expression matrix is already loaded, e.g. for offline use and tests.
    """

    def __init__(self, expression: pd.DataFrame, sample_ids: Optional[Sequence[str]] = None,
                 log_transform: bool = False):
        if sample_ids is not None:
            expression = expression.loc[:, list(sample_ids)]
        if log_transform:
            expression = np.log2(expression + 1)
        self.expression = expression.astype(float)

    def cluster(self, request: ClusteringRequest) -> ClusterResult:
        present = [g for g in request.gene_ids if g in self.expression.index]
        missing = len(request.gene_ids) - len(present)
        if missing:
            logger.warning(f"{missing} requested genes not found in expression matrix")
        if not present:
            raise ClusteringFailedError(
                "None of the requested genes are present in the expression matrix",
                cohort=request.cohort
            )

        try:
            result = run_hierarchical_clustering(
                self.expression.loc[present],
                method=request.method,
                metric=request.metric,
                cluster_rows=request.cluster_rows,
                cluster_cols=request.cluster_cols
            )
        except ValueError as e:
            raise ClusteringFailedError(str(e), cohort=request.cohort) from e

        logger.debug(f"Locally clustered {result.shape[0]} x {result.shape[1]} matrix for {request.cohort}")
        return result
