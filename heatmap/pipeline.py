"""
DEG heatmap pipeline for degheatmap
Cohort split -> concurrent clustering -> alignment -> normalization
"""
import itertools
import threading
from typing import Iterable, Optional

from loguru import logger

from config import HeatmapSettings, config
from .assembly import AssembledHeatmap, assemble_rows, map_fold_changes, normalize_relative_expression
from .cohorts import GeneRecord, fold_change_lookup, split_cohorts
from .clustering_client import cluster_cohorts
from .error_handling import ErrorClassifier, HeatmapError
from .result import Result


def build_heatmap(
    records: Iterable[GeneRecord],
    clusterer,
    dataset_id: str,
    settings: Optional[HeatmapSettings] = None
) -> AssembledHeatmap:
    """
    Build the clustered DEG heatmap for one comparison

    Args:
        records: DE records of the comparison
        clusterer: Object with a cluster(ClusteringRequest) method
        dataset_id: Expression matrix dataset to cluster against
        settings: Heatmap settings, defaults to config.heatmap

    Returns:
        AssembledHeatmap with relative expression and fold-change strip

    Raises:
        NoSignificantGenesError: no gene passes the filters
        ClusteringFailedError: a clustering call failed
        ColumnSetMismatchError: the two clusterings disagree on samples
    """
    settings = settings or config.heatmap
    records = list(records)

    up, down = split_cohorts(
        records,
        padj_threshold=settings.padj_threshold,
        logfc_threshold=settings.logfc_threshold,
        budget=settings.top_n_genes,
        reserve=settings.cohort_reserve
    )

    up_result, down_result = cluster_cohorts(
        clusterer, up, down, dataset_id,
        method=settings.method,
        metric=settings.metric,
        cluster_rows=settings.cluster_rows,
        cluster_cols=settings.cluster_cols
    )

    rows = assemble_rows(up_result, down_result)

    return AssembledHeatmap(
        matrix=normalize_relative_expression(rows.matrix),
        row_labels=rows.row_labels,
        col_labels=rows.col_labels,
        fold_changes=map_fold_changes(rows.row_labels, fold_change_lookup(records)),
        heatmap_domain=tuple(settings.heatmap_domain),
        logfc_domain=tuple(settings.logfc_domain)
    )


class HeatmapRequestTracker:
    """
    Hands out monotonically increasing request tokens

    Only the most recently issued token is current; results built for an
    older token are discarded instead of being shown.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest = next(self._counter)
            return self._latest

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest

    def is_current(self, token: int) -> bool:
        return token == self.latest


def build_heatmap_for_token(
    tracker: HeatmapRequestTracker,
    token: int,
    records: Iterable[GeneRecord],
    clusterer,
    dataset_id: str,
    settings: Optional[HeatmapSettings] = None
) -> Optional[AssembledHeatmap]:
    """
    Build a heatmap, returning None if a newer request was issued meanwhile

    A failure of a superseded request is discarded the same way; only the
    current request's errors reach the caller.
    """
    try:
        heatmap = build_heatmap(records, clusterer, dataset_id, settings)
    except HeatmapError as e:
        if not tracker.is_current(token):
            logger.warning(f"Discarding failed heatmap for stale request {token} (latest is {tracker.latest}): {e}")
            return None
        raise
    if not tracker.is_current(token):
        logger.warning(f"Discarding heatmap for stale request {token} (latest is {tracker.latest})")
        return None
    return heatmap


def run_heatmap(
    records: Iterable[GeneRecord],
    clusterer,
    dataset_id: str,
    settings: Optional[HeatmapSettings] = None
) -> Result:
    """
    Build a heatmap and report the outcome as a Result

    Heatmap errors become error results carrying their category and a
    markdown diagnostic; they are never turned into an empty matrix.
    """
    records = list(records)
    try:
        heatmap = build_heatmap(records, clusterer, dataset_id, settings)
    except HeatmapError as e:
        diagnostic = ErrorClassifier.classify_heatmap_error(
            e, base_url=config.clustering_service.base_url, dataset_id=dataset_id
        )
        if diagnostic.severity == "error":
            logger.error(f"Heatmap build failed [{diagnostic.category}]: {e}")
        else:
            logger.info(f"Heatmap not built [{diagnostic.category}]: {e}")
        return Result.from_diagnostic(diagnostic)

    n_rows, n_cols = heatmap.shape
    result = Result.ok(
        data={'heatmap': heatmap},
        message=f"Assembled {n_rows} x {n_cols} heatmap"
    )
    lookup = fold_change_lookup(records)
    missing = [gene for gene in heatmap.row_labels if gene not in lookup]
    if missing:
        result.add_warning(f"{len(missing)} heatmap genes had no fold change and are shown as 0.0")
    return result
