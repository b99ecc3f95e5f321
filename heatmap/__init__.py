from .error_handling import (
    HeatmapError,
    NoSignificantGenesError,
    ClusteringFailedError,
    ColumnSetMismatchError,
    DiagnosticError,
    ErrorClassifier,
    format_error_markdown
)

from .result import Result

from .cohorts import (
    GeneRecord,
    Cohort,
    records_from_dataframe,
    fold_change_lookup,
    split_cohorts
)

from .cluster_analysis import (
    ClusteringRequest,
    ClusterResult,
    LocalClusterer,
    run_hierarchical_clustering
)

from .clustering_client import (
    ClusteringServiceClient,
    cluster_cohorts
)

from .assembly import (
    AssembledRows,
    AssembledHeatmap,
    select_primary,
    reconcile_columns,
    assemble_rows,
    normalize_relative_expression,
    map_fold_changes
)

from .pipeline import (
    build_heatmap,
    build_heatmap_for_token,
    HeatmapRequestTracker,
    run_heatmap
)

__all__ = [
    # Errors
    'HeatmapError',
    'NoSignificantGenesError',
    'ClusteringFailedError',
    'ColumnSetMismatchError',
    'DiagnosticError',
    'ErrorClassifier',
    'format_error_markdown',
    'Result',
    # Cohorts
    'GeneRecord',
    'Cohort',
    'records_from_dataframe',
    'fold_change_lookup',
    'split_cohorts',
    # Clustering
    'ClusteringRequest',
    'ClusterResult',
    'LocalClusterer',
    'run_hierarchical_clustering',
    'ClusteringServiceClient',
    'cluster_cohorts',
    # Assembly
    'AssembledRows',
    'AssembledHeatmap',
    'select_primary',
    'reconcile_columns',
    'assemble_rows',
    'normalize_relative_expression',
    'map_fold_changes',
    # Pipeline
    'build_heatmap',
    'build_heatmap_for_token',
    'HeatmapRequestTracker',
    'run_heatmap',
]
