"""
Error handling utilities for degheatmap
Heatmap error taxonomy plus actionable diagnostics for the caller
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional


class HeatmapError(Exception):
    """Base class for errors raised while assembling a heatmap"""
    category = "heatmap_unknown"


class NoSignificantGenesError(HeatmapError):
    """Both cohorts are empty after significance filtering"""
    category = "no_significant_genes"


class ClusteringFailedError(HeatmapError):
    """A clustering service call failed"""
    category = "clustering_failed"

    def __init__(self, message: str, cohort: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.cohort = cohort
        self.status_code = status_code


class ColumnSetMismatchError(HeatmapError):
    """Two clustering results were computed over different sample sets"""
    category = "column_mismatch"

    def __init__(self, message: str, missing: Iterable[str] = (), extra: Iterable[str] = ()):
        super().__init__(message)
        self.missing = list(missing)
        self.extra = list(extra)


@dataclass
class DiagnosticError:
    """Structured error with diagnostic information"""
    message: str
    category: str
    diagnostic_commands: List[str]
    suggested_fix: str
    severity: str = "error"  # error, warning, info


class ErrorClassifier:
    """Classifies heatmap errors and provides actionable diagnostics"""

    @staticmethod
    def classify_heatmap_error(error: Exception, base_url: Optional[str] = None,
                               dataset_id: Optional[str] = None) -> DiagnosticError:
        """Classify a heatmap build error and provide diagnostics"""
        endpoint = f"{base_url or '<api_url>'}/datasets/{dataset_id or '<dataset_id>'}/cluster"

        if isinstance(error, NoSignificantGenesError):
            return DiagnosticError(
                message="No significant DEGs found.",
                category=error.category,
                diagnostic_commands=[],
                suggested_fix="Relax the adjusted p-value or log fold-change thresholds, or check that the comparison columns were resolved correctly.",
                severity="info"
            )

        elif isinstance(error, ClusteringFailedError):
            cohort = f" for the {error.cohort}-regulated cohort" if error.cohort else ""
            if error.status_code is not None and 400 <= error.status_code < 500:
                fix = "The clustering service rejected the request. Check the linkage method/metric combination and that the expression matrix contains the requested genes."
            else:
                fix = "The clustering service did not respond successfully. Retry the heatmap; if it keeps failing, check that the analysis API is reachable."
            return DiagnosticError(
                message=f"Clustering failed{cohort}: {error}",
                category=error.category,
                diagnostic_commands=[
                    f"curl -sS -X POST {endpoint} -H 'Content-Type: application/json' -d '{{\"gene_ids\": []}}'"
                ],
                suggested_fix=fix,
                severity="error"
            )

        elif isinstance(error, ColumnSetMismatchError):
            commands = []
            if error.missing:
                commands.append(f"# Missing from secondary result: {error.missing[:5]}")
            if error.extra:
                commands.append(f"# Only in secondary result: {error.extra[:5]}")
            return DiagnosticError(
                message="Up- and down-regulated clusterings returned different sample sets",
                category=error.category,
                diagnostic_commands=commands,
                suggested_fix="Both clustering calls must run over the same sample matrix. This is an integration defect in the clustering service and should be reported.",
                severity="error"
            )

        else:
            return DiagnosticError(
                message=f"Heatmap error: {error}",
                category=getattr(error, 'category', 'heatmap_unknown'),
                diagnostic_commands=[],
                suggested_fix="Check that the DE table and the expression matrix belong to the same dataset.",
                severity="error"
            )


def format_error_markdown(error: DiagnosticError) -> str:
    """Format a DiagnosticError as markdown for display"""
    output = f"**{error.message}**\n\n"

    if error.suggested_fix:
        output += f"**Suggested fix:** {error.suggested_fix}\n\n"

    if error.diagnostic_commands:
        output += "**Diagnostic commands:**\n```bash\n"
        output += "\n".join(error.diagnostic_commands)
        output += "\n```"

    return output
