"""
Configuration settings for degheatmap
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _api_base_url() -> str:
    """Resolve the analysis API base URL from the environment"""
    url = os.getenv("HEATMAP_API_URL", "").rstrip("/")
    return url or "http://localhost:8000/api/v1"


@dataclass
class HeatmapSettings:
    """Cohort selection and clustering parameters for the DEG heatmap"""
    # Significance filters
    padj_threshold: float = 0.05
    logfc_threshold: float = 1.0

    # Row budget across both cohorts (0 = all significant genes)
    top_n_genes: int = 100
    cohort_reserve: int = 1000  # over-fetch per cohort before the budget trim

    # Clustering
    method: str = "ward"  # 'single', 'complete', 'average', 'ward'
    metric: str = "euclidean"  # 'euclidean', 'correlation', 'cosine'
    cluster_rows: bool = True
    cluster_cols: bool = True

    # Color domains handed to the rendering layer
    heatmap_domain: Tuple[float, float] = (-1.0, 1.0)
    logfc_domain: Tuple[float, float] = (-2.0, 2.0)


@dataclass
class ClusteringServiceSettings:
    """Remote clustering service settings"""
    base_url: str = field(default_factory=_api_base_url)
    access_token: Optional[str] = field(default_factory=lambda: os.getenv("HEATMAP_API_TOKEN"))
    timeout: float = 120.0  # seconds

    @property
    def headers(self) -> dict:
        """Request headers, with bearer auth when a token is configured"""
        headers = {'Content-Type': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        return headers


# Global configuration instance
class Config:
    """Main configuration class"""

    def __init__(self):
        self.heatmap = HeatmapSettings()
        self.clustering_service = ClusteringServiceSettings()

        # App settings
        self.app_name = "degheatmap"
        self.version = "0.1.0"
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

    def to_dict(self) -> dict:
        """Export configuration as dictionary"""
        service = dict(self.clustering_service.__dict__)
        if service.get('access_token'):
            service['access_token'] = '***'
        return {
            'heatmap': self.heatmap.__dict__,
            'clustering_service': service,
        }

    def validate(self) -> list:
        """
        Validate all configuration settings.

        Returns:
            List of validation error strings (empty if valid)
        """
        errors = []

        h = self.heatmap
        if not (0 < h.padj_threshold <= 1):
            errors.append(f"heatmap.padj_threshold must be in (0, 1], got {h.padj_threshold}")
        if h.logfc_threshold < 0:
            errors.append(f"heatmap.logfc_threshold must be >= 0, got {h.logfc_threshold}")
        if h.top_n_genes < 0:
            errors.append(f"heatmap.top_n_genes must be >= 0, got {h.top_n_genes}")
        if h.cohort_reserve < 0:
            errors.append(f"heatmap.cohort_reserve must be >= 0, got {h.cohort_reserve}")
        if h.method not in ('single', 'complete', 'average', 'weighted', 'centroid', 'median', 'ward'):
            errors.append(f"heatmap.method is not a known linkage method: {h.method}")
        if h.method in ('ward', 'centroid', 'median') and h.metric != 'euclidean':
            errors.append(f"heatmap.method '{h.method}' requires the euclidean metric, got {h.metric}")

        s = self.clustering_service
        if not s.base_url.startswith(('http://', 'https://')):
            errors.append(f"clustering_service.base_url must be an http(s) URL, got {s.base_url}")
        if s.timeout <= 0:
            errors.append(f"clustering_service.timeout must be > 0, got {s.timeout}")

        return errors


# Create global config instance
config = Config()
