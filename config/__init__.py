from .settings import (
    Config,
    HeatmapSettings,
    ClusteringServiceSettings,
    config
)

__all__ = [
    'Config',
    'HeatmapSettings',
    'ClusteringServiceSettings',
    'config',
]
