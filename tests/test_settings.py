"""
Tests for configuration settings
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import ClusteringServiceSettings, Config, HeatmapSettings


class TestHeatmapSettings:
    """Tests for heatmap defaults"""

    def test_defaults(self):
        settings = HeatmapSettings()
        assert settings.padj_threshold == 0.05
        assert settings.logfc_threshold == 1.0
        assert settings.top_n_genes == 100
        assert settings.method == 'ward'
        assert settings.metric == 'euclidean'
        assert settings.heatmap_domain == (-1.0, 1.0)
        assert settings.logfc_domain == (-2.0, 2.0)


class TestClusteringServiceSettings:
    """Tests for API settings resolved from the environment"""

    def test_default_base_url(self, monkeypatch):
        monkeypatch.delenv('HEATMAP_API_URL', raising=False)
        assert ClusteringServiceSettings().base_url == 'http://localhost:8000/api/v1'

    def test_env_base_url_trailing_slash(self, monkeypatch):
        monkeypatch.setenv('HEATMAP_API_URL', 'https://analysis.example.org/api/v1/')
        assert ClusteringServiceSettings().base_url == 'https://analysis.example.org/api/v1'

    def test_token_header(self, monkeypatch):
        monkeypatch.setenv('HEATMAP_API_TOKEN', 'secret')
        headers = ClusteringServiceSettings().headers
        assert headers['Authorization'] == 'Bearer secret'
        assert headers['Content-Type'] == 'application/json'

    def test_no_token_header(self, monkeypatch):
        monkeypatch.delenv('HEATMAP_API_TOKEN', raising=False)
        assert 'Authorization' not in ClusteringServiceSettings().headers


class TestConfigValidation:
    """Tests for Config.validate"""

    def test_defaults_valid(self, monkeypatch):
        monkeypatch.delenv('HEATMAP_API_URL', raising=False)
        assert Config().validate() == []

    def test_invalid_values(self):
        cfg = Config()
        cfg.heatmap.padj_threshold = 0
        cfg.heatmap.top_n_genes = -5
        cfg.heatmap.metric = 'correlation'
        cfg.clustering_service.timeout = 0
        errors = cfg.validate()
        assert any('padj_threshold' in e for e in errors)
        assert any('top_n_genes' in e for e in errors)
        assert any('euclidean' in e for e in errors)
        assert any('timeout' in e for e in errors)

    def test_unknown_method(self):
        cfg = Config()
        cfg.heatmap.method = 'kmeans'
        assert any('linkage method' in e for e in cfg.validate())

    def test_to_dict_masks_token(self, monkeypatch):
        monkeypatch.setenv('HEATMAP_API_TOKEN', 'secret')
        exported = Config().to_dict()
        assert exported['clustering_service']['access_token'] == '***'
        assert exported['heatmap']['top_n_genes'] == 100
