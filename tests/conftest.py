"""
Pytest configuration and fixtures for degheatmap tests
"""
import sys
import threading
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from heatmap.cohorts import GeneRecord
from heatmap.cluster_analysis import ClusterResult


class StubClusterer:
    """Deterministic stand-in for the clustering service"""

    def __init__(self, results=None, errors=None, on_call=None):
        self.results = results or {}
        self.errors = errors or {}
        self.on_call = on_call
        self.requests = []
        self._lock = threading.Lock()

    def cluster(self, request):
        with self._lock:
            self.requests.append(request)
        if self.on_call:
            self.on_call(request)
        if request.cohort in self.errors:
            raise self.errors[request.cohort]
        return self.results[request.cohort]


@pytest.fixture
def stub_clusterer():
    """Factory for StubClusterer instances"""
    return StubClusterer


@pytest.fixture
def scenario_records():
    """Three genes: one up, one down, one below the fold-change threshold"""
    return [
        GeneRecord('g1', 2.0, 0.01),
        GeneRecord('g2', -3.0, 0.001),
        GeneRecord('g3', 0.1, 0.2),
    ]


@pytest.fixture
def de_table():
    """DE results table with dataset-specific column names"""
    return pd.DataFrame({
        'gene_id': ['g1', 'g2', 'g3', 'g4'],
        'log2FoldChange': [2.0, -3.0, 0.1, 'NA'],
        'padj': [0.01, 0.001, 0.2, 0.01],
        'baseMean': [100.0, 50.0, 20.0, 5.0],
    })


@pytest.fixture
def sample_ids():
    return ['Ctrl_1', 'Ctrl_2', 'Ctrl_3', 'Treat_1', 'Treat_2', 'Treat_3']


@pytest.fixture
def expression_matrix(sample_ids):
    """Log-scale expression for 12 genes; even genes rise in treatment, odd genes fall"""
    np.random.seed(42)
    base = np.random.uniform(4, 10, size=(12, 1))
    noise = np.random.normal(0, 0.3, size=(12, 6))
    shift = np.array([0, 0, 0, 1, 1, 1], dtype=float)
    direction = np.array([1 if i % 2 == 0 else -1 for i in range(12)], dtype=float)[:, None]
    values = base + noise + 2.0 * direction * shift
    index = [f'gene_{i}' for i in range(12)]
    return pd.DataFrame(values, index=index, columns=sample_ids)


@pytest.fixture
def expression_records():
    """DE records matching expression_matrix: even genes up, odd genes down"""
    records = []
    for i in range(12):
        lfc = 1.5 + 0.1 * i
        records.append(GeneRecord(f'gene_{i}', lfc if i % 2 == 0 else -lfc, 0.001))
    return records


@pytest.fixture
def primary_result():
    """Up cohort: columns S1,S2,S3 displayed as S3,S1,S2; rows displayed g2,g1"""
    return ClusterResult(
        matrix=np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]),
        row_labels=('g1', 'g2'),
        col_labels=('S1', 'S2', 'S3'),
        row_order=[1, 0],
        col_order=[2, 0, 1]
    )


@pytest.fixture
def secondary_result():
    """Down cohort clustered over the same samples in a different native order"""
    return ClusterResult(
        matrix=np.array([[10.0, 20.0, 30.0]]),
        row_labels=('g3',),
        col_labels=('S2', 'S3', 'S1'),
        row_order=[0],
        col_order=[2, 1, 0]
    )
