"""
Tests for the clustering service client and concurrent cohort clustering
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import ClusteringServiceSettings
from heatmap.cluster_analysis import ClusteringRequest
from heatmap.clustering_client import ClusteringServiceClient, cluster_cohorts
from heatmap.cohorts import Cohort
from heatmap.error_handling import ClusteringFailedError


PAYLOAD = {
    'data': [[1.0, 2.0], [3.0, 4.0]],
    'row_labels': ['g1', 'g2'],
    'col_labels': ['S1', 'S2'],
    'row_order': [1, 0],
    'col_order': [0, 1],
}


@pytest.fixture
def settings():
    return ClusteringServiceSettings(base_url='http://api.test/v1/', access_token='tok', timeout=5)


def make_session(payload=None, raise_for_status=None, post_error=None):
    session = MagicMock()
    response = MagicMock()
    response.json.return_value = payload
    if raise_for_status is not None:
        response.raise_for_status.side_effect = raise_for_status
    session.post.return_value = response
    if post_error is not None:
        session.post.side_effect = post_error
    return session


def request_for(cohort='up'):
    return ClusteringRequest(('g1', 'g2'), 'ds1', cohort=cohort)


class TestClusteringServiceClient:
    """Tests for the HTTP clustering client"""

    def test_posts_to_cluster_endpoint(self, settings):
        session = make_session(PAYLOAD)
        client = ClusteringServiceClient(settings, session=session)
        result = client.cluster(request_for())

        args, kwargs = session.post.call_args
        assert args[0] == 'http://api.test/v1/datasets/ds1/cluster'
        assert kwargs['json']['gene_ids'] == ['g1', 'g2']
        assert kwargs['json']['top_n_genes'] == 2
        assert kwargs['headers']['Authorization'] == 'Bearer tok'
        assert kwargs['timeout'] == 5
        assert result.ordered_row_labels == ['g2', 'g1']

    def test_no_auth_header_without_token(self):
        session = make_session(PAYLOAD)
        client = ClusteringServiceClient(
            ClusteringServiceSettings(base_url='http://api.test', access_token=None), session=session
        )
        client.cluster(request_for())
        assert 'Authorization' not in session.post.call_args.kwargs['headers']

    def test_timeout_raises_clustering_failed(self, settings):
        session = make_session(post_error=requests.exceptions.Timeout())
        client = ClusteringServiceClient(settings, session=session)
        with pytest.raises(ClusteringFailedError, match='timed out') as exc_info:
            client.cluster(request_for('down'))
        assert exc_info.value.cohort == 'down'

    def test_connection_error_raises_clustering_failed(self, settings):
        session = make_session(post_error=requests.exceptions.ConnectionError())
        client = ClusteringServiceClient(settings, session=session)
        with pytest.raises(ClusteringFailedError, match='connect'):
            client.cluster(request_for())

    def test_http_error_surfaces_detail(self, settings):
        error_response = MagicMock()
        error_response.status_code = 422
        error_response.json.return_value = {'detail': 'ward requires euclidean'}
        session = make_session(
            raise_for_status=requests.exceptions.HTTPError(response=error_response)
        )
        client = ClusteringServiceClient(settings, session=session)
        with pytest.raises(ClusteringFailedError, match='ward requires euclidean') as exc_info:
            client.cluster(request_for())
        assert exc_info.value.status_code == 422

    def test_malformed_payload(self, settings):
        session = make_session({'row_labels': ['g1']})
        client = ClusteringServiceClient(settings, session=session)
        with pytest.raises(ClusteringFailedError, match='Malformed'):
            client.cluster(request_for())

    def test_invalid_json(self, settings):
        session = make_session()
        session.post.return_value.json.side_effect = ValueError('no json')
        client = ClusteringServiceClient(settings, session=session)
        with pytest.raises(ClusteringFailedError):
            client.cluster(request_for())

    @pytest.mark.parametrize('key, value', [
        ('row_order', 0),
        ('row_order', '10'),
        ('col_order', [0.5, 1.7]),
        ('row_labels', None),
        ('col_labels', 'S1'),
        ('data', {'g1': [1.0, 2.0]}),
        ('data', [[1.0, 2.0], [3.0]]),
    ])
    def test_bad_field_raises_clustering_failed(self, settings, key, value):
        payload = dict(PAYLOAD, **{key: value})
        client = ClusteringServiceClient(settings, session=make_session(payload))
        with pytest.raises(ClusteringFailedError, match='Malformed') as exc_info:
            client.cluster(request_for('down'))
        assert exc_info.value.cohort == 'down'


class TestClusterCohorts:
    """Tests for clustering both cohorts together"""

    def test_both_cohorts_clustered(self, stub_clusterer, primary_result, secondary_result):
        clusterer = stub_clusterer({'up': primary_result, 'down': secondary_result})
        up = Cohort('up', ('g1', 'g2'), (2.0, 3.0))
        down = Cohort('down', ('g3',), (-2.0,))

        up_result, down_result = cluster_cohorts(clusterer, up, down, 'ds1', method='average')

        assert up_result is primary_result
        assert down_result is secondary_result
        assert sorted(r.cohort for r in clusterer.requests) == ['down', 'up']
        assert all(r.dataset_id == 'ds1' and r.method == 'average' for r in clusterer.requests)

    def test_empty_cohort_not_requested(self, stub_clusterer, primary_result):
        clusterer = stub_clusterer({'up': primary_result})
        up_result, down_result = cluster_cohorts(
            clusterer, Cohort('up', ('g1', 'g2'), (2.0, 3.0)), Cohort('down'), 'ds1'
        )
        assert down_result is None
        assert up_result is primary_result
        assert [r.cohort for r in clusterer.requests] == ['up']

    def test_failure_aborts_both(self, stub_clusterer, primary_result):
        clusterer = stub_clusterer(
            {'up': primary_result},
            errors={'down': ClusteringFailedError('boom', cohort='down')}
        )
        with pytest.raises(ClusteringFailedError) as exc_info:
            cluster_cohorts(
                clusterer, Cohort('up', ('g1',), (2.0,)), Cohort('down', ('g3',), (-2.0,)), 'ds1'
            )
        assert exc_info.value.cohort == 'down'

    def test_unexpected_errors_wrapped(self, stub_clusterer):
        clusterer = stub_clusterer(errors={'up': RuntimeError('socket closed')})
        with pytest.raises(ClusteringFailedError, match='socket closed'):
            cluster_cohorts(clusterer, Cohort('up', ('g1',), (2.0,)), Cohort('down'), 'ds1')
