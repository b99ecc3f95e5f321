"""
Clustering service client for degheatmap
Requests row/column clustering of each cohort from the analysis API
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

import requests
from loguru import logger

from config import ClusteringServiceSettings, config
from .cluster_analysis import ClusteringRequest, ClusterResult
from .cohorts import Cohort
from .error_handling import ClusteringFailedError


def _error_detail(response: requests.Response) -> str:
    """Best-effort error message from a failed API response"""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason
    if isinstance(body, dict) and body.get('detail'):
        return str(body['detail'])
    return response.reason


class ClusteringServiceClient:
    """Calls POST /datasets/{dataset_id}/cluster on the analysis API"""

    def __init__(self, settings: Optional[ClusteringServiceSettings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or config.clustering_service
        self.session = session or requests.Session()

    def endpoint(self, dataset_id: str) -> str:
        return f"{self.settings.base_url.rstrip('/')}/datasets/{dataset_id}/cluster"

    def cluster(self, request: ClusteringRequest) -> ClusterResult:
        """
        Cluster one cohort remotely

        Raises:
            ClusteringFailedError: on timeout, connection failure, HTTP error
                status or an unusable response payload
        """
        url = self.endpoint(request.dataset_id)
        cohort = request.cohort
        logger.info(f"Requesting clustering of {len(request.gene_ids)} {cohort or ''} genes from {url}")

        try:
            response = self.session.post(
                url,
                json=request.to_payload(),
                headers=self.settings.headers,
                timeout=self.settings.timeout
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise ClusteringFailedError(
                f"Clustering request timed out after {self.settings.timeout}s", cohort=cohort
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise ClusteringFailedError(f"Could not connect to {url}", cohort=cohort) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = _error_detail(e.response) if e.response is not None else str(e)
            raise ClusteringFailedError(
                f"Clustering service returned {status}: {detail}", cohort=cohort, status_code=status
            ) from e
        except requests.exceptions.RequestException as e:
            raise ClusteringFailedError(f"Clustering request failed: {e}", cohort=cohort) from e

        try:
            result = ClusterResult.from_payload(
                response.json(),
                cluster_rows=request.cluster_rows,
                cluster_cols=request.cluster_cols
            )
        except (ValueError, TypeError) as e:
            raise ClusteringFailedError(f"Malformed clustering response: {e}", cohort=cohort) from e

        logger.debug(f"Received {result.shape[0]} x {result.shape[1]} clustered matrix for {cohort}")
        return result


def _run(clusterer, request: ClusteringRequest) -> ClusterResult:
    try:
        return clusterer.cluster(request)
    except ClusteringFailedError:
        raise
    except Exception as e:
        raise ClusteringFailedError(f"Clustering failed: {e}", cohort=request.cohort) from e


def cluster_cohorts(
    clusterer,
    up: Cohort,
    down: Cohort,
    dataset_id: str,
    method: str = 'ward',
    metric: str = 'euclidean',
    cluster_rows: bool = True,
    cluster_cols: bool = True
) -> Tuple[Optional[ClusterResult], Optional[ClusterResult]]:
    """
    Cluster the up and down cohorts concurrently

    Args:
        clusterer: Object with a cluster(ClusteringRequest) method, e.g.
            ClusteringServiceClient or LocalClusterer
        up: Up-regulated cohort
        down: Down-regulated cohort
        dataset_id: Expression matrix dataset both cohorts are clustered against

    Returns:
        (up_result, down_result); None for an empty cohort, which is never sent

    Raises:
        ClusteringFailedError: if either call fails; partial results are dropped
    """
    requests_by_cohort = {
        cohort.name: ClusteringRequest(
            gene_ids=cohort.gene_ids,
            dataset_id=dataset_id,
            method=method,
            metric=metric,
            cluster_rows=cluster_rows,
            cluster_cols=cluster_cols,
            cohort=cohort.name
        )
        for cohort in (up, down) if not cohort.is_empty
    }

    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = {name: executor.submit(_run, clusterer, req) for name, req in requests_by_cohort.items()}
        try:
            results = {name: future.result() for name, future in futures.items()}
        except ClusteringFailedError as e:
            logger.error(f"Clustering failed for {e.cohort} cohort: {e}")
            for future in futures.values():
                future.cancel()
            raise

    return results.get('up'), results.get('down')
