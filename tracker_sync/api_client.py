"""HTTP transport shared by the Linear, GitHub and Figma clients."""

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from .errors import UpstreamFetchError
from .pagination import Connection, PageInfo


class APIClient:
    """Thin wrapper around a pooled requests session.

    Failures are raised as UpstreamFetchError and are never retried here.
    """

    def __init__(self, base_url: str, headers: Dict[str, str] = None, name: str = 'API',
                 session: requests.Session = None):
        """Initialize the API client.

        Args:
            base_url: Root URL used for relative paths
            headers: Headers sent with every request (auth, accept)
            name: Service name used in log and error messages
            session: Optional pre-built session (tests)
        """
        self.base_url = base_url.rstrip('/')
        self.name = name
        self.session = session or requests.Session()

        if session is None:
            # Enrichment fans out up to 10 PRs x 2 calls at once
            adapter = HTTPAdapter(pool_connections=50, pool_maxsize=50, max_retries=0)
            self.session.mount('https://', adapter)
            self.session.mount('http://', adapter)

        if headers:
            self.session.headers.update(headers)

    def url_for(self, path: str) -> str:
        if path.startswith('http://') or path.startswith('https://'):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.url_for(path)
        logging.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logging.error(f"{self.name} request failed: {e}")
            raise UpstreamFetchError(f"{self.name} request to {url} failed: {e}") from e

        if response.status_code == 403:
            logging.error(f"{self.name} rate limit or permission error. Response: {response.text}")

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise UpstreamFetchError(
                f"{self.name} request to {url} failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            ) from e

        return response

    def _decode_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logging.error(f"{self.name} returned a non-JSON body: {response.text[:200]}")
            raise UpstreamFetchError(
                f"{self.name} returned a non-JSON response from {response.url}",
                status_code=response.status_code,
            ) from e

    def get_json(self, path: str, params: Dict = None) -> Any:
        """Make a single GET request and return the decoded JSON body."""
        return self._decode_json(self._request('GET', path, params=params))

    def get_page(self, path: str, params: Dict = None) -> Connection:
        """Fetch one page of a REST list endpoint.

        The `next` URL from the Link header becomes the page cursor, so REST
        collections can be drained with the generic paginator.

        Args:
            path: Endpoint path, or the absolute `next` URL of a previous page
            params: Query parameters (only for the first page; the `next`
                URL already carries them)

        Returns:
            Connection with the page's items
        """
        response = self._request('GET', path, params=params)
        data = self._decode_json(response)
        next_url = response.links.get('next', {}).get('url')
        return Connection(
            nodes=list(data or []),
            page_info=PageInfo(has_next_page=bool(next_url), end_cursor=next_url),
        )

    def post_graphql(self, query: str, variables: Dict = None, path: str = '') -> Dict:
        """Make a GraphQL query.

        Args:
            query: GraphQL query string
            variables: Optional query variables
            path: Endpoint path relative to the base URL

        Returns:
            The `data` object of the response

        Raises:
            UpstreamFetchError: If the request fails or returns GraphQL errors
        """
        payload = {'query': query}
        if variables:
            payload['variables'] = variables

        result = self._decode_json(self._request('POST', path or self.base_url, json=payload))

        if result.get('errors'):
            logging.error(f"GraphQL errors: {result['errors']}")
            raise UpstreamFetchError(f"{self.name} GraphQL query failed: {result['errors']}")

        return result.get('data') or {}

    def page_fetcher(self, path: str, params: Optional[Dict] = None):
        """Build a page-fetch callable for the paginator over a REST endpoint."""
        def fetch_page(cursor: Optional[str]) -> Connection:
            if cursor:
                return self.get_page(cursor)
            return self.get_page(path, dict(params or {}))
        return fetch_page
