"""HTTP GET fee-estimate source."""

import asyncio
import socket
from datetime import datetime, timezone
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..config.defaults import FetchParams
from ..data.models import Fees
from ..data.parsers import parse_fee_payload
from ..errors import ConfigurationError, FetchError, FetchTransportError
from ..logging.config import get_fetch_logger


class HttpFeeSource:
    """
    Fetches fee estimates from a configured HTTP endpoint.

    Calling the source with an endpoint name performs one GET in a worker
    thread and returns the parsed ``Fees``. It does no retrying of its own.
    """

    def __init__(self, config: FetchParams):
        self.config = config
        self.logger = get_fetch_logger(__name__)

        # Validate URLs
        for name, spec in config.endpoints.items():
            parsed = urlparse(spec.get("url", ""))
            if not parsed.scheme or not parsed.netloc:
                raise ConfigurationError(f"Invalid URL for endpoint {name}: {spec.get('url')}")

    async def __call__(self, endpoint: str) -> Fees:
        spec = self.config.endpoints.get(endpoint)
        if spec is None:
            raise FetchError(f"Unknown endpoint: {endpoint}", endpoint=endpoint)

        body = await asyncio.to_thread(self._get, spec["url"], endpoint)
        return parse_fee_payload(
            body,
            payload_format=spec.get("format", "mempool"),
            endpoint=endpoint,
            fetched_at=datetime.now(timezone.utc)
        )

    def _get(self, url: str, endpoint: str) -> bytes:
        """Blocking GET returning the response body."""
        headers = {
            'Accept': 'application/json',
            'User-Agent': self.config.user_agent
        }
        req = Request(url, headers=headers, method="GET")

        try:
            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                response_code = response.getcode()
                body = response.read()

        except HTTPError as e:
            self.logger.warning(
                "Fee request HTTP error",
                endpoint=endpoint,
                error_code=e.code,
                error_reason=str(e.reason)
            )
            raise FetchTransportError(
                f"HTTP {e.code}: {e.reason}", status_code=e.code, endpoint=endpoint, cause=e
            )

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning(
                "Fee request network error",
                endpoint=endpoint,
                error=str(e)
            )
            raise FetchTransportError(f"Network error: {e}", endpoint=endpoint, cause=e)

        if not 200 <= response_code < 300:
            raise FetchTransportError(
                f"HTTP {response_code}", status_code=response_code, endpoint=endpoint
            )

        self.logger.debug(
            "Fee request completed",
            endpoint=endpoint,
            response_code=response_code,
            size=len(body)
        )
        return body
