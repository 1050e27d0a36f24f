"""
tpsim Recording Transport

requests transport adapter that records every exchange it carries as a
fixture Pair. The adapter is a passthrough: requests go to the wrapped
adapter unchanged and callers get the real response back.

Example:
    recorder = RecordingAdapter()
    session = requests.Session()
    session.mount("https://", recorder)

    session.get("https://example.tpondemand.com/api/v2/UserStory",
                params={"take": 3, "access_token": token})

    simulation = recorder.build_simulation()
"""

import logging
from typing import List, Optional

from requests import PreparedRequest, Response as HTTPResponse
from requests.adapters import BaseAdapter, HTTPAdapter

from ..common.models import Pair, Request, Response, Simulation
from .utils import classify_body, filter_query, parse_query, select_headers, split_url

logger = logging.getLogger("tpsim.capture")


class RecordingAdapter(BaseAdapter):
    """
    Transport adapter that records request/response pairs.

    One adapter records one scenario run; it is not meant to be shared
    between concurrent captures.
    """

    def __init__(self, base: Optional[BaseAdapter] = None):
        """
        Initialize recording adapter.

        Args:
            base: Adapter that actually performs requests (HTTPAdapter if None)
        """
        super().__init__()
        self.base = base or HTTPAdapter()
        self.pairs: List[Pair] = []

    def send(
        self,
        request: PreparedRequest,
        stream: bool = False,
        timeout=None,
        verify=True,
        cert=None,
        proxies=None
    ) -> HTTPResponse:
        """
        Send the request through the base adapter and record the exchange.

        The whole response body is read before returning, so the caller can
        still consume it. Transport and body read errors propagate and leave
        no pair behind.
        """
        response = self.base.send(
            request,
            stream=stream,
            timeout=timeout,
            verify=verify,
            cert=cert,
            proxies=proxies
        )

        # Buffers the body; later reads come from the buffered copy
        content = response.content

        pair = self._build_pair(request, response, content)
        self.pairs.append(pair)
        logger.debug(
            f"Recorded ({len(self.pairs)} total): {pair.request.method} {pair.request.path} "
            f"-> {pair.response.status}"
        )
        return response

    def _build_pair(self, request: PreparedRequest, response: HTTPResponse, content: bytes) -> Pair:
        """Normalize one exchange into a fixture Pair."""
        path, query_string = split_url(request.url or '')
        content_type = response.headers.get('Content-Type')

        return Pair(
            request=Request(
                method=(request.method or 'GET').upper(),
                path=path,
                query=filter_query(parse_query(query_string))
            ),
            response=Response(
                status=response.status_code,
                headers=select_headers(response.headers),
                body=classify_body(content or b'', content_type)
            )
        )

    def build_simulation(self) -> Simulation:
        """Simulation holding the pairs recorded so far, in call order."""
        return Simulation(pairs=list(self.pairs))

    def reset(self) -> None:
        """Forget recorded pairs."""
        self.pairs = []

    def close(self) -> None:
        self.base.close()
