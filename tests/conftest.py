"""
Shared test helpers for tpsim.
"""

import io
from typing import Dict, List, Optional

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict


class CannedAdapter(BaseAdapter):
    """Transport adapter returning canned responses instead of touching the network."""

    def __init__(
        self,
        status: int = 200,
        body: bytes = b'',
        headers: Optional[Dict[str, str]] = None,
        error: Optional[Exception] = None,
        routes: Optional[Dict[str, tuple]] = None
    ):
        super().__init__()
        self.status = status
        self.body = body
        self.headers = headers or {}
        self.error = error
        # path -> (status, body, headers)
        self.routes = routes or {}
        self.sent: List[requests.PreparedRequest] = []
        self.closed = False

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        if self.error is not None:
            raise self.error

        status, body, headers = self.status, self.body, self.headers
        path = requests.utils.urlparse(request.url).path
        if path in self.routes:
            status, body, headers = self.routes[path]

        response = requests.Response()
        response.status_code = status
        response.headers = CaseInsensitiveDict(headers)
        response.raw = io.BytesIO(body)
        response.url = request.url
        response.request = request
        response.encoding = 'utf-8'
        return response

    def close(self):
        self.closed = True


@pytest.fixture
def canned_adapter():
    """Factory for CannedAdapter instances."""
    return CannedAdapter
