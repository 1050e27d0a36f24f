"""
Tests for the Simulation Server

Tests the FastAPI-based simulation server including:
- Replay of matched pairs (status, headers, body bytes)
- Diagnostic 404 for unmatched requests
- Inbound request log
- Admin API endpoints
- Background listener lifecycle
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
import requests

try:
    from fastapi.testclient import TestClient
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from tpsim.common import JsonBody, OpaqueBody, Pair, Request, Response, ServerConfig, Simulation, save_simulation
from tpsim.mock import SimulationServer, create_simulation_server


pytestmark = pytest.mark.skipif(not FASTAPI_AVAILABLE, reason="FastAPI not installed")

STORIES = {'items': [{'id': 1, 'name': 'Test UserStory 1'}, {'id': 2, 'name': 'Test UserStory 2'}]}

META_XML = '<ResourceMetadataDescription Name="UserStory" Description="Redacted description"/>'


@pytest.fixture
def sample_simulation():
    """Simulation covering JSON, XML, error and status-less pairs."""
    return Simulation(pairs=[
        Pair(
            request=Request('GET', '/api/v2/UserStory', {'take': '3'}),
            response=Response(200, {'Content-Type': 'application/json; charset=utf-8'}, JsonBody(STORIES)),
            description='query_collection'
        ),
        Pair(
            request=Request('GET', '/api/v1/UserStories/meta'),
            response=Response(200, {'Content-Type': 'application/xml'}, OpaqueBody(META_XML))
        ),
        Pair(
            request=Request('GET', '/api/v1/UserStories/999999'),
            response=Response(404, {}, JsonBody({'Status': 'NotFound'}))
        ),
        Pair(
            request=Request('POST', '/api/v1/Comments'),
            response=Response(0, {}, JsonBody({'Id': 5}))
        ),
    ])


@pytest.fixture
def server(sample_simulation):
    """Simulation server (not listening)."""
    return SimulationServer(sample_simulation)


@pytest.fixture
def client(server):
    """TestClient for the simulation server app."""
    return TestClient(server.get_app())


class TestReplay:
    """Tests for matched requests."""

    def test_matched_json_pair(self, client, sample_simulation):
        response = client.get("/api/v2/UserStory", params={'take': 3})

        assert response.status_code == 200
        assert response.headers['content-type'] == 'application/json; charset=utf-8'
        assert response.content == sample_simulation.pairs[0].response.body_bytes()
        assert response.json() == STORIES

    def test_opaque_body_sent_verbatim(self, client):
        response = client.get("/api/v1/UserStories/meta")

        assert response.status_code == 200
        assert response.headers['content-type'] == 'application/xml'
        assert response.text == META_XML

    def test_recorded_error_status(self, client):
        response = client.get("/api/v1/UserStories/999999")

        assert response.status_code == 404
        assert response.json() == {'Status': 'NotFound'}

    def test_default_content_type_and_status(self, client):
        response = client.post("/api/v1/Comments", json={'Description': 'hi'})

        assert response.status_code == 200
        assert response.headers['content-type'] == 'application/json'
        assert response.json() == {'Id': 5}

    def test_extra_query_params_ignored(self, client):
        response = client.get("/api/v2/UserStory?take=3&extra=1")

        assert response.status_code == 200

    def test_fixture_content_length_header_not_sent(self):
        simulation = Simulation(pairs=[Pair(
            request=Request('GET', '/x'),
            response=Response(200, {'Content-Length': '999', 'Content-Type': 'text/plain'}, OpaqueBody('abc'))
        )])
        client = TestClient(SimulationServer(simulation).get_app())

        response = client.get("/x")

        assert response.headers['content-length'] == '3'
        assert response.text == 'abc'

    def test_nonstandard_method_replayed(self):
        simulation = Simulation(pairs=[Pair(
            request=Request('PROPFIND', '/api/v1/Attachments'),
            response=Response(207, {}, JsonBody({'Items': []}))
        )])
        client = TestClient(SimulationServer(simulation).get_app())

        response = client.request('PROPFIND', "/api/v1/Attachments")

        assert response.status_code == 207
        assert response.json() == {'Items': []}

    def test_encoded_question_mark_in_path(self):
        simulation = Simulation(pairs=[Pair(
            request=Request('GET', '/api/v2/UserStory/a?b', {'take': '1'}),
            response=Response(200, {}, JsonBody({'id': 1}))
        )])
        server = SimulationServer(simulation)
        client = TestClient(server.get_app())

        response = client.get("/api/v2/UserStory/a%3Fb?take=1")

        assert response.status_code == 200
        recorded = server.requests()[0]
        assert recorded.path == '/api/v2/UserStory/a?b'
        assert recorded.query == {'take': ['1']}


class TestNoMatch:
    """Tests for unmatched requests."""

    def test_different_query_value(self, client):
        response = client.get("/api/v2/UserStory", params={'take': 5})

        assert response.status_code == 404

    def test_missing_pinned_param(self, client):
        assert client.get("/api/v2/UserStory").status_code == 404

    def test_trailing_slash(self, client):
        assert client.get("/api/v1/UserStories/meta/").status_code == 404

    def test_method_mismatch(self, client):
        assert client.delete("/api/v1/UserStories/meta").status_code == 404

    @pytest.mark.parametrize('method', ['TRACE', 'PROPFIND', 'PURGE'])
    def test_any_method_gets_diagnostic(self, method):
        client = TestClient(SimulationServer(Simulation()).get_app())

        response = client.request(method, "/api/v2/UserStory")

        assert response.status_code == 404
        assert response.text.startswith(f'no matching simulation for {method} ')

    def test_diagnostic_body(self):
        client = TestClient(SimulationServer(Simulation()).get_app())

        response = client.get("/api/v2/Nope", params={'take': 1})

        assert response.status_code == 404
        assert response.headers['content-type'].startswith('text/plain')
        assert response.text.startswith('no matching simulation for GET ')
        assert '/api/v2/Nope?take=1' in response.text


class TestRequestLog:
    """Tests for the inbound request log."""

    def test_requests_recorded_in_order(self, client, server):
        client.get("/api/v2/UserStory", params={'take': 3})
        client.get("/api/v2/Unknown")
        client.post("/api/v1/Comments")

        recorded = server.requests()

        assert [(r.method, r.path) for r in recorded] == [
            ('GET', '/api/v2/UserStory'),
            ('GET', '/api/v2/Unknown'),
            ('POST', '/api/v1/Comments'),
        ]
        assert recorded[0].query == {'take': ['3']}

    def test_requests_returns_copy(self, client, server):
        client.get("/api/v2/UserStory")

        server.requests().clear()

        assert len(server.requests()) == 1

    def test_clear_requests(self, client, server):
        client.get("/a")
        client.get("/b")

        assert server.clear_requests() == 2
        assert server.requests() == []


class TestAdminAPI:
    """Tests for admin endpoints."""

    @pytest.fixture
    def admin_server(self, sample_simulation):
        return SimulationServer(sample_simulation, config=ServerConfig(admin_enabled=True))

    @pytest.fixture
    def admin_client(self, admin_server):
        return TestClient(admin_server.get_app())

    def test_admin_requests(self, admin_client):
        admin_client.get("/api/v2/UserStory", params={'take': 3})

        data = admin_client.get("/__admin__/requests").json()

        assert data['total'] == 1
        assert data['requests'][0] == {'method': 'GET', 'path': '/api/v2/UserStory', 'query': {'take': ['3']}}

    def test_admin_calls_not_logged(self, admin_client, admin_server):
        admin_client.get("/__admin__/requests")
        admin_client.get("/__admin__/pairs")

        assert admin_server.requests() == []

    def test_admin_clear_requests(self, admin_client, admin_server):
        admin_client.get("/api/v2/Unknown")

        data = admin_client.delete("/__admin__/requests").json()

        assert data == {'status': 'cleared', 'cleared_count': 1}
        assert admin_server.requests() == []

    def test_admin_pairs(self, admin_client):
        data = admin_client.get("/__admin__/pairs").json()

        assert data['total'] == 4
        assert data['pairs'][0] == {
            'description': 'query_collection',
            'method': 'GET',
            'path': '/api/v2/UserStory',
            'query': {'take': '3'},
            'status': 200
        }
        assert data['pairs'][3]['status'] == 200

    def test_admin_disabled_by_default(self, client, server):
        response = client.get("/__admin__/requests")

        assert response.status_code == 404
        assert server.requests()[0].path == '/__admin__/requests'


class TestLiveServer:
    """Tests for the background listener."""

    def test_serves_over_http(self, sample_simulation):
        with SimulationServer(sample_simulation) as server:
            response = requests.get(f"{server.url}/api/v2/UserStory", params={'take': 3}, timeout=5)

        assert response.status_code == 200
        assert response.json() == STORIES

    def test_url_uses_picked_port(self, sample_simulation):
        with SimulationServer(sample_simulation) as server:
            assert server.port > 0
            assert server.url == f"http://127.0.0.1:{server.port}"

    def test_url_before_start(self, server):
        with pytest.raises(RuntimeError):
            server.url

    def test_close_is_idempotent(self, sample_simulation):
        server = SimulationServer(sample_simulation).start()

        server.close()
        server.close()

    def test_close_without_start(self, server):
        server.close()

    def test_start_twice(self, sample_simulation):
        with SimulationServer(sample_simulation) as server:
            with pytest.raises(RuntimeError):
                server.start()

    def test_concurrent_requests_all_logged(self, sample_simulation):
        with SimulationServer(sample_simulation) as server:
            def fetch(i):
                return requests.get(f"{server.url}/api/v2/UserStory", params={'take': 3, 'n': i}, timeout=5)

            with ThreadPoolExecutor(max_workers=8) as pool:
                responses = list(pool.map(fetch, range(20)))

            recorded = server.requests()

        assert all(r.status_code == 200 for r in responses)
        assert len(recorded) == 20
        assert sorted(int(r.query['n'][0]) for r in recorded) == list(range(20))


class TestServeForever:
    """Tests for the foreground runner."""

    def test_free_port_shown_in_banner(self, sample_simulation, capsys):
        server = SimulationServer(sample_simulation)

        with patch('tpsim.mock.server.uvicorn.Server') as server_cls:
            server.serve_forever(port=0)

        sock = server_cls.return_value.run.call_args.kwargs['sockets'][0]
        try:
            port = sock.getsockname()[1]
        finally:
            sock.close()

        assert port > 0
        assert f"Listening: http://127.0.0.1:{port}" in capsys.readouterr().out
        assert server_cls.call_args[0][0].port == port

    def test_configured_port_used_when_not_given(self, sample_simulation):
        server = SimulationServer(sample_simulation, config=ServerConfig(port=0))

        with patch('tpsim.mock.server.uvicorn.Server') as server_cls:
            server.serve_forever()

        sock = server_cls.return_value.run.call_args.kwargs['sockets'][0]
        sock.close()
        assert server_cls.call_args[0][0].host == '127.0.0.1'


class TestCreateSimulationServer:
    """Tests for create_simulation_server."""

    def test_from_directory(self, tmp_path, sample_simulation):
        save_simulation(tmp_path / 'stories.json', sample_simulation)

        server = create_simulation_server(str(tmp_path), admin_enabled=True)

        assert len(server.simulation) == 4
        assert server.config.admin_enabled is True
        assert server.config.port == 0
