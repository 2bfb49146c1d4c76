"""
Integration tests: the directory over a real socket.
"""

import http.client
import json
import socket
from concurrent.futures import ThreadPoolExecutor

import pytest


PASSING_AUTH = "Bearer some-other-token"


def request(port, method, path, body=None, auth=PASSING_AUTH, headers=None, timeout=5):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=timeout)
    request_headers = dict(headers or {})
    if auth is not None:
        request_headers["Authorization"] = auth

    payload = None
    if body is not None:
        payload = json.dumps(body)
        request_headers["Content-Type"] = "application/json"

    try:
        conn.request(method, path, body=payload, headers=request_headers)
        response = conn.getresponse()
        data = response.read()
        return response.status, dict(response.getheaders()), data
    finally:
        conn.close()


class TestServerRoundTrip:
    """End-to-end requests through HTTPServer."""

    def test_list_users(self, live_server):
        status, headers, data = request(live_server.port, "GET", "/users")

        assert status == 200
        assert headers["Content-Type"].startswith("application/json")
        assert headers["Server"] == "UserDirectory/1.0"
        assert [u["userName"] for u in json.loads(data)] == ["Alice", "Bob", "Charlie"]

    def test_crud_cycle(self, live_server):
        port = live_server.port

        status, headers, data = request(port, "POST", "/users", {"UserName": "David", "UserAge": 28})
        assert status == 201
        assert headers["Location"] == "/users/David"
        assert json.loads(data) == {"userName": "David", "userAge": 28}

        status, _, data = request(port, "PUT", "/users/David", {"UserName": "Dave", "UserAge": 29})
        assert status == 204
        assert data == b""

        status, _, data = request(port, "GET", "/users/Dave")
        assert status == 200
        assert json.loads(data) == {"userName": "Dave", "userAge": 29}

        status, _, data = request(port, "GET", "/users/David")
        assert status == 404
        assert data == b""

        assert request(port, "DELETE", "/users/Dave")[0] == 204
        assert request(port, "DELETE", "/users/Dave")[0] == 404

    def test_encoded_name_round_trip(self, live_server):
        port = live_server.port

        status, headers, _ = request(port, "POST", "/users", {"UserName": "a/b", "UserAge": 20})
        assert status == 201

        status, _, data = request(port, "GET", headers["Location"])
        assert status == 200
        assert json.loads(data) == {"userName": "a/b", "userAge": 20}

    def test_missing_authorization(self, live_server):
        status, _, data = request(
            live_server.port, "POST", "/users", {"UserName": "David", "UserAge": 28}, auth=None
        )

        assert status == 401
        assert json.loads(data) == {"error": "Authorization token is missing."}
        assert live_server.server.store.get("David") is None

    def test_malformed_body(self, live_server):
        status, _, data = request(live_server.port, "POST", "/users", {"UserName": "David"})

        assert status == 500
        assert json.loads(data)["error"] == "Internal server error."

    def test_keep_alive_serves_several_requests(self, live_server):
        conn = http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)
        try:
            for name in ("Alice", "Bob", "Charlie"):
                conn.request("GET", f"/users/{name}", headers={"Authorization": PASSING_AUTH})
                response = conn.getresponse()
                assert response.status == 200
                assert json.loads(response.read())["userName"] == name
        finally:
            conn.close()

    def test_connection_close_is_honoured(self, live_server):
        _, headers, _ = request(live_server.port, "GET", "/users", headers={"Connection": "close"})
        assert headers["Connection"] == "close"

    def test_unparseable_request_is_400(self, live_server):
        with socket.create_connection(("127.0.0.1", live_server.port), timeout=5) as sock:
            sock.sendall(b"garbage\r\n\r\n")
            data = sock.recv(4096)

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_concurrent_creates_same_name(self, live_server):
        def create(_):
            return request(live_server.port, "POST", "/users", {"UserName": "Eve", "UserAge": 40})[0]

        with ThreadPoolExecutor(max_workers=8) as executor:
            statuses = list(executor.map(create, range(8)))

        assert statuses.count(201) == 1
        assert statuses.count(400) == 7
        assert len(live_server.server.store) == 4


@pytest.mark.parametrize("path", ["/users", "/users/Alice"])
def test_configured_token_is_rejected(live_server, path):
    status, _, data = request(live_server.port, "GET", path, auth="Bearer my-secure-token")

    assert status == 401
    assert json.loads(data) == {"error": "Invalid or expired token."}


def test_connection_expired_in_queue_gets_503(single_worker_server):
    """A connection left queued past the timeout is answered and closed."""
    port = single_worker_server.port

    holder = http.client.HTTPConnection("127.0.0.1", port, timeout=10)
    try:
        # The only worker now idles on this keep-alive connection.
        holder.request("GET", "/users", headers={"Authorization": PASSING_AUTH})
        response = holder.getresponse()
        response.read()
        assert response.status == 200

        status, headers, data = request(
            port, "GET", "/users", headers={"Connection": "close"}, timeout=10
        )
    finally:
        holder.close()

    assert status == 503
    assert headers["Connection"] == "close"
    assert json.loads(data)["error"].startswith("Server busy")
