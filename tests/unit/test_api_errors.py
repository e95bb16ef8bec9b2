"""Tests for JSON error handlers and correlation ids."""
from identity_manager.core.errors import StoreUnavailable


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not Found", "message": "Resource not found"}


def test_method_not_allowed(client):
    response = client.patch("/api/users")
    assert response.status_code == 405
    assert response.get_json()["error"] == "Method Not Allowed"


def test_correlation_id_echoed(client):
    response = client.get("/health", headers={"X-Correlation-Id": "trace-42"})
    assert response.headers["X-Correlation-Id"] == "trace-42"


def test_correlation_id_generated(client):
    response = client.get("/health")
    assert len(response.headers["X-Correlation-Id"]) == 32


def test_store_unavailable_hides_detail(client, store, monkeypatch):
    def down():
        raise StoreUnavailable("connect timeout to keycloak:8080")

    monkeypatch.setattr(store, "list_roles", down)
    response = client.get("/api/roles", headers={"X-Correlation-Id": "trace-7"})
    assert response.status_code == 503
    body = response.get_json()
    assert body["correlationId"] == "trace-7"
    assert "keycloak" not in body["message"]


def test_unhandled_exception_is_500_with_correlation_id(client, store, monkeypatch):
    def broken():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(store, "list_users", broken)
    response = client.get("/api/users")
    assert response.status_code == 500
    body = response.get_json()
    assert body["error"] == "Internal Server Error"
    assert body["message"] == "An unexpected error occurred"
    assert body["correlationId"] == response.headers["X-Correlation-Id"]


def test_multiple_forwarded_clients_rejected(client):
    response = client.get("/health", headers={"X-Forwarded-For": "1.2.3.4, 5.6.7.8"})
    assert response.status_code == 400


def test_forwarded_headers_from_untrusted_address_rejected(client):
    response = client.get(
        "/health",
        headers={"X-Forwarded-For": "1.2.3.4"},
        environ_base={"REMOTE_ADDR": "203.0.113.9"},
    )
    assert response.status_code == 400
    assert response.get_json()["message"] == "Untrusted proxy"


def test_forwarded_headers_from_trusted_proxy_accepted(client):
    response = client.get(
        "/health",
        headers={"X-Forwarded-For": "1.2.3.4"},
        environ_base={"REMOTE_ADDR": "127.0.0.1"},
    )
    assert response.status_code == 200


def test_direct_request_from_any_address_accepted(client):
    response = client.get("/health", environ_base={"REMOTE_ADDR": "203.0.113.9"})
    assert response.status_code == 200
