import json

import httpx
import pytest

from src.lifecycle.infrastructure.adapters import HttpHealthCheckVerifier, WebhookAlertService


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_health_probe_targets_container_hostname():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.host, request.url.path))
        return httpx.Response(200, json={"status": "ok"})

    verifier = HttpHealthCheckVerifier(resource_prefix="xcord", client=client_for(handler))
    probe = await verifier.verify_instance_health("acme.xcord.net")

    assert probe.is_healthy
    assert probe.error_message is None
    assert seen == [("xcord-acme-api", "/api/v1/health")]
    await verifier.aclose()


@pytest.mark.anyio
async def test_health_probe_reports_status_code():
    verifier = HttpHealthCheckVerifier(client=client_for(lambda request: httpx.Response(503)))

    probe = await verifier.verify_instance_health("acme.xcord.net")

    assert not probe.is_healthy
    assert probe.error_message == "Health endpoint returned 503 Service Unavailable"


@pytest.mark.anyio
async def test_health_probe_transport_error_is_unhealthy():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    verifier = HttpHealthCheckVerifier(client=client_for(handler))
    probe = await verifier.verify_instance_health("acme.xcord.net")

    assert not probe.is_healthy
    assert probe.error_message.startswith("Health check failed: ")


def test_health_probe_url_uses_port_and_path():
    verifier = HttpHealthCheckVerifier(resource_prefix="hub", port=8080, path="healthz")
    assert verifier.url_for("beta.example.org") == "http://hub-beta-api:8080/healthz"


@pytest.mark.anyio
async def test_alert_payload():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(204)

    alerts = WebhookAlertService("https://alerts.example.org/hook", client=client_for(handler))
    await alerts.send_instance_health_alert(7, "acme.xcord.net", 5, "Container not running")

    assert len(bodies) == 1
    body = bodies[0]
    assert body["type"] == "instance_health_critical"
    assert body["instance_id"] == 7
    assert body["domain"] == "acme.xcord.net"
    assert body["consecutive_failures"] == 5
    assert body["error_message"] == "Container not running"
    assert "timestamp" in body


@pytest.mark.anyio
async def test_alert_failures_are_not_raised():
    alerts = WebhookAlertService("https://alerts.example.org/hook", client=client_for(lambda r: httpx.Response(500)))
    await alerts.send_instance_health_alert(7, "acme.xcord.net", 5, None)


@pytest.mark.anyio
async def test_alert_skipped_without_webhook():
    calls = []
    alerts = WebhookAlertService(None, client=client_for(lambda r: calls.append(r) or httpx.Response(200)))
    await alerts.send_instance_health_alert(7, "acme.xcord.net", 5, None)
    assert calls == []
