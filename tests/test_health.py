import httpx

from opboot.health import check_probe


def test_ok_probe_returns_payload():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "ready"}))
    ok, data, latency = check_probe("http://operator/ready", transport=transport)
    assert ok is True
    assert data["status"] == "ready"
    assert data["http_status"] == 200
    assert latency is not None


def test_not_ready_probe():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"status": "not-ready"}))
    ok, data, _ = check_probe("http://operator/ready", transport=transport)
    assert ok is False
    assert data["http_status"] == 503


def test_non_json_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="pong"))
    ok, data, _ = check_probe("http://operator/", transport=transport)
    assert ok is True
    assert data["detail"] == "pong"


def test_no_response():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    ok, data, _ = check_probe("http://operator/", transport=httpx.MockTransport(refuse))
    assert ok is False
    assert data["detail"] == "No response"
