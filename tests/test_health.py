async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "operational"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "healthy"
    # Redis is disabled for tests
    assert body["cache"] == {"enabled": False, "connected": False}


async def test_request_id_is_echoed(client):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["x-request-id"] == "abc123"
