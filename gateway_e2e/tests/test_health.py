import pytest

from gateway_e2e.api_utils import expect_healthy, expect_not_found

pytestmark = pytest.mark.asyncio


async def test_health_reports_healthy(api_request):
    body = await expect_healthy(api_request)

    assert body["status"] == "healthy"


async def test_unknown_route_is_json_404(api_request):
    response = await api_request.get("/api/v1/definitely-not-a-route")

    assert response.status_code == 404
    assert "application/json" in response.headers.get("content-type", "")
    with pytest.raises(AssertionError, match="does not route"):
        expect_not_found(response)
