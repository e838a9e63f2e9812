from unittest.mock import patch

import pytest
from api.main import create_app
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "bragfeed-api"}


@pytest.mark.asyncio
async def test_readiness_reports_unreachable_database(client: AsyncClient):
    with patch("bragfeed.database.get_session", side_effect=ConnectionRefusedError("db down")):
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


def test_create_app_attaches_review_source():
    source = object()
    app = create_app(review_source=source)
    assert app.state.review_source is source
