import pytest
from fastapi import status

from app.settings import settings


@pytest.mark.asyncio
async def test_metrics_fail_closed_without_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_admin_token", None)
	monkeypatch.setattr(settings, "obs_metrics_public", False)

	response = await api_client.get("/metrics", headers={"X-Admin-Token": "whatever"})

	assert response.status_code == status.HTTP_403_FORBIDDEN
	assert response.json()["detail"] == "admin_token_not_configured"


@pytest.mark.asyncio
async def test_metrics_with_correct_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_admin_token", "secret-token")
	monkeypatch.setattr(settings, "obs_metrics_public", False)

	response = await api_client.get("/metrics", headers={"X-Admin-Token": "secret-token"})

	assert response.status_code == 200
	assert "campus_http_requests_total" in response.text


@pytest.mark.asyncio
async def test_metrics_reject_wrong_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_admin_token", "secret-token")
	monkeypatch.setattr(settings, "obs_metrics_public", False)

	response = await api_client.get("/metrics", headers={"Authorization": "Bearer nope"})

	assert response.status_code == status.HTTP_403_FORBIDDEN
	assert response.json()["detail"] == "forbidden"


@pytest.mark.asyncio
async def test_metrics_can_be_public(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", True)

	response = await api_client.get("/metrics")

	assert response.status_code == 200
