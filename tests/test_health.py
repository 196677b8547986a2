"""
Health Check Tests
==================

Tests for the health check endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(anon_client: AsyncClient):
    """Test the health check endpoint."""
    response = await anon_client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert "version" in data
    assert "environment" in data


@pytest.mark.asyncio
async def test_root_endpoint(anon_client: AsyncClient):
    """Test the root endpoint."""
    response = await anon_client.get("/")

    assert response.status_code == 200
    data = response.json()

    assert data["name"] == "Task Board API"
    assert "version" in data
