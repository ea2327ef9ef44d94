# Copyright (c) 2025 Stephen Clau
#
# This file is part of MC Status Panel.
#
# MC Status Panel is dual-licensed:
#
# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms
#
# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com
#
# SPDX-License-Identifier: AGPL-3.0-only OR Commercial


import pytest
from aiohttp.test_utils import TestClient, TestServer

from health import SERVICE_NAME, HealthCheckServer


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def health_server():
    """Create a HealthCheckServer instance."""
    return HealthCheckServer(name="Example SMP")


# ============================================================================
# HealthCheckServer Initialization Tests
# ============================================================================

class TestHealthCheckServerInit:
    """Test HealthCheckServer initialization."""

    def test_init_default_params(self):
        server = HealthCheckServer()

        assert server.host == "0.0.0.0"
        assert server.port == 3000
        assert server.runner is None
        assert server.site is None

    def test_routes_registered(self, health_server):
        paths = {route.resource.canonical for route in health_server.app.router.routes()}
        assert {"/", "/health"} <= paths


# ============================================================================
# Endpoint Tests
# ============================================================================

@pytest.mark.asyncio
class TestHealthEndpoints:
    """Exercise the endpoints through aiohttp's test client."""

    async def test_root_is_plain_text(self, health_server):
        async with TestClient(TestServer(health_server.app)) as client:
            response = await client.get("/")

            assert response.status == 200
            assert await response.text() == "Example SMP bot OK"

    async def test_health_is_json(self, health_server):
        async with TestClient(TestServer(health_server.app)) as client:
            response = await client.get("/health")

            assert response.status == 200
            assert await response.json() == {"ok": True, "service": SERVICE_NAME}

    async def test_unknown_path_404(self, health_server):
        async with TestClient(TestServer(health_server.app)) as client:
            response = await client.get("/metrics")
            assert response.status == 404


# ============================================================================
# Lifecycle Tests
# ============================================================================

@pytest.mark.asyncio
class TestHealthCheckServerLifecycle:
    async def test_start_and_stop(self, unused_tcp_port):
        server = HealthCheckServer(host="127.0.0.1", port=unused_tcp_port)

        await server.start()
        assert server.runner is not None
        assert server.site is not None

        await server.stop()
        assert server.runner is None
        assert server.site is None

    async def test_stop_without_start(self):
        server = HealthCheckServer()
        await server.stop()
        assert server.runner is None
