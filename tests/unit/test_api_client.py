"""Unit tests for the API client against a fake API server."""

from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import BasicAuth, web
from aiohttp.test_utils import TestServer

from brightbox_provider.api.client import ApiClient, _api_error
from brightbox_provider.api.models import (
    AccessToken,
    Listener,
    LoadBalancerOptions,
    ServerOptions,
)
from brightbox_provider.core.errors import ApiError, AuthenticationError

SERVER = {
    "id": "srv-12345",
    "name": "web",
    "status": "creating",
    "image": {"id": "img-abcde", "username": "ubuntu"},
}


class FakeApi:
    """Minimal stand-in for the Brightbox API that records requests."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.server_errors = 0
        self.app = web.Application()
        self.app.router.add_post("/token", self.token)
        self.app.router.add_get("/1.0/servers/{id}", self.get_server)
        self.app.router.add_post("/1.0/servers", self.create_server)
        self.app.router.add_delete("/1.0/servers/{id}", self.accepted)
        self.app.router.add_post("/1.0/cloud_ips/{id}/map", self.accepted)
        self.app.router.add_post("/1.0/load_balancers", self.create_load_balancer)

    async def _record(self, request: web.Request) -> dict[str, Any]:
        body = await request.json() if request.can_read_body else None
        record = {
            "method": request.method,
            "path": request.path,
            "query": dict(request.query),
            "authorization": request.headers.get("Authorization", ""),
            "body": body,
        }
        self.requests.append(record)
        return record

    async def token(self, request: web.Request) -> web.Response:
        record = await self._record(request)
        auth = BasicAuth.decode(record["authorization"])
        if (auth.login, auth.password) != ("cli-12345", "secret"):
            return web.json_response(
                {"error": "invalid_client", "error_description": "Bad client credentials"},
                status=401,
            )
        return web.json_response({"access_token": "tok-1", "token_type": "Bearer"})

    async def get_server(self, request: web.Request) -> web.Response:
        await self._record(request)
        server_id = request.match_info["id"]
        if server_id == "srv-missing":
            return web.json_response(
                {"error_name": "missing_resource", "errors": ["Resource not found"]},
                status=404,
            )
        if server_id == "srv-broken":
            self.server_errors += 1
            return web.json_response({"error_name": "internal_error"}, status=500)
        return web.json_response({**SERVER, "id": server_id, "status": "active"})

    async def create_server(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response(SERVER, status=202)

    async def create_load_balancer(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"id": "lba-12345", "status": "creating"}, status=202)

    async def accepted(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response(status=202)


@pytest.fixture
def fake_api() -> FakeApi:
    """Fake API application."""
    return FakeApi()


@pytest_asyncio.fixture
async def api_url(fake_api: FakeApi) -> AsyncIterator[str]:
    """Serve the fake API and return its base URL."""
    server = TestServer(fake_api.app)
    await server.start_server()
    try:
        yield str(server.make_url("")).rstrip("/")
    finally:
        await server.close()


TOKEN = AccessToken(access_token="tok-1")


class TestAuthenticate:
    """Tests for ApiClient.authenticate."""

    @pytest.mark.asyncio
    async def test_client_credentials_grant(self, api_url: str, fake_api: FakeApi) -> None:
        """Test that API clients use the client credentials grant."""
        client = ApiClient(api_url)

        token = await client.authenticate("cli-12345", "secret")

        assert token.access_token == "tok-1"
        assert fake_api.requests[0]["body"] == {"grant_type": "client_credentials"}

    @pytest.mark.asyncio
    async def test_password_grant(self, api_url: str, fake_api: FakeApi) -> None:
        """Test that user logins use the password grant."""
        client = ApiClient(api_url)

        await client.authenticate("cli-12345", "secret", "user@example.com", "pw")

        assert fake_api.requests[0]["body"] == {
            "grant_type": "password",
            "username": "user@example.com",
            "password": "pw",
        }

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, api_url: str) -> None:
        """Test that a rejected exchange raises AuthenticationError."""
        client = ApiClient(api_url)

        with pytest.raises(AuthenticationError, match="Bad client credentials"):
            await client.authenticate("cli-12345", "wrong")

    @pytest.mark.asyncio
    async def test_unreachable_api(self) -> None:
        """Test that connection failures raise AuthenticationError."""
        client = ApiClient("http://127.0.0.1:1", timeout=2.0)

        with pytest.raises(AuthenticationError, match="Authentication failed"):
            await client.authenticate("cli-12345", "secret")


class TestRequests:
    """Tests for authenticated API requests."""

    @pytest.mark.asyncio
    async def test_get_server(self, api_url: str, fake_api: FakeApi) -> None:
        """Test that reads carry the token and account."""
        client = ApiClient(api_url, account="acc-12345").with_token(TOKEN)

        server = await client.server("srv-12345")

        assert server.id == "srv-12345"
        assert server.status == "active"
        request = fake_api.requests[0]
        assert request["path"] == "/1.0/servers/srv-12345"
        assert request["query"] == {"account_id": "acc-12345"}
        assert request["authorization"] == "Bearer tok-1"

    @pytest.mark.asyncio
    async def test_no_account_param_without_account(
        self, api_url: str, fake_api: FakeApi
    ) -> None:
        """Test that requests are unscoped without an account."""
        client = ApiClient(api_url).with_token(TOKEN)
        await client.server("srv-12345")
        assert fake_api.requests[0]["query"] == {}

    @pytest.mark.asyncio
    async def test_not_found(self, api_url: str) -> None:
        """Test that a 404 raises a not-found ApiError."""
        client = ApiClient(api_url).with_token(TOKEN)

        with pytest.raises(ApiError) as exc_info:
            await client.server("srv-missing")

        assert exc_info.value.not_found
        assert exc_info.value.error_name == "missing_resource"
        assert exc_info.value.messages == ["Resource not found"]

    @pytest.mark.asyncio
    async def test_server_errors_not_retried(self, api_url: str, fake_api: FakeApi) -> None:
        """Test that API errors are raised without retrying."""
        client = ApiClient(api_url).with_token(TOKEN)

        with pytest.raises(ApiError):
            await client.server("srv-broken")

        assert fake_api.server_errors == 1

    @pytest.mark.asyncio
    async def test_create_server_body(self, api_url: str, fake_api: FakeApi) -> None:
        """Test that only set options are sent."""
        client = ApiClient(api_url).with_token(TOKEN)

        server = await client.create_server(
            ServerOptions(image="img-abcde", server_groups=["grp-12345"])
        )

        assert server.status == "creating"
        assert fake_api.requests[0]["body"] == {
            "image": "img-abcde",
            "server_groups": ["grp-12345"],
        }

    @pytest.mark.asyncio
    async def test_empty_response(self, api_url: str, fake_api: FakeApi) -> None:
        """Test calls that return no body."""
        client = ApiClient(api_url).with_token(TOKEN)

        await client.destroy_server("srv-12345")
        await client.map_cloud_ip("cip-12345", "srv-12345")

        assert fake_api.requests[0]["method"] == "DELETE"
        assert fake_api.requests[1]["body"] == {"destination": "srv-12345"}

    @pytest.mark.asyncio
    async def test_load_balancer_body(self, api_url: str, fake_api: FakeApi) -> None:
        """Test the wire format of nodes and listeners."""
        client = ApiClient(api_url).with_token(TOKEN)
        options = LoadBalancerOptions(
            nodes=["srv-12345"],
            listeners=[Listener(protocol="http", in_port=80, out_port=8080)],
        )

        await client.create_load_balancer(options)

        assert fake_api.requests[0]["body"] == {
            "nodes": [{"node": "srv-12345"}],
            "listeners": [{"protocol": "http", "in": 80, "out": 8080}],
        }


class TestApiErrorParsing:
    """Tests for error body parsing."""

    def test_errors_list(self) -> None:
        """Test the usual API error body."""
        error = _api_error(422, {"error_name": "invalid_params", "errors": ["bad zone"]})
        assert str(error) == "422 invalid_params: bad zone"

    def test_oauth_error(self) -> None:
        """Test the OAuth error body."""
        error = _api_error(401, {"error": "invalid_grant", "error_description": "Expired"})
        assert error.error_name == "invalid_grant"
        assert error.messages == ["Expired"]

    def test_non_mapping_body(self) -> None:
        """Test that unexpected bodies still produce an error."""
        assert str(_api_error(502, None)) == "502"
