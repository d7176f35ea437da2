"""Brightbox Cloud HTTP API client."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
import structlog
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from brightbox_provider.api.models import (
    AccessToken,
    CloudIP,
    CloudIPOptions,
    FirewallPolicy,
    FirewallPolicyOptions,
    FirewallRule,
    FirewallRuleOptions,
    LoadBalancer,
    LoadBalancerOptions,
    Server,
    ServerGroup,
    ServerGroupOptions,
    ServerOptions,
)
from brightbox_provider.core.errors import ApiError, AuthenticationError

logger = structlog.get_logger()

API_VERSION = "1.0"
REQUEST_TIMEOUT = 30.0
READ_ATTEMPTS = 5

# Only failures that happen before the API saw the request are worth retrying
TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)


class ApiClient:
    """Client for the Brightbox Cloud API.

    A client is immutable: ``with_token`` returns a new authenticated
    client. Each request opens its own HTTP session, so one client can be
    shared by concurrent operations.
    """

    def __init__(
        self,
        api_url: str,
        account: str = "",
        token: AccessToken | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the API client.

        Args:
            api_url: Base URL of the regional API
            account: Account id to scope requests to (optional)
            token: Access token for authenticated requests (optional)
            timeout: Total timeout per HTTP request in seconds
        """
        self.api_url = api_url.rstrip("/")
        self.account = account
        self.token = token
        self.timeout = timeout

    def with_token(self, token: AccessToken) -> "ApiClient":
        """Return a copy of this client that authenticates with ``token``."""
        return ApiClient(self.api_url, self.account, token, self.timeout)

    async def authenticate(
        self,
        client_id: str,
        client_secret: str,
        username: str = "",
        password: str = "",
    ) -> AccessToken:
        """Exchange credentials for an access token.

        API clients use the client credentials grant. OAuth applications
        log a user in with the password grant.

        Args:
            client_id: API client or OAuth application id
            client_secret: Secret for the client id
            username: User name for the password grant (optional)
            password: Password for the password grant (optional)

        Returns:
            Access token

        Raises:
            AuthenticationError: If the exchange fails for any reason
        """
        if username:
            body = {"grant_type": "password", "username": username, "password": password}
        else:
            body = {"grant_type": "client_credentials"}

        url = f"{self.api_url}/token"
        auth = aiohttp.BasicAuth(client_id, client_secret)

        logger.debug("Requesting access token", url=url, grant_type=body["grant_type"])

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(url, json=body, auth=auth) as response:
                    data = await _read_json(response)
                    if response.status >= 400:
                        error = _api_error(response.status, data)
                        raise AuthenticationError(f"Authentication failed: {error}")
                    return AccessToken.model_validate(data)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e
        except ValidationError as e:
            raise AuthenticationError(f"Unexpected token response: {e}") from e

    async def server(self, server_id: str) -> Server:
        """Get a server."""
        return await self._get(f"/servers/{server_id}", Server)

    async def create_server(self, options: ServerOptions) -> Server:
        """Create a server."""
        return await self._send("POST", "/servers", Server, options.payload())

    async def update_server(self, options: ServerOptions) -> Server:
        """Update a server."""
        return await self._send("PUT", f"/servers/{options.id}", Server, options.payload())

    async def destroy_server(self, server_id: str) -> None:
        """Destroy a server. Deletion continues asynchronously."""
        await self._request("DELETE", f"/servers/{server_id}")

    async def server_group(self, group_id: str) -> ServerGroup:
        """Get a server group."""
        return await self._get(f"/server_groups/{group_id}", ServerGroup)

    async def create_server_group(self, options: ServerGroupOptions) -> ServerGroup:
        """Create a server group."""
        return await self._send("POST", "/server_groups", ServerGroup, options.payload())

    async def update_server_group(self, options: ServerGroupOptions) -> ServerGroup:
        """Update a server group."""
        return await self._send(
            "PUT", f"/server_groups/{options.id}", ServerGroup, options.payload()
        )

    async def destroy_server_group(self, group_id: str) -> None:
        """Destroy a server group."""
        await self._request("DELETE", f"/server_groups/{group_id}")

    async def firewall_policy(self, policy_id: str) -> FirewallPolicy:
        """Get a firewall policy."""
        return await self._get(f"/firewall_policies/{policy_id}", FirewallPolicy)

    async def create_firewall_policy(self, options: FirewallPolicyOptions) -> FirewallPolicy:
        """Create a firewall policy."""
        return await self._send(
            "POST", "/firewall_policies", FirewallPolicy, options.payload()
        )

    async def update_firewall_policy(self, options: FirewallPolicyOptions) -> FirewallPolicy:
        """Update a firewall policy."""
        return await self._send(
            "PUT", f"/firewall_policies/{options.id}", FirewallPolicy, options.payload()
        )

    async def apply_firewall_policy(self, policy_id: str, group_id: str) -> FirewallPolicy:
        """Apply a firewall policy to a server group."""
        return await self._send(
            "POST",
            f"/firewall_policies/{policy_id}/apply_to",
            FirewallPolicy,
            {"server_group": group_id},
        )

    async def remove_firewall_policy(self, policy_id: str, group_id: str) -> FirewallPolicy:
        """Remove a firewall policy from a server group."""
        return await self._send(
            "POST",
            f"/firewall_policies/{policy_id}/remove",
            FirewallPolicy,
            {"server_group": group_id},
        )

    async def destroy_firewall_policy(self, policy_id: str) -> None:
        """Destroy a firewall policy."""
        await self._request("DELETE", f"/firewall_policies/{policy_id}")

    async def firewall_rule(self, rule_id: str) -> FirewallRule:
        """Get a firewall rule."""
        return await self._get(f"/firewall_rules/{rule_id}", FirewallRule)

    async def create_firewall_rule(self, options: FirewallRuleOptions) -> FirewallRule:
        """Create a firewall rule."""
        return await self._send("POST", "/firewall_rules", FirewallRule, options.payload())

    async def update_firewall_rule(self, options: FirewallRuleOptions) -> FirewallRule:
        """Update a firewall rule."""
        return await self._send(
            "PUT", f"/firewall_rules/{options.id}", FirewallRule, options.payload()
        )

    async def destroy_firewall_rule(self, rule_id: str) -> None:
        """Destroy a firewall rule."""
        await self._request("DELETE", f"/firewall_rules/{rule_id}")

    async def cloud_ip(self, cloud_ip_id: str) -> CloudIP:
        """Get a cloud IP."""
        return await self._get(f"/cloud_ips/{cloud_ip_id}", CloudIP)

    async def create_cloud_ip(self, options: CloudIPOptions) -> CloudIP:
        """Allocate a cloud IP."""
        return await self._send("POST", "/cloud_ips", CloudIP, options.payload())

    async def update_cloud_ip(self, options: CloudIPOptions) -> CloudIP:
        """Update a cloud IP."""
        return await self._send("PUT", f"/cloud_ips/{options.id}", CloudIP, options.payload())

    async def map_cloud_ip(self, cloud_ip_id: str, destination: str) -> None:
        """Map a cloud IP to a destination. Mapping completes asynchronously."""
        await self._request(
            "POST", f"/cloud_ips/{cloud_ip_id}/map", {"destination": destination}
        )

    async def unmap_cloud_ip(self, cloud_ip_id: str) -> None:
        """Unmap a cloud IP. Unmapping completes asynchronously."""
        await self._request("POST", f"/cloud_ips/{cloud_ip_id}/unmap")

    async def destroy_cloud_ip(self, cloud_ip_id: str) -> None:
        """Release a cloud IP."""
        await self._request("DELETE", f"/cloud_ips/{cloud_ip_id}")

    async def load_balancer(self, lb_id: str) -> LoadBalancer:
        """Get a load balancer."""
        return await self._get(f"/load_balancers/{lb_id}", LoadBalancer)

    async def create_load_balancer(self, options: LoadBalancerOptions) -> LoadBalancer:
        """Create a load balancer. Building continues asynchronously."""
        return await self._send("POST", "/load_balancers", LoadBalancer, options.payload())

    async def update_load_balancer(self, options: LoadBalancerOptions) -> LoadBalancer:
        """Update a load balancer."""
        return await self._send(
            "PUT", f"/load_balancers/{options.id}", LoadBalancer, options.payload()
        )

    async def destroy_load_balancer(self, lb_id: str) -> None:
        """Destroy a load balancer. Deletion continues asynchronously."""
        await self._request("DELETE", f"/load_balancers/{lb_id}")

    async def _get[M: BaseModel](self, path: str, model: type[M]) -> M:
        """GET an object, retrying transient connection failures.

        Args:
            path: API path below the version prefix
            model: Response model

        Returns:
            Parsed response
        """

        async def _attempt() -> M:
            return _parse(model, await self._request("GET", path))

        return await self._with_retry(_attempt)

    async def _send[M: BaseModel](
        self, method: str, path: str, model: type[M], body: dict[str, Any]
    ) -> M:
        """Send a request body and parse the returned object. Never retried."""
        return _parse(model, await self._request(method, path, body))

    async def _request(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> Any:
        """Make an HTTP request to the API.

        Args:
            method: HTTP method
            path: API path below the version prefix
            body: JSON request body (optional)

        Returns:
            Decoded JSON response, or None for empty responses

        Raises:
            ApiError: If the API rejects the request
        """
        url = f"{self.api_url}/{API_VERSION}{path}"
        params = {"account_id": self.account} if self.account else None
        headers = {}
        if self.token is not None:
            headers["Authorization"] = f"{self.token.token_type} {self.token.access_token}"

        logger.debug("API request", method=method, path=path)

        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            async with session.request(
                method, url, params=params, json=body, headers=headers
            ) as response:
                data = await _read_json(response)

                if response.status >= 400:
                    raise _api_error(response.status, data)

                return data

    async def _with_retry[T](self, func: Callable[[], Awaitable[T]]) -> T:
        """Execute a read with retry on transient connection failures.

        Args:
            func: Async function to execute

        Returns:
            Function result
        """
        async for attempt in AsyncRetrying(
            wait=wait_exponential(multiplier=1, min=1, max=10),
            stop=stop_after_attempt(READ_ATTEMPTS),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        ):
            with attempt:
                return await func()

        # This should never be reached
        raise RuntimeError("Unexpected retry error")


async def _read_json(response: aiohttp.ClientResponse) -> Any:
    """Decode a response body, tolerating empty and non-JSON bodies."""
    text = await response.text()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {"error_name": "invalid_response", "errors": [text]}


def _api_error(status: int, data: Any) -> ApiError:
    """Build an ApiError from an error response body."""
    if not isinstance(data, dict):
        return ApiError(status)

    errors = data.get("errors")
    if isinstance(errors, str):
        errors = [errors]
    elif not isinstance(errors, list):
        errors = [data["error_description"]] if "error_description" in data else []

    error_name = data.get("error_name") or data.get("error") or ""
    return ApiError(status, str(error_name), [str(e) for e in errors])


def _parse[M: BaseModel](model: type[M], data: Any) -> M:
    """Validate a response body against its model."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ApiError(200, "invalid_response", [str(e)]) from e
