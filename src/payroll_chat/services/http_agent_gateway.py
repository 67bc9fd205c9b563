"""HTTP implementation of the agent gateway for the persistent agents REST surface."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import httpx

from payroll_chat.lib.errors import (
    AuthError,
    ConnectivityError,
    GatewayError,
    NotFoundError,
    RequestValidationError,
    SizeLimitError,
)
from payroll_chat.models.agent_message import AgentMessage, ListOrder, MessageRole
from payroll_chat.models.agent_run import AgentRun
from payroll_chat.models.agent_session import AgentSession
from payroll_chat.services.agent_gateway import AgentGateway


logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2025-05-01"
PAGE_SIZE = 100


class HttpAgentGateway(AgentGateway):
    """Talks to the agent service's threads, runs and files endpoints over HTTPS."""

    def __init__(
        self,
        project_endpoint: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the gateway.

        Args:
            project_endpoint: Base URL of the agent project
            access_token: Bearer token presented on every request
            api_version: Value of the ``api-version`` query parameter
            timeout_seconds: Per-request timeout
            transport: Optional transport override, used by tests
        """
        self.project_endpoint = project_endpoint.rstrip("/")
        self.api_version = api_version
        self._client = httpx.AsyncClient(
            base_url=self.project_endpoint,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
            params={"api-version": api_version},
            timeout=timeout_seconds,
            transport=transport
        )

    async def create_session(self) -> AgentSession:
        payload = await self._request("POST", "/threads", json={})
        with _parsing("/threads"):
            session = AgentSession.from_wire(payload)
        logger.info("Created session: %s", session.session_id)
        return session

    async def post_message(
        self,
        session: AgentSession,
        role: MessageRole,
        content: str
    ) -> AgentMessage:
        path = f"/threads/{session.session_id}/messages"
        payload = await self._request(
            "POST",
            path,
            json={"role": role.to_wire(), "content": content}
        )
        with _parsing(path):
            message = AgentMessage.from_wire(payload)
        logger.debug("Posted message %s to session %s", message.message_id, session.session_id)
        return message

    async def start_run(self, session: AgentSession, agent_id: str) -> AgentRun:
        path = f"/threads/{session.session_id}/runs"
        payload = await self._request("POST", path, json={"assistant_id": agent_id})
        with _parsing(path):
            return AgentRun.from_wire(payload)

    async def get_run(self, session: AgentSession, run_id: str) -> AgentRun:
        path = f"/threads/{session.session_id}/runs/{run_id}"
        payload = await self._request("GET", path)
        with _parsing(path):
            return AgentRun.from_wire(payload)

    async def list_messages(self, session: AgentSession, order: ListOrder) -> List[AgentMessage]:
        path = f"/threads/{session.session_id}/messages"
        messages: List[AgentMessage] = []
        params: Dict[str, Any] = {"order": order.value, "limit": PAGE_SIZE}

        while True:
            payload = await self._request("GET", path, params=params)
            with _parsing(path):
                page = payload.get("data") or []
                messages.extend(AgentMessage.from_wire(item) for item in page)

                if not payload.get("has_more") or not page:
                    break
                params = {**params, "after": payload.get("last_id") or page[-1]["id"]}

        return messages

    async def upload_attachment(self, data: bytes, file_name: str) -> str:
        payload = await self._request(
            "POST",
            "/files",
            data={"purpose": "assistants"},
            files={"file": (file_name, data)}
        )
        with _parsing("/files"):
            file_id = payload["id"]
        logger.info("Uploaded %s as %s (%d bytes)", file_name, file_id, len(data))
        return file_id

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send a request and translate failures into gateway errors."""
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"Request to {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise ConnectivityError(f"Could not reach agent service: {e}") from e

        if not response.is_success:
            raise _error_for_response(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise ConnectivityError(f"Invalid response from agent service for {path}: {e}") from e
        if not isinstance(payload, dict):
            raise ConnectivityError(f"Invalid response from agent service for {path}: expected a JSON object")
        return payload


@contextmanager
def _parsing(path: str) -> Iterator[None]:
    """Report a payload that does not match the expected wire shape as a gateway error."""
    try:
        yield
    except (KeyError, TypeError, ValueError) as e:
        raise ConnectivityError(f"Invalid response from agent service for {path}: {e!r}") from e


def _error_for_response(response: httpx.Response) -> GatewayError:
    """Map an unsuccessful HTTP response onto the gateway error taxonomy."""
    detail = _error_detail(response)
    status = response.status_code
    message = f"{response.request.method} {response.request.url.path} failed ({status}): {detail}"

    if status in (401, 403):
        return AuthError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status == 413:
        return SizeLimitError(message, status)
    if status in (400, 409, 422):
        return RequestValidationError(message, status)
    if status == 429 or status >= 500:
        return ConnectivityError(message, status)
    return GatewayError(message, status)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return response.text or response.reason_phrase
