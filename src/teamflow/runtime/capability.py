"""
Capability invocation - How a node's agent is asked for its output.

The capability backend is an external collaborator. The engine only needs
something satisfying ``CapabilityInvoker``; two implementations are provided:
a local registry of async handlers and an HTTP client for a remote backend.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol

import aiohttp

from teamflow.config import get_settings
from teamflow.configuration.models import AgentType, BaseAgentConfig
from teamflow.errors import CapabilityError


logger = logging.getLogger(__name__)


CapabilityHandler = Callable[[BaseAgentConfig, Mapping[str, str]], Awaitable[str]]


class CapabilityInvoker(Protocol):
    """Protocol for capability backends."""

    async def invoke(
        self,
        agent_type: AgentType,
        configuration: BaseAgentConfig,
        predecessor_outputs: Mapping[str, str],
    ) -> str:
        """
        Produce a node's output.

        Args:
            agent_type: Capability kind of the node
            configuration: The node's validated configuration
            predecessor_outputs: Outputs of direct upstream nodes by node id

        Returns:
            The node's output text

        Raises:
            CapabilityError: If the capability fails
        """
        ...


class CapabilityRegistry:
    """
    Invoker that dispatches to locally registered async handlers.

    Usage:
        registry = CapabilityRegistry()

        async def write_copy(configuration, predecessor_outputs):
            return f"{configuration.tone} copy"

        registry.register(AgentType.COPYWRITING, write_copy)
    """

    def __init__(self, handlers: Optional[Mapping[AgentType, CapabilityHandler]] = None):
        self._handlers: Dict[AgentType, CapabilityHandler] = {}
        for agent_type, handler in (handlers or {}).items():
            self.register(agent_type, handler)

    def register(self, agent_type: AgentType, handler: CapabilityHandler) -> None:
        """Register (or replace) the handler for an agent type."""
        self._handlers[AgentType(agent_type)] = handler
        logger.debug(f"Registered capability handler: {AgentType(agent_type).value}")

    def supports(self, agent_type: AgentType) -> bool:
        return AgentType(agent_type) in self._handlers

    async def invoke(
        self,
        agent_type: AgentType,
        configuration: BaseAgentConfig,
        predecessor_outputs: Mapping[str, str],
    ) -> str:
        """Invoke the registered handler."""
        handler = self._handlers.get(AgentType(agent_type))
        if handler is None:
            raise CapabilityError(
                f"No capability registered for agent type '{AgentType(agent_type).value}'",
                agent_type=AgentType(agent_type).value,
            )
        return await handler(configuration, predecessor_outputs)


class RemoteCapabilityInvoker:
    """
    Invoker that calls a remote agent backend over HTTP.

    Sends ``POST {base_url}/agents/{agent_type}/invoke`` with body
    ``{"agentType", "configuration", "predecessorOutputs"}`` and expects
    ``{"output": "<text>"}`` back.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the invoker.

        Args:
            base_url: Backend base URL (defaults to settings)
            timeout_s: Total HTTP timeout (defaults to settings)
            session: Shared client session; one is opened per call if omitted
        """
        settings = get_settings()
        self.base_url = (base_url or settings.capability_base_url).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.capability_timeout_s
        self._session = session

    def url_for(self, agent_type: AgentType) -> str:
        return f"{self.base_url}/agents/{AgentType(agent_type).value}/invoke"

    async def invoke(
        self,
        agent_type: AgentType,
        configuration: BaseAgentConfig,
        predecessor_outputs: Mapping[str, str],
    ) -> str:
        """POST the invocation and return the backend's output."""
        agent_type = AgentType(agent_type)
        payload = {
            "agentType": agent_type.value,
            "configuration": configuration.to_wire(),
            "predecessorOutputs": dict(predecessor_outputs),
        }
        url = self.url_for(agent_type)

        try:
            if self._session is not None:
                data = await self._post(self._session, url, payload, agent_type)
            else:
                timeout = aiohttp.ClientTimeout(total=self.timeout_s or None)
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    data = await self._post(session, url, payload, agent_type)
        except aiohttp.ClientError as e:
            raise CapabilityError(
                f"Capability backend unreachable: {e}", agent_type=agent_type.value
            ) from e

        output = data.get("output") if isinstance(data, dict) else None
        if not isinstance(output, str):
            raise CapabilityError(
                "Capability backend returned no 'output' text", agent_type=agent_type.value
            )
        return output

    async def _post(
        self, session: Any, url: str, payload: Dict[str, Any], agent_type: AgentType
    ) -> Any:
        async with session.post(url, json=payload) as response:
            if response.status >= 400:
                body = await response.text()
                raise CapabilityError(
                    f"Capability backend returned HTTP {response.status}: {body[:200]}",
                    agent_type=agent_type.value,
                )
            try:
                return await response.json()
            except aiohttp.ContentTypeError as e:
                raise CapabilityError(
                    f"Capability backend returned non-JSON content ({response.content_type})",
                    agent_type=agent_type.value,
                ) from e
            except ValueError as e:
                raise CapabilityError(
                    f"Capability backend returned invalid JSON: {e}",
                    agent_type=agent_type.value,
                ) from e


__all__ = [
    "CapabilityHandler",
    "CapabilityInvoker",
    "CapabilityRegistry",
    "RemoteCapabilityInvoker",
]
