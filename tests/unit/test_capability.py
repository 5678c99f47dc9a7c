"""Tests for capability invokers."""
import json

import aiohttp
import pytest

from teamflow.configuration import AgentType
from teamflow.errors import CapabilityError
from teamflow.runtime import CapabilityRegistry, RemoteCapabilityInvoker


class FakeResponse:
    """Stand-in for an aiohttp response; json() follows aiohttp's checks."""

    def __init__(self, status=200, payload=None, text=None, content_type="application/json"):
        self.status = status
        self.content_type = content_type
        self._text = text if text is not None else json.dumps(payload)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def text(self):
        return self._text

    async def json(self):
        if self.content_type != "application/json":
            raise aiohttp.ContentTypeError(
                None,
                (),
                status=self.status,
                message=f"Attempt to decode JSON with unexpected mimetype: {self.content_type}",
            )
        return json.loads(self._text)


class FakeSession:
    """Records posts and replies with a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None):
        self.calls.append((url, json))
        if self.error:
            raise self.error
        return self.response


class TestCapabilityRegistry:
    """Test the local handler registry."""

    @pytest.mark.asyncio
    async def test_invokes_registered_handler(self, store):
        """Test that the handler gets the configuration and upstream outputs."""
        async def write(configuration, predecessor_outputs):
            return f"{configuration.tone} copy from {sorted(predecessor_outputs)}"

        registry = CapabilityRegistry({AgentType.COPYWRITING: write})
        config = store.get_default_configuration(AgentType.COPYWRITING)

        output = await registry.invoke(AgentType.COPYWRITING, config, {"plan": "brief"})

        assert output == "Professional copy from ['plan']"
        assert registry.supports("copywriting")
        assert not registry.supports(AgentType.SEO)

    @pytest.mark.asyncio
    async def test_unregistered_type(self, store):
        """Test that unknown agent types raise CapabilityError."""
        registry = CapabilityRegistry()

        with pytest.raises(CapabilityError) as exc_info:
            await registry.invoke(AgentType.SEO, store.get_default_configuration("seo"), {})

        assert exc_info.value.agent_type == "seo"


class TestRemoteCapabilityInvoker:
    """Test the HTTP capability client."""

    @pytest.fixture
    def config(self, store):
        return store.get_default_configuration(AgentType.SEO)

    def test_url_from_settings(self, monkeypatch):
        """Test that the base URL comes from settings."""
        monkeypatch.setenv("TEAMFLOW_CAPABILITY_BASE_URL", "https://agents.example.com/v2/")

        invoker = RemoteCapabilityInvoker()

        assert invoker.url_for(AgentType.EMAIL) == "https://agents.example.com/v2/agents/email/invoke"

    @pytest.mark.asyncio
    async def test_posts_camel_case_payload(self, config):
        """Test the request body and the returned output."""
        session = FakeSession(FakeResponse(payload={"output": "Optimised"}))
        invoker = RemoteCapabilityInvoker(base_url="http://backend", session=session)

        output = await invoker.invoke(AgentType.SEO, config, {"writer": "draft"})

        assert output == "Optimised"
        url, body = session.calls[0]
        assert url == "http://backend/agents/seo/invoke"
        assert body["agentType"] == "seo"
        assert body["configuration"]["optimizationLevel"] == 3
        assert "agentType" not in body["configuration"]
        assert body["predecessorOutputs"] == {"writer": "draft"}

    @pytest.mark.asyncio
    async def test_http_error_status(self, config):
        """Test that error statuses raise CapabilityError."""
        session = FakeSession(FakeResponse(status=503, text="overloaded"))
        invoker = RemoteCapabilityInvoker(base_url="http://backend", session=session)

        with pytest.raises(CapabilityError, match="HTTP 503") as exc_info:
            await invoker.invoke(AgentType.SEO, config, {})

        assert exc_info.value.agent_type == "seo"

    @pytest.mark.asyncio
    async def test_missing_output(self, config):
        """Test that a body without output text raises CapabilityError."""
        session = FakeSession(FakeResponse(payload={"result": 1}))
        invoker = RemoteCapabilityInvoker(base_url="http://backend", session=session)

        with pytest.raises(CapabilityError, match="no 'output'"):
            await invoker.invoke(AgentType.SEO, config, {})

    @pytest.mark.asyncio
    async def test_invalid_json(self, config):
        """Test that an unparseable body raises CapabilityError."""
        session = FakeSession(FakeResponse(text="{not json"))
        invoker = RemoteCapabilityInvoker(base_url="http://backend", session=session)

        with pytest.raises(CapabilityError, match="invalid JSON") as exc_info:
            await invoker.invoke(AgentType.SEO, config, {})

        assert exc_info.value.agent_type == "seo"

    @pytest.mark.asyncio
    async def test_non_json_content_type(self, config):
        """Test that an HTML reply is reported as non-JSON, not as unreachable."""
        session = FakeSession(FakeResponse(text="<html>oops</html>", content_type="text/html"))
        invoker = RemoteCapabilityInvoker(base_url="http://backend", session=session)

        with pytest.raises(CapabilityError) as exc_info:
            await invoker.invoke(AgentType.SEO, config, {})

        assert "non-JSON content (text/html)" in exc_info.value.reason
        assert "unreachable" not in exc_info.value.reason
        assert exc_info.value.agent_type == "seo"

    @pytest.mark.asyncio
    async def test_connection_error(self, config):
        """Test that client errors raise CapabilityError."""
        session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
        invoker = RemoteCapabilityInvoker(base_url="http://backend", session=session)

        with pytest.raises(CapabilityError, match="unreachable"):
            await invoker.invoke(AgentType.SEO, config, {})
