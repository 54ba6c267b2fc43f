"""HTTP service that turns an attendee's objective into a conference action plan."""

from __future__ import annotations

import argparse
import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from vivaplanner.models import GeneratePlanRequest
from vivaplanner.tools import QueryVivatechAPI

logger = logging.getLogger(__name__)

GPT_4O = "gpt-4o"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
MAX_TURNS = 5

AGENT_INSTRUCTIONS = (
    "You are a helpful assistant for Vivatech 2025 conference planning. "
    "Current date: June 11, 2025.\n\n"
    "When asked about sessions or events:\n"
    "1. Use the query_vivatech_api tool to search for relevant information\n"
    "2. Format the results in a clear, organized way for the user\n"
    "3. If sessions have dates, note which ones are happening soon"
)

CONFIGURABLE_SETTINGS = (
    "OPENAI_API_KEY",
    "VIVATECH_API_URL",
    "API_TIMEOUT_SECONDS",
    "CONFERENCE_DATE",
)
_REQUIRED_SETTINGS = ("OPENAI_API_KEY", "VIVATECH_API_URL")


class ConfigurationError(RuntimeError):
    """Required configuration is missing."""


class PromptError(RuntimeError):
    """A chat completion exchange failed."""


@dataclass
class OpenAIClient:
    """Connection settings for the chat completion service."""

    api_key: str
    base_url: str = DEFAULT_OPENAI_BASE_URL

    @classmethod
    def from_env(cls) -> OpenAIClient:
        api_key = os.environ.get("OPENAI_API_KEY")
        if api_key is None:
            raise ConfigurationError("OPENAI_API_KEY not found in environment")
        base_url = os.environ.get("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL)
        return cls(api_key=api_key, base_url=base_url.rstrip("/"))

    def agent(self, model: str) -> AgentBuilder:
        return AgentBuilder(client=self, model=model)


@dataclass
class Agent:
    """A configured model with a system preamble and a set of tools."""

    client: OpenAIClient
    model: str
    preamble: str = ""
    max_tokens: int | None = None
    temperature: float | None = None
    tools: list[Any] = field(default_factory=list)

    async def _request_body(self, messages: list[dict[str, Any]], text: str) -> dict[str, Any]:
        body: dict[str, Any] = {"model": self.model, "messages": messages}
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.tools:
            body["tools"] = [
                {"type": "function", "function": (await tool.definition(text)).to_dict()}
                for tool in self.tools
            ]
        return body

    async def _run_tool(self, call: Mapping[str, Any]) -> str:
        function = call.get("function") or {}
        name = function.get("name")
        tool = next((t for t in self.tools if getattr(t, "NAME", None) == name), None)
        if tool is None:
            raise PromptError(f"ToolNotFoundError: {name}")
        try:
            arguments = json.loads(function.get("arguments") or "{}")
            result = await tool.call(arguments)
        except Exception as exc:  # tool failures end the conversation
            raise PromptError(f"ToolCallError: {exc}") from exc
        return json.dumps(_to_jsonable(result))

    async def prompt(self, text: str) -> str:
        """Send a prompt, running any requested tools, and return the final reply."""
        messages: list[dict[str, Any]] = []
        if self.preamble:
            messages.append({"role": "system", "content": self.preamble})
        messages.append({"role": "user", "content": text})
        headers = {"Authorization": f"Bearer {self.client.api_key}"}
        url = f"{self.client.base_url}/chat/completions"

        async with httpx.AsyncClient(timeout=120.0) as http:
            for _ in range(MAX_TURNS):
                body = await self._request_body(messages, text)
                try:
                    response = await http.post(url, json=body, headers=headers)
                except httpx.HTTPError as exc:
                    raise PromptError(f"HttpError: {exc}") from exc
                if not response.is_success:
                    raise PromptError(f"ProviderError: {response.status_code} {response.text}")
                try:
                    message = response.json()["choices"][0]["message"]
                except (ValueError, KeyError, IndexError, TypeError) as exc:
                    raise PromptError(f"ResponseError: {exc}") from exc

                tool_calls = message.get("tool_calls") or []
                if not tool_calls:
                    return message.get("content") or ""
                messages.append(
                    {"role": "assistant", "content": message.get("content"), "tool_calls": tool_calls}
                )
                for call in tool_calls:
                    messages.append(
                        {
                            "role": "tool",
                            "tool_call_id": call.get("id"),
                            "content": await self._run_tool(call),
                        }
                    )
        raise PromptError(f"MaxDepthError: reached limit of {MAX_TURNS} turns")


class AgentBuilder:
    """Fluent builder for an Agent."""

    def __init__(self, client: OpenAIClient, model: str) -> None:
        self._agent = Agent(client=client, model=model)

    def preamble(self, text: str) -> AgentBuilder:
        self._agent.preamble = text
        return self

    def max_tokens(self, value: int) -> AgentBuilder:
        self._agent.max_tokens = value
        return self

    def temperature(self, value: float) -> AgentBuilder:
        self._agent.temperature = value
        return self

    def tool(self, tool: Any) -> AgentBuilder:
        self._agent.tools.append(tool)
        return self

    def build(self) -> Agent:
        return self._agent


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def initialize_openai_client() -> OpenAIClient:
    """Create the model client from the environment."""
    client = OpenAIClient.from_env()
    logger.info("OpenAI API key found in environment")
    return client


def build_planning_agent(client: OpenAIClient) -> Agent:
    """Build the conference planning agent with its search tool."""
    return (
        client.agent(GPT_4O)
        .preamble(AGENT_INSTRUCTIONS)
        .max_tokens(2048)
        .temperature(0.7)
        .tool(QueryVivatechAPI())
        .build()
    )


async def execute_planning_task(agent: Agent, objective: str) -> str:
    """Run the agent on an objective; failures come back as an error text."""
    logger.info("Executing planning task for: %s", objective)
    try:
        response = await agent.prompt(objective)
    except PromptError as exc:
        logger.error("Agent execution failed: %s", exc)
        return f"Error: Failed to generate plan - {exc}"
    logger.info("Agent successfully generated response")
    return response


async def generate_plan(payload: GeneratePlanRequest) -> str:
    """Produce the plan text for a request."""
    logger.info("Received planning request for objective: %s", payload.objective)
    try:
        client = initialize_openai_client()
    except ConfigurationError as exc:
        logger.error("Failed to initialize OpenAI client: %s", exc)
        return f"Error: Failed to initialize AI service - {exc}"

    if "test simple" in payload.objective:
        logger.info("Running simple agent test without tools")
        simple_agent = client.agent(GPT_4O).preamble("You are a helpful assistant.").build()
        try:
            return await simple_agent.prompt(payload.objective)
        except PromptError as exc:
            logger.error("Simple agent failed: %s", exc)
            return f"Error: Simple agent failed - {exc}"

    agent = build_planning_agent(client)
    plan = await execute_planning_task(agent, payload.objective)
    logger.info("Planning task completed, response length: %d chars", len(plan))
    return plan


def configure_api_keys(secrets: Mapping[str, str]) -> None:
    """Copy known secrets into the environment."""
    for key in CONFIGURABLE_SETTINGS:
        value = secrets.get(key)
        if value is not None:
            os.environ[key] = str(value)
            logger.info("%s configured from secrets", key)
        elif key in _REQUIRED_SETTINGS:
            logger.warning("%s not found in secrets - API calls will fail", key)


def validate_required_configuration() -> None:
    """Raise ConfigurationError if a required setting is absent."""
    for key in _REQUIRED_SETTINGS:
        if key not in os.environ:
            raise ConfigurationError(
                f"Missing required configuration: {key}. Please set it in Secrets.toml"
            )


def create_app() -> FastAPI:
    """Build the HTTP application."""
    app = FastAPI(title="Vivatech Strategic Planner API")

    @app.post("/generate-plan", response_class=PlainTextResponse)
    async def generate_plan_endpoint(request: Request) -> PlainTextResponse:
        content_type = request.headers.get("content-type", "")
        if not content_type.split(";")[0].strip().lower().endswith("json"):
            return PlainTextResponse(
                "Expected request with `Content-Type: application/json`", status_code=415
            )
        try:
            data = json.loads(await request.body())
        except ValueError as exc:
            return PlainTextResponse(f"Failed to parse the request body as JSON: {exc}", status_code=400)
        try:
            payload = GeneratePlanRequest.from_dict(data)
        except ValueError as exc:
            return PlainTextResponse(
                f"Failed to deserialize the JSON body into the target type: {exc}", status_code=422
            )
        return PlainTextResponse(await generate_plan(payload))

    return app


def _read_secrets(path: Path) -> dict[str, str]:
    entries: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        raw = raw.strip()
        if raw.startswith('"'):
            value = json.loads(raw)
        elif raw.startswith("'") and raw.endswith("'"):
            value = raw[1:-1]
        else:
            value = raw
        entries[key.strip()] = str(value)
    return entries


def main(argv: Sequence[str] | None = None) -> None:
    """Start the planner HTTP service."""
    parser = argparse.ArgumentParser(prog="vivaplanner", description="Conference planning API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--secrets", type=Path, help="file of KEY = \"value\" secrets")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    logger.info("Starting Vivatech Strategic Planner API v1.0")
    configure_api_keys(_read_secrets(args.secrets) if args.secrets else {})
    try:
        validate_required_configuration()
    except ConfigurationError as exc:
        logger.error("Configuration validation failed: %s", exc)
        raise SystemExit(f"Cannot start service without required configuration: {exc}") from exc
    logger.info("All required configuration validated")
    uvicorn.run(create_app(), host=args.host, port=args.port)