import json

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from vivaplanner.app import (
    AGENT_INSTRUCTIONS,
    GPT_4O,
    ConfigurationError,
    OpenAIClient,
    PromptError,
    build_planning_agent,
    configure_api_keys,
    create_app,
    execute_planning_task,
    generate_plan,
    initialize_openai_client,
    main,
    validate_required_configuration,
)
from vivaplanner.models import GeneratePlanRequest, current_conference_date
from vivaplanner.tools import QueryVivatechAPI

BASE = "https://llm.example.com/v1"
SEARCH = "https://search.example.com/query"


@pytest.fixture
def env(monkeypatch):
    for key in ("OPENAI_API_KEY", "VIVATECH_API_URL", "API_TIMEOUT_SECONDS", "CONFERENCE_DATE"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_BASE_URL", BASE)
    return monkeypatch


@pytest.fixture
def keyed(env):
    env.setenv("OPENAI_API_KEY", "placeholder")
    env.setenv("VIVATECH_API_URL", SEARCH)
    return env


def _reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_initialize_without_key_raises(env):
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY not found in environment"):
        initialize_openai_client()


def test_initialize_reads_environment(keyed):
    client = initialize_openai_client()
    assert client.api_key == "placeholder"
    assert client.base_url == BASE


def test_configure_api_keys_sets_environment(env):
    configure_api_keys({"OPENAI_API_KEY": "placeholder", "CONFERENCE_DATE": "2025-06-12"})
    client = initialize_openai_client()
    assert client.api_key == "placeholder"
    assert current_conference_date().isoformat() == "2025-06-12"
    with pytest.raises(ConfigurationError, match="VIVATECH_API_URL"):
        validate_required_configuration()


def test_validate_reports_missing_key(env):
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        validate_required_configuration()


def test_validate_reports_missing_url(env):
    env.setenv("OPENAI_API_KEY", "placeholder")
    with pytest.raises(ConfigurationError, match="VIVATECH_API_URL"):
        validate_required_configuration()


def test_validate_passes_when_configured(keyed):
    assert validate_required_configuration() is None


def test_build_planning_agent_settings():
    agent = build_planning_agent(OpenAIClient(api_key="placeholder", base_url=BASE))
    assert agent.model == GPT_4O
    assert agent.preamble == AGENT_INSTRUCTIONS
    assert agent.max_tokens == 2048
    assert agent.temperature == 0.7
    assert [type(t) for t in agent.tools] == [QueryVivatechAPI]


@pytest.mark.asyncio
async def test_prompt_sends_preamble_and_returns_content():
    client = OpenAIClient(api_key="placeholder", base_url=BASE)
    agent = client.agent(GPT_4O).preamble("You are a helpful assistant.").build()
    with respx.mock:
        route = respx.post(f"{BASE}/chat/completions").mock(return_value=_reply("hello"))
        result = await agent.prompt("hi")
    assert result == "hello"
    sent = json.loads(route.calls[0].request.content)
    assert sent["model"] == GPT_4O
    assert sent["messages"][0] == {"role": "system", "content": "You are a helpful assistant."}
    assert sent["messages"][1] == {"role": "user", "content": "hi"}
    assert "tools" not in sent
    assert route.calls[0].request.headers["Authorization"] == "Bearer placeholder"


@pytest.mark.asyncio
async def test_prompt_runs_tool_and_feeds_result_back(keyed):
    agent = build_planning_agent(OpenAIClient(api_key="placeholder", base_url=BASE))
    tool_call = {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "query_vivatech_api", "arguments": json.dumps({"query": "AI"})},
            }
        ],
    }
    search_body = {
        "answer": "a",
        "sources": [{"id": "s1", "text_chunk": "Keynote June 12"}],
        "metadata": {"search_mode": "hybrid", "sources_found": 1},
    }
    with respx.mock:
        chat = respx.post(f"{BASE}/chat/completions")
        chat.side_effect = [
            httpx.Response(200, json={"choices": [{"message": tool_call}]}),
            _reply("plan ready"),
        ]
        search = respx.post(SEARCH).mock(return_value=httpx.Response(200, json=search_body))
        result = await agent.prompt("find AI sessions")
    assert result == "plan ready"
    assert json.loads(search.calls[0].request.content) == {"query": "AI"}
    first = json.loads(chat.calls[0].request.content)
    assert first["tools"][0]["function"]["name"] == "query_vivatech_api"
    second = json.loads(chat.calls[1].request.content)
    tool_message = second["messages"][-1]
    assert tool_message["tool_call_id"] == "call_1"
    assert json.loads(tool_message["content"])[0]["id"] == "s1"


@pytest.mark.asyncio
async def test_prompt_error_status_raises():
    agent = OpenAIClient(api_key="placeholder", base_url=BASE).agent(GPT_4O).build()
    with respx.mock:
        respx.post(f"{BASE}/chat/completions").mock(return_value=httpx.Response(500, text="boom"))
        with pytest.raises(PromptError, match="500"):
            await agent.prompt("hi")


@pytest.mark.asyncio
async def test_execute_planning_task_reports_failure():
    agent = build_planning_agent(OpenAIClient(api_key="placeholder", base_url=BASE))
    with respx.mock:
        respx.post(f"{BASE}/chat/completions").mock(return_value=httpx.Response(503, text="down"))
        result = await execute_planning_task(agent, "plan my day")
    assert result.startswith("Error: Failed to generate plan - ")


@pytest.mark.asyncio
async def test_generate_plan_without_key(env):
    result = await generate_plan(GeneratePlanRequest(objective="plan"))
    assert result == "Error: Failed to initialize AI service - OPENAI_API_KEY not found in environment"


@pytest.mark.asyncio
async def test_generate_plan_simple_mode_uses_plain_agent(keyed):
    with respx.mock:
        route = respx.post(f"{BASE}/chat/completions").mock(return_value=_reply("ok"))
        result = await generate_plan(GeneratePlanRequest(objective="test simple please"))
    assert result == "ok"
    sent = json.loads(route.calls[0].request.content)
    assert "tools" not in sent
    assert sent["messages"][0]["content"] == "You are a helpful assistant."


@pytest.mark.asyncio
async def test_generate_plan_simple_mode_failure(keyed):
    with respx.mock:
        respx.post(f"{BASE}/chat/completions").mock(return_value=httpx.Response(500, text="x"))
        result = await generate_plan(GeneratePlanRequest(objective="test simple"))
    assert result.startswith("Error: Simple agent failed - ")


def test_endpoint_rejects_missing_objective(env):
    client = TestClient(create_app())
    response = client.post("/generate-plan", json={"goal": "x"})
    assert response.status_code == 422


def test_endpoint_rejects_bad_json(env):
    client = TestClient(create_app())
    response = client.post(
        "/generate-plan", content=b"{not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400


def test_endpoint_returns_text(env):
    client = TestClient(create_app())
    response = client.post("/generate-plan", json={"objective": "plan"})
    assert response.status_code == 200
    assert response.text.startswith("Error: Failed to initialize AI service")


def test_main_exits_without_configuration(env):
    with pytest.raises(SystemExit) as info:
        main([])
    assert "OPENAI_API_KEY" in str(info.value)