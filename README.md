# vivaplanner

A small HTTP service that helps conference attendees plan their visit. It takes
an objective in plain language, passes it to an OpenAI chat model (`gpt-4o`),
and gives the model one tool, `query_vivatech_api`, that searches the
conference's session and partner database through a separate search API.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Configuration

Settings are read from the environment:

| Variable              | Required | Meaning                                                            |
|-----------------------|----------|--------------------------------------------------------------------|
| `OPENAI_API_KEY`      | yes      | Key for the OpenAI API                                             |
| `VIVATECH_API_URL`    | yes      | Endpoint of the conference search API; it receives `{"query": ...}` as a JSON POST |
| `API_TIMEOUT_SECONDS` | no       | Timeout for search requests in whole seconds, 30 by default        |
| `CONFERENCE_DATE`     | no       | "Today" for urgency checks, `YYYY-MM-DD`, default `2025-06-11`     |
| `OPENAI_BASE_URL`     | no       | Base URL of the chat completion API; OpenAI's own API by default   |

The `vivaplanner` command refuses to start if `OPENAI_API_KEY` or
`VIVATECH_API_URL` is missing.

## Running

```
export OPENAI_API_KEY=placeholder
export VIVATECH_API_URL=http://localhost:9000/query
vivaplanner
```

Options:

- `--host` – address to listen on, `127.0.0.1` by default
- `--port` – port to listen on, `8000` by default
- `--secrets PATH` – a file of `KEY = "value"` lines. Blank lines and lines
  starting with `#` are skipped; values may be double-quoted, single-quoted or
  bare. Of its entries, `OPENAI_API_KEY`, `VIVATECH_API_URL`,
  `API_TIMEOUT_SECONDS` and `CONFERENCE_DATE` are copied into the environment,
  replacing values already set there.

## Usage

Send a POST request to `/generate-plan` with a JSON body that holds your
objective:

```
curl -X POST http://localhost:8000/generate-plan \
     -H 'Content-Type: application/json' \
     -d '{"objective": "Find AI sessions about healthcare"}'
```

The reply is plain text with the plan. The request is answered with:

- `415` if the `Content-Type` is not JSON,
- `400` if the body is not valid JSON,
- `422` if the body has no string `objective`.

Failures further on (no API key, an error from the model or from the search
tool) still come back with status 200, as a text starting with `Error:`.

If an objective contains the phrase `test simple`, the model answers on its own
without the search tool, which helps check that the OpenAI connection works.
Otherwise the agent may call the search tool; a conversation is stopped after
five model turns.

## As a library

- `vivaplanner.app.create_app()` returns the FastAPI application, which you can
  mount or serve yourself. `generate_plan(payload)` is the coroutine behind the
  endpoint; `build_planning_agent(client)` and `OpenAIClient.from_env()` build
  the agent it uses.
- `vivaplanner.tools` has the two agent tools, `QueryVivatechAPI` and
  `AssessTimeliness`, and the date helpers: `extract_date_from_text` finds
  dates such as "June 12" or "12th June" (always in 2025), and
  `analyze_event_urgency` rates an event as immediate (today), soon (tomorrow)
  or normal against a given date.
- `vivaplanner.models` has the data classes for search responses and requests,
  and `current_conference_date()`.

## What it does not do

`AssessTimeliness` is available as a tool but is not given to the planning
agent; call it yourself if you need urgency ratings. The service keeps no
state: plans are not stored, and the endpoint has no authentication of its own.