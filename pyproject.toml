[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vivaplanner"
version = "0.1.0"
description = "HTTP service that plans a conference visit with an OpenAI chat model and a session search tool"
requires-python = ">=3.10"
keywords = ["conference", "planning", "agent", "openai", "fastapi", "http-api"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: FastAPI",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "fastapi",
    "httpx",
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
vivaplanner = "vivaplanner.app:main"

[tool.hatch.build.targets.wheel]
packages = ["vivaplanner"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
