[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vision-mcp"
version = "0.1.0"
description = "MCP server providing image vision analysis via an OpenAI-compatible API"
requires-python = ">=3.10"
keywords = ["mcp", "model-context-protocol", "vision", "image", "openai", "llm"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
]
dependencies = [
    "httpx>=0.25",
    "pillow>=10.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "respx>=0.20",
]

[project.scripts]
vision-mcp = "vision_mcp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["vision_mcp"]

[tool.hatch.build.targets.sdist]
include = ["vision_mcp", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
