# vision-mcp

A Model Context Protocol (MCP) server that exposes one tool, `see`. The tool
takes an image and sends it, with a question, to a vision-capable model behind
any OpenAI-compatible chat completions API, and returns the model's answer.

The server speaks MCP as newline-delimited JSON-RPC over standard input and
output, so any MCP client that launches stdio servers can use it.

## Installation

```
pip install .
```

This installs the `vision-mcp` command.

## Configuration

Settings come from the environment.

| Variable                | Required | Default        | Meaning                                      |
|-------------------------|----------|----------------|----------------------------------------------|
| `VISION_API_BASE_URL`   | yes      |                | Base URL of the API, e.g. `http://localhost:11434/v1` |
| `VISION_API_KEY`        | yes      |                | API key, sent as a bearer token              |
| `VISION_API_MODEL`      | no       | `gpt-4.1-mini` | Model name                                   |
| `VISION_API_MAX_TOKENS` | no       | `1024`         | Default maximum tokens in a response         |

If either required variable is missing, the command prints an error to
standard error and exits with status 1. A `VISION_API_MAX_TOKENS` value that
is not a whole number is read as 0, in which case no `max_tokens` is sent to
the API unless a call supplies one.

Requests go to `<base URL>/chat/completions` with a 120 second timeout.

## Running

```
VISION_API_BASE_URL=http://localhost:11434/v1 VISION_API_KEY=placeholder vision-mcp
```

Usually an MCP client starts the command for you. Give it the command
`vision-mcp` and the environment variables above. The server runs until its
input ends or it receives an interrupt or `SIGTERM`.

The server answers `initialize`, `ping`, `tools/list` and `tools/call`, and
accepts notifications.

## The `see` tool

Arguments:

- `source` (required): a local file path, an `http://` or `https://` URL, or a
  `data:<mime>;base64,<data>` URL. JPEG, PNG, GIF and WebP are accepted.
  Downloads follow redirects and are limited to 20 MB. A file's type is taken
  from its extension, or sniffed from its contents when the extension is not
  known.
- `question`: what to ask about the image. Defaults to
  `Describe this image in detail.`
- `detail`: `low`, `high` or `auto` (the default). The API uses this to decide
  how closely to process the image.
- `max_tokens`: an integer that overrides the server's default maximum for this
  request when it is positive.
- `crop`: an object with `x`, `y`, `width` and `height`, each a fraction of the
  image size with (0, 0) at the top-left corner. `x` and `y` must be in
  [0.0, 1.0], `width` and `height` must be positive, and `x + width` and
  `y + height` must not exceed 1.0. The region is cut out before sending and
  the result is sent as PNG. Cropping works on PNG, JPEG and GIF images.

Any other argument is rejected. On success the result carries the model's
answer in `text`, both as structured content and as JSON text. A bad source,
an invalid crop region, an unknown detail level or an API failure is reported
as a tool error carrying the message.

## Using the pieces from Python

```python
from vision_mcp.client import Config, VisionClient
from vision_mcp.crop import CropRegion, crop
from vision_mcp.loader import load

data_url = load("photo.jpg")

config = Config(
    base_url="http://localhost:11434/v1",
    api_key="placeholder",
    model="gpt-4.1-mini",
    max_tokens=1024,
)
with VisionClient(config) as client:
    result = client.analyze(data_url, "What is in this picture?", "auto", 0)
    print(result.text, result.model, result.prompt_tokens, result.completion_tokens)

with open("photo.png", "rb") as fh:
    top_left_png = crop(fh.read(), CropRegion(x=0.0, y=0.0, width=0.5, height=0.5))
```

`load` raises `ImageLoadError`, `crop` raises `CropError` and `analyze` raises
`VisionAPIError` when something goes wrong. `vision_mcp.loader` also offers
`detect_mime` and `to_data_url`.

The server itself lives in `vision_mcp.server`: `McpServer` holds `Tool`
objects added with `add_tool`, answers single decoded messages with
`handle_message`, and serves a stream with `serve(reader, writer)`.
`vision_mcp.tool.register` adds the `see` tool to a server.

## Limits

- Only the stdio transport is provided; there is no HTTP or SSE transport.
- Only tools are served: no resources or prompts.
- WebP images can be sent as they are but cannot be cropped.

## Tests

```
pip install .[test]
pytest
```