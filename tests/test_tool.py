import base64
import io
import json

import httpx
import pytest
import respx
from PIL import Image

from vision_mcp.client import Config, VisionClient
from vision_mcp.crop import CropRegion
from vision_mcp.server import McpServer
from vision_mcp.tool import SeeInput, ToolError, apply_crop, handle, register

API_BASE = "http://api.test"
API_URL = API_BASE + "/chat/completions"


def _completion(text, model="test-model"):
    return {
        "model": model,
        "choices": [{"message": {"content": text}}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 10},
    }


@pytest.fixture
def png_path(tmp_path):
    path = tmp_path / "test.png"
    Image.new("RGB", (4, 4), (255, 0, 0)).save(path, format="PNG")
    return str(path)


@pytest.fixture
def api():
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def client():
    with VisionClient(
        Config(base_url=API_BASE, api_key="token", model="test-model", max_tokens=256)
    ) as vision_client:
        yield vision_client


@pytest.fixture
def server(client):
    srv = McpServer("vision-mcp-test", "0.0.1")
    register(srv, client)
    return srv


def _call_see(server, arguments):
    reply = server.handle_message(
        {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {"name": "see", "arguments": arguments},
        }
    )
    return reply["result"]


def _parts(route):
    body = json.loads(route.calls.last.request.content)
    return {part["type"]: part for part in body["messages"][0]["content"]}, body


def test_see_tool_registered(server):
    reply = server.handle_message({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    tools = reply["result"]["tools"]
    assert len(tools) == 1
    assert tools[0]["name"] == "see"


def test_see_with_file(server, api, png_path):
    api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("A small red square.")))
    result = _call_see(server, {"source": png_path, "question": "What color is this?"})
    assert result["isError"] is False
    assert result["structuredContent"] == {"text": "A small red square."}


def test_see_with_crop(server, api, png_path):
    route = api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("cropped")))
    result = _call_see(
        server, {"source": png_path, "crop": {"x": 0, "y": 0, "width": 0.5, "height": 0.5}}
    )
    assert result["isError"] is False
    parts, _ = _parts(route)
    received = parts["image_url"]["image_url"]["url"]
    assert received.startswith("data:image/png;base64,")
    image = Image.open(io.BytesIO(base64.b64decode(received.split(",", 1)[1])))
    assert image.size == (2, 2)


def test_see_default_question_and_detail(server, api, png_path):
    route = api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("desc")))
    result = _call_see(server, {"source": png_path})
    assert result["isError"] is False
    assert result["structuredContent"] == {"text": "desc"}
    parts, body = _parts(route)
    assert parts["text"]["text"] == "Describe this image in detail."
    assert parts["image_url"]["image_url"]["detail"] == "auto"
    assert body["max_tokens"] == 256


def test_see_max_tokens_override(server, api, png_path):
    route = api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))
    result = _call_see(server, {"source": png_path, "max_tokens": 512})
    assert result["isError"] is False
    assert result["structuredContent"] == {"text": "ok"}
    _, body = _parts(route)
    assert body["max_tokens"] == 512


def test_see_invalid_source(server, api):
    route = api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))
    result = _call_see(server, {"source": "/nonexistent/path/image.png"})
    assert result["isError"] is True
    assert "loading image" in result["content"][0]["text"]
    assert not route.called


def test_see_invalid_detail(server, api, png_path):
    api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))
    result = _call_see(server, {"source": png_path, "detail": "ultra"})
    assert result["isError"] is True
    assert '"ultra"' in result["content"][0]["text"]


def test_see_api_failure_is_tool_error(server, api, png_path):
    api.post(API_URL).mock(return_value=httpx.Response(500, text="internal error"))
    result = _call_see(server, {"source": png_path})
    assert result["isError"] is True
    assert "analyzing image" in result["content"][0]["text"]
    assert "500" in result["content"][0]["text"]


def test_see_invalid_crop_region(server, api, png_path):
    api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("ok")))
    result = _call_see(
        server, {"source": png_path, "crop": {"x": 0.9, "y": 0, "width": 0.5, "height": 0.1}}
    )
    assert result["isError"] is True
    assert "cropping image" in result["content"][0]["text"]


def test_handle_returns_text(client, api, png_path):
    api.post(API_URL).mock(return_value=httpx.Response(200, json=_completion("A red square.")))
    assert handle(client, SeeInput(source=png_path)) == {"text": "A red square."}


def test_from_arguments_parses_crop():
    see_input = SeeInput.from_arguments(
        {"source": "a.png", "max_tokens": 64, "crop": {"x": 0, "y": 0.25, "width": 1, "height": 0.5}}
    )
    assert see_input.crop == CropRegion(0.0, 0.25, 1.0, 0.5)
    assert see_input.max_tokens == 64
    assert see_input.question == ""


@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"source": 5},
        {"source": "a.png", "extra": 1},
        {"source": "a.png", "max_tokens": "ten"},
        {"source": "a.png", "crop": {"x": 0, "y": 0, "width": 0.5}},
        {"source": "a.png", "crop": {"x": "0", "y": 0, "width": 0.5, "height": 0.5}},
    ],
)
def test_from_arguments_rejects_bad_input(arguments):
    with pytest.raises(ToolError):
        SeeInput.from_arguments(arguments)


def test_apply_crop_returns_png_data_url(png_path):
    with open(png_path, "rb") as handle_:
        encoded = base64.b64encode(handle_.read()).decode("ascii")
    result = apply_crop("data:image/png;base64," + encoded, CropRegion(0.5, 0.5, 0.5, 0.5))
    assert result.startswith("data:image/png;base64,")
    image = Image.open(io.BytesIO(base64.b64decode(result.split(",", 1)[1])))
    assert image.size == (2, 2)


def test_apply_crop_requires_comma():
    with pytest.raises(ToolError, match="invalid data URL for crop"):
        apply_crop("data:image/png;base64", CropRegion(0, 0, 0.5, 0.5))


def test_apply_crop_rejects_bad_base64():
    with pytest.raises(ToolError, match="decoding image data"):
        apply_crop("data:image/png;base64,@@@", CropRegion(0, 0, 0.5, 0.5))