"""The "see" tool: load an image, optionally crop it, and ask a vision model about it."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from vision_mcp.client import VisionAPIError, VisionClient
from vision_mcp.crop import CropError, CropRegion, crop
from vision_mcp.loader import ImageLoadError, load
from vision_mcp.server import McpServer, Tool

TOOL_NAME = "see"
DEFAULT_QUESTION = "Describe this image in detail."
DEFAULT_DETAIL = "auto"
VALID_DETAILS = frozenset({"low", "high", "auto"})

TOOL_DESCRIPTION = (
    "Analyze an image using a vision model. IMPORTANT: You must attempt to use your native "
    "Read tool on images before resorting to this tool. Accepts local file paths, HTTP(S) "
    "URLs, or data URLs. Supports optional cropping to focus on a specific region before "
    "analysis. For PDFs, use pdftoppm or similar CLI tool to convert to JPEGs first. Only use "
    "this when native image reading is insufficient or external API vision analysis is "
    "specifically required."
)

_CROP_FIELDS = ("x", "y", "width", "height")

INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "source": {
            "type": "string",
            "description": "image source: local file path, HTTP(S) URL, or data URL",
        },
        "question": {"type": "string", "description": "what to ask about the image"},
        "detail": {
            "type": "string",
            "description": "API image detail level: low, high, or auto (default: auto)",
        },
        "max_tokens": {"type": "integer", "description": "maximum tokens in the response"},
        "crop": {
            "type": "object",
            "description": "crop region as fractional coordinates 0.0-1.0",
            "properties": {
                "x": {"type": "number", "description": "left edge fraction 0.0-1.0"},
                "y": {"type": "number", "description": "top edge fraction 0.0-1.0"},
                "width": {"type": "number", "description": "width fraction 0.0-1.0"},
                "height": {"type": "number", "description": "height fraction 0.0-1.0"},
            },
            "required": list(_CROP_FIELDS),
            "additionalProperties": False,
        },
    },
    "required": ["source"],
    "additionalProperties": False,
}

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {"text": {"type": "string"}},
    "required": ["text"],
}


class ToolError(Exception):
    """Raised when a "see" call cannot be completed."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_string(arguments: dict, key: str) -> str:
    value = arguments.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ToolError(f"argument {key!r} must be a string")
    return value


def _parse_crop(value: Any) -> CropRegion | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ToolError("argument 'crop' must be an object")
    unexpected = sorted(set(value) - set(_CROP_FIELDS))
    if unexpected:
        raise ToolError(f"unexpected crop field {unexpected[0]!r}")
    coordinates = {}
    for name in _CROP_FIELDS:
        if name not in value:
            raise ToolError(f"crop field {name!r} is required")
        if not _is_number(value[name]):
            raise ToolError(f"crop field {name!r} must be a number")
        coordinates[name] = float(value[name])
    return CropRegion(**coordinates)


def _parse_max_tokens(value: Any) -> int | None:
    if value is None:
        return None
    if _is_number(value) and float(value).is_integer():
        return int(value)
    raise ToolError("argument 'max_tokens' must be an integer")


@dataclass(frozen=True)
class SeeInput:
    """Arguments of a "see" call."""

    source: str
    question: str = ""
    detail: str = ""
    max_tokens: int | None = None
    crop: CropRegion | None = None

    @classmethod
    def from_arguments(cls, arguments: dict) -> SeeInput:
        """Build the input from decoded tool arguments, checking them against the schema."""
        unexpected = sorted(set(arguments) - set(INPUT_SCHEMA["properties"]))
        if unexpected:
            raise ToolError(f"unexpected argument {unexpected[0]!r}")
        source = arguments.get("source")
        if not isinstance(source, str):
            raise ToolError("argument 'source' is required and must be a string")
        return cls(
            source=source,
            question=_optional_string(arguments, "question"),
            detail=_optional_string(arguments, "detail"),
            max_tokens=_parse_max_tokens(arguments.get("max_tokens")),
            crop=_parse_crop(arguments.get("crop")),
        )


def apply_crop(data_url: str, region: CropRegion) -> str:
    """Crop the image held in ``data_url`` and return it as a PNG data URL."""
    _, comma, encoded = data_url.partition(",")
    if not comma:
        raise ToolError("invalid data URL for crop")
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ToolError(f"decoding image data: {exc}") from exc
    cropped = crop(raw, region)
    return "data:image/png;base64," + base64.b64encode(cropped).decode("ascii")


def handle(client: VisionClient, see_input: SeeInput) -> dict:
    """Run one "see" call and return its structured output."""
    question = see_input.question or DEFAULT_QUESTION
    detail = see_input.detail or DEFAULT_DETAIL
    if detail not in VALID_DETAILS:
        raise ToolError(f"invalid detail value {json.dumps(detail)}: must be low, high, or auto")

    try:
        data_url = load(see_input.source)
    except ImageLoadError as exc:
        raise ToolError(f"loading image: {exc}") from exc

    if see_input.crop is not None:
        try:
            data_url = apply_crop(data_url, see_input.crop)
        except (CropError, ToolError) as exc:
            raise ToolError(f"cropping image: {exc}") from exc

    max_tokens = see_input.max_tokens if see_input.max_tokens is not None else 0
    try:
        result = client.analyze(data_url, question, detail, max_tokens)
    except VisionAPIError as exc:
        raise ToolError(f"analyzing image: {exc}") from exc

    return {"text": result.text}


def register(server: McpServer, client: VisionClient) -> None:
    """Add the "see" tool to ``server``, sending requests through ``client``."""

    def _run(arguments: dict) -> dict:
        return handle(client, SeeInput.from_arguments(arguments))

    server.add_tool(
        Tool(
            name=TOOL_NAME,
            description=TOOL_DESCRIPTION,
            input_schema=INPUT_SCHEMA,
            output_schema=OUTPUT_SCHEMA,
            handler=_run,
        )
    )