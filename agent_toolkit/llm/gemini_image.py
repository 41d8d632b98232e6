"""
Image generation tool — translates ``generate_image`` calls into requests
against the Gemini REST API or OpenRouter chat completions.
"""

from __future__ import annotations

import base64
import json
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import quote

import requests

from ..path_utils import resolve_to_cwd

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-image-preview"
DEFAULT_OPENROUTER_MODEL = "google/gemini-3-pro-image-preview"
DEFAULT_TIMEOUT_SECONDS = 120
MAX_IMAGE_SIZE = 20 * 1024 * 1024

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")
IMAGE_SIZES = ("1024x1024", "1536x1024", "1024x1536")
RESPONSE_MODALITIES = ("Image", "Text")

GEMINI_IMAGE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "prompt": {"type": "string", "description": "Text prompt for image generation or editing."},
        "model": {
            "type": "string",
            "description": (
                f"Image model. Default: {DEFAULT_MODEL} (direct Gemini) or "
                f"{DEFAULT_OPENROUTER_MODEL} (OpenRouter)."
            ),
        },
        "response_modalities": {
            "type": "array",
            "items": {"enum": list(RESPONSE_MODALITIES)},
            "minItems": 1,
            "description": 'Response modalities (default: ["Image"]).',
        },
        "aspect_ratio": {"enum": list(ASPECT_RATIOS), "description": "Aspect ratio."},
        "image_size": {"enum": list(IMAGE_SIZES), "description": "Image size."},
        "input_images": {
            "type": "array",
            "description": "Optional input images for edits or variations.",
            "items": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Path to an input image file."},
                    "data": {"type": "string", "description": "Base64 image data or a data: URL."},
                    "mime_type": {"type": "string", "description": "Required for raw base64 data."},
                },
                "additionalProperties": False,
            },
        },
        "timeout_seconds": {
            "type": "number",
            "minimum": 1,
            "maximum": 600,
            "description": f"Request timeout in seconds (default: {DEFAULT_TIMEOUT_SECONDS}).",
        },
    },
    "required": ["prompt"],
    "additionalProperties": False,
}

_DATA_URL = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)

# Leading bytes of the image formats the providers accept.
_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


class ImageToolError(Exception):
    """Raised for invalid parameters, missing keys and provider failures."""


@dataclass
class ImageApiKey:
    provider: str  # "gemini" | "openrouter"
    api_key: str


@dataclass
class InlineImage:
    data: str  # base64
    mime_type: str


@dataclass
class ImageToolDetails:
    provider: str
    model: str
    image_count: int
    response_text: Optional[str] = None
    prompt_feedback: Optional[dict] = None
    usage: Optional[dict] = None


@dataclass
class ImageToolResult:
    text: str
    details: ImageToolDetails
    images: list[InlineImage] = field(default_factory=list)


# ------------------------------------------------------------------
# Keys and input images
# ------------------------------------------------------------------

def find_image_api_key(env: Optional[Mapping[str, str]] = None) -> Optional[ImageApiKey]:
    """OpenRouter first, then Gemini, then Google keys."""
    env = os.environ if env is None else env
    if env.get("OPENROUTER_API_KEY"):
        return ImageApiKey("openrouter", env["OPENROUTER_API_KEY"])
    if env.get("GEMINI_API_KEY"):
        return ImageApiKey("gemini", env["GEMINI_API_KEY"])
    if env.get("GOOGLE_API_KEY"):
        return ImageApiKey("gemini", env["GOOGLE_API_KEY"])
    return None


def normalize_data_url(data: str) -> tuple[str, Optional[str]]:
    """Return ``(base64_data, mime_type)``; mime is None for raw base64."""
    match = _DATA_URL.match(data)
    if not match:
        return data, None
    return match.group(2), match.group(1)


def resolve_openrouter_model(model: str) -> str:
    return model if "/" in model else f"google/{model}"


def to_data_url(image: InlineImage) -> str:
    return f"data:{image.mime_type};base64,{image.data}"


def detect_image_mime_type(header: bytes) -> Optional[str]:
    for signature, mime in _IMAGE_SIGNATURES:
        if header.startswith(signature):
            return mime
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "image/webp"
    return None


def load_image_from_path(image_path: str, cwd: str) -> InlineImage:
    resolved = resolve_to_cwd(image_path, cwd)
    if not os.path.isfile(resolved):
        raise ImageToolError(f"Image file not found: {image_path}")
    if os.path.getsize(resolved) > MAX_IMAGE_SIZE:
        raise ImageToolError(f"Image file too large: {image_path}")

    with open(resolved, "rb") as f:
        raw = f.read()
    mime_type = detect_image_mime_type(raw[:16])
    if not mime_type:
        raise ImageToolError(f"Unsupported image type: {image_path}")
    return InlineImage(base64.b64encode(raw).decode("ascii"), mime_type)


def load_image_from_url(image_url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> InlineImage:
    if image_url.startswith("data:"):
        data, mime_type = normalize_data_url(image_url.strip())
        if not mime_type:
            raise ImageToolError("mime_type is required when providing raw base64 data.")
        if not data:
            raise ImageToolError("Image data is empty.")
        return InlineImage(data, mime_type)

    response = requests.get(image_url, timeout=(10, timeout))
    if not response.ok:
        raise ImageToolError(f"Image download failed ({response.status_code}): {response.text}")
    content_type = (response.headers.get("content-type") or "").split(";")[0].strip()
    if not content_type.startswith("image/"):
        raise ImageToolError(f"Unsupported image type from URL: {image_url}")
    return InlineImage(base64.b64encode(response.content).decode("ascii"), content_type)


def resolve_input_image(entry: Mapping[str, Any], cwd: str) -> InlineImage:
    for key in ("path", "data", "mime_type"):
        if entry.get(key) is not None and not isinstance(entry[key], str):
            raise ImageToolError(f"input_images {key} must be a string.")

    if entry.get("path"):
        return load_image_from_path(entry["path"], cwd)

    if entry.get("data"):
        data, mime_type = normalize_data_url(entry["data"].strip())
        mime_type = mime_type or entry.get("mime_type")
        if not mime_type:
            raise ImageToolError("mime_type is required when providing raw base64 data.")
        if not data:
            raise ImageToolError("Image data is empty.")
        return InlineImage(data, mime_type)

    raise ImageToolError("input_images entries must include either path or data.")


# ------------------------------------------------------------------
# Response helpers
# ------------------------------------------------------------------

def build_response_summary(model: str, image_count: int, response_text: Optional[str]) -> str:
    lines = [f"Model: {model}", f"Images: {image_count}"]
    if response_text:
        lines.extend(["", response_text.strip()])
    return "\n".join(lines)


def combine_parts(response: Mapping[str, Any]) -> list[dict]:
    parts: list[dict] = []
    for candidate in response.get("candidates") or []:
        parts.extend((candidate.get("content") or {}).get("parts") or [])
    return parts


def collect_response_text(parts: list[dict]) -> Optional[str]:
    combined = "\n".join(p["text"] for p in parts if p.get("text")).strip()
    return combined or None


def collect_inline_images(parts: list[dict]) -> list[InlineImage]:
    images: list[InlineImage] = []
    for part in parts:
        inline = part.get("inlineData") or {}
        if inline.get("data") and inline.get("mimeType"):
            images.append(InlineImage(inline["data"], inline["mimeType"]))
    return images


def collect_openrouter_response_text(message: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not message:
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content.strip() or None
    if isinstance(content, list):
        texts = [p.get("text") for p in content if p.get("type") == "text" and p.get("text")]
        return "\n".join(texts).strip() or None
    return None


def extract_openrouter_image_urls(message: Optional[Mapping[str, Any]]) -> list[str]:
    urls: list[str] = []
    if not message:
        return urls
    for image in message.get("images") or []:
        if isinstance(image, str):
            urls.append(image)
        elif (image.get("image_url") or {}).get("url"):
            urls.append(image["image_url"]["url"])
    content = message.get("content")
    if isinstance(content, list):
        for part in content:
            if part.get("type") == "image_url" and (part.get("image_url") or {}).get("url"):
                urls.append(part["image_url"]["url"])
    return urls


def _error_message(response: requests.Response) -> str:
    raw = response.text
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
        return parsed["error"].get("message") or raw
    return raw


# ------------------------------------------------------------------
# Tool
# ------------------------------------------------------------------

class GeminiImageTool:
    """The ``generate_image`` tool."""

    name = "generate_image"
    label = "GenerateImage"
    description = (
        "Generate or edit images with Gemini image models, directly or "
        "through OpenRouter."
    )
    parameters = GEMINI_IMAGE_SCHEMA

    def __init__(
        self,
        default_model: str = DEFAULT_MODEL,
        default_openrouter_model: str = DEFAULT_OPENROUTER_MODEL,
        default_timeout: int = DEFAULT_TIMEOUT_SECONDS,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.default_model = default_model
        self.default_openrouter_model = default_openrouter_model
        self.default_timeout = default_timeout
        self._env = env

    def execute(
        self,
        params: Mapping[str, Any],
        cwd: str = ".",
        signal: Optional[threading.Event] = None,
    ) -> ImageToolResult:
        self._validate(params)
        api_key = find_image_api_key(self._env)
        if api_key is None:
            raise ImageToolError("OPENROUTER_API_KEY, GEMINI_API_KEY, or GOOGLE_API_KEY not found.")

        provider = api_key.provider
        default = self.default_openrouter_model if provider == "openrouter" else self.default_model
        model = params.get("model") or default
        images = [resolve_input_image(entry, cwd) for entry in params.get("input_images") or []]
        timeout = params.get("timeout_seconds") or self.default_timeout

        self._check_cancelled(signal)
        logger.info("[ImageGen] %s request, model=%s, %d input image(s)",
                    provider, model, len(images))
        try:
            if provider == "openrouter":
                return self._run_openrouter(params, api_key, model, images, timeout, signal)
            return self._run_gemini(params, api_key, model, images, timeout)
        except requests.exceptions.Timeout as exc:
            raise ImageToolError(f"Image request timed out after {timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise ImageToolError(f"Image request failed: {exc}") from exc

    # ------------------------------------------------------------------

    @staticmethod
    def _validate(params: Mapping[str, Any]) -> None:
        prompt = params.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ImageToolError("prompt must be a non-empty string.")
        unknown = set(params) - set(GEMINI_IMAGE_SCHEMA["properties"])
        if unknown:
            raise ImageToolError(f"Unknown parameter(s): {', '.join(sorted(unknown))}")
        if params.get("aspect_ratio") not in (None, *ASPECT_RATIOS):
            raise ImageToolError(f"aspect_ratio must be one of {', '.join(ASPECT_RATIOS)}.")
        if params.get("image_size") not in (None, *IMAGE_SIZES):
            raise ImageToolError(f"image_size must be one of {', '.join(IMAGE_SIZES)}.")
        modalities = params.get("response_modalities")
        if modalities is not None:
            if (not isinstance(modalities, list) or not modalities
                    or any(m not in RESPONSE_MODALITIES for m in modalities)):
                raise ImageToolError("response_modalities must be a non-empty list of Image/Text.")
        timeout = params.get("timeout_seconds")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise ImageToolError("timeout_seconds must be a number.")
            if not 1 <= timeout <= 600:
                raise ImageToolError("timeout_seconds must be between 1 and 600.")
        images = params.get("input_images")
        if images is not None:
            if not isinstance(images, list) or not all(isinstance(e, dict) for e in images):
                raise ImageToolError("input_images must be a list of objects.")

    @staticmethod
    def _check_cancelled(signal: Optional[threading.Event]) -> None:
        if signal is not None and signal.is_set():
            raise ImageToolError("Image generation was cancelled.")

    def _run_openrouter(
        self,
        params: Mapping[str, Any],
        api_key: ImageApiKey,
        model: str,
        images: list[InlineImage],
        timeout: float,
        signal: Optional[threading.Event],
    ) -> ImageToolResult:
        resolved_model = resolve_openrouter_model(model)
        content_parts: list[dict] = [{"type": "text", "text": params["prompt"]}]
        for image in images:
            content_parts.append({"type": "image_url", "image_url": {"url": to_data_url(image)}})

        payload = {
            "model": resolved_model,
            "messages": [{"role": "user", "content": content_parts}],
        }
        response = requests.post(
            OPENROUTER_URL,
            json=payload,
            headers={"Authorization": f"Bearer {api_key.api_key}"},
            timeout=(10, timeout),
        )
        if not response.ok:
            raise ImageToolError(
                f"OpenRouter image request failed ({response.status_code}): "
                f"{_error_message(response)}"
            )

        data = response.json()
        choices = data.get("choices") or [{}]
        message = choices[0].get("message")
        response_text = collect_openrouter_response_text(message)

        inline_images: list[InlineImage] = []
        for url in extract_openrouter_image_urls(message):
            self._check_cancelled(signal)
            inline_images.append(load_image_from_url(url, timeout))

        details = ImageToolDetails(
            provider="openrouter",
            model=resolved_model,
            image_count=len(inline_images),
            response_text=response_text,
        )
        if not inline_images:
            suffix = f"\n\n{response_text}" if response_text else ""
            return ImageToolResult(text=f"No image data returned.{suffix}", details=details)
        return ImageToolResult(
            text=build_response_summary(resolved_model, len(inline_images), response_text),
            details=details,
            images=inline_images,
        )

    def _run_gemini(
        self,
        params: Mapping[str, Any],
        api_key: ImageApiKey,
        model: str,
        images: list[InlineImage],
        timeout: float,
    ) -> ImageToolResult:
        parts: list[dict] = [
            {"inlineData": {"data": image.data, "mimeType": image.mime_type}}
            for image in images
        ]
        parts.append({"text": params["prompt"]})

        generation_config: dict[str, Any] = {
            "responseModalities": list(params.get("response_modalities") or ["Image"]),
        }
        image_config = {
            key: value
            for key, value in (
                ("aspectRatio", params.get("aspect_ratio")),
                ("imageSize", params.get("image_size")),
            )
            if value
        }
        if image_config:
            generation_config["imageConfig"] = image_config

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }
        url = f"{GEMINI_BASE_URL}/models/{quote(model, safe='')}:generateContent"
        response = requests.post(
            url,
            json=payload,
            headers={"x-goog-api-key": api_key.api_key},
            timeout=(10, timeout),
        )
        if not response.ok:
            raise ImageToolError(
                f"Gemini image request failed ({response.status_code}): "
                f"{_error_message(response)}"
            )

        data = response.json()
        response_parts = combine_parts(data)
        response_text = collect_response_text(response_parts)
        inline_images = collect_inline_images(response_parts)
        feedback = data.get("promptFeedback")
        usage = data.get("usageMetadata")
        logger.debug("[ImageGen] Gemini usage: %s", usage)

        details = ImageToolDetails(
            provider="gemini",
            model=model,
            image_count=len(inline_images),
            response_text=response_text,
            prompt_feedback=feedback,
            usage=usage,
        )
        if not inline_images:
            reason = (feedback or {}).get("blockReason")
            blocked = f"Blocked: {reason}" if reason else "No image data returned."
            suffix = f"\n\n{response_text}" if response_text else ""
            return ImageToolResult(text=f"{blocked}{suffix}", details=details)
        return ImageToolResult(
            text=build_response_summary(model, len(inline_images), response_text),
            details=details,
            images=inline_images,
        )


def get_gemini_image_tools(env: Optional[Mapping[str, str]] = None) -> list[GeminiImageTool]:
    """The image tool, only when an API key is configured."""
    if find_image_api_key(env) is None:
        return []
    return [GeminiImageTool(env=env)]
