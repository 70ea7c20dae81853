from __future__ import annotations

import base64
import binascii
import json
import logging
from io import BytesIO
from typing import Any

from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from thumb_architect.config import settings
from thumb_architect.models import AnalysisResult, GeneratedBackground
from thumb_architect.providers.base import GatewayError

logger = logging.getLogger(__name__)


TEMPLATE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "critique": {
            "type": "STRING",
            "description": "A brief professional creative director critique of the uploaded image and topic.",
        },
        "backgroundSuggestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "3 alternative background descriptions (e.g., 'Dark gradient', 'Studio grid').",
        },
        "templates": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "name": {"type": "STRING"},
                    "headline": {"type": "STRING", "description": "Short, punchy headline (3-6 words)."},
                    "highlightWord": {"type": "STRING", "description": "The single most emotional word to highlight."},
                    "layoutDescription": {"type": "STRING"},
                    "colorPalette": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "psychology": {"type": "STRING", "description": "Why this works (CTR principles)."},
                    "graphicElements": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "bestUseCase": {"type": "STRING"},
                    "layoutType": {"type": "STRING", "enum": ["split", "full-face", "minimal", "grid"]},
                    "suggestedBackground": {"type": "STRING", "description": "Prompt to generate the background image."},
                },
                "required": [
                    "id",
                    "name",
                    "headline",
                    "highlightWord",
                    "colorPalette",
                    "psychology",
                    "layoutType",
                    "suggestedBackground",
                ],
            },
        },
    },
    "required": ["critique", "backgroundSuggestions", "templates"],
}


def build_analysis_prompt(topic: str, count: int) -> str:
    return (
        "You are a Professional Thumbnail Design Engine and Creative Director.\n"
        f'\nUser Topic: "{topic}"\n'
        "\nAnalyze the provided image (user's face/subject) and the topic.\n"
        f"Generate {count} high-CTR YouTube thumbnail templates based on marketing psychology.\n"
        "\nFollow these rules:\n"
        "1. Headlines must be short (3-6 words), engaging, and click-worthy.\n"
        "2. Highlight ONE emotional keyword per template.\n"
        "3. Colors should be business-style: Black, White, Blue, Cyan, with high contrast accents.\n"
        "4. Templates should vary in style:\n"
        "   - A: Bold Headline + Face\n"
        "   - B: Split Screen (Before/After vibe)\n"
        "   - C: Minimalist/Podcast\n"
        "   - D: High Tech/Grid\n"
        "\nProvide a critique of the image and how to best use it.\n"
    )


def build_background_prompt(style: str) -> str:
    return (
        "Generate a high-quality background texture for a YouTube thumbnail. "
        f"Style: {style}. No text. Abstract, high contrast, professional. Aspect ratio 16:9."
    )


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str | None, client: Any | None = None) -> None:
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise GatewayError("GEMINI_API_KEY is not set")
            # Imported lazily so the app can start without the dependency configured.
            from google import genai  # type: ignore

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def analyze(
        self,
        image_base64: str,
        topic: str,
        mime_type: str = "image/jpeg",
    ) -> AnalysisResult:
        from google.genai import types  # type: ignore

        try:
            image_bytes = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise GatewayError("image payload is not valid base64") from exc

        contents: list[Any] = [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            build_analysis_prompt(topic, settings.template_count),
        ]
        try:
            resp = await self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=TEMPLATE_SCHEMA,
                    temperature=settings.analysis_temperature,
                ),
            )
        except GatewayError:
            raise
        except Exception as exc:
            raise GatewayError(f"analysis request failed: {exc}") from exc

        raw_text: str | None = getattr(resp, "text", None)
        if not raw_text:
            raise GatewayError("No response from AI")
        return parse_analysis(raw_text)

    async def generate_background(self, prompt: str) -> GeneratedBackground:
        enriched = build_background_prompt(prompt)
        try:
            resp = await self.client.aio.models.generate_content(
                model=settings.gemini_image_model,
                contents=enriched,
            )
        except GatewayError:
            raise
        except Exception as exc:
            raise GatewayError(f"background request failed: {exc}") from exc

        extracted = _extract_images_from_generate_content(resp)
        if not extracted:
            raise GatewayError("No image generated")
        data, mime = extracted[0]
        return GeneratedBackground(data=data, mime_type=mime, prompt_used=enriched)


def parse_analysis(raw_text: str) -> AnalysisResult:
    try:
        data = json.loads(_strip_code_fences(raw_text))
    except json.JSONDecodeError as exc:
        raise GatewayError(f"analysis response is not JSON: {exc}") from exc
    try:
        result = AnalysisResult.model_validate(data)
    except ValidationError as exc:
        raise GatewayError(f"analysis response does not match schema: {exc}") from exc
    if not result.templates:
        raise GatewayError("analysis response contains no templates")
    return result


def _strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        # Remove leading fence line
        first_nl = s.find("\n")
        if first_nl != -1:
            s = s[first_nl + 1 :]
        # Remove trailing fence
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def _extract_images_from_generate_content(resp: Any) -> list[tuple[bytes, str]]:
    out: list[tuple[bytes, str]] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if not inline:
                continue
            mime = getattr(inline, "mime_type", None) or "image/png"
            data = getattr(inline, "data", None)
            if not data:
                continue
            if not mime.startswith("image/"):
                continue
            if isinstance(data, str):
                try:
                    data = base64.b64decode(data)
                except (binascii.Error, ValueError):
                    logger.warning("Unexpected image payload from Gemini (undecodable base64)")
                    continue
            try:
                with Image.open(BytesIO(data)) as img:
                    img.verify()
            except (UnidentifiedImageError, OSError, SyntaxError):
                logger.warning("Gemini returned an unreadable %s image part", mime)
                continue
            out.append((data, mime))
    return out
