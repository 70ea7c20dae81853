from __future__ import annotations

from typing import Protocol

from thumb_architect.models import AnalysisResult, GeneratedBackground


class GatewayError(RuntimeError):
    """Any failure talking to (or parsing the answer of) the generative-AI service."""


class ThumbnailGateway(Protocol):
    name: str

    async def analyze(
        self,
        image_base64: str,
        topic: str,
        mime_type: str = "image/jpeg",
    ) -> AnalysisResult: ...

    async def generate_background(self, prompt: str) -> GeneratedBackground: ...
