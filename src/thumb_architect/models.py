from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from io import BytesIO

from PIL import Image, ImageColor, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_ACCENT = "#22d3ee"
DEFAULT_PRIMARY = "#000000"
WHITE = (255, 255, 255)


def color_to_rgb(value: str | None, default: tuple[int, int, int] = WHITE) -> tuple[int, int, int]:
    """
    Parse a palette entry the way a browser would: hex, CSS colour names and
    rgb() all work. Unparseable values fall back to ``default``.
    """
    try:
        return ImageColor.getrgb((value or "").strip())[:3]
    except ValueError:
        return default


class LayoutType(str, Enum):
    SPLIT = "split"
    FULL_FACE = "full-face"
    MINIMAL = "minimal"
    GRID = "grid"


class AppStep(str, Enum):
    UPLOAD = "UPLOAD"
    ANALYZING = "ANALYZING"
    TEMPLATE_SELECTION = "TEMPLATE_SELECTION"
    EDITOR = "EDITOR"


class _GatewayModel(BaseModel):
    # The gateway speaks camelCase JSON; Python code uses snake_case.
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ThumbnailTemplate(_GatewayModel):
    id: str
    name: str
    headline: str
    highlight_word: str
    layout_description: str = ""
    color_palette: list[str]
    psychology: str
    graphic_elements: list[str] = Field(default_factory=list)
    best_use_case: str = ""
    layout_type: LayoutType
    suggested_background: str

    @property
    def primary_color(self) -> str:
        return self.color_palette[0] if self.color_palette else DEFAULT_PRIMARY

    @property
    def accent_color(self) -> str:
        if len(self.color_palette) > 1 and self.color_palette[1]:
            return self.color_palette[1]
        return DEFAULT_ACCENT

    @property
    def text_color(self) -> str:
        if color_to_rgb(self.primary_color) == (0, 0, 0) and self.layout_type is not LayoutType.MINIMAL:
            return "#FFFFFF"
        if len(self.color_palette) > 2 and self.color_palette[2]:
            return self.color_palette[2]
        return "#FFFFFF"


class AnalysisResult(_GatewayModel):
    templates: list[ThumbnailTemplate]
    background_suggestions: list[str] = Field(default_factory=list)
    critique: str

    def find_template(self, template_id: str) -> ThumbnailTemplate:
        for t in self.templates:
            if t.id == template_id:
                return t
        raise LookupError(f"unknown template: {template_id}")


MIN_SUBJECT_SCALE = 0.5
MAX_SUBJECT_SCALE = 2.0


@dataclass(frozen=True)
class SubjectTransform:
    # Translate in logical canvas pixels; scale is applied about the subject center.
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def moved_to(self, x: float, y: float) -> SubjectTransform:
        return SubjectTransform(x=x, y=y, scale=self.scale)

    def scaled(self, scale: float) -> SubjectTransform:
        clamped = max(MIN_SUBJECT_SCALE, min(MAX_SUBJECT_SCALE, float(scale)))
        return SubjectTransform(x=self.x, y=self.y, scale=clamped)


class ImageDecodeError(ValueError):
    pass


_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


@dataclass(frozen=True)
class SubjectImage:
    data: bytes
    mime_type: str
    filename: str = ""

    @classmethod
    def from_upload(cls, content: bytes, filename: str = "", max_bytes: int | None = None) -> SubjectImage:
        """
        Validate an uploaded photo with Pillow and keep its original bytes.
        """
        if not content:
            raise ImageDecodeError("uploaded file is empty")
        if max_bytes is not None and len(content) > max_bytes:
            raise ImageDecodeError(f"uploaded file exceeds {max_bytes // (1024 * 1024)}MB")
        try:
            with Image.open(BytesIO(content)) as img:
                fmt = img.format or ""
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ImageDecodeError("uploaded file is not a readable image") from exc
        mime = _FORMAT_MIME.get(fmt.upper())
        if mime is None:
            raise ImageDecodeError(f"unsupported image format: {fmt or 'unknown'}")
        return cls(data=content, mime_type=mime, filename=filename)

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def open(self) -> Image.Image:
        return Image.open(BytesIO(self.data))


@dataclass(frozen=True)
class GeneratedBackground:
    data: bytes
    mime_type: str
    prompt_used: str = ""

    def open(self) -> Image.Image:
        return Image.open(BytesIO(self.data))
