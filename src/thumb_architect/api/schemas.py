from __future__ import annotations

from pydantic import BaseModel


class TextUpdate(BaseModel):
    headline: str | None = None
    highlight_word: str | None = None


class SubjectUpdate(BaseModel):
    scale: float | None = None
    background_removed: bool | None = None


class PointerPosition(BaseModel):
    # Logical canvas pixels (the page divides out its preview scale).
    x: float
    y: float


class HeadlinePartsOut(BaseModel):
    prefix: str
    highlight: str
    suffix: str


class TransformOut(BaseModel):
    x: float
    y: float
    scale: float


class EditorStateOut(BaseModel):
    step: str
    template_id: str
    layout_type: str
    headline: str
    highlight_word: str
    headline_parts: HeadlinePartsOut
    transform: TransformOut
    background_removed: bool
    dragging: bool
    is_generating_background: bool
    has_background: bool
    # [left, top, right, bottom] in canvas pixels, or null without a photo.
    subject_box: list[float] | None = None
