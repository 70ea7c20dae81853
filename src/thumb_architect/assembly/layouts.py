from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from thumb_architect.models import LayoutType, SubjectTransform, ThumbnailTemplate

TEXT_PADDING = 32
ARROW_TAG = "Arrow"
BADGE_TEXT = "New!"


@dataclass(frozen=True)
class Box:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True)
class TextBox:
    left: float
    # Exactly one of top/bottom is set; bottom-anchored text grows upward.
    top: float | None
    bottom: float | None
    max_width: float


class LayoutStrategy(ABC):
    """
    Placement rules for one layout type. Subjects are always bottom-anchored.
    """

    layout_type: LayoutType
    subject_width: float = 0.55
    # Distance from the canvas right edge to the subject right edge (fraction of width).
    subject_right_inset: float = 0.05

    def subject_box(self, canvas: tuple[int, int], image_size: tuple[int, int]) -> Box:
        cw, ch = canvas
        iw, ih = image_size
        width = cw * self.subject_width
        height = width * (ih / iw) if iw > 0 else 0.0
        right = cw - cw * self.subject_right_inset
        return Box(left=right - width, top=ch - height, right=right, bottom=ch)

    @abstractmethod
    def text_box(self, canvas: tuple[int, int]) -> TextBox: ...

    def divider_x(self, canvas: tuple[int, int]) -> float | None:
        return None


class SplitLayout(LayoutStrategy):
    layout_type = LayoutType.SPLIT
    subject_right_inset = -0.05

    def text_box(self, canvas: tuple[int, int]) -> TextBox:
        cw, ch = canvas
        return TextBox(
            left=16 + TEXT_PADDING,
            top=ch / 4 + TEXT_PADDING,
            bottom=None,
            max_width=cw / 2 - 2 * TEXT_PADDING,
        )

    def divider_x(self, canvas: tuple[int, int]) -> float | None:
        return canvas[0] / 2


class FullFaceLayout(LayoutStrategy):
    layout_type = LayoutType.FULL_FACE
    subject_width = 1.0
    subject_right_inset = 0.0

    def text_box(self, canvas: tuple[int, int]) -> TextBox:
        cw, ch = canvas
        return TextBox(
            left=32 + TEXT_PADDING,
            top=None,
            bottom=ch - 32 - TEXT_PADDING,
            max_width=cw - 64 - 2 * TEXT_PADDING,
        )


class InsetLayout(LayoutStrategy):
    """Minimal and grid: subject inset from the right, headline top-left."""

    max_text_width = 512

    def __init__(self, layout_type: LayoutType) -> None:
        self.layout_type = layout_type

    def text_box(self, canvas: tuple[int, int]) -> TextBox:
        cw, _ = canvas
        return TextBox(
            left=32 + TEXT_PADDING,
            top=32 + TEXT_PADDING,
            bottom=None,
            max_width=min(self.max_text_width, cw - 64) - 2 * TEXT_PADDING,
        )


LAYOUTS: dict[LayoutType, LayoutStrategy] = {
    LayoutType.SPLIT: SplitLayout(),
    LayoutType.FULL_FACE: FullFaceLayout(),
    LayoutType.MINIMAL: InsetLayout(LayoutType.MINIMAL),
    LayoutType.GRID: InsetLayout(LayoutType.GRID),
}


def strategy_for(layout_type: LayoutType) -> LayoutStrategy:
    return LAYOUTS[LayoutType(layout_type)]


@dataclass(frozen=True)
class CompositionPlan:
    canvas: tuple[int, int]
    subject_box: Box | None
    text_box: TextBox
    divider_x: float | None
    show_arrow: bool
    badge_text: str


def apply_transform(box: Box, transform: SubjectTransform) -> Box:
    # Matches a CSS translate() scale() pair with a centered transform origin.
    cx = (box.left + box.right) / 2 + transform.x
    cy = (box.top + box.bottom) / 2 + transform.y
    half_w = box.width * transform.scale / 2
    half_h = box.height * transform.scale / 2
    return Box(left=cx - half_w, top=cy - half_h, right=cx + half_w, bottom=cy + half_h)


def plan_composition(
    template: ThumbnailTemplate,
    transform: SubjectTransform,
    subject_size: tuple[int, int] | None,
    canvas: tuple[int, int],
) -> CompositionPlan:
    strategy = strategy_for(template.layout_type)
    subject_box = None
    if subject_size is not None:
        subject_box = apply_transform(strategy.subject_box(canvas, subject_size), transform)
    return CompositionPlan(
        canvas=canvas,
        subject_box=subject_box,
        text_box=strategy.text_box(canvas),
        divider_x=strategy.divider_x(canvas),
        show_arrow=ARROW_TAG in template.graphic_elements,
        badge_text=BADGE_TEXT,
    )
