from __future__ import annotations

import logging
from dataclasses import dataclass, field

from thumb_architect.assembly.headline import HeadlineParts, split_headline
from thumb_architect.assembly.layouts import CompositionPlan, plan_composition
from thumb_architect.assembly.render import RenderedThumbnail, render_thumbnail
from thumb_architect.config import settings
from thumb_architect.models import GeneratedBackground, SubjectImage, SubjectTransform, ThumbnailTemplate

logger = logging.getLogger(__name__)

EXPORT_MESSAGE = (
    "Export is not available yet. A production build would rasterize this canvas "
    "to a high-resolution PNG."
)


@dataclass
class DragGesture:
    # Pointer position minus translate at pointer-down.
    start_x: float
    start_y: float


@dataclass(frozen=True)
class EditorSnapshot:
    """Immutable copy of everything needed to render one preview frame."""

    template: ThumbnailTemplate
    headline: str
    highlight_word: str
    transform: SubjectTransform
    background_removed: bool
    subject: SubjectImage | None
    background: GeneratedBackground | None
    is_generating_background: bool

    def render(self, size: tuple[int, int] | None = None) -> RenderedThumbnail:
        subject_img = self.subject.open() if self.subject is not None else None
        background_img = None
        if self.background is not None and not self.is_generating_background:
            background_img = self.background.open()
        return render_thumbnail(
            template=self.template,
            headline=self.headline,
            highlight_word=self.highlight_word,
            transform=self.transform,
            subject=subject_img,
            background=background_img,
            is_generating_background=self.is_generating_background,
            background_removed=self.background_removed,
            size=size or settings.canvas_size,
        )


@dataclass
class EditorSession:
    """
    Local editing state for one visit to the editor. Headline and highlight
    word start as copies of the template's values; the template itself is
    never modified.
    """

    template: ThumbnailTemplate
    headline: str = ""
    highlight_word: str = ""
    transform: SubjectTransform = field(default_factory=SubjectTransform)
    background_removed: bool = True
    drag: DragGesture | None = None

    @classmethod
    def open(cls, template: ThumbnailTemplate) -> EditorSession:
        return cls(template=template, headline=template.headline, highlight_word=template.highlight_word)

    @property
    def headline_parts(self) -> HeadlineParts:
        return split_headline(self.headline, self.highlight_word)

    def set_text(self, headline: str | None = None, highlight_word: str | None = None) -> None:
        if headline is not None:
            self.headline = headline
        if highlight_word is not None:
            self.highlight_word = highlight_word

    def set_scale(self, scale: float) -> None:
        self.transform = self.transform.scaled(scale)

    def set_background_removed(self, enabled: bool) -> None:
        self.background_removed = enabled

    def begin_drag(self, pointer_x: float, pointer_y: float) -> None:
        # A new pointer-down replaces whatever gesture was in flight.
        self.drag = DragGesture(start_x=pointer_x - self.transform.x, start_y=pointer_y - self.transform.y)

    def drag_to(self, pointer_x: float, pointer_y: float) -> bool:
        if self.drag is None:
            return False
        self.transform = self.transform.moved_to(pointer_x - self.drag.start_x, pointer_y - self.drag.start_y)
        return True

    def end_drag(self) -> None:
        self.drag = None

    def plan(self, subject: SubjectImage | None, size: tuple[int, int] | None = None) -> CompositionPlan:
        subject_size = None
        if subject is not None:
            with subject.open() as img:
                subject_size = img.size
        return plan_composition(self.template, self.transform, subject_size, size or settings.canvas_size)

    def design_stats(self) -> dict[str, str]:
        ew, eh = settings.export_size
        return {
            "Format": f"16:9 ({ew}x{eh})",
            "Color Strategy": f"{len(self.template.color_palette)} Tone High-Contrast",
            "Layout": self.template.layout_type.value,
        }

    def export(self) -> str:
        logger.info("export requested for template %s (not implemented)", self.template.id)
        return EXPORT_MESSAGE

    def snapshot(
        self,
        subject: SubjectImage | None,
        background: GeneratedBackground | None,
        is_generating_background: bool,
    ) -> EditorSnapshot:
        return EditorSnapshot(
            template=self.template,
            headline=self.headline,
            highlight_word=self.highlight_word,
            transform=self.transform,
            background_removed=self.background_removed,
            subject=subject,
            background=background,
            is_generating_background=is_generating_background,
        )
