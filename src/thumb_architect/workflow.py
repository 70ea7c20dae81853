from __future__ import annotations

import logging
from dataclasses import dataclass, field

from thumb_architect.editor import EditorSession
from thumb_architect.models import AnalysisResult, AppStep, GeneratedBackground, SubjectImage, ThumbnailTemplate
from thumb_architect.providers.base import ThumbnailGateway

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_NOTICE = "Failed to analyze image. Please try again."


class InvalidTransition(RuntimeError):
    def __init__(self, action: str, step: AppStep) -> None:
        super().__init__(f"cannot {action} while in {step.value}")
        self.action = action
        self.step = step


@dataclass
class Workflow:
    """
    Per-session step machine: UPLOAD -> ANALYZING -> TEMPLATE_SELECTION -> EDITOR.

    The only backward edges are EDITOR -> TEMPLATE_SELECTION, the analysis
    rollback to UPLOAD, and an explicit start-over.
    """

    step: AppStep = AppStep.UPLOAD
    topic: str = ""
    image: SubjectImage | None = None
    analysis: AnalysisResult | None = None
    selected_template: ThumbnailTemplate | None = None
    background: GeneratedBackground | None = None
    is_generating_background: bool = False
    editor: EditorSession | None = None
    notice: str | None = None
    _background_token: int = field(default=0, repr=False)

    # -- upload -----------------------------------------------------------------

    @property
    def can_generate(self) -> bool:
        return bool(self.topic.strip()) and self.image is not None

    def set_topic(self, topic: str) -> None:
        self._require(AppStep.UPLOAD, action="edit the topic")
        self.topic = topic

    def set_image(self, image: SubjectImage) -> None:
        self._require(AppStep.UPLOAD, action="change the photo")
        self.image = image

    def pop_notice(self) -> str | None:
        notice, self.notice = self.notice, None
        return notice

    # -- analysis ---------------------------------------------------------------

    async def analyze(self, gateway: ThumbnailGateway) -> bool:
        """
        Run the analysis call. Returns False (and rolls back to UPLOAD with a
        notice) on any failure; topic and photo are kept for a retry.
        """
        self._require(AppStep.UPLOAD, action="start an analysis")
        if not self.can_generate or self.image is None:
            raise InvalidTransition("start an analysis without a topic and photo", self.step)

        self.step = AppStep.ANALYZING
        self.analysis = None
        try:
            result = await gateway.analyze(self.image.base64, self.topic.strip(), self.image.mime_type)
        except Exception:
            logger.exception("Analysis failed (gateway=%s)", getattr(gateway, "name", "?"))
            self.notice = ANALYSIS_FAILED_NOTICE
            self.step = AppStep.UPLOAD
            return False

        logger.info("Analysis returned %d templates", len(result.templates))
        self.analysis = result
        self.selected_template = None
        self.background = None
        self.step = AppStep.TEMPLATE_SELECTION
        return True

    # -- template selection -----------------------------------------------------

    def select_template(self, template_id: str) -> int:
        """
        Enter the editor with the chosen template and return the token that the
        matching background generation must present to publish its result.
        """
        if self.step not in (AppStep.TEMPLATE_SELECTION, AppStep.EDITOR) or self.analysis is None:
            raise InvalidTransition("select a template", self.step)
        template = self.analysis.find_template(template_id)

        self._background_token += 1
        self.selected_template = template
        self.background = None
        self.is_generating_background = True
        self.editor = EditorSession.open(template)
        self.step = AppStep.EDITOR
        return self._background_token

    async def generate_background(self, gateway: ThumbnailGateway, token: int) -> None:
        template = self.selected_template
        if template is None or token != self._background_token:
            return
        try:
            result = await gateway.generate_background(template.suggested_background)
        except Exception:
            logger.warning("Background generation failed for template %s", template.id, exc_info=True)
            result = None

        if token != self._background_token:
            logger.debug("Discarding stale background for token %d (latest %d)", token, self._background_token)
            return
        self.background = result
        self.is_generating_background = False

    def resume_editor(self) -> None:
        self._require(AppStep.TEMPLATE_SELECTION, action="resume the editor")
        if self.selected_template is None:
            raise InvalidTransition("resume the editor without a selected template", self.step)
        self.editor = EditorSession.open(self.selected_template)
        self.step = AppStep.EDITOR

    # -- editor -----------------------------------------------------------------

    def back_to_templates(self) -> None:
        self._require(AppStep.EDITOR, action="go back to templates")
        self.editor = None
        self.step = AppStep.TEMPLATE_SELECTION

    def require_editor(self) -> EditorSession:
        if self.step is not AppStep.EDITOR or self.editor is None:
            raise InvalidTransition("edit the thumbnail", self.step)
        return self.editor

    def start_over(self) -> None:
        if self.step not in (AppStep.TEMPLATE_SELECTION, AppStep.EDITOR):
            raise InvalidTransition("start over", self.step)
        # Invalidate any background request still in flight.
        self._background_token += 1
        self.analysis = None
        self.selected_template = None
        self.background = None
        self.is_generating_background = False
        self.editor = None
        self.step = AppStep.UPLOAD

    def _require(self, step: AppStep, action: str) -> None:
        if self.step is not step:
            raise InvalidTransition(action, self.step)
