from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from thumb_architect.api.schemas import (
    EditorStateOut,
    HeadlinePartsOut,
    PointerPosition,
    SubjectUpdate,
    TextUpdate,
    TransformOut,
)
from thumb_architect.assembly.render import scale_for_container, to_png_bytes
from thumb_architect.cards import build_template_card
from thumb_architect.config import settings
from thumb_architect.editor import EditorSnapshot
from thumb_architect.models import AppStep, ImageDecodeError, SubjectImage
from thumb_architect.providers.base import ThumbnailGateway
from thumb_architect.providers.demo_provider import DemoProvider
from thumb_architect.providers.gemini_provider import GeminiProvider
from thumb_architect.sessions import SessionCookieMiddleware, SessionStore
from thumb_architect.workflow import InvalidTransition, Workflow

logger = logging.getLogger(__name__)

MISSING_INPUT_NOTICE = "Add a video topic and a photo first."


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.demo_mode:
        logger.info("Demo mode: serving canned blueprints, no API calls")
    elif not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; blueprint analysis will fail until it is configured")
    yield


app = FastAPI(title="ThumbArchitect", lifespan=lifespan)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

static_dir = BASE_DIR / "static"
static_dir.mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

store = SessionStore()
app.add_middleware(
    SessionCookieMiddleware,
    cookie_name=settings.session_cookie,
    on_new_session=lambda: store.prune(settings.session_max_idle_seconds),
)


@lru_cache(maxsize=1)
def get_gateway() -> ThumbnailGateway:
    if settings.demo_mode:
        return DemoProvider()
    # A missing key surfaces as an analysis failure, not a startup crash.
    return GeminiProvider(api_key=settings.gemini_api_key)


async def get_workflow(request: Request) -> Workflow:
    return store.get(request.state.session_id)


def _step_url(step: AppStep) -> str:
    if step is AppStep.TEMPLATE_SELECTION:
        return "/templates"
    if step is AppStep.EDITOR:
        return "/editor"
    return "/"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _editor_state(wf: Workflow) -> EditorStateOut:
    editor = wf.require_editor()
    parts = editor.headline_parts
    box = editor.plan(wf.image).subject_box
    return EditorStateOut(
        step=wf.step.value,
        template_id=editor.template.id,
        layout_type=editor.template.layout_type.value,
        headline=editor.headline,
        highlight_word=editor.highlight_word,
        headline_parts=HeadlinePartsOut(prefix=parts.prefix, highlight=parts.highlight, suffix=parts.suffix),
        transform=TransformOut(x=editor.transform.x, y=editor.transform.y, scale=editor.transform.scale),
        background_removed=editor.background_removed,
        dragging=editor.drag is not None,
        is_generating_background=wf.is_generating_background,
        has_background=wf.background is not None,
        subject_box=[box.left, box.top, box.right, box.bottom] if box is not None else None,
    )


def _render_png(snapshot: EditorSnapshot, scale: float) -> bytes:
    return to_png_bytes(snapshot.render().image, scale=scale)


async def _read_subject(wf: Workflow, file: UploadFile | None) -> bool:
    """
    Store an uploaded photo on the workflow. Returns False (with a notice) when
    the upload cannot be decoded.
    """
    if file is None or not file.filename:
        return True
    content = await file.read()
    try:
        wf.set_image(SubjectImage.from_upload(content, filename=file.filename, max_bytes=settings.max_upload_bytes))
    except ImageDecodeError as exc:
        logger.warning("Rejected upload %r: %s", file.filename, exc)
        wf.notice = f"Could not read that photo: {exc}."
        return False
    return True


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc), "step": exc.step.value})


@app.get("/", response_class=HTMLResponse)
async def index(request: Request, wf: Workflow = Depends(get_workflow)):
    if wf.step is AppStep.ANALYZING:
        return templates.TemplateResponse(request=request, name="analyzing.html", context={})
    if wf.step is not AppStep.UPLOAD:
        return _redirect(_step_url(wf.step))
    return templates.TemplateResponse(
        request=request,
        name="upload.html",
        context={
            "topic": wf.topic,
            "has_image": wf.image is not None,
            "can_generate": wf.can_generate,
            "notice": wf.pop_notice(),
            "max_upload_mb": settings.max_upload_bytes // (1024 * 1024),
        },
    )


@app.post("/upload")
async def upload_subject(
    topic: str = Form(""),
    file: UploadFile | None = File(None),
    wf: Workflow = Depends(get_workflow),
):
    if wf.step is not AppStep.UPLOAD:
        return _redirect(_step_url(wf.step))
    wf.set_topic(topic)
    await _read_subject(wf, file)
    return _redirect("/")


@app.get("/subject")
async def subject_image(wf: Workflow = Depends(get_workflow)):
    if wf.image is None:
        raise HTTPException(status_code=404, detail="no photo uploaded")
    return Response(content=wf.image.data, media_type=wf.image.mime_type, headers={"Cache-Control": "no-store"})


@app.post("/analyze")
async def analyze(
    topic: str = Form(""),
    file: UploadFile | None = File(None),
    wf: Workflow = Depends(get_workflow),
    gateway: ThumbnailGateway = Depends(get_gateway),
):
    # One analysis at a time per session; a second submit just lands on the current page.
    if wf.step is not AppStep.UPLOAD:
        return _redirect(_step_url(wf.step))

    wf.set_topic(topic)
    if not await _read_subject(wf, file):
        return _redirect("/")
    if not wf.can_generate:
        wf.notice = MISSING_INPUT_NOTICE
        return _redirect("/")

    ok = await wf.analyze(gateway)
    return _redirect("/templates" if ok else "/")


@app.get("/templates", response_class=HTMLResponse)
async def template_selection(request: Request, wf: Workflow = Depends(get_workflow)):
    if wf.step is not AppStep.TEMPLATE_SELECTION or wf.analysis is None:
        return _redirect(_step_url(wf.step))
    selected_id = wf.selected_template.id if wf.selected_template is not None else None
    cards = [build_template_card(t, is_selected=(t.id == selected_id)) for t in wf.analysis.templates]
    return templates.TemplateResponse(
        request=request,
        name="templates.html",
        context={
            "critique": wf.analysis.critique,
            "cards": cards,
            "background_suggestions": wf.analysis.background_suggestions,
            "can_resume": wf.selected_template is not None,
        },
    )


@app.post("/templates/{template_id}/select")
async def select_template(
    template_id: str,
    background_tasks: BackgroundTasks,
    wf: Workflow = Depends(get_workflow),
    gateway: ThumbnailGateway = Depends(get_gateway),
):
    try:
        token = wf.select_template(template_id)
    except InvalidTransition:
        return _redirect(_step_url(wf.step))
    except LookupError:
        raise HTTPException(status_code=404, detail="template not found")

    # Runs after the redirect is sent; the editor shows a placeholder meanwhile.
    background_tasks.add_task(wf.generate_background, gateway, token)
    return _redirect("/editor")


@app.post("/start-over")
async def start_over(wf: Workflow = Depends(get_workflow)):
    if wf.step in (AppStep.TEMPLATE_SELECTION, AppStep.EDITOR):
        wf.start_over()
    return _redirect(_step_url(wf.step))


@app.get("/editor", response_class=HTMLResponse)
async def editor_page(request: Request, wf: Workflow = Depends(get_workflow)):
    if wf.step is AppStep.TEMPLATE_SELECTION and wf.selected_template is not None:
        wf.resume_editor()
    if wf.step is not AppStep.EDITOR or wf.editor is None:
        return _redirect(_step_url(wf.step))
    editor = wf.editor
    cw, ch = settings.canvas_size
    return templates.TemplateResponse(
        request=request,
        name="editor.html",
        context={
            "template": editor.template,
            "editor": editor,
            "stats": editor.design_stats(),
            "canvas_width": cw,
            "canvas_height": ch,
            "has_subject": wf.image is not None,
        },
    )


@app.post("/editor/back")
async def editor_back(wf: Workflow = Depends(get_workflow)):
    if wf.step is AppStep.EDITOR:
        wf.back_to_templates()
    return _redirect(_step_url(wf.step))


@app.get("/editor/state", response_model=EditorStateOut)
async def editor_state(wf: Workflow = Depends(get_workflow)):
    return _editor_state(wf)


@app.post("/editor/text", response_model=EditorStateOut)
async def editor_text(payload: TextUpdate, wf: Workflow = Depends(get_workflow)):
    wf.require_editor().set_text(headline=payload.headline, highlight_word=payload.highlight_word)
    return _editor_state(wf)


@app.post("/editor/subject", response_model=EditorStateOut)
async def editor_subject(payload: SubjectUpdate, wf: Workflow = Depends(get_workflow)):
    editor = wf.require_editor()
    if payload.scale is not None:
        editor.set_scale(payload.scale)
    if payload.background_removed is not None:
        editor.set_background_removed(payload.background_removed)
    return _editor_state(wf)


@app.post("/editor/drag/start", response_model=EditorStateOut)
async def editor_drag_start(pointer: PointerPosition, wf: Workflow = Depends(get_workflow)):
    wf.require_editor().begin_drag(pointer.x, pointer.y)
    return _editor_state(wf)


@app.post("/editor/drag/move", response_model=EditorStateOut)
async def editor_drag_move(pointer: PointerPosition, wf: Workflow = Depends(get_workflow)):
    wf.require_editor().drag_to(pointer.x, pointer.y)
    return _editor_state(wf)


@app.post("/editor/drag/end", response_model=EditorStateOut)
async def editor_drag_end(wf: Workflow = Depends(get_workflow)):
    wf.require_editor().end_drag()
    return _editor_state(wf)


@app.get("/editor/preview.png")
async def editor_preview(width: float | None = None, wf: Workflow = Depends(get_workflow)):
    editor = wf.require_editor()
    snapshot = editor.snapshot(wf.image, wf.background, wf.is_generating_background)
    scale = scale_for_container(width, settings.canvas_size[0])
    png = await run_in_threadpool(_render_png, snapshot, scale)
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


@app.post("/editor/export")
async def editor_export(wf: Workflow = Depends(get_workflow)):
    return {"message": wf.require_editor().export()}
