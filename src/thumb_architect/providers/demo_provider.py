from __future__ import annotations

from io import BytesIO

from PIL import Image, ImageDraw

from thumb_architect.models import AnalysisResult, GeneratedBackground, LayoutType, ThumbnailTemplate


class DemoProvider:
    """
    Offline gateway with canned blueprints, for UI work without API calls.
    """

    name = "demo"

    async def analyze(
        self,
        image_base64: str,
        topic: str,
        mime_type: str = "image/jpeg",
    ) -> AnalysisResult:
        return AnalysisResult(
            critique=(
                f'Strong, well-lit subject. For "{topic}" lean on a bold single-word hook '
                "and keep the face large enough to read at mobile size."
            ),
            background_suggestions=["Dark gradient", "Studio grid", "Neon city bokeh"],
            templates=[
                ThumbnailTemplate(
                    id="demo-bold",
                    name="Bold Headline + Face",
                    headline="I Did It In 30 Days",
                    highlight_word="30 Days",
                    layout_description="Huge headline bottom-left, face filling the frame.",
                    color_palette=["#000000", "#22d3ee", "#FFFFFF"],
                    psychology="Faces with strong emotion plus a concrete number raise curiosity.",
                    graphic_elements=["Arrow", "Glow"],
                    best_use_case="Personal challenge videos",
                    layout_type=LayoutType.FULL_FACE,
                    suggested_background="dark cinematic gradient with cyan rim light",
                ),
                ThumbnailTemplate(
                    id="demo-split",
                    name="Before / After Split",
                    headline="From Zero To Coder",
                    highlight_word="Coder",
                    layout_description="Text on the left half, subject on the right half.",
                    color_palette=["#0f172a", "#3b82f6", "#FFFFFF"],
                    psychology="Contrast between two states tells the story at a glance.",
                    graphic_elements=["Divider"],
                    best_use_case="Transformation stories",
                    layout_type=LayoutType.SPLIT,
                    suggested_background="split dark and light tech desk",
                ),
                ThumbnailTemplate(
                    id="demo-minimal",
                    name="Minimal Podcast",
                    headline="The Honest Truth",
                    highlight_word="Honest",
                    layout_description="Clean top-left headline, lots of negative space.",
                    color_palette=["#FFFFFF", "#0ea5e9", "#111827"],
                    psychology="Whitespace signals calm authority and premium content.",
                    graphic_elements=[],
                    best_use_case="Talks and interviews",
                    layout_type=LayoutType.MINIMAL,
                    suggested_background="soft studio backdrop",
                ),
                ThumbnailTemplate(
                    id="demo-grid",
                    name="High Tech Grid",
                    headline="Code Faster Now",
                    highlight_word="Faster",
                    layout_description="Headline top-left over a glowing grid.",
                    color_palette=["#1e3a8a", "#06b6d4", "#FFFFFF"],
                    psychology="Tech textures frame the video as practical and modern.",
                    graphic_elements=["Grid", "Arrow"],
                    best_use_case="Tutorials",
                    layout_type=LayoutType.GRID,
                    suggested_background="futuristic blue grid with depth",
                ),
            ],
        )

    async def generate_background(self, prompt: str) -> GeneratedBackground:
        w, h = 1280, 720
        img = Image.new("RGB", (w, h), (0, 0, 0))
        draw = ImageDraw.Draw(img)
        for y in range(h):
            v = int(60 * (1 - y / h))
            draw.line([(0, y), (w, y)], fill=(v // 3, v, v + 20))
        buf = BytesIO()
        img.save(buf, format="PNG")
        return GeneratedBackground(data=buf.getvalue(), mime_type="image/png", prompt_used=prompt)
