from __future__ import annotations

import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageChops, ImageDraw, ImageEnhance, ImageFilter, ImageFont

from thumb_architect.assembly.headline import split_headline
from thumb_architect.assembly.layouts import Box, CompositionPlan, TextBox, plan_composition
from thumb_architect.models import SubjectTransform, ThumbnailTemplate, color_to_rgb

HEADLINE_FONT_PX = 64
HEADLINE_LINE_HEIGHT = 0.9
TINT_OPACITY = 0.3
BACKGROUND_OPACITY = 0.9
GENERATING_LABEL = "Generating Background..."

_PLACEHOLDER_FROM = (15, 23, 42)  # slate-900
_ARROW_COLOR = (239, 68, 68, 255)
_BADGE_COLOR = (220, 38, 38, 255)
_LABEL_COLOR = (34, 211, 238, 255)
_SHADOW = (0, 0, 0, 204)


@dataclass(frozen=True)
class RenderedThumbnail:
    image: Image.Image
    plan: CompositionPlan


def render_thumbnail(
    template: ThumbnailTemplate,
    headline: str,
    highlight_word: str,
    transform: SubjectTransform,
    subject: Image.Image | None,
    background: Image.Image | None,
    is_generating_background: bool,
    background_removed: bool,
    size: tuple[int, int],
) -> RenderedThumbnail:
    """
    Composite the thumbnail layers, bottom to top:
    background, palette tint, subject, decorations, headline.
    """
    subject_size = subject.size if subject is not None else None
    plan = plan_composition(template, transform, subject_size, size)

    if background is not None and not is_generating_background:
        base = _background_layer(background, size)
    else:
        base = _placeholder_layer(size, show_label=is_generating_background)

    base = _apply_tint(base, template.primary_color)

    if subject is not None and plan.subject_box is not None:
        base = _composite_subject(base, subject, plan.subject_box, background_removed)

    base = _draw_decorations(base, plan)
    base = _draw_headline(base, plan.text_box, headline, highlight_word, template)

    return RenderedThumbnail(image=base.convert("RGB"), plan=plan)


def scale_for_container(container_width: float | None, canvas_width: int) -> float:
    """
    Uniform fit-to-width scale for the preview; never upscales.
    """
    if not container_width or container_width <= 0:
        return 1.0
    return min(container_width / canvas_width, 1.0)


def to_png_bytes(img: Image.Image, scale: float = 1.0) -> bytes:
    if scale < 1.0:
        w, h = img.size
        img = img.resize((max(1, int(w * scale)), max(1, int(h * scale))), Image.Resampling.LANCZOS)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _background_layer(background: Image.Image, size: tuple[int, int]) -> Image.Image:
    cover = _resize_cover(background.convert("RGB"), size)
    black = Image.new("RGB", size, (0, 0, 0))
    return Image.blend(black, cover, BACKGROUND_OPACITY).convert("RGBA")


def _placeholder_layer(size: tuple[int, int], show_label: bool) -> Image.Image:
    """
    Diagonal slate-to-black gradient (top-left to bottom-right).
    """
    w, h = size
    vertical = Image.linear_gradient("L").resize(size)
    horizontal = Image.linear_gradient("L").rotate(90).resize(size)
    mask = ImageChops.add(
        Image.eval(vertical, lambda px: px // 2),
        Image.eval(horizontal, lambda px: px // 2),
    )
    black = Image.new("RGBA", size, (0, 0, 0, 255))
    slate = Image.new("RGBA", size, _PLACEHOLDER_FROM + (255,))
    base = Image.composite(black, slate, mask)

    if show_label:
        draw = ImageDraw.Draw(base)
        font = _load_font(18, bold=False, mono=True)
        tw = draw.textlength(GENERATING_LABEL, font=font)
        draw.text(((w - tw) / 2, h / 2 - 9), GENERATING_LABEL, font=font, fill=_LABEL_COLOR)
    return base


def _apply_tint(base_rgba: Image.Image, color: str) -> Image.Image:
    # Overlay blend mode, then mixed in at a fixed opacity.
    rgb = base_rgba.convert("RGB")
    solid = Image.new("RGB", rgb.size, color_to_rgb(color))
    overlaid = ImageChops.overlay(rgb, solid)
    return Image.blend(rgb, overlaid, TINT_OPACITY).convert("RGBA")


def simulate_background_removal(subject: Image.Image) -> Image.Image:
    """
    Cosmetic stand-in for a cutout: bottom fade plus a contrast/brightness lift.
    This is not segmentation; the original backdrop stays visible.
    """
    rgba = subject.convert("RGBA")
    alpha = rgba.getchannel("A")
    rgb = rgba.convert("RGB")
    rgb = ImageEnhance.Contrast(rgb).enhance(1.1)
    rgb = ImageEnhance.Brightness(rgb).enhance(1.1)

    w, h = rgba.size
    fade = Image.new("L", (w, h), 255)
    draw = ImageDraw.Draw(fade)
    start = int(h * 0.8)
    span = max(1, h - start)
    for i in range(span):
        a = int(255 * (1 - i / span))
        draw.line([(0, start + i), (w, start + i)], fill=a)

    out = rgb.convert("RGBA")
    out.putalpha(ImageChops.multiply(alpha, fade))
    return out


def _composite_subject(
    base_rgba: Image.Image,
    subject: Image.Image,
    box: Box,
    background_removed: bool,
) -> Image.Image:
    img = simulate_background_removal(subject) if background_removed else subject.convert("RGBA")
    tw, th = max(1, int(round(box.width))), max(1, int(round(box.height)))
    resized = img.resize((tw, th), Image.Resampling.LANCZOS)

    # paste() clips negative offsets; alpha_composite(dest=...) would not.
    layer = Image.new("RGBA", base_rgba.size, (0, 0, 0, 0))
    layer.paste(resized, (int(round(box.left)), int(round(box.top))), resized)
    return Image.alpha_composite(base_rgba, layer)


def _draw_decorations(base_rgba: Image.Image, plan: CompositionPlan) -> Image.Image:
    w, h = base_rgba.size

    if plan.divider_x is not None:
        layer = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        x = plan.divider_x
        ImageDraw.Draw(layer).rectangle([(x - 2, 0), (x + 2, h)], fill=(255, 255, 255, 51))
        base_rgba = Image.alpha_composite(base_rgba, layer.filter(ImageFilter.GaussianBlur(2)))

    if plan.show_arrow:
        arrow = _arrow_sticker(128)
        layer = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        layer.paste(arrow, (40, h - 40 - arrow.size[1]), arrow)
        base_rgba = Image.alpha_composite(base_rgba, layer)

    badge = _badge_sticker(plan.badge_text)
    layer = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    layer.paste(badge, (w - 24 - badge.size[0], 24), badge)
    return Image.alpha_composite(base_rgba, layer)


def _arrow_sticker(px: int) -> Image.Image:
    # 24-unit icon path, scaled up and tilted clockwise.
    points = [(12, 2), (15, 14), (22, 14), (12, 22), (2, 14), (9, 14)]
    k = px / 24
    img = Image.new("RGBA", (px, px), (0, 0, 0, 0))
    ImageDraw.Draw(img).polygon([(x * k, y * k) for x, y in points], fill=_ARROW_COLOR)
    return img.rotate(-12, resample=Image.Resampling.BICUBIC, expand=True)


def _badge_sticker(text: str) -> Image.Image:
    font = _load_font(20, bold=True)
    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    x1, y1, x2, y2 = probe.textbbox((0, 0), text.upper(), font=font)
    pad_x, pad_y = 12, 4
    img = Image.new("RGBA", (x2 - x1 + 2 * pad_x, y2 - y1 + 2 * pad_y), _BADGE_COLOR)
    ImageDraw.Draw(img).text((pad_x - x1, pad_y - y1), text.upper(), font=font, fill=(255, 255, 255, 255))
    return img.rotate(3, resample=Image.Resampling.BICUBIC, expand=True)


def _draw_headline(
    base_rgba: Image.Image,
    box: TextBox,
    headline: str,
    highlight_word: str,
    template: ThumbnailTemplate,
) -> Image.Image:
    parts = split_headline(headline, highlight_word)
    text_fill = color_to_rgb(template.text_color) + (255,)
    accent_fill = color_to_rgb(template.accent_color) + (255,)
    runs = [
        (parts.prefix.upper(), text_fill),
        (parts.highlight.upper(), accent_fill),
        (parts.suffix.upper(), text_fill),
    ]

    layer = Image.new("RGBA", base_rgba.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    font = _load_font(HEADLINE_FONT_PX, bold=True)
    lines = _wrap_runs(draw, runs, font, box.max_width)
    line_h = HEADLINE_FONT_PX * HEADLINE_LINE_HEIGHT

    if box.top is not None:
        y = box.top
    else:
        y = (box.bottom or 0) - line_h * len(lines)

    for line in lines:
        x = box.left
        for text, fill in line:
            draw.text((x + 4, y + 4), text, font=font, fill=_SHADOW)
            draw.text((x, y), text, font=font, fill=fill)
            x += draw.textlength(text, font=font)
        y += line_h

    return Image.alpha_composite(base_rgba, layer)


def _wrap_runs(
    draw: ImageDraw.ImageDraw,
    runs: list[tuple[str, tuple[int, int, int, int]]],
    font,
    max_w: float,
) -> list[list[tuple[str, tuple[int, int, int, int]]]]:
    """
    Greedy word wrap across differently colored runs. Breaks only at whitespace.
    """
    lines: list[list[tuple[str, tuple[int, int, int, int]]]] = [[]]
    cur_w = 0.0
    for text, fill in runs:
        for token in re.findall(r"\S+|\s+", text):
            line = lines[-1]
            if token.isspace():
                if not line:
                    continue
                line.append((" ", fill))
                cur_w += draw.textlength(" ", font=font)
                continue
            tw = draw.textlength(token, font=font)
            at_break = bool(line) and line[-1][0].isspace()
            if at_break and cur_w + tw > max_w:
                while line and line[-1][0].isspace():
                    line.pop()
                lines.append([])
                line = lines[-1]
                cur_w = 0.0
            line.append((token, fill))
            cur_w += tw
    for line in lines:
        while line and line[-1][0].isspace():
            line.pop()
    return [line for line in lines if line] or [[]]


def _resize_cover(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """
    Resize to cover the target canvas (no stretching), then center-crop.
    """
    tw, th = size
    iw, ih = img.size
    if iw <= 0 or ih <= 0:
        return img.resize(size, Image.Resampling.LANCZOS)

    scale = max(tw / iw, th / ih)
    nw, nh = max(1, int(round(iw * scale))), max(1, int(round(ih * scale)))
    resized = img.resize((nw, nh), Image.Resampling.LANCZOS)

    left = max(0, (nw - tw) // 2)
    top = max(0, (nh - th) // 2)
    return resized.crop((left, top, left + tw, top + th))


_FONT_CANDIDATES = {
    "bold": [
        "assets/fonts/Inter-Black.ttf",
        "assets/fonts/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/System/Library/Fonts/Supplemental/Arial Black.ttf",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/Library/Fonts/Arial Bold.ttf",
        "C:\\Windows\\Fonts\\arialbd.ttf",
    ],
    "mono": [
        "assets/fonts/DejaVuSansMono.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
        "/System/Library/Fonts/Menlo.ttc",
        "C:\\Windows\\Fonts\\consola.ttf",
    ],
    "regular": [
        "assets/fonts/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
        "C:\\Windows\\Fonts\\arial.ttf",
    ],
}


def _load_font(size: int, bold: bool = False, mono: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """
    Prefer a TTF font (system or bundled). If we can't find one, fall back to
    Pillow's default font so rendering never crashes on a bare machine.
    """
    key = "mono" if mono else ("bold" if bold else "regular")
    for c in _FONT_CANDIDATES[key] + _FONT_CANDIDATES["regular"]:
        p = Path(c)
        if p.exists():
            try:
                return ImageFont.truetype(str(p), size=size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)

