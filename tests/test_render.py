from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from fakes import sample_analysis
from thumb_architect.assembly.render import (
    render_thumbnail,
    scale_for_container,
    simulate_background_removal,
    to_png_bytes,
)
from thumb_architect.models import LayoutType, SubjectTransform


@pytest.fixture()
def split_template():
    return next(t for t in sample_analysis().templates if t.layout_type is LayoutType.SPLIT)


def _render(template, **overrides):
    kwargs = dict(
        template=template,
        headline=template.headline,
        highlight_word=template.highlight_word,
        transform=SubjectTransform(),
        subject=Image.new("RGB", (300, 400), (200, 120, 90)),
        background=None,
        is_generating_background=False,
        background_removed=True,
        size=(800, 450),
    )
    kwargs.update(overrides)
    return render_thumbnail(**kwargs)


def test_renders_fixed_canvas(split_template):
    rendered = _render(split_template)
    assert rendered.image.size == (800, 450)
    assert rendered.image.mode == "RGB"
    assert rendered.plan.divider_x == 400


def test_unknown_highlight_word_does_not_raise(split_template):
    rendered = _render(split_template, highlight_word="nowhere")
    assert rendered.image.size == (800, 450)


def test_empty_headline_and_no_subject(split_template):
    rendered = _render(split_template, headline="", highlight_word="", subject=None)
    assert rendered.plan.subject_box is None


def test_generated_background_replaces_placeholder(split_template):
    bright = Image.new("RGB", (1280, 720), (250, 250, 250))
    with_bg = _render(split_template, background=bright, subject=None, headline="")
    placeholder = _render(split_template, subject=None, headline="")
    # Sample the lower-left corner: no text, subject, badge or divider there.
    assert sum(with_bg.image.getpixel((5, 445))) > sum(placeholder.image.getpixel((5, 445)))


def test_background_ignored_while_generating(split_template):
    bright = Image.new("RGB", (1280, 720), (250, 250, 250))
    generating = _render(split_template, background=bright, is_generating_background=True, subject=None, headline="")
    placeholder = _render(split_template, subject=None, headline="")
    assert generating.image.getpixel((5, 445)) == placeholder.image.getpixel((5, 445))


def test_simulated_background_removal_fades_bottom():
    out = simulate_background_removal(Image.new("RGB", (100, 100), (100, 100, 100)))
    alpha = out.getchannel("A")
    assert alpha.getpixel((50, 10)) == 255
    assert alpha.getpixel((50, 99)) < 20
    # brightness/contrast lift
    assert out.getpixel((50, 10))[0] > 100


@pytest.mark.parametrize(
    "width, expected",
    [(1600, 1.0), (800, 1.0), (400, 0.5), (None, 1.0), (0, 1.0)],
)
def test_scale_for_container(width, expected):
    assert scale_for_container(width, 800) == pytest.approx(expected)


def test_png_downscaled_for_preview():
    png = to_png_bytes(Image.new("RGB", (800, 450)), scale=0.5)
    with Image.open(BytesIO(png)) as img:
        assert img.format == "PNG"
        assert img.size == (400, 225)


def test_named_palette_renders_like_hex(split_template):
    named = split_template.model_copy(update={"color_palette": ["Navy", "Cyan", "White"]})
    hexed = split_template.model_copy(update={"color_palette": ["#000080", "#00ffff", "#ffffff"]})
    a = _render(named).image
    b = _render(hexed).image
    assert a.tobytes() == b.tobytes()


def test_black_name_tints_like_black_hex(split_template):
    named = split_template.model_copy(update={"color_palette": ["Black"]})
    hexed = split_template.model_copy(update={"color_palette": ["#000000"]})
    white = split_template.model_copy(update={"color_palette": ["#FFFFFF"]})
    corner = (5, 5)
    assert _render(named, subject=None).image.getpixel(corner) == _render(hexed, subject=None).image.getpixel(corner)
    assert _render(named, subject=None).image.getpixel(corner) != _render(white, subject=None).image.getpixel(corner)
