from __future__ import annotations

from dataclasses import dataclass

from thumb_architect.assembly.headline import HeadlineParts, split_headline
from thumb_architect.models import ThumbnailTemplate


@dataclass(frozen=True)
class TemplateCard:
    template_id: str
    name: str
    layout_tag: str
    headline: HeadlineParts
    accent_color: str
    swatches: list[str]
    psychology: str
    tags: list[str]
    is_selected: bool


def build_template_card(template: ThumbnailTemplate, is_selected: bool = False) -> TemplateCard:
    return TemplateCard(
        template_id=template.id,
        name=template.name,
        layout_tag=template.layout_type.value.upper(),
        headline=split_headline(template.headline, template.highlight_word),
        accent_color=template.accent_color,
        swatches=list(template.color_palette),
        psychology=template.psychology,
        tags=list(template.graphic_elements),
        is_selected=is_selected,
    )
