"""Video template catalogue."""

from pydantic import BaseModel

DEFAULT_TEMPLATE_ID = "tech_minimal"


class VideoTemplate(BaseModel):
    """Visual style applied to intro/outro clips and captions."""

    template_id: str
    name: str
    description: str
    background_color: str
    text_color: str = "white"
    caption_font_size: int = 24


TEMPLATES: dict[str, VideoTemplate] = {
    "tech_minimal": VideoTemplate(
        template_id="tech_minimal",
        name="Tech Minimal",
        description="Clean, professional design with minimal animations",
        background_color="0x111827",
    ),
    "social_viral": VideoTemplate(
        template_id="social_viral",
        name="Social Viral",
        description="Dynamic, colorful design optimized for social media",
        background_color="0xdb2777",
        caption_font_size=28,
    ),
    "professional_demo": VideoTemplate(
        template_id="professional_demo",
        name="Professional Demo",
        description="Corporate style with professional transitions",
        background_color="0x1e3a8a",
    ),
}


def get_template(template_id: str | None) -> VideoTemplate:
    """Resolve a template id, falling back to the default template."""
    return TEMPLATES.get(template_id or DEFAULT_TEMPLATE_ID, TEMPLATES[DEFAULT_TEMPLATE_ID])
