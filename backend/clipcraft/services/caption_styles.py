"""
Caption templates: 3 word-highlight (karaoke) + 3 regular presets.
"""

from ..models.clip import CaptionStyle


# ============================================================================
# WORD-HIGHLIGHT TEMPLATES - captions regrouped into short word chunks
# ============================================================================

HORMOZI_1 = CaptionStyle(
    id="hormozi1",
    name="Hormozi 1",
    font="Inter",
    text_color="#FFFFFF",
    background_color="rgba(0, 0, 0, 0.0)",
    highlight_color="#FFD700",  # Gold
    text_shadow="0 0 5px #000, 0 0 5px #000, 0 0 5px #000",
    font_weight=800,
    word_highlight=True,
)

HORMOZI_2 = CaptionStyle(
    id="hormozi2",
    name="Hormozi 2",
    font="Inter",
    text_color="#FFFF00",
    background_color="rgba(0, 0, 0, 0.0)",
    highlight_color="#00FF00",  # Green
    text_shadow="2px 2px 4px rgba(0,0,0,0.7)",
    font_weight=900,
    word_highlight=True,
)

KARAOKE = CaptionStyle(
    id="karaoke",
    name="Karaoke",
    font="Inter",
    text_color="#FFFFFF",
    background_color="rgba(0, 0, 0, 0.6)",
    highlight_color="#7B61FF",  # Purple
    text_shadow="2px 2px 4px rgba(0,0,0,0.7)",
    font_weight=700,
    word_highlight=True,
)


# ============================================================================
# REGULAR TEMPLATES - original transcript lines
# ============================================================================

MODERN = CaptionStyle(
    id="modern",
    name="Modern",
    font="Inter",
    text_color="#FFFFFF",
    background_color="rgba(0, 0, 0, 0.6)",
    highlight_color="#7B61FF",
    text_shadow="2px 2px 4px rgba(0,0,0,0.7)",
    font_weight=700,
)

BOLD = CaptionStyle(
    id="bold",
    name="Bold",
    font="Inter",
    text_color="#FFFF00",
    background_color="rgba(0, 0, 0, 0.0)",
    highlight_color="#FFFFFF",
    text_shadow="0 0 5px #000, 0 0 5px #000, 0 0 5px #000",
    font_weight=800,
)

MINIMAL = CaptionStyle(
    id="minimal",
    name="Minimal",
    font="Inter",
    text_color="#FFFFFF",
    background_color="transparent",
    highlight_color="#7B61FF",
    text_shadow=None,
    font_weight=600,
)


# ============================================================================
# Template Registry
# ============================================================================

ALL_STYLES: list[CaptionStyle] = [
    # Word-highlight templates
    HORMOZI_1,
    HORMOZI_2,
    KARAOKE,
    # Regular templates
    MODERN,
    BOLD,
    MINIMAL,
]

STYLES_BY_ID: dict[str, CaptionStyle] = {style.id: style for style in ALL_STYLES}


def get_style(style_id: str) -> CaptionStyle | None:
    """Get a caption template by ID."""
    return STYLES_BY_ID.get(style_id)


def list_styles() -> list[CaptionStyle]:
    """Get all available caption templates."""
    return ALL_STYLES
