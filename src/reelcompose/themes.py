"""Theme registry — the fixed catalog of visual presets.

A theme bundles the default visual and audio choices for a video:
palette, font family, clip transition, caption animation, pacing and
Ken Burns settings. Themes are read-only values; applying one to a
manifest copies its derived fields onto clips and captions.

The catalog is closed: cyber, luxe, minimal.
"""

from dataclasses import dataclass


VALID_TRANSITIONS = {"glitch", "fade", "slide", "zoom"}

VALID_TEXT_ANIMATIONS = {"impact", "minimal", "glitch", "typewriter"}

DEFAULT_THEME_ID = "cyber"


@dataclass(frozen=True)
class Theme:
    id: str
    name: str
    primary_color: str
    secondary_color: str
    accent_color: str
    background_color: str
    font_family: str
    transition: str
    music_genre: str
    clip_duration: int
    text_animation: str
    ken_burns_enabled: bool
    ken_burns_scale: float


THEME_PRESETS = {
    "cyber": Theme(
        id="cyber",
        name="Cyber",
        primary_color="#ccff00",
        secondary_color="#ff0066",
        accent_color="#00ffff",
        background_color="#09090b",
        font_family="Oswald",
        transition="glitch",
        music_genre="techno",
        clip_duration=30,
        text_animation="glitch",
        ken_burns_enabled=False,
        ken_burns_scale=1.0,
    ),
    "luxe": Theme(
        id="luxe",
        name="Luxe",
        primary_color="#d4af37",
        secondary_color="#1a1a1a",
        accent_color="#f5e6c4",
        background_color="#0d0b08",
        font_family="Playfair Display",
        transition="fade",
        music_genre="classical",
        clip_duration=90,
        text_animation="minimal",
        ken_burns_enabled=True,
        ken_burns_scale=1.2,
    ),
    "minimal": Theme(
        id="minimal",
        name="Minimal",
        primary_color="#333333",
        secondary_color="#9e9e9e",
        accent_color="#e0e0e0",
        background_color="#f5f5f5",
        font_family="Inter",
        transition="slide",
        music_genre="lofi",
        clip_duration=60,
        text_animation="typewriter",
        ken_burns_enabled=True,
        ken_burns_scale=1.05,
    ),
}

# One-line catalog entries, used when describing themes to a language model.
THEME_DESCRIPTIONS = {
    "cyber": "Neon green/pink, fast cuts, glitch effects, techno music, Oswald font",
    "luxe": "Gold/black, slow elegant fades, Ken Burns zoom, classical music, Playfair Display font",
    "minimal": "White/gray, clean slides, typewriter text, lofi music, Inter font",
}


def lookup_theme(theme_id) -> Theme | None:
    """Return the preset for theme_id, or None for unknown ids."""
    if not isinstance(theme_id, str):
        return None
    return THEME_PRESETS.get(theme_id.strip().lower())


def resolve_theme(theme: Theme | None) -> Theme:
    """The manifest's theme, or the default preset when none is set."""
    return theme if theme is not None else THEME_PRESETS[DEFAULT_THEME_ID]


def suggest_theme(product_title: str) -> str:
    """Pick a theme id from keywords in a product title."""
    title = product_title.lower()
    if any(k in title for k in ("luxury", "premium", "gold", "diamond")):
        return "luxe"
    if any(k in title for k in ("tech", "gaming", "neon", "rgb")):
        return "cyber"
    return "minimal"
