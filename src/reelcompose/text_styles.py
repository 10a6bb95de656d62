"""Caption text animation styles.

Each style is a pure function of (text, frame within the caption,
caption duration, theme, overrides) and returns a TextStyle: the
resolved visual properties for that frame plus the text to draw.

Styles:
  - impact: spring scale-in from 1.5x, decaying shake, primary-color
    glow with black outline, uppercase, heavy weight.
  - glitch: frame-seeded jitter and RGB split on ~10% of frames.
  - minimal: slide-up fade, no glow, dark text on the minimal theme.
  - typewriter: character reveal finishing at 60% of the caption's
    lifetime, with a blinking cursor.

All styles share the same opacity envelope: spring-in on entry, linear
fade over the final 10 frames. Per-caption overrides (color, font size,
font weight, font family) always win over the computed values.

Font sizes are defined at a reference frame width of 1080px and scale
linearly with the output width, with a floor so text stays readable.
"""

import math
from dataclasses import dataclass, replace

from .common import interpolate, random_from_seed, spring
from .themes import Theme


# ── Scaling system ───────────────────────────────────────────────

REF_W = 1080

# (value_at_1080px, floor) per style.
_REF_IMPACT_FONT = (96, 24)
_REF_GLITCH_FONT = (88, 22)
_REF_MINIMAL_FONT = (64, 18)
_REF_TYPEWRITER_FONT = (72, 18)

EXIT_FADE_FRAMES = 10
SHAKE_FRAMES = 10
GLITCH_THRESHOLD = 0.9
TYPEWRITER_REVEAL_FRAC = 0.6
CURSOR_GLYPH = "|"
MINIMAL_TEXT_COLOR = "#333333"


def _scale(ref_and_floor: tuple[int, int], width: int) -> int:
    ref_val, floor = ref_and_floor
    return max(floor, round(ref_val * width / REF_W))


# ── Style values ─────────────────────────────────────────────────


@dataclass(frozen=True)
class Shadow:
    offset_x: float
    offset_y: float
    blur: float
    color: str
    alpha: float


@dataclass(frozen=True)
class Reveal:
    """Typewriter state: how much text is visible and the cursor phase."""
    chars_shown: int
    cursor_visible: bool


@dataclass(frozen=True)
class TextStyle:
    kind: str
    display_text: str
    opacity: float
    color: str
    font_size: int
    font_weight: int
    font_family: str
    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    letter_spacing: float = 0.0
    shadows: tuple[Shadow, ...] = ()
    outline_color: str | None = None
    outline_width: int = 0
    reveal: Reveal | None = None


def opacity_envelope(frame: float, duration: int, fps: int) -> float:
    """Spring-in on entry times a linear fade over the last frames."""
    entry = spring(frame, fps, damping=12, mass=0.5)
    exit_start = max(0, duration - EXIT_FADE_FRAMES)
    exit_ = interpolate(frame, [exit_start, duration], [1, 0])
    return max(0.0, min(1.0, entry)) * exit_


# ── Style builders ───────────────────────────────────────────────


def _impact_style(text, frame, duration, theme, fps, width) -> TextStyle:
    scale = spring(frame, fps, damping=8, mass=0.4, from_value=1.5, to_value=1.0)
    shake_amp = interpolate(frame, [0, SHAKE_FRAMES], [5, 0])
    shake_x = math.sin(frame * 0.5) * shake_amp * width / REF_W
    glow = theme.primary_color
    return TextStyle(
        kind="impact",
        display_text=text.upper(),
        opacity=opacity_envelope(frame, duration, fps),
        color=theme.primary_color,
        font_size=_scale(_REF_IMPACT_FONT, width),
        font_weight=900,
        font_family=theme.font_family,
        scale=scale,
        translate_x=shake_x,
        letter_spacing=0.05,
        shadows=(
            Shadow(0, 0, 20, glow, 0.8),
            Shadow(0, 0, 40, glow, 0.4),
            Shadow(0, 0, 60, glow, 0.2),
        ),
        outline_color="#000000",
        outline_width=2,
    )


def _glitch_style(text, frame, duration, theme, fps, width) -> TextStyle:
    glitching = random_from_seed(f"glitch-{frame}") > GLITCH_THRESHOLD
    if glitching:
        jitter = (random_from_seed(f"offset-{frame}") * 10 - 5) * width / REF_W
        split = 3 + math.sin(frame * 0.3) * 2
        shadows = (
            Shadow(split, 0, 0, theme.secondary_color, 0.73),
            Shadow(-split, 0, 0, theme.primary_color, 0.73),
            Shadow(0, 0, 20, theme.secondary_color, 0.53),
        )
    else:
        jitter = 0.0
        shadows = (Shadow(0, 0, 20, theme.secondary_color, 0.53),)
    return TextStyle(
        kind="glitch",
        display_text=text.upper(),
        opacity=opacity_envelope(frame, duration, fps),
        color=theme.accent_color,
        font_size=_scale(_REF_GLITCH_FONT, width),
        font_weight=800,
        font_family=theme.font_family,
        translate_x=jitter,
        letter_spacing=0.02,
        shadows=shadows,
    )


def _minimal_style(text, frame, duration, theme, fps, width) -> TextStyle:
    entry = spring(frame, fps, damping=12, mass=0.5)
    slide_up = interpolate(entry, [0, 1], [20, 0]) * width / REF_W
    on_light = theme.id == "minimal"
    return TextStyle(
        kind="minimal",
        display_text=text.upper(),
        opacity=opacity_envelope(frame, duration, fps),
        color=MINIMAL_TEXT_COLOR if on_light else "#ffffff",
        font_size=_scale(_REF_MINIMAL_FONT, width),
        font_weight=400,
        font_family=theme.font_family,
        translate_y=slide_up,
        letter_spacing=0.1,
        shadows=(
            Shadow(0, 2, 10, "#000000", 0.1) if on_light
            else Shadow(0, 2, 20, "#000000", 0.5),
        ),
    )


def _typewriter_style(text, frame, duration, theme, fps, width) -> TextStyle:
    chars = math.floor(interpolate(
        frame, [0, duration * TYPEWRITER_REVEAL_FRAC], [0, len(text)],
    ))
    chars = max(0, min(len(text), chars))
    # Square wave, roughly two blinks per second at 30fps.
    cursor_visible = math.sin(frame * 0.2) > 0
    on_light = theme.id == "minimal"
    return TextStyle(
        kind="typewriter",
        display_text=text[:chars],
        opacity=opacity_envelope(frame, duration, fps),
        color=MINIMAL_TEXT_COLOR if on_light else theme.primary_color,
        font_size=_scale(_REF_TYPEWRITER_FONT, width),
        font_weight=500,
        font_family="monospace",
        letter_spacing=0.05,
        shadows=() if on_light else (Shadow(0, 0, 10, theme.primary_color, 0.5),),
        reveal=Reveal(chars_shown=chars, cursor_visible=cursor_visible),
    )


STYLE_BUILDERS = {
    "impact": _impact_style,
    "glitch": _glitch_style,
    "minimal": _minimal_style,
    "typewriter": _typewriter_style,
}


def apply_overrides(style: TextStyle, overrides: dict | None) -> TextStyle:
    """Overlay per-caption overrides onto a computed style."""
    if not overrides:
        return style
    changes = {
        key: value for key, value in overrides.items()
        if key in ("color", "font_size", "font_weight", "font_family") and value is not None
    }
    return replace(style, **changes) if changes else style


def compute_text_style(
    text: str,
    style: str,
    frame: float,
    duration: int,
    theme: Theme,
    fps: int = 30,
    width: int = REF_W,
    overrides: dict | None = None,
) -> TextStyle:
    """Resolve a caption's visual style at a frame relative to its start.

    Unknown style names render as impact.
    """
    builder = STYLE_BUILDERS.get(style, _impact_style)
    computed = builder(text, frame, duration, theme, fps, width)
    return apply_overrides(computed, overrides)
