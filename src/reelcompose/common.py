"""reelcompose.common — shared utilities for frame rendering.

Contains: color parsing, font loading, interpolation/spring easing, and
the frame-seeded pseudo-random source used by every "random" visual.
Everything here is a pure function of its arguments.
"""

import hashlib
import math
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont


# ── Font paths ─────────────────────────────────────────────────────
# Theme families are looked up by file name in the font directories.
# DejaVu Sans is the fallback family, Pillow's bundled font the last resort.

FONT_DIRS = [
    Path.home() / ".local/share/fonts",
    Path("/usr/share/fonts/truetype"),
    Path("/usr/share/fonts/truetype/dejavu"),
    Path("/usr/share/fonts/TTF"),
]

FAMILY_FILES = {
    "oswald": ("Oswald-Regular.ttf", "Oswald-Bold.ttf"),
    "playfair display": ("PlayfairDisplay-Regular.ttf", "PlayfairDisplay-Bold.ttf"),
    "inter": ("Inter-Regular.ttf", "Inter-Bold.ttf"),
    "monospace": ("DejaVuSansMono.ttf", "DejaVuSansMono-Bold.ttf"),
}

FALLBACK_FILES = ("DejaVuSans.ttf", "DejaVuSans-Bold.ttf")

# Font weights at or above this value use the bold face.
BOLD_WEIGHT = 600


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB', 'RRGGBB' or '#RGB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) == 3:
        hex_str = "".join(c * 2 for c in hex_str)
    if len(hex_str) != 6:
        raise ValueError(f"Invalid hex color: '#{hex_str}'")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


def is_hex_color(value) -> bool:
    """True if value is a '#RGB' or '#RRGGBB' string."""
    if not isinstance(value, str) or not value.startswith("#"):
        return False
    digits = value[1:]
    return len(digits) in (3, 6) and all(
        c in "0123456789abcdefABCDEF" for c in digits
    )


def mix_colors(
    a: tuple[int, int, int], b: tuple[int, int, int], t: float,
) -> tuple[int, int, int]:
    """Linear blend from color a (t=0) to color b (t=1)."""
    t = clamp(t, 0.0, 1.0)
    return tuple(round(x + (y - x) * t) for x, y in zip(a, b))


# ── Easing ─────────────────────────────────────────────────────────

def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def interpolate(
    value: float,
    input_range: list[float],
    output_range: list[float],
    clamp_left: bool = True,
    clamp_right: bool = True,
) -> float:
    """Piecewise-linear map of value from input_range onto output_range.

    Both ranges must have the same length (>= 2) and input_range must be
    strictly increasing. Outside the input range the first/last segment
    is extrapolated unless the corresponding side is clamped.
    """
    if len(input_range) != len(output_range) or len(input_range) < 2:
        raise ValueError("input_range and output_range need the same length >= 2")

    if value <= input_range[0]:
        if clamp_left:
            return float(output_range[0])
        seg = 0
    elif value >= input_range[-1]:
        if clamp_right:
            return float(output_range[-1])
        seg = len(input_range) - 2
    else:
        seg = 0
        while value > input_range[seg + 1]:
            seg += 1

    x0, x1 = input_range[seg], input_range[seg + 1]
    y0, y1 = output_range[seg], output_range[seg + 1]
    if x1 == x0:
        return float(y1)
    return y0 + (value - x0) * (y1 - y0) / (x1 - x0)


def spring(
    frame: float,
    fps: float,
    damping: float = 10.0,
    mass: float = 1.0,
    stiffness: float = 100.0,
    from_value: float = 0.0,
    to_value: float = 1.0,
) -> float:
    """Damped-spring easing evaluated in closed form at a given frame.

    Starts at from_value with zero velocity at frame 0 and settles on
    to_value. Frames before 0 return from_value.
    """
    if frame <= 0:
        return from_value

    t = frame / fps
    omega0 = math.sqrt(stiffness / mass)
    zeta = damping / (2 * math.sqrt(stiffness * mass))

    if zeta < 1:
        omega1 = omega0 * math.sqrt(1 - zeta * zeta)
        envelope = math.exp(-zeta * omega0 * t)
        displacement = envelope * (
            math.cos(omega1 * t) + (zeta * omega0 / omega1) * math.sin(omega1 * t)
        )
    elif zeta == 1:
        displacement = math.exp(-omega0 * t) * (1 + omega0 * t)
    else:
        root = math.sqrt(zeta * zeta - 1)
        r1 = -omega0 * (zeta - root)
        r2 = -omega0 * (zeta + root)
        displacement = (r2 * math.exp(r1 * t) - r1 * math.exp(r2 * t)) / (r2 - r1)

    progress = 1 - displacement
    return from_value + (to_value - from_value) * progress


# ── Deterministic randomness ───────────────────────────────────────

def random_from_seed(seed: str) -> float:
    """Hash a seed string to a float in [0, 1).

    Stable across processes and platforms, so any frame can be rendered
    in isolation and always looks the same.
    """
    digest = hashlib.blake2b(seed.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") / 2**64


# ── Font loading ───────────────────────────────────────────────────

def _find_font_file(name: str) -> Path | None:
    for font_dir in FONT_DIRS:
        candidate = font_dir / name
        if candidate.exists():
            return candidate
    return None


@lru_cache(maxsize=128)
def load_font(
    size: int, family: str | None = None, bold: bool = False,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a theme font family (or fallback) at the given pixel size.

    Unknown or uninstalled families fall back to DejaVu Sans, then to
    Pillow's bundled default font, so text always renders.
    """
    size = max(1, int(size))
    names = []
    if family:
        files = FAMILY_FILES.get(family.strip().strip('"').lower())
        if files:
            names.append(files[1] if bold else files[0])
    names.append(FALLBACK_FILES[1] if bold else FALLBACK_FILES[0])

    for name in names:
        font_path = _find_font_file(name)
        if font_path is None:
            continue
        try:
            return ImageFont.truetype(str(font_path), size=size)
        except OSError:
            continue
    # Last resort: Pillow default font.
    return ImageFont.load_default(size=size)
