"""Timeline renderer — the per-frame scene graph of a manifest.

build_scene(manifest, frame) describes everything visible at one frame
as a list of layer dicts, bottom to top:

  1. background  theme gradient / animated pattern
  2. clip        active background media, with transition + Ken Burns
  3. scrim       theme-tuned readability gradient
  4. caption     active captions with their computed TextStyle
  5. end_card    product card over the final END_CARD_FRAMES frames
  6. grain       film grain (luxe only)
     vignette    radial darkening (all themes except minimal)

The scene is a pure function of (manifest, frame): no state is carried
between frames, so frames can be built in any order or in parallel.
compositor.rasterize_scene() turns a scene into pixels.

Audio is not part of a frame; audio_tracks() lists the manifest's
voice and music tracks for the encoder.
"""

import math

from .common import clamp, interpolate, parse_hex_color, random_from_seed, spring
from .manifest import Clip, VideoManifest
from .text_styles import compute_text_style
from .themes import resolve_theme


END_CARD_FRAMES = 90
CLIP_FADE_IN_FRAMES = 15
SCANLINE_SPACING = 6

# Entry window length (frames) per transition type.
TRANSITION_FRAMES = {
    "glitch": 8,
    "fade": 20,
    "slide": 15,
    "zoom": 15,
}

# Readability scrim per theme: (rgb, top alpha, bottom alpha).
SCRIM_SETTINGS = {
    "cyber": ((0, 0, 0), 0.30, 0.50),
    "luxe": ((24, 14, 0), 0.45, 0.70),
    "minimal": ((0, 0, 0), 0.05, 0.10),
}

CTA_LABELS = {
    "luxe": "Discover",
}
DEFAULT_CTA = "Shop Now"

VIGNETTE_STRENGTH = 0.4
GRAIN_STRENGTH = 0.06

PLACEHOLDER_MARKERS = ("placeholder", "example.com")


def is_placeholder_url(url: str | None) -> bool:
    """True for absent or placeholder media references."""
    if not url or not url.strip():
        return True
    lowered = url.lower()
    return any(marker in lowered for marker in PLACEHOLDER_MARKERS)


# ── Layer builders ───────────────────────────────────────────────


def _background_layer(theme, frame: int) -> dict:
    layer = {
        "kind": "background",
        "theme_id": theme.id,
        "color": parse_hex_color(theme.background_color),
        "tint": parse_hex_color(theme.secondary_color if theme.id != "minimal" else theme.accent_color),
        "pattern": "gradient",
    }
    if theme.id == "cyber":
        layer["pattern"] = "scanlines"
        layer["line_color"] = parse_hex_color(theme.primary_color)
        layer["scanline_offset"] = (frame * 2) % SCANLINE_SPACING
    return layer


def _transition_effect(
    transition: str, clip_index: int, rel: int, frame: int, width: int,
) -> dict:
    """Entry transition values; identity once the entry window is over."""
    window = TRANSITION_FRAMES.get(transition, TRANSITION_FRAMES["fade"])
    t = clamp(rel / window, 0.0, 1.0)
    eased = 1 - (1 - t) ** 3  # ease-out cubic

    effect = {"opacity": 1.0, "scale": 1.0, "offset_x": 0.0, "rgb_split": 0.0}
    if t >= 1.0:
        return effect
    if transition == "fade":
        effect["opacity"] = eased
    elif transition == "slide":
        effect["offset_x"] = (1 - eased) * width
    elif transition == "zoom":
        effect["scale"] = interpolate(eased, [0, 1], [1.3, 1.0])
    elif transition == "glitch":
        noise = random_from_seed(f"clip-glitch-{clip_index}-{frame}")
        effect["offset_x"] = (noise * 2 - 1) * 0.04 * width * (1 - t)
        effect["rgb_split"] = 12 * (1 - t)
    return effect


def _clip_layer(
    clip: Clip, clip_index: int, frame: int, manifest: VideoManifest, theme,
) -> dict:
    rel = frame - clip.start_frame
    progress = clamp(rel / clip.duration, 0.0, 1.0)
    transition = clip.transition or theme.transition
    effect = _transition_effect(transition, clip_index, rel, frame, manifest.width)

    scale = effect["scale"]
    offset_x = effect["offset_x"]
    offset_y = 0.0
    if clip.type == "image" and theme.ken_burns_enabled:
        scale *= interpolate(progress, [0, 1], [1.0, theme.ken_burns_scale])
        # Alternate pan direction per clip.
        direction = -1 if clip_index % 2 == 0 else 1
        offset_x += direction * interpolate(progress, [0, 1], [0, 0.02 * manifest.width])
        offset_y += interpolate(progress, [0, 1], [0, -0.01 * manifest.height])

    fade_in = interpolate(rel, [0, CLIP_FADE_IN_FRAMES], [0, 1])

    source_time = None
    if clip.type == "video":
        source_time = clip.source_start_time + rel / manifest.fps
        if clip.source_end_time is not None:
            source_time = min(source_time, clip.source_end_time)

    return {
        "kind": "clip",
        "index": clip_index,
        "clip_type": clip.type,
        "url": None if is_placeholder_url(clip.url) else clip.url,
        "source_time": source_time,
        "progress": progress,
        "transition": transition,
        "opacity": effect["opacity"] * fade_in,
        "scale": scale,
        "offset_x": offset_x,
        "offset_y": offset_y,
        "rgb_split": effect["rgb_split"],
    }


def _scrim_layer(theme) -> dict:
    rgb, top, bottom = SCRIM_SETTINGS.get(theme.id, SCRIM_SETTINGS["cyber"])
    return {"kind": "scrim", "color": rgb, "top_alpha": top, "bottom_alpha": bottom}


def _caption_layers(manifest: VideoManifest, frame: int, theme) -> list[dict]:
    layers = []
    for i, caption in enumerate(manifest.captions):
        if not caption.start_frame <= frame < caption.end_frame:
            continue
        style = compute_text_style(
            caption.text,
            caption.style,
            frame - caption.start_frame,
            caption.duration,
            theme,
            fps=manifest.fps,
            width=manifest.width,
            overrides={
                "color": caption.color,
                "font_size": caption.font_size,
                "font_weight": caption.font_weight,
                "font_family": caption.font_family,
            },
        )
        layers.append({
            "kind": "caption",
            "index": i,
            "position": caption.position,
            "style": style,
        })
    return layers


def _end_card_layer(manifest: VideoManifest, frame: int, theme) -> dict | None:
    card_start = max(0, manifest.duration_in_frames - END_CARD_FRAMES)
    if frame < card_start:
        return None
    rel = frame - card_start
    slide = spring(rel, manifest.fps, damping=15, mass=0.8)
    glow = 0.5 + math.sin(rel * 0.15) * 0.3

    price_offset_x = 0.0
    if theme.id == "cyber" and rel % 30 < 2:
        price_offset_x = random_from_seed(f"price-glitch-{frame}") * 4 - 2
    if theme.id == "minimal":
        glow = 0.0

    product = manifest.product
    return {
        "kind": "end_card",
        "theme_id": theme.id,
        "title": product.title,
        "price": product.price,
        "image": None if is_placeholder_url(product.image) else product.image,
        "cta": CTA_LABELS.get(theme.id, DEFAULT_CTA),
        "offset_y": interpolate(slide, [0, 1], [200, 0]) * manifest.height / 1920,
        "opacity": interpolate(slide, [0, 0.5, 1], [0, 0.8, 1]),
        "price_color": parse_hex_color(theme.primary_color),
        "price_glow": glow,
        "price_offset_x": price_offset_x,
        "font_family": theme.font_family,
    }


def fallback_clips(manifest: VideoManifest) -> tuple[Clip, ...]:
    """The manifest's clips, or one full-length product image clip if none."""
    if manifest.clips:
        return manifest.clips
    return (Clip(
        start_frame=0,
        duration=manifest.duration_in_frames,
        url=manifest.product.image,
        type="image",
    ),)


# ── Scene ────────────────────────────────────────────────────────


def build_scene(manifest: VideoManifest, frame: int) -> dict:
    """Describe every visible layer of the manifest at one frame."""
    theme = resolve_theme(manifest.theme)
    layers = [_background_layer(theme, frame)]

    for i, clip in enumerate(fallback_clips(manifest)):
        if clip.start_frame <= frame < clip.end_frame:
            layers.append(_clip_layer(clip, i, frame, manifest, theme))

    layers.append(_scrim_layer(theme))
    layers.extend(_caption_layers(manifest, frame, theme))

    end_card = _end_card_layer(manifest, frame, theme)
    if end_card is not None:
        layers.append(end_card)

    if theme.id == "luxe":
        layers.append({"kind": "grain", "seed": f"grain-{frame}", "strength": GRAIN_STRENGTH})
    if theme.id != "minimal":
        layers.append({"kind": "vignette", "strength": VIGNETTE_STRENGTH})

    return {
        "frame": frame,
        "width": manifest.width,
        "height": manifest.height,
        "theme_id": theme.id,
        "layers": layers,
    }


def audio_tracks(manifest: VideoManifest) -> list[dict]:
    """Voice and music tracks present on the manifest, with their gains."""
    tracks = []
    if manifest.audio_url:
        tracks.append({"kind": "voice", "url": manifest.audio_url, "volume": manifest.voice_volume})
    if manifest.music_url:
        tracks.append({"kind": "music", "url": manifest.music_url, "volume": manifest.music_volume})
    return tracks
