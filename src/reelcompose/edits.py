"""Manifest transformations — pure functions Manifest x params -> Manifest.

Every operation leaves its input untouched. A successful edit returns a
new manifest with version + 1 and a fresh updatedAt; invalid input
(unknown theme, out-of-range index, non-positive duration) returns the
input manifest itself, unchanged and unversioned.
"""

import logging
from dataclasses import replace

from .common import is_hex_color
from .manifest import (
    MAX_FONT_WEIGHT,
    MIN_FONT_WEIGHT,
    VideoManifest,
    VideoSegment,
    clip_to_dict,
    now_iso,
    parse_clip,
)
from .search import create_placeholder_index
from .themes import lookup_theme

logger = logging.getLogger(__name__)


STYLE_PROPS = ("color", "font_size", "font_weight", "font_family")


def bump_version(manifest: VideoManifest, **changes) -> VideoManifest:
    """Copy manifest with changes applied, version + 1 and updatedAt refreshed."""
    return replace(
        manifest,
        version=manifest.version + 1,
        updated_at=now_iso(),
        **changes,
    )


def apply_theme(manifest: VideoManifest, theme_id: str) -> VideoManifest:
    """Switch theme and reset the style-derived fields of clips and captions.

    Clip transitions and caption animation styles follow the new theme.
    Caption text, timing and per-caption overrides are kept.
    """
    theme = lookup_theme(theme_id)
    if theme is None:
        return manifest

    logger.info("Applying theme %s", theme.id)
    clips = tuple(replace(clip, transition=theme.transition) for clip in manifest.clips)
    captions = tuple(
        replace(caption, style=theme.text_animation) for caption in manifest.captions
    )
    return bump_version(manifest, theme=theme, clips=clips, captions=captions)


def adjust_timing(manifest: VideoManifest, target_clip_duration: int) -> VideoManifest:
    """Re-tile all clips back to back at a uniform duration.

    The duration is capped so every clip fits inside the timeline:
    min(target, durationInFrames // clipCount). Frames past the last clip
    stay uncovered and show the theme background.
    """
    n_clips = len(manifest.clips)
    if n_clips == 0:
        return manifest
    if isinstance(target_clip_duration, bool) or not isinstance(target_clip_duration, (int, float)):
        return manifest
    if target_clip_duration <= 0:
        return manifest

    actual = min(int(target_clip_duration), manifest.duration_in_frames // n_clips)
    if actual <= 0:
        return manifest

    logger.info("Adjusting clip duration to %d frames", actual)
    clips = tuple(
        replace(clip, start_frame=i * actual, duration=actual)
        for i, clip in enumerate(manifest.clips)
    )
    return bump_version(manifest, clips=clips)


def update_caption_text(manifest: VideoManifest, index: int, new_text: str) -> VideoManifest:
    """Replace one caption's text and regenerate the script from all captions."""
    if isinstance(index, bool) or not isinstance(index, int):
        return manifest
    if index < 0 or index >= len(manifest.captions):
        return manifest
    if not isinstance(new_text, str):
        return manifest

    captions = list(manifest.captions)
    captions[index] = replace(captions[index], text=new_text)
    script = "\n".join(c.text for c in captions)
    return bump_version(manifest, captions=tuple(captions), script=script)


def _valid_style_props(props: dict) -> dict | None:
    """Return props if every given style property is well-formed, else None."""
    valid = {}
    for key, value in props.items():
        if value is None:
            continue
        if key not in STYLE_PROPS:
            return None
        if key == "color" and not is_hex_color(value):
            return None
        if key == "font_size" and (
            isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0
        ):
            return None
        if key == "font_weight" and (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not MIN_FONT_WEIGHT <= value <= MAX_FONT_WEIGHT
        ):
            return None
        if key == "font_family" and (not isinstance(value, str) or not value.strip()):
            return None
        valid[key] = int(value) if key in ("font_size", "font_weight") else value
    return valid


def style_captions(manifest: VideoManifest, selector="all", **style_props) -> VideoManifest:
    """Set per-caption style overrides on all captions or one caption.

    selector is "all" or a caption index. Only the given properties
    (color, font_size, font_weight, font_family) change.
    """
    props = _valid_style_props(style_props)
    if not props:
        return manifest

    if selector == "all":
        targets = range(len(manifest.captions))
    elif isinstance(selector, int) and not isinstance(selector, bool) \
            and 0 <= selector < len(manifest.captions):
        targets = [selector]
    else:
        return manifest
    if not targets:
        return manifest

    captions = list(manifest.captions)
    for i in targets:
        captions[i] = replace(captions[i], **props)
    return bump_version(manifest, captions=tuple(captions))


def search_video_segment(
    manifest: VideoManifest, query: str, search_client=None,
) -> tuple[VideoManifest, bool, VideoSegment | None]:
    """Find a labelled segment of the product's source video.

    Uses the hosted search client when one is given and falls back to a
    case-insensitive substring match on the manifest's index labels. When
    the manifest has no index but the product has a source video, a
    placeholder index is attached first, and the returned manifest differs
    from the input. Search itself never bumps the version or inserts clips.
    """
    if manifest.video_index is None:
        if not manifest.product.video_url:
            return manifest, False, None
        manifest = replace(
            manifest, video_index=create_placeholder_index(manifest.product.video_url),
        )

    index = manifest.video_index
    if search_client is not None:
        segment = search_client.search(index.video_id, query)
        if segment is not None:
            return manifest, True, segment

    needle = query.lower()
    matches = [s for s in index.segments if needle in s.label.lower()]
    if not matches:
        return manifest, False, None
    best = max(matches, key=lambda s: s.confidence or 0.0)
    return manifest, True, best


def update_clip(manifest: VideoManifest, index: int, patch: dict) -> VideoManifest:
    """Overlay camelCase clip fields (e.g. {"duration": 45}) onto one clip.

    The patched clip must still validate; otherwise nothing changes.
    """
    if isinstance(index, bool) or not isinstance(index, int):
        return manifest
    if not 0 <= index < len(manifest.clips) or not isinstance(patch, dict) or not patch:
        return manifest

    merged = {**clip_to_dict(manifest.clips[index]), **patch}
    try:
        clip = parse_clip(merged, index)
    except ValueError as e:
        logger.warning("Rejected clip update: %s", e)
        return manifest
    if clip == manifest.clips[index]:
        return manifest

    clips = list(manifest.clips)
    clips[index] = clip
    return bump_version(manifest, clips=tuple(clips))


def change_music(
    manifest: VideoManifest,
    music_url: str | None = None,
    music_volume: float | None = None,
    voice_volume: float | None = None,
) -> VideoManifest:
    """Swap the music track and/or set the audio gains (each within [0, 1])."""
    changes = {}
    if isinstance(music_url, str) and music_url.strip():
        changes["music_url"] = music_url
    for key, value in (("music_volume", music_volume), ("voice_volume", voice_volume)):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) \
                or not 0.0 <= value <= 1.0:
            return manifest
        changes[key] = float(value)
    if not changes:
        return manifest
    return bump_version(manifest, **changes)
