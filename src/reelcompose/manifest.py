"""Video manifest model — the versioned document that describes one video.

A manifest holds everything needed to render a video: script, captions,
background clips, product end-card, audio references, theme and
dimensions. Values are frozen dataclasses; every edit produces a new
manifest (see edits.py), nothing is mutated in place.

Serialized form (YAML or JSON) uses camelCase keys:

  id: demo-001
  version: 1
  script: "CHECK THIS OUT\\nINSANE SOUND"
  fps: 30
  durationInFrames: 300
  width: 1080
  height: 1920
  captions:
    - {startFrame: 0, endFrame: 60, text: CHECK THIS OUT, style: impact}
  clips:
    - {startFrame: 0, duration: 150, type: image, url: https://...}
  product: {title: Earbuds, price: "$149.99", image: https://...}

parse_manifest() validates types and invariants and raises ValueError
with a located message; manifest_to_dict() is its exact inverse.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

from .common import is_hex_color
from .themes import (
    THEME_PRESETS,
    VALID_TEXT_ANIMATIONS,
    VALID_TRANSITIONS,
    Theme,
)


# ── Valid enum values ─────────────────────────────────────────────

VALID_CAPTION_STYLES = VALID_TEXT_ANIMATIONS

VALID_POSITIONS = {"top", "center", "bottom"}

VALID_CLIP_TYPES = {"video", "image"}

MIN_FONT_WEIGHT = 100
MAX_FONT_WEIGHT = 900


# ── Model ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Caption:
    start_frame: int
    end_frame: int
    text: str
    style: str
    position: str = "center"
    # Per-caption overrides, layered over the theme and animation style.
    color: str | None = None
    font_size: int | None = None
    font_weight: int | None = None
    font_family: str | None = None

    @property
    def duration(self) -> int:
        return self.end_frame - self.start_frame


@dataclass(frozen=True)
class Clip:
    start_frame: int
    duration: int
    url: str
    type: str = "video"
    source_start_time: float = 0.0
    source_end_time: float | None = None
    label: str | None = None
    transition: str | None = None

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.duration


@dataclass(frozen=True)
class Product:
    title: str
    price: str
    image: str
    description: str | None = None
    url: str | None = None
    video_url: str | None = None


@dataclass(frozen=True)
class VideoSegment:
    label: str
    start_time: float
    end_time: float
    confidence: float | None = None
    thumbnail_url: str | None = None


@dataclass(frozen=True)
class VideoIndex:
    video_id: str
    video_url: str
    duration: float
    segments: tuple[VideoSegment, ...] = ()
    indexed: bool = True


@dataclass(frozen=True)
class VideoManifest:
    id: str
    script: str
    product: Product
    duration_in_frames: int
    captions: tuple[Caption, ...] = ()
    clips: tuple[Clip, ...] = ()
    version: int = 1
    fps: int = 30
    width: int = 1080
    height: int = 1920
    audio_url: str | None = None
    music_url: str | None = None
    music_volume: float = 0.3
    voice_volume: float = 1.0
    theme: Theme | None = None
    video_index: VideoIndex | None = None
    created_at: str = field(default_factory=lambda: now_iso())
    updated_at: str = field(default_factory=lambda: now_iso())


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


# ── Field validators ──────────────────────────────────────────────


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require(raw: dict, key: str, prefix: str):
    if key not in raw:
        raise ValueError(f"{prefix}: missing required field '{key}'")
    return raw[key]


def _int_field(raw: dict, key: str, prefix: str, default=None, minimum=None) -> int:
    value = raw.get(key, default) if default is not None else _require(raw, key, prefix)
    if _is_number(value) and float(value).is_integer():
        value = int(value)
    if not _is_int(value):
        raise ValueError(f"{prefix}: '{key}' must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise ValueError(f"{prefix}: '{key}' must be >= {minimum}, got {value}")
    return value


def _number_field(raw: dict, key: str, prefix: str, default=None) -> float:
    value = raw.get(key, default) if default is not None else _require(raw, key, prefix)
    if not _is_number(value):
        raise ValueError(f"{prefix}: '{key}' must be a number, got {value!r}")
    return float(value)


def _str_field(raw: dict, key: str, prefix: str, default=None, optional=False):
    if optional:
        value = raw.get(key)
        if value is None:
            return None
    elif default is not None:
        value = raw.get(key, default)
    else:
        value = _require(raw, key, prefix)
    if not isinstance(value, str):
        raise ValueError(f"{prefix}: '{key}' must be a string, got {value!r}")
    return value


def _enum_field(raw: dict, key: str, prefix: str, valid: set, default=None, optional=False):
    value = _str_field(raw, key, prefix, default=default, optional=optional)
    if value is None:
        return None
    if value not in valid:
        raise ValueError(
            f"{prefix}: invalid {key} '{value}'. Valid: {sorted(valid)}"
        )
    return value


def _volume_field(raw: dict, key: str, default: float) -> float:
    value = _number_field(raw, key, "Manifest", default=default)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"Manifest: '{key}' must be within [0, 1], got {value}")
    return value


def validate_style_overrides(raw: dict, prefix: str) -> dict:
    """Validate the optional per-caption style overrides in raw.

    Returns the present overrides keyed by model field name.
    """
    overrides = {}
    color = raw.get("color")
    if color is not None:
        if not is_hex_color(color):
            raise ValueError(f"{prefix}: 'color' must be a '#RRGGBB' hex string, got {color!r}")
        overrides["color"] = color
    if raw.get("fontSize") is not None:
        size = raw["fontSize"]
        if not _is_number(size) or size <= 0:
            raise ValueError(f"{prefix}: 'fontSize' must be a positive number, got {size!r}")
        overrides["font_size"] = int(round(size))
    if raw.get("fontWeight") is not None:
        weight = raw["fontWeight"]
        if not _is_number(weight) or not MIN_FONT_WEIGHT <= weight <= MAX_FONT_WEIGHT:
            raise ValueError(
                f"{prefix}: 'fontWeight' must be a number in "
                f"[{MIN_FONT_WEIGHT}, {MAX_FONT_WEIGHT}], got {weight!r}"
            )
        overrides["font_weight"] = int(weight)
    if raw.get("fontFamily") is not None:
        family = raw["fontFamily"]
        if not isinstance(family, str) or not family.strip():
            raise ValueError(f"{prefix}: 'fontFamily' must be a non-empty string")
        overrides["font_family"] = family
    return overrides


# ── Parsing ───────────────────────────────────────────────────────


def parse_caption(raw: dict, index: int, duration_in_frames: int | None = None) -> Caption:
    """Validate one caption dict and convert it to a Caption."""
    prefix = f"Caption {index}"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: must be a mapping")

    start = _int_field(raw, "startFrame", prefix, minimum=0)
    end = _int_field(raw, "endFrame", prefix)
    if end <= start:
        raise ValueError(f"{prefix}: endFrame ({end}) must be > startFrame ({start})")
    if duration_in_frames is not None and end > duration_in_frames:
        raise ValueError(
            f"{prefix}: endFrame ({end}) exceeds durationInFrames ({duration_in_frames})"
        )

    return Caption(
        start_frame=start,
        end_frame=end,
        text=_str_field(raw, "text", prefix),
        style=_enum_field(raw, "style", prefix, VALID_CAPTION_STYLES),
        position=_enum_field(raw, "position", prefix, VALID_POSITIONS, default="center"),
        **validate_style_overrides(raw, prefix),
    )


def parse_clip(raw: dict, index: int) -> Clip:
    """Validate one clip dict and convert it to a Clip."""
    prefix = f"Clip {index}"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: must be a mapping")

    url = _str_field(raw, "url", prefix)
    if not url.strip():
        raise ValueError(f"{prefix}: 'url' must be a non-empty string")

    source_start = _number_field(raw, "sourceStartTime", prefix, default=0.0)
    if source_start < 0:
        raise ValueError(f"{prefix}: 'sourceStartTime' must be >= 0, got {source_start}")
    source_end = None
    if raw.get("sourceEndTime") is not None:
        source_end = _number_field(raw, "sourceEndTime", prefix)
        if source_end <= source_start:
            raise ValueError(
                f"{prefix}: sourceEndTime ({source_end}) must be > "
                f"sourceStartTime ({source_start})"
            )

    return Clip(
        start_frame=_int_field(raw, "startFrame", prefix, minimum=0),
        duration=_int_field(raw, "duration", prefix, minimum=1),
        url=url,
        type=_enum_field(raw, "type", prefix, VALID_CLIP_TYPES, default="video"),
        source_start_time=source_start,
        source_end_time=source_end,
        label=_str_field(raw, "label", prefix, optional=True),
        transition=_enum_field(
            raw, "transition", prefix, VALID_TRANSITIONS, optional=True,
        ),
    )


def parse_product(raw: dict) -> Product:
    prefix = "Product"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: must be a mapping")
    return Product(
        title=_str_field(raw, "title", prefix),
        price=_str_field(raw, "price", prefix),
        image=_str_field(raw, "image", prefix),
        description=_str_field(raw, "description", prefix, optional=True),
        url=_str_field(raw, "url", prefix, optional=True),
        video_url=_str_field(raw, "videoUrl", prefix, optional=True),
    )


_THEME_KEYS = {
    "id": "id",
    "name": "name",
    "primaryColor": "primary_color",
    "secondaryColor": "secondary_color",
    "accentColor": "accent_color",
    "backgroundColor": "background_color",
    "fontFamily": "font_family",
    "transition": "transition",
    "musicGenre": "music_genre",
    "clipDuration": "clip_duration",
    "textAnimation": "text_animation",
    "kenBurnsEnabled": "ken_burns_enabled",
    "kenBurnsScale": "ken_burns_scale",
}


def parse_theme(raw: dict, base: Theme | None = None) -> Theme:
    """Validate a theme dict, filling absent fields from a preset.

    The preset is the registry entry for raw["id"] if given, else base.
    Unknown keys and unknown theme ids raise ValueError.
    """
    prefix = "Theme"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: must be a mapping")

    unknown = set(raw) - set(_THEME_KEYS)
    if unknown:
        raise ValueError(f"{prefix}: unknown field(s) {sorted(unknown)}")

    if "id" in raw:
        preset = THEME_PRESETS.get(raw["id"]) if isinstance(raw["id"], str) else None
        if preset is None:
            raise ValueError(
                f"{prefix}: unknown theme id {raw['id']!r}. Valid: {sorted(THEME_PRESETS)}"
            )
    elif base is not None:
        preset = base
    else:
        raise ValueError(f"{prefix}: missing required field 'id'")

    values = {}
    for key, attr in _THEME_KEYS.items():
        if key not in raw:
            values[attr] = getattr(preset, attr)
        elif key.endswith("Color"):
            if not is_hex_color(raw[key]):
                raise ValueError(f"{prefix}: '{key}' must be a hex color, got {raw[key]!r}")
            values[attr] = raw[key]
        elif key == "transition":
            values[attr] = _enum_field(raw, key, prefix, VALID_TRANSITIONS)
        elif key == "textAnimation":
            values[attr] = _enum_field(raw, key, prefix, VALID_TEXT_ANIMATIONS)
        elif key == "clipDuration":
            values[attr] = _int_field(raw, key, prefix, minimum=1)
        elif key == "kenBurnsEnabled":
            if not isinstance(raw[key], bool):
                raise ValueError(f"{prefix}: '{key}' must be a boolean")
            values[attr] = raw[key]
        elif key == "kenBurnsScale":
            values[attr] = _number_field(raw, key, prefix)
            if values[attr] < 1.0:
                raise ValueError(f"{prefix}: '{key}' must be >= 1.0")
        else:
            values[attr] = _str_field(raw, key, prefix)
    return Theme(**values)


def parse_video_index(raw: dict) -> VideoIndex:
    prefix = "VideoIndex"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: must be a mapping")
    segments = []
    for i, seg in enumerate(raw.get("segments", [])):
        seg_prefix = f"{prefix}, segment {i}"
        if not isinstance(seg, dict):
            raise ValueError(f"{seg_prefix}: must be a mapping")
        confidence = seg.get("confidence")
        if confidence is not None and not _is_number(confidence):
            raise ValueError(f"{seg_prefix}: 'confidence' must be a number")
        segments.append(VideoSegment(
            label=_str_field(seg, "label", seg_prefix),
            start_time=_number_field(seg, "startTime", seg_prefix),
            end_time=_number_field(seg, "endTime", seg_prefix),
            confidence=float(confidence) if confidence is not None else None,
            thumbnail_url=_str_field(seg, "thumbnailUrl", seg_prefix, optional=True),
        ))
    return VideoIndex(
        video_id=_str_field(raw, "videoId", prefix),
        video_url=_str_field(raw, "videoUrl", prefix),
        duration=_number_field(raw, "duration", prefix),
        segments=tuple(segments),
        indexed=bool(raw.get("indexed", True)),
    )


def parse_manifest(raw: dict) -> VideoManifest:
    """Validate and normalize a manifest dict.

    Processing pipeline:
      1. Parse dimensions, fps, duration and version.
      2. Parse captions against the timeline bounds.
      3. Parse clips, product, theme, video index and audio fields.

    Raises:
        ValueError: Missing field, wrong type, or broken invariant.
    """
    if not isinstance(raw, dict):
        raise ValueError("Manifest: must be a mapping")

    prefix = "Manifest"
    duration = _int_field(raw, "durationInFrames", prefix, minimum=1)
    fps = _int_field(raw, "fps", prefix, default=30, minimum=1)

    captions_raw = raw.get("captions", [])
    if not isinstance(captions_raw, list):
        raise ValueError(f"{prefix}: 'captions' must be a list")
    clips_raw = raw.get("clips", [])
    if not isinstance(clips_raw, list):
        raise ValueError(f"{prefix}: 'clips' must be a list")

    captions = tuple(parse_caption(c, i, duration) for i, c in enumerate(captions_raw))
    clips = tuple(parse_clip(c, i) for i, c in enumerate(clips_raw))

    theme = parse_theme(raw["theme"]) if raw.get("theme") is not None else None
    video_index = (
        parse_video_index(raw["videoIndex"]) if raw.get("videoIndex") is not None else None
    )
    stamp = now_iso()

    return VideoManifest(
        id=_str_field(raw, "id", prefix, optional=True) or uuid.uuid4().hex[:12],
        version=_int_field(raw, "version", prefix, default=1, minimum=1),
        script=_str_field(raw, "script", prefix, default=""),
        captions=captions,
        clips=clips,
        product=parse_product(_require(raw, "product", prefix)),
        fps=fps,
        duration_in_frames=duration,
        width=_int_field(raw, "width", prefix, default=1080, minimum=1),
        height=_int_field(raw, "height", prefix, default=1920, minimum=1),
        audio_url=_str_field(raw, "audioUrl", prefix, optional=True),
        music_url=_str_field(raw, "musicUrl", prefix, optional=True),
        music_volume=_volume_field(raw, "musicVolume", 0.3),
        voice_volume=_volume_field(raw, "voiceVolume", 1.0),
        theme=theme,
        video_index=video_index,
        created_at=_str_field(raw, "createdAt", prefix, default=stamp),
        updated_at=_str_field(raw, "updatedAt", prefix, default=stamp),
    )


# ── Serialization ─────────────────────────────────────────────────


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


def caption_to_dict(caption: Caption) -> dict:
    return _drop_none({
        "startFrame": caption.start_frame,
        "endFrame": caption.end_frame,
        "text": caption.text,
        "style": caption.style,
        "position": caption.position,
        "color": caption.color,
        "fontSize": caption.font_size,
        "fontWeight": caption.font_weight,
        "fontFamily": caption.font_family,
    })


def clip_to_dict(clip: Clip) -> dict:
    return _drop_none({
        "startFrame": clip.start_frame,
        "duration": clip.duration,
        "type": clip.type,
        "url": clip.url,
        "sourceStartTime": clip.source_start_time,
        "sourceEndTime": clip.source_end_time,
        "label": clip.label,
        "transition": clip.transition,
    })


def theme_to_dict(theme: Theme) -> dict:
    return {key: getattr(theme, attr) for key, attr in _THEME_KEYS.items()}


def video_index_to_dict(index: VideoIndex) -> dict:
    return {
        "videoId": index.video_id,
        "videoUrl": index.video_url,
        "duration": index.duration,
        "segments": [
            _drop_none({
                "label": s.label,
                "startTime": s.start_time,
                "endTime": s.end_time,
                "confidence": s.confidence,
                "thumbnailUrl": s.thumbnail_url,
            })
            for s in index.segments
        ],
        "indexed": index.indexed,
    }


def manifest_to_dict(manifest: VideoManifest) -> dict:
    """Canonical camelCase serialization; parse_manifest() inverts it."""
    product = manifest.product
    return _drop_none({
        "id": manifest.id,
        "version": manifest.version,
        "script": manifest.script,
        "captions": [caption_to_dict(c) for c in manifest.captions],
        "clips": [clip_to_dict(c) for c in manifest.clips],
        "product": _drop_none({
            "title": product.title,
            "price": product.price,
            "image": product.image,
            "description": product.description,
            "url": product.url,
            "videoUrl": product.video_url,
        }),
        "audioUrl": manifest.audio_url,
        "musicUrl": manifest.music_url,
        "musicVolume": manifest.music_volume,
        "voiceVolume": manifest.voice_volume,
        "theme": theme_to_dict(manifest.theme) if manifest.theme else None,
        "videoIndex": (
            video_index_to_dict(manifest.video_index) if manifest.video_index else None
        ),
        "fps": manifest.fps,
        "durationInFrames": manifest.duration_in_frames,
        "width": manifest.width,
        "height": manifest.height,
        "createdAt": manifest.created_at,
        "updatedAt": manifest.updated_at,
    })


# ── File I/O ──────────────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> VideoManifest:
    """Load and validate a manifest from a .json or YAML file.

    Raises:
        ValueError: Invalid manifest content.
        FileNotFoundError: Missing manifest file.
    """
    path = Path(manifest_path)
    with open(path) as f:
        if path.suffix.lower() == ".json":
            raw = json.load(f)
        else:
            raw = yaml.safe_load(f)
    return parse_manifest(raw)


def save_manifest(manifest: VideoManifest, manifest_path: str | Path) -> None:
    """Write a manifest as JSON (.json suffix) or YAML (anything else)."""
    path = Path(manifest_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = manifest_to_dict(manifest)
    with open(path, "w") as f:
        if path.suffix.lower() == ".json":
            json.dump(data, f, indent=2)
            f.write("\n")
        else:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


# ── Timeline checks ───────────────────────────────────────────────


def find_clip_overlaps(manifest: VideoManifest) -> list[tuple[int, int]]:
    """Return index pairs of clips whose frame windows overlap.

    Overlapping clips still render (stacked in list order); this check
    exists so tools can warn about them.
    """
    overlaps = []
    clips = manifest.clips
    for i in range(len(clips)):
        for j in range(i + 1, len(clips)):
            a, b = clips[i], clips[j]
            if a.start_frame < b.end_frame and b.start_frame < a.end_frame:
                overlaps.append((i, j))
    return overlaps
