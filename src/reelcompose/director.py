"""Director — natural-language edit commands against a manifest.

interpret(command, manifest) runs two tiers in order:

  1. Keyword rules: a fixed, ordered table (theme, pacing, caption
     color, caption size, caption weight). The first matching rule wins.
     No external service is involved, so this tier always works.
  2. LLM: only when no rule matched and a client is configured. The
     model gets the manifest, the theme catalog and the action
     vocabulary, and answers with JSON actions plus an optional
     manifestChanges patch. The answer is schema-checked before use.

Both tiers apply edits through the same operations (edits.py). One
interaction bumps the manifest version at most once. interpret() never
raises: every failure comes back as the unchanged manifest and a
message.
"""

import json
import logging
import re
from dataclasses import dataclass, field, replace

import openai

from .director_schema import validate_director_payload
from .edits import (
    adjust_timing,
    apply_theme,
    change_music,
    search_video_segment,
    style_captions,
    update_caption_text,
    update_clip,
)
from .llm import ModelUnavailableError, extract_json, generate_with_fallback
from .manifest import (
    VideoManifest,
    caption_to_dict,
    manifest_to_dict,
    now_iso,
    parse_manifest,
    parse_theme,
    theme_to_dict,
)
from .themes import THEME_DESCRIPTIONS, THEME_PRESETS, resolve_theme

logger = logging.getLogger(__name__)


DEFAULT_DIRECTOR_MODELS = (
    "google/gemini-2.0-flash-001",
    "meta-llama/llama-3.3-70b-instruct",
)

DIDNT_UNDERSTAND = (
    'I didn\'t understand "{command}". Try: "make it luxurious", '
    '"add more energy", "speed it up", or "make it minimal".'
)
ERROR_MESSAGE = "I encountered an error processing your request. Please try again."
NOTHING_TO_CHANGE = "There's nothing in this video that change applies to."
DEFAULT_LLM_MESSAGE = "I've made the changes you requested!"


@dataclass(frozen=True)
class DirectorAction:
    """One edit the Director applied, with the reason it was chosen."""
    type: str
    payload: dict = field(default_factory=dict)
    reasoning: str = ""


@dataclass(frozen=True)
class DirectorResponse:
    manifest: VideoManifest
    actions: list[DirectorAction]
    message: str


# ── Keyword rules ────────────────────────────────────────────────
# (keywords, action type, payload, reasoning, message). Matched as
# case-insensitive substrings, in order.

KEYWORD_RULES = [
    (
        ("luxe", "luxur", "premium", "elegant", "gold"),
        "change_theme", {"themeId": "luxe"},
        "User requested luxury aesthetic",
        "I've applied the Luxe theme! Gold tones, elegant fades, and Ken Burns "
        "zoom effects for a premium feel.",
    ),
    (
        ("cyber", "neon", "energy", "hype", "intense", "vibrant"),
        "change_theme", {"themeId": "cyber"},
        "User requested energetic/cyberpunk aesthetic",
        "Switched to Cyber theme! Neon colors, glitch effects, and fast cuts "
        "for maximum energy.",
    ),
    (
        ("minimal", "clean", "simple", "subtle", "calm"),
        "change_theme", {"themeId": "minimal"},
        "User requested minimal aesthetic",
        "Applied Minimal theme! Clean slides, typewriter text, and lofi vibes.",
    ),
    (
        ("faster", "speed up", "speed it up", "quicker", "rapid"),
        "adjust_timing", {"clipDuration": 30},
        "User wants faster pace",
        "Done! Clips are now faster for a more dynamic feel.",
    ),
    (
        ("slower", "slow down", "slow it down", "calm", "relaxed"),
        "adjust_timing", {"clipDuration": 90},
        "User wants slower pace",
        "Slowed things down for a more cinematic, luxurious feel.",
    ),
]

# Caption style rules match whole words ("red" must not match "hundred").
COLOR_KEYWORDS = {
    "red": "#ff0000",
    "blue": "#0000ff",
    "green": "#00ff00",
    "yellow": "#ffff00",
    "orange": "#ff8800",
    "purple": "#8800ff",
    "pink": "#ff66cc",
    "white": "#ffffff",
    "black": "#000000",
}

SIZE_KEYWORDS = {
    "bigger": 96, "larger": 96, "huge": 96,
    "smaller": 40, "tiny": 40,
}

WEIGHT_KEYWORDS = {
    "bold": 900, "heavier": 900, "thicker": 900,
    "thinner": 300, "lighter": 300,
}

ORDINALS = {"first": 0, "second": 1, "third": 2, "last": -1}


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def _caption_target(lower: str, n_captions: int) -> tuple[dict, str]:
    """Payload selector and a human label for the captions a command names."""
    for word, index in ORDINALS.items():
        if _has_word(lower, word):
            resolved = index if index >= 0 else n_captions - 1
            return {"captionIndex": resolved}, f"the {word} caption"
    return {"target": "all"}, "all captions"


def match_keyword_rule(command: str, manifest: VideoManifest) -> tuple[DirectorAction, str] | None:
    """First keyword rule matching command, as (action, message), or None."""
    lower = command.lower()

    for keywords, action_type, payload, reasoning, message in KEYWORD_RULES:
        if any(k in lower for k in keywords):
            logger.info("Matched keyword rule: %s %s", action_type, payload)
            return DirectorAction(action_type, dict(payload), reasoning), message

    style_tables = (
        (COLOR_KEYWORDS, "color", "color"),
        (SIZE_KEYWORDS, "fontSize", "size"),
        (WEIGHT_KEYWORDS, "fontWeight", "weight"),
    )
    for table, prop, noun in style_tables:
        for word, value in table.items():
            if not _has_word(lower, word):
                continue
            target, label = _caption_target(lower, len(manifest.captions))
            logger.info("Matched caption %s rule: %s", noun, word)
            action = DirectorAction(
                "style_text",
                {**target, prop: value},
                f"User wants {word} text",
            )
            return action, f"Done! Set the text {noun} to {word} on {label}."
    return None


# ── Action execution ─────────────────────────────────────────────


def apply_action(
    manifest: VideoManifest, action: DirectorAction, search=None,
) -> tuple[VideoManifest, str | None]:
    """Run one action through the edit operations.

    Returns the (possibly unchanged) manifest and an optional note for
    the user. Unknown action types and invalid payloads change nothing.
    """
    p = action.payload
    if action.type == "change_theme":
        return apply_theme(manifest, p.get("themeId")), None
    if action.type == "adjust_timing":
        return adjust_timing(manifest, p.get("clipDuration")), None
    if action.type == "update_text":
        return update_caption_text(manifest, p.get("captionIndex"), p.get("newText")), None
    if action.type == "style_text":
        selector = p.get("captionIndex", "all")
        return style_captions(
            manifest,
            selector,
            color=p.get("color"),
            font_size=p.get("fontSize"),
            font_weight=p.get("fontWeight"),
            font_family=p.get("fontFamily"),
        ), None
    if action.type == "update_clip":
        return update_clip(manifest, p.get("clipIndex"), p.get("changes") or {}), None
    if action.type == "change_music":
        return change_music(
            manifest,
            music_url=p.get("musicUrl"),
            music_volume=p.get("musicVolume"),
            voice_volume=p.get("voiceVolume"),
        ), None
    if action.type == "search_video":
        query = p.get("query")
        if not query:
            return manifest, None
        manifest, found, segment = search_video_segment(manifest, query, search)
        if not found:
            return manifest, f'No moment matching "{query}" in the source video.'
        return manifest, (
            f'Found "{segment.label}" at {segment.start_time:.1f}s-{segment.end_time:.1f}s.'
        )
    logger.info("Skipping unknown action type: %s", action.type)
    return manifest, None


# ── LLM tier ─────────────────────────────────────────────────────


ACTION_DOCS = [
    ('change_theme', '{"themeId": "cyber"|"luxe"|"minimal"}', "Switch to a theme preset"),
    ('adjust_timing', '{"clipDuration": <frames>}', "Re-tile clips at a uniform duration"),
    ('update_text', '{"captionIndex": <int>, "newText": <str>}', "Rewrite one caption"),
    (
        'style_text',
        '{"captionIndex": <int> or "target": "all", "color": "#rrggbb", '
        '"fontSize": <px>, "fontWeight": <100-900>, "fontFamily": <str>}',
        "Restyle captions",
    ),
    ('update_clip', '{"clipIndex": <int>, "changes": {<clip fields>}}', "Modify one clip"),
    (
        'change_music',
        '{"musicUrl": <str>, "musicVolume": <0-1>, "voiceVolume": <0-1>}',
        "Change background music or audio levels",
    ),
    ('search_video', '{"query": <str>}', "Find a moment in the product's source video"),
]


def build_director_prompt(manifest: VideoManifest, command: str) -> str:
    themes = "\n".join(f"- {tid}: {desc}" for tid, desc in THEME_DESCRIPTIONS.items())
    actions = "\n".join(
        f"{i}. {name} {payload}: {desc}"
        for i, (name, payload, desc) in enumerate(ACTION_DOCS, start=1)
    )
    luxe = json.dumps(theme_to_dict(THEME_PRESETS["luxe"]))
    return f"""You are the AI Director for a short-form product video editor. You modify video projects through natural language.

CURRENT VIDEO MANIFEST:
{json.dumps(manifest_to_dict(manifest), indent=2)}

AVAILABLE THEMES:
{themes}

AVAILABLE ACTIONS:
{actions}

RESPONSE FORMAT:
Return ONLY a JSON object with this structure:
{{
  "actions": [
    {{"type": "action_type", "payload": {{}}, "reasoning": "Why you're making this change"}}
  ],
  "message": "Friendly response to the user explaining what you did",
  "manifestChanges": {{}}
}}
manifestChanges may only contain: theme, captions, clips, script, musicVolume, voiceVolume.
A captions list shorter than the current one is merged into the captions at the same positions.

EXAMPLES:

User: "Make it feel more luxurious"
{{"actions": [{{"type": "change_theme", "payload": {{"themeId": "luxe"}}, "reasoning": "User wants luxury aesthetic"}}], "message": "I've switched to the Luxe theme.", "manifestChanges": {{"theme": {luxe}}}}}

User: "Change the first line to SAY GOODBYE TO BORING"
{{"actions": [{{"type": "update_text", "payload": {{"captionIndex": 0, "newText": "SAY GOODBYE TO BORING"}}, "reasoning": "User requested text change"}}], "message": "Updated the opening line."}}

Only modify what the user asks for. Always explain your changes.

User command: {command}"""


def _merge_captions(current: list[dict], patch: list[dict]) -> list[dict]:
    """Shorter patches overlay fields by position; others replace the list."""
    if len(patch) < len(current):
        return [
            {**caption, **patch[i]} if i < len(patch) else caption
            for i, caption in enumerate(current)
        ]
    return patch


def apply_manifest_changes(manifest: VideoManifest, changes: dict) -> VideoManifest:
    """Shallow-merge a validated manifestChanges patch, key by key.

    Each key is applied only if the resulting manifest still parses;
    a rejected key is logged and skipped, earlier keys stand. A captions
    patch rebuilds script unless the patch also carries one.
    """
    for key, value in changes.items():
        data = manifest_to_dict(manifest)
        try:
            if key == "theme":
                theme = parse_theme(value, base=resolve_theme(manifest.theme))
                manifest = replace(manifest, theme=theme)
                continue
            if key == "captions":
                if not value:
                    continue
                data["captions"] = _merge_captions(
                    [caption_to_dict(c) for c in manifest.captions], value,
                )
                manifest = parse_manifest(data)
                if "script" not in changes:
                    manifest = replace(
                        manifest, script="\n".join(c.text for c in manifest.captions),
                    )
                continue
            data[key] = value
            manifest = parse_manifest(data)
        except (ValueError, TypeError) as e:
            logger.warning("Rejected manifestChanges.%s: %s", key, e)
    return manifest


class Director:
    """Interprets edit commands. Collaborators are injected, none are global.

    Args:
        llm: Object with generate(model, prompt) -> str, or None to run
            keyword rules only.
        models: Model ladder tried in order on rate limits/unavailability.
        search: Video search client with search(video_id, query), or None.
    """

    def __init__(self, llm=None, models=DEFAULT_DIRECTOR_MODELS, search=None):
        self.llm = llm
        self.models = list(models)
        self.search = search

    def interpret(self, command: str, manifest: VideoManifest) -> DirectorResponse:
        command = command if isinstance(command, str) else ""
        logger.info("Processing command: %s", command)

        matched = match_keyword_rule(command, manifest)
        if matched is not None:
            action, message = matched
            updated, _ = apply_action(manifest, action, self.search)
            if updated is manifest:
                return DirectorResponse(manifest, [], NOTHING_TO_CHANGE)
            return DirectorResponse(updated, [action], message)

        if self.llm is None or not command.strip():
            logger.info("No keyword match and no LLM; command not understood")
            return DirectorResponse(manifest, [], DIDNT_UNDERSTAND.format(command=command))

        try:
            return self._interpret_with_llm(command, manifest)
        except (ModelUnavailableError, openai.OpenAIError) as e:
            logger.warning("Language model unavailable: %s", e)
            return DirectorResponse(manifest, [], DIDNT_UNDERSTAND.format(command=command))
        except Exception:
            logger.exception("Director error")
            return DirectorResponse(manifest, [], ERROR_MESSAGE)

    def _interpret_with_llm(self, command: str, manifest: VideoManifest) -> DirectorResponse:
        not_understood = DirectorResponse(manifest, [], DIDNT_UNDERSTAND.format(command=command))

        text = generate_with_fallback(self.llm, self.models, build_director_prompt(manifest, command))
        data = extract_json(text)
        if data is None:
            logger.warning("No JSON in model response")
            return not_understood
        try:
            payload = validate_director_payload(data)
        except ValueError as e:
            logger.warning("Rejected Director payload: %s", e)
            return not_understood

        updated = manifest
        changed = False
        applied = []
        notes = []
        for raw in payload["actions"]:
            action = DirectorAction(raw["type"], raw["payload"], raw["reasoning"])
            before = updated
            updated, note = apply_action(updated, action, self.search)
            if note:
                notes.append(note)
            if updated is not before:
                changed = True
            if action.type == "search_video" or updated is not before:
                applied.append(action)

        if payload["manifest_changes"]:
            before = updated
            updated = apply_manifest_changes(updated, payload["manifest_changes"])
            changed = changed or updated != before

        if not applied and not changed:
            return not_understood

        if changed:
            updated = replace(updated, version=manifest.version + 1, updated_at=now_iso())
        message = payload["message"] or DEFAULT_LLM_MESSAGE
        if notes:
            message = " ".join([message, *notes])
        return DirectorResponse(updated, applied, message)
