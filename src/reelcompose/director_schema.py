"""Schema validation for Director payloads produced by the LLM.

Model output is untrusted: validate_director_payload() checks every
field name and type before anything reaches the manifest. Unknown
fields are rejected, not ignored. Semantic checks (caption bounds, hex
colors, theme ids) happen later, when the edit is applied and the
resulting manifest is re-parsed.

Expected shape:

  {
    "actions": [
      {"type": "change_theme", "payload": {"themeId": "luxe"}, "reasoning": "..."}
    ],
    "message": "Switched to Luxe.",
    "manifestChanges": {"captions": [{"text": "NEW LINE"}]}
  }
"""

TOP_LEVEL_KEYS = {"actions", "message", "manifestChanges"}
ACTION_KEYS = {"type", "payload", "reasoning"}

_STR = (str,)
_NUM = (int, float)
_INT = (int,)

# Allowed payload keys and their types, per action type.
ACTION_PAYLOADS = {
    "change_theme": {"themeId": _STR},
    "adjust_timing": {"clipDuration": _NUM},
    "update_text": {"captionIndex": _INT, "newText": _STR},
    "style_text": {
        "captionIndex": _INT,
        "target": _STR,
        "color": _STR,
        "fontSize": _NUM,
        "fontWeight": _NUM,
        "fontFamily": _STR,
    },
    "update_clip": {"clipIndex": _INT, "changes": (dict,)},
    "change_music": {
        "genre": _STR,
        "musicUrl": _STR,
        "musicVolume": _NUM,
        "voiceVolume": _NUM,
    },
    "search_video": {"query": _STR},
}

MANIFEST_CHANGE_KEYS = {
    "theme": (dict,),
    "captions": (list,),
    "clips": (list,),
    "script": _STR,
    "musicVolume": _NUM,
    "voiceVolume": _NUM,
}

CAPTION_PATCH_KEYS = {
    "startFrame", "endFrame", "text", "style", "position",
    "color", "fontSize", "fontWeight", "fontFamily",
}

CLIP_PATCH_KEYS = {
    "startFrame", "duration", "type", "url", "sourceStartTime",
    "sourceEndTime", "label", "transition",
}


def _check_type(value, types: tuple, where: str) -> None:
    # bool is an int subclass; never accept it as a number.
    if isinstance(value, bool) and bool not in types:
        raise ValueError(f"{where}: expected {_type_names(types)}, got bool")
    if not isinstance(value, types):
        raise ValueError(
            f"{where}: expected {_type_names(types)}, got {type(value).__name__}"
        )


def _type_names(types: tuple) -> str:
    return " or ".join(t.__name__ for t in types)


def _check_keys(d: dict, allowed: set, where: str) -> None:
    unknown = set(d) - allowed
    if unknown:
        raise ValueError(f"{where}: unknown field(s) {sorted(unknown)}")


def validate_action(raw, index: int) -> dict:
    """Validate one action; returns {"type", "payload", "reasoning"}.

    Action types outside the vocabulary pass through with only the
    envelope checked; the Director skips them.
    """
    where = f"Action {index}"
    _check_type(raw, (dict,), where)
    _check_keys(raw, ACTION_KEYS, where)
    if "type" not in raw:
        raise ValueError(f"{where}: missing required field 'type'")
    _check_type(raw["type"], _STR, f"{where}, type")

    payload = raw.get("payload") or {}
    _check_type(payload, (dict,), f"{where}, payload")
    reasoning = raw.get("reasoning") or ""
    _check_type(reasoning, _STR, f"{where}, reasoning")

    schema = ACTION_PAYLOADS.get(raw["type"])
    if schema is not None:
        _check_keys(payload, set(schema), f"{where} ({raw['type']}) payload")
        for key, value in payload.items():
            if value is not None:
                _check_type(value, schema[key], f"{where} ({raw['type']}) payload, {key}")
        if raw["type"] == "update_clip" and "changes" in payload:
            _check_keys(payload["changes"], CLIP_PATCH_KEYS, f"{where} (update_clip) changes")

    return {"type": raw["type"], "payload": payload, "reasoning": reasoning}


def validate_manifest_changes(raw) -> dict:
    """Validate a manifestChanges patch (field names and container types)."""
    where = "manifestChanges"
    _check_type(raw, (dict,), where)
    _check_keys(raw, set(MANIFEST_CHANGE_KEYS), where)
    for key, value in raw.items():
        _check_type(value, MANIFEST_CHANGE_KEYS[key], f"{where}, {key}")

    for i, caption in enumerate(raw.get("captions", [])):
        _check_type(caption, (dict,), f"{where}, caption {i}")
        _check_keys(caption, CAPTION_PATCH_KEYS, f"{where}, caption {i}")
    for i, clip in enumerate(raw.get("clips", [])):
        _check_type(clip, (dict,), f"{where}, clip {i}")
        _check_keys(clip, CLIP_PATCH_KEYS, f"{where}, clip {i}")
    return dict(raw)


def validate_director_payload(data) -> dict:
    """Validate a parsed LLM response.

    Returns:
        {"actions": list[dict], "message": str | None,
         "manifest_changes": dict | None}

    Raises:
        ValueError: Unknown field or wrong type anywhere in the payload.
    """
    _check_type(data, (dict,), "Director payload")
    _check_keys(data, TOP_LEVEL_KEYS, "Director payload")

    actions_raw = data.get("actions") or []
    _check_type(actions_raw, (list,), "Director payload, actions")
    actions = [validate_action(a, i) for i, a in enumerate(actions_raw)]

    message = data.get("message")
    if message is not None:
        _check_type(message, _STR, "Director payload, message")

    changes = data.get("manifestChanges")
    manifest_changes = validate_manifest_changes(changes) if changes else None

    return {
        "actions": actions,
        "message": message,
        "manifest_changes": manifest_changes,
    }
