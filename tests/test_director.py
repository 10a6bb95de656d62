"""Tests for the natural-language Director."""

import json
from dataclasses import replace

from reelcompose.director import (
    DIDNT_UNDERSTAND,
    ERROR_MESSAGE,
    NOTHING_TO_CHANGE,
    Director,
    DirectorAction,
    apply_action,
    apply_manifest_changes,
    build_director_prompt,
    match_keyword_rule,
)
from reelcompose.llm import ModelUnavailableError
from reelcompose.search import create_placeholder_index
from reelcompose.themes import THEME_PRESETS

from conftest import FakeLLM


def _answer(**payload):
    return json.dumps(payload)


class TestKeywordRules:
    def test_luxury_applies_luxe(self, manifest):
        r = Director().interpret("make it luxurious", manifest)
        assert r.manifest.theme.id == "luxe"
        assert r.manifest.version == manifest.version + 1
        assert [a.type for a in r.actions] == ["change_theme"]
        assert "Luxe" in r.message

    def test_energy_applies_cyber(self, manifest):
        m = replace(manifest, theme=THEME_PRESETS["minimal"])
        r = Director().interpret("ADD MORE ENERGY", m)
        assert r.manifest.theme.id == "cyber"

    def test_speed_up(self, manifest):
        r = Director().interpret("speed it up", manifest)
        assert [c.duration for c in r.manifest.clips] == [30, 30, 30]
        assert [c.start_frame for c in r.manifest.clips] == [0, 30, 60]
        assert r.manifest.version == manifest.version + 1

    def test_slow_it_down(self, manifest):
        r = Director().interpret("slow it down", manifest)
        assert [c.duration for c in r.manifest.clips] == [90, 90, 90]
        assert [a.type for a in r.actions] == ["adjust_timing"]

    def test_suggested_commands_are_understood(self, manifest):
        for command in ("make it luxurious", "add more energy", "speed it up", "make it minimal"):
            assert command in DIDNT_UNDERSTAND
            assert match_keyword_rule(command, manifest) is not None

    def test_calm_matches_minimal_first(self, manifest):
        r = Director().interpret("keep it calm", manifest)
        assert r.manifest.theme.id == "minimal"

    def test_red_text_styles_all_captions(self, manifest):
        r = Director().interpret("make the text red", manifest)
        assert [c.color for c in r.manifest.captions] == ["#ff0000", "#ff0000"]
        assert r.actions[0].payload == {"target": "all", "color": "#ff0000"}
        assert r.message == "Done! Set the text color to red on all captions."

    def test_ordinal_targets_one_caption(self, manifest):
        r = Director().interpret("make the last caption bold", manifest)
        assert r.manifest.captions[1].font_weight == 900
        assert r.manifest.captions[0].font_weight is None

    def test_color_matches_whole_words_only(self, manifest):
        assert match_keyword_rule("add a hundred sparkles", manifest) is None

    def test_rule_with_nothing_to_change(self, manifest):
        m = replace(manifest, captions=())
        r = Director().interpret("make the text blue", m)
        assert r.manifest is m
        assert r.actions == []
        assert r.message == NOTHING_TO_CHANGE

    def test_does_not_call_llm_on_match(self, manifest):
        llm = FakeLLM({})
        Director(llm=llm).interpret("make it minimal", manifest)
        assert llm.calls == []


class TestNoMatch:
    def test_without_llm(self, manifest):
        r = Director().interpret("asdfqwerty123", manifest)
        assert r.manifest is manifest
        assert r.actions == []
        assert r.message == DIDNT_UNDERSTAND.format(command="asdfqwerty123")

    def test_empty_command(self, manifest):
        llm = FakeLLM({})
        r = Director(llm=llm).interpret("   ", manifest)
        assert r.manifest is manifest
        assert llm.calls == []


class TestLLMTier:
    def test_applies_actions_and_bumps_once(self, manifest):
        llm = FakeLLM({"m1": _answer(
            actions=[
                {"type": "update_text", "payload": {"captionIndex": 0, "newText": "HELLO"}},
                {"type": "change_music", "payload": {"musicVolume": 0.1}},
            ],
            message="Updated.",
        )})
        r = Director(llm=llm, models=["m1"]).interpret("rewrite the opener", manifest)
        assert r.manifest.captions[0].text == "HELLO"
        assert r.manifest.music_volume == 0.1
        assert r.manifest.version == manifest.version + 1
        assert [a.type for a in r.actions] == ["update_text", "change_music"]
        assert r.message == "Updated."

    def test_prompt_carries_manifest_and_command(self, manifest):
        llm = FakeLLM({"m1": _answer(actions=[], message="ok", manifestChanges={"script": "X"})})
        Director(llm=llm, models=["m1"]).interpret("rewrite it", manifest)
        prompt = llm.calls[0][1]
        assert '"id": "test-001"' in prompt
        assert prompt.endswith("User command: rewrite it")

    def test_manifest_changes_merge_captions(self, manifest):
        llm = FakeLLM({"m1": _answer(manifestChanges={"captions": [{"text": "NEW"}]})})
        r = Director(llm=llm, models=["m1"]).interpret("new first line", manifest)
        assert [c.text for c in r.manifest.captions] == ["NEW", "B"]
        assert r.manifest.script == "NEW\nB"
        assert r.manifest.version == 2

    def test_non_finite_number_is_not_understood(self, manifest):
        llm = FakeLLM({"m1": '{"actions": [{"type": "adjust_timing", "payload": {"clipDuration": Infinity}}]}'})
        r = Director(llm=llm, models=["m1"]).interpret("stretch it", manifest)
        assert r.manifest is manifest
        assert r.message == DIDNT_UNDERSTAND.format(command="stretch it")

    def test_falls_back_to_next_model(self, manifest):
        llm = FakeLLM({
            "m1": ModelUnavailableError("m1", 429),
            "m2": _answer(actions=[{"type": "change_theme", "payload": {"themeId": "luxe"}}]),
        })
        r = Director(llm=llm, models=["m1", "m2"]).interpret("something posh please", manifest)
        assert r.manifest.theme.id == "luxe"
        assert [m for m, _ in llm.calls] == ["m1", "m2"]

    def test_all_models_down_is_not_understood(self, manifest):
        llm = FakeLLM({"m1": ModelUnavailableError("m1", 503)})
        r = Director(llm=llm, models=["m1"]).interpret("whatever", manifest)
        assert r.manifest is manifest
        assert r.message == DIDNT_UNDERSTAND.format(command="whatever")

    def test_unexpected_error_is_error_message(self, manifest):
        llm = FakeLLM({"m1": RuntimeError("boom")})
        r = Director(llm=llm, models=["m1"]).interpret("whatever", manifest)
        assert r.manifest is manifest
        assert r.message == ERROR_MESSAGE

    def test_prose_answer_is_not_understood(self, manifest):
        llm = FakeLLM({"m1": "Sorry, I cannot do that."})
        r = Director(llm=llm, models=["m1"]).interpret("do a barrel roll", manifest)
        assert r.manifest is manifest
        assert r.message == DIDNT_UNDERSTAND.format(command="do a barrel roll")

    def test_schema_violation_is_not_understood(self, manifest):
        llm = FakeLLM({"m1": _answer(actions=[{"type": "change_theme", "payload": {"theme": 1}}])})
        r = Director(llm=llm, models=["m1"]).interpret("whatever", manifest)
        assert r.manifest is manifest
        assert r.actions == []

    def test_unknown_action_is_skipped(self, manifest):
        llm = FakeLLM({"m1": _answer(actions=[
            {"type": "regenerate_script", "payload": {}},
            {"type": "adjust_timing", "payload": {"clipDuration": 50}},
        ])})
        r = Director(llm=llm, models=["m1"]).interpret("tighten it", manifest)
        assert [a.type for a in r.actions] == ["adjust_timing"]
        assert r.manifest.clips[0].duration == 50

    def test_search_attaching_index_bumps_version(self, manifest):
        m = replace(manifest, product=replace(manifest.product, video_url="https://example.com/p.mp4"))
        llm = FakeLLM({"m1": _answer(
            actions=[{"type": "search_video", "payload": {"query": "unboxing"}}],
            message="Searching.",
        )})
        r = Director(llm=llm, models=["m1"]).interpret("find the unboxing", m)
        assert m.video_index is None
        assert r.manifest.video_index is not None
        assert r.manifest.version == m.version + 1
        assert r.manifest.clips == m.clips
        assert "Unboxing" in r.message
        assert r.message.startswith("Searching.")

    def test_search_on_existing_index_does_not_bump(self, manifest):
        m = replace(manifest, video_index=create_placeholder_index("https://example.com/p.mp4"))
        llm = FakeLLM({"m1": _answer(
            actions=[{"type": "search_video", "payload": {"query": "unboxing"}}],
        )})
        r = Director(llm=llm, models=["m1"]).interpret("find the unboxing", m)
        assert r.manifest is m
        assert [a.type for a in r.actions] == ["search_video"]
        assert "Unboxing" in r.message


class TestApplyAction:
    def test_unknown_type_changes_nothing(self, manifest):
        out, note = apply_action(manifest, DirectorAction("teleport"))
        assert out is manifest
        assert note is None

    def test_search_without_query(self, manifest):
        out, note = apply_action(manifest, DirectorAction("search_video", {}))
        assert out is manifest


class TestApplyManifestChanges:
    def test_rejected_key_is_skipped(self, manifest):
        out = apply_manifest_changes(manifest, {"script": "NEW", "musicVolume": 3})
        assert out.script == "NEW"
        assert out.music_volume == manifest.music_volume

    def test_partial_theme_overlays_current(self, manifest):
        m = replace(manifest, theme=THEME_PRESETS["luxe"])
        out = apply_manifest_changes(m, {"theme": {"clipDuration": 45}})
        assert out.theme.id == "luxe"
        assert out.theme.clip_duration == 45

    def test_full_caption_list_replaces(self, manifest):
        captions = [
            {"startFrame": 0, "endFrame": 30, "text": "X", "style": "impact"},
            {"startFrame": 30, "endFrame": 60, "text": "Y", "style": "impact"},
            {"startFrame": 60, "endFrame": 90, "text": "Z", "style": "impact"},
        ]
        out = apply_manifest_changes(manifest, {"captions": captions})
        assert [c.text for c in out.captions] == ["X", "Y", "Z"]


class TestPrompt:
    def test_lists_themes_and_actions(self, manifest):
        prompt = build_director_prompt(manifest, "hi")
        for theme_id in ("cyber", "luxe", "minimal"):
            assert f"- {theme_id}:" in prompt
        assert "search_video" in prompt
