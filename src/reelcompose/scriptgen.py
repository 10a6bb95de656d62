"""Script and caption generation for a product.

generate_script() asks the language model for a short punchy script
and timed captions. Missing configuration, model failure and malformed
output all fall back to the demo script, so generation always yields
something renderable.
"""

import logging

import openai

from .demo import DEMO_CAPTIONS, DEMO_SCRIPT
from .llm import ModelUnavailableError, extract_json, generate_with_fallback
from .manifest import Caption, parse_caption

logger = logging.getLogger(__name__)


STYLE_TONES = {
    "hype": "HIGH ENERGY, CAPS, exclamations",
    "playful": "Fun, bouncy, emoji-friendly",
    "luxury": "Refined, understated, premium",
}
DEFAULT_TONE = "Clean, minimal, elegant"


def build_script_prompt(product, style: str) -> str:
    tone = STYLE_TONES.get(style, DEFAULT_TONE)
    return f"""You are a viral video script writer for TikTok/Instagram Reels.
Create a {style} style script for this product:

Product: {product.title}
Price: {product.price}
Description: {product.description or ""}

Requirements:
1. Create a 10-second script (5 short punchy lines)
2. Each line should be 2-4 words maximum
3. Use attention-grabbing language
4. Include the price in the last line
5. Style: {tone}

Return ONLY a JSON object in this exact format:
{{
  "script": "Full script as one string with line breaks",
  "captions": [
    {{"startFrame": 0, "endFrame": 60, "text": "LINE 1", "style": "impact"}},
    {{"startFrame": 60, "endFrame": 120, "text": "LINE 2", "style": "glitch"}},
    {{"startFrame": 120, "endFrame": 180, "text": "LINE 3", "style": "impact"}},
    {{"startFrame": 180, "endFrame": 240, "text": "LINE 4", "style": "minimal"}},
    {{"startFrame": 240, "endFrame": 300, "text": "PRICE LINE", "style": "impact"}}
  ]
}}"""


def parse_script_response(data: dict | None) -> tuple[str, tuple[Caption, ...]] | None:
    """(script, captions) from a model response object, or None if malformed."""
    if not isinstance(data, dict):
        return None
    script = data.get("script")
    captions_raw = data.get("captions")
    if not isinstance(script, str) or not isinstance(captions_raw, list) or not captions_raw:
        return None
    try:
        captions = tuple(parse_caption(c, i) for i, c in enumerate(captions_raw))
    except ValueError as e:
        logger.warning("Generated captions rejected: %s", e)
        return None
    return script, captions


def generate_script(
    product, style: str = "hype", llm=None, models=(),
) -> tuple[str, tuple[Caption, ...]]:
    """Script and captions for product; the demo script on any failure."""
    fallback = (DEMO_SCRIPT, DEMO_CAPTIONS)
    if llm is None or not models:
        logger.info("No language model configured; using demo script")
        return fallback
    try:
        text = generate_with_fallback(llm, list(models), build_script_prompt(product, style))
    except (ModelUnavailableError, openai.OpenAIError) as e:
        logger.warning("Script generation failed: %s", e)
        return fallback

    parsed = parse_script_response(extract_json(text))
    if parsed is None:
        logger.warning("Unusable script response; using demo script")
        return fallback
    return parsed
