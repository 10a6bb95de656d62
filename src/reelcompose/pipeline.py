"""Video generation pipeline: product URL -> initial manifest.

Steps:
  1. Scrape the product page (placeholder product on failure).
  2. Generate script + captions (demo script on failure).
  3. Fit captions to the requested duration.
  4. Tile the product images into background clips.
  5. Optionally synthesize a voiceover.

generate_video() never raises for collaborator failures; it raises
ValueError only for an unknown duration preset.
"""

import logging
import uuid
from dataclasses import replace

from .demo import DURATION_PRESETS, STYLE_THEMES
from .manifest import Caption, Clip, Product, VideoManifest
from .scraper import scrape_product
from .scriptgen import generate_script
from .themes import lookup_theme, suggest_theme

logger = logging.getLogger(__name__)


FPS = 30
WIDTH = 1080
HEIGHT = 1920
MAX_CLIPS = 4


def theme_for_style(style: str, product_title: str) -> str:
    """Theme id for a generation style, or a title-based suggestion."""
    return STYLE_THEMES.get(style) or suggest_theme(product_title)


def fit_captions(captions: tuple[Caption, ...], duration: int) -> tuple[Caption, ...]:
    """Rescale caption windows linearly so the last one ends at duration."""
    if not captions:
        return captions
    span = max(c.end_frame for c in captions)
    if span == duration:
        return captions
    fitted = []
    for c in captions:
        start = c.start_frame * duration // span
        end = max(start + 1, c.end_frame * duration // span)
        fitted.append(replace(c, start_frame=start, end_frame=min(end, duration)))
    return tuple(fitted)


def tile_clips(images: list[str], duration: int) -> tuple[Clip, ...]:
    """Back-to-back image clips covering the whole duration."""
    images = images[:MAX_CLIPS]
    if not images:
        return ()
    each = duration // len(images)
    clips = []
    for i, url in enumerate(images):
        # The last clip absorbs the division remainder.
        length = duration - each * i if i == len(images) - 1 else each
        clips.append(Clip(start_frame=i * each, duration=length, url=url, type="image"))
    return tuple(clips)


def generate_video(
    product_url: str,
    style: str = "hype",
    duration: str = "short",
    llm=None,
    models=(),
    tts=None,
    session=None,
) -> VideoManifest:
    """Build a version-1 manifest for a product page.

    Args:
        product_url: Product page to scrape.
        style: hype | luxury | minimal | playful (selects theme and voice).
        duration: short | medium | long (see DURATION_PRESETS).
        llm: Script-writing model client, or None for the demo script.
        models: Model ladder for llm.
        tts: Voiceover client with voiceover(script, style), or None.
        session: requests.Session for scraping.

    Raises:
        ValueError: Unknown duration preset.
    """
    if duration not in DURATION_PRESETS:
        raise ValueError(
            f"Unknown duration '{duration}'. Valid: {sorted(DURATION_PRESETS)}"
        )
    total = DURATION_PRESETS[duration]

    scraped = scrape_product(product_url, session=session)
    logger.info("Scraped product: %s (%s)", scraped.title, scraped.price)
    product = Product(
        title=scraped.title,
        price=scraped.price,
        image=scraped.image,
        description=scraped.description or None,
        url=product_url,
        video_url=scraped.video_url,
    )

    script, captions = generate_script(product, style, llm=llm, models=models)
    theme = lookup_theme(theme_for_style(style, product.title))

    audio_url = None
    if tts is not None:
        result = tts.voiceover(script, style)
        if result is not None:
            audio_url = result.audio_url
            logger.info("Voiceover generated (~%d ms)", result.duration_ms)

    return VideoManifest(
        id=uuid.uuid4().hex[:12],
        script=script,
        product=product,
        duration_in_frames=total,
        captions=fit_captions(captions, total),
        clips=tile_clips(scraped.images or [scraped.image], total),
        fps=FPS,
        width=WIDTH,
        height=HEIGHT,
        audio_url=audio_url,
        theme=theme,
    )
