"""CLI for generating a manifest from a product page.

Usage:
    reelcompose generate https://store.example/products/earbuds \
        --style luxury --duration medium --output manifest.yaml

    # Without network access or credentials: the demo manifest
    reelcompose generate --demo --output demo.yaml
"""

import argparse

from .config import build_llm, build_tts, load_settings, setup_logging
from .demo import DURATION_PRESETS, STYLE_THEMES, demo_manifest
from .manifest import save_manifest
from .pipeline import generate_video


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Generate a video manifest from a product URL.",
    )
    parser.add_argument(
        "url", nargs="?", default=None,
        help="Product page URL (omit with --demo)",
    )
    parser.add_argument(
        "--output", "-o", required=True,
        help="Output manifest path (.yaml or .json)",
    )
    parser.add_argument(
        "--style", default="hype", choices=sorted(STYLE_THEMES),
        help="Generation style (default: hype)",
    )
    parser.add_argument(
        "--duration", default="short", choices=sorted(DURATION_PRESETS),
        help="Video length preset (default: short)",
    )
    parser.add_argument(
        "--no-voice", action="store_true",
        help="Skip voiceover synthesis even if configured",
    )
    parser.add_argument(
        "--demo", action="store_true",
        help="Write the built-in demo manifest instead of scraping",
    )
    parser.add_argument(
        "--env-file", default=None,
        help="Path to a .env file with API credentials",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress")
    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)

    if parsed.demo:
        manifest = demo_manifest()
    else:
        if not parsed.url:
            parser.error("a product URL is required (unless using --demo)")
        settings = load_settings(parsed.env_file)
        print(f"Generating {parsed.style} video ({parsed.duration}) for {parsed.url}")
        manifest = generate_video(
            parsed.url,
            style=parsed.style,
            duration=parsed.duration,
            llm=build_llm(settings),
            models=settings.director_models,
            tts=None if parsed.no_voice else build_tts(settings),
        )

    save_manifest(manifest, parsed.output)
    theme = manifest.theme.id if manifest.theme else "default"
    print(f"  Product:  {manifest.product.title} ({manifest.product.price})")
    print(f"  Theme:    {theme}")
    print(f"  Captions: {len(manifest.captions)}, clips: {len(manifest.clips)}")
    print(f"  Voice:    {'yes' if manifest.audio_url else 'no'}")
    print(f"\nDone: {parsed.output}")


if __name__ == "__main__":
    main()
