"""Demo product and manifest, plus generation presets.

The demo script and captions double as the script generator's fallback
when no language model is configured or its output is unusable.
"""

from .manifest import Caption, Clip, Product, VideoManifest


DEMO_PRODUCT = Product(
    title="Premium Wireless Earbuds Pro",
    price="$149.99",
    image="https://images.unsplash.com/photo-1590658268037-6bf12165a8df?w=800&q=80",
    description=(
        "Experience crystal-clear audio with our latest wireless earbuds "
        "featuring active noise cancellation."
    ),
    url="https://example-store.myshopify.com/products/wireless-earbuds-pro",
)

DEMO_SCRIPT = "\n".join([
    "Check out these INSANE wireless earbuds!",
    "Premium sound quality that will BLOW YOUR MIND.",
    "Active noise cancellation for the ultimate listening experience.",
    "Only $149.99 - Link in bio!",
])

DEMO_CAPTIONS = (
    Caption(0, 60, "CHECK THIS OUT", "impact"),
    Caption(60, 120, "INSANE SOUND", "glitch"),
    Caption(120, 180, "PREMIUM QUALITY", "impact"),
    Caption(180, 240, "NOISE CANCELLING", "minimal"),
    Caption(240, 300, "ONLY $149.99", "impact"),
)

DEMO_CLIPS = (
    Clip(
        start_frame=0, duration=150, type="image",
        url="https://images.unsplash.com/photo-1590658268037-6bf12165a8df?w=800&q=80",
    ),
    Clip(
        start_frame=150, duration=150, type="image",
        url="https://images.unsplash.com/photo-1606220588913-b3aacb4d2f46?w=800&q=80",
    ),
)

# Video length presets, in frames at 30fps.
DURATION_PRESETS = {
    "short": 150,
    "medium": 300,
    "long": 450,
}

# Generation style -> theme id.
STYLE_THEMES = {
    "hype": "cyber",
    "luxury": "luxe",
    "minimal": "minimal",
    "playful": "cyber",
}


def demo_manifest() -> VideoManifest:
    """A complete 10-second manifest for previews and tests."""
    return VideoManifest(
        id="demo-001",
        script=DEMO_SCRIPT,
        product=DEMO_PRODUCT,
        duration_in_frames=300,
        captions=DEMO_CAPTIONS,
        clips=DEMO_CLIPS,
    )
