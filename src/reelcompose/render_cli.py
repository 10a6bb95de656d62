"""CLI for rendering still frames of a manifest.

Usage:
    # One frame
    reelcompose render manifest.yaml --frame 120 --output still.png

    # Several frames into a directory (frame-0000.png, ...)
    reelcompose render manifest.yaml --frame 0 --frame 150 --frame 270 --output stills/
"""

import argparse
from pathlib import Path

from .config import setup_logging
from .export import render_still
from .manifest import load_manifest
from .media import MediaLoader


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render frames of a manifest to image files.",
    )
    parser.add_argument("manifest", help="Path to manifest (.yaml or .json)")
    parser.add_argument(
        "--frame", type=int, action="append", default=None,
        help="Frame index to render (repeatable, default: 0)",
    )
    parser.add_argument(
        "--output", "-o", required=True,
        help="Image path for one frame, or a directory for several",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress")
    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)

    manifest = load_manifest(parsed.manifest)
    frames = parsed.frame or [0]
    for frame in frames:
        if not 0 <= frame < manifest.duration_in_frames:
            parser.error(
                f"--frame {frame} out of range "
                f"(manifest has {manifest.duration_in_frames} frames)"
            )

    loader = MediaLoader()
    try:
        if len(frames) == 1:
            targets = [(frames[0], Path(parsed.output))]
        else:
            out_dir = Path(parsed.output)
            targets = [(f, out_dir / f"frame-{f:04d}.png") for f in frames]
        for frame, path in targets:
            render_still(manifest, frame, str(path), loader=loader)
            print(f"  frame {frame:>5} -> {path}")
    finally:
        loader.close()
    print(f"\nResolution: {manifest.width}x{manifest.height}")


if __name__ == "__main__":
    main()
