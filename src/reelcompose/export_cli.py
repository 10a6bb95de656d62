"""CLI for exporting a manifest to mp4.

Usage:
    reelcompose export manifest.yaml --output video.mp4
    reelcompose export manifest.yaml --output preview.mp4 --preview-duration 2
    reelcompose export manifest.yaml --output video.mp4 --gpu
"""

import argparse
import time

from .config import setup_logging
from .export import export_video
from .manifest import load_manifest


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a manifest to mp4 with its voice and music tracks.",
    )
    parser.add_argument("manifest", help="Path to manifest (.yaml or .json)")
    parser.add_argument("--output", "-o", required=True, help="Output mp4 path")
    parser.add_argument(
        "--preview-duration", type=float, default=None,
        help="Cap the export to N seconds for fast iteration",
    )
    parser.add_argument(
        "--gpu", action="store_true",
        help="Use GPU encoding (h264_nvenc). Default is CPU (libx264).",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress the encoder progress bar",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress")
    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)

    manifest = load_manifest(parsed.manifest)
    seconds = manifest.duration_in_frames / manifest.fps
    print(f"Exporting {manifest.id} v{manifest.version}: {seconds:.1f}s")
    print(f"Resolution: {manifest.width}x{manifest.height}, {manifest.fps}fps")
    print(f"Writing to: {parsed.output}")

    t0 = time.monotonic()
    export_video(
        manifest,
        parsed.output,
        codec="h264_nvenc" if parsed.gpu else "libx264",
        preview_duration=parsed.preview_duration,
        quiet=parsed.quiet,
    )
    print(f"\nDone: {parsed.output} ({time.monotonic() - t0:.1f}s wall)")


if __name__ == "__main__":
    main()
