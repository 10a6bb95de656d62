"""CLI for validating a manifest.

Parses the manifest (raising on schema errors) and prints a timeline
summary plus warnings for overlapping clips and uncovered frames.

Usage:
    reelcompose validate manifest.yaml
"""

import argparse

from .manifest import find_clip_overlaps, load_manifest
from .themes import resolve_theme


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Validate a manifest and report timeline warnings.",
    )
    parser.add_argument("manifest", help="Path to manifest (.yaml or .json)")
    parsed = parser.parse_args(args)

    manifest = load_manifest(parsed.manifest)
    theme = resolve_theme(manifest.theme)
    print(
        f"Manifest valid: {manifest.id} v{manifest.version}, "
        f"{manifest.duration_in_frames} frames @ {manifest.fps}fps, theme {theme.id}"
    )
    for i, c in enumerate(manifest.captions):
        print(f"  caption {i}: [{c.start_frame}, {c.end_frame}) {c.style:<10} {c.text[:50]}")
    for i, c in enumerate(manifest.clips):
        label = f" [{c.label}]" if c.label else ""
        print(f"  clip {i}:    [{c.start_frame}, {c.end_frame}) {c.type:<10}{label} {c.url[:60]}")

    warnings = [
        f"clips {i} and {j} overlap; clip {j} is drawn on top"
        for i, j in find_clip_overlaps(manifest)
    ]
    if manifest.clips:
        last = max(c.end_frame for c in manifest.clips)
        if last < manifest.duration_in_frames:
            warnings.append(
                f"frames {last}-{manifest.duration_in_frames - 1} have no clip "
                f"(theme background shows)"
            )
        beyond = [i for i, c in enumerate(manifest.clips) if c.end_frame > manifest.duration_in_frames]
        if beyond:
            warnings.append(f"clip(s) {beyond} run past durationInFrames")

    for w in warnings:
        print(f"WARNING: {w}")
    if not warnings:
        print("No timeline warnings.")


if __name__ == "__main__":
    main()
