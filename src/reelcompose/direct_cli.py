"""CLI for the Director — edit a manifest with a natural-language command.

Usage:
    reelcompose direct manifest.yaml "make it luxurious"
    reelcompose direct manifest.yaml "make the first caption red" --output edited.yaml

Without --output the input manifest is rewritten in place.
"""

import argparse

from .config import build_director, load_settings, setup_logging
from .manifest import load_manifest, save_manifest


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Apply a natural-language edit command to a manifest.",
    )
    parser.add_argument("manifest", help="Path to manifest (.yaml or .json)")
    parser.add_argument("command", help='Edit command, e.g. "speed it up"')
    parser.add_argument(
        "--output", "-o", default=None,
        help="Where to write the edited manifest (default: overwrite input)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Show what would change without writing anything",
    )
    parser.add_argument(
        "--env-file", default=None,
        help="Path to a .env file with API credentials",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress")
    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)

    manifest = load_manifest(parsed.manifest)
    director = build_director(load_settings(parsed.env_file))
    response = director.interpret(parsed.command, manifest)

    print(response.message)
    for action in response.actions:
        reason = f" — {action.reasoning}" if action.reasoning else ""
        print(f"  {action.type} {action.payload}{reason}")

    if response.manifest.version == manifest.version:
        print("\nNo changes.")
        return
    print(f"\nVersion {manifest.version} -> {response.manifest.version}")
    if parsed.dry_run:
        return

    output = parsed.output or parsed.manifest
    save_manifest(response.manifest, output)
    print(f"Done: {output}")


if __name__ == "__main__":
    main()
