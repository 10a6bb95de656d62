"""Subcommand dispatcher for reelcompose.

Usage:
    reelcompose generate  https://store.example/products/x --output manifest.yaml
    reelcompose direct    manifest.yaml "make it luxurious" --output edited.yaml
    reelcompose render    manifest.yaml --frame 120 --output still.png
    reelcompose export    manifest.yaml --output video.mp4
    reelcompose validate  manifest.yaml
"""

import argparse
import sys

COMMANDS = {
    "generate": "Generate a manifest from a product URL",
    "direct": "Apply a natural-language edit command to a manifest",
    "render": "Render one frame of a manifest to an image",
    "export": "Render a manifest to mp4",
    "validate": "Validate a manifest and report timeline warnings",
}


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="reelcompose",
        description="Manifest-driven short-form product video generation and editing.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    for name, help_text in COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command not in COMMANDS:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "generate":
        from .generate_cli import main as generate_main
        generate_main(remaining)
    elif parsed.command == "direct":
        from .direct_cli import main as direct_main
        direct_main(remaining)
    elif parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "export":
        from .export_cli import main as export_main
        export_main(remaining)
    elif parsed.command == "validate":
        from .validate_cli import main as validate_main
        validate_main(remaining)


if __name__ == "__main__":
    main()
