"""Command-line interface for cleave."""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from cleave.annotate import GeminiAnnotator
from cleave.archive import ARCHIVE_NAME, format_bytes, output_filename, save_archive
from cleave.batch import BatchProcessor
from cleave.types import SVG_MIME, ConversionSettings

# Short format names accepted on the command line
FORMAT_ALIASES = {
    'jpeg': 'image/jpeg',
    'jpg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
    'avif': 'image/avif',
    'svg': SVG_MIME,
}


def parse_format(value: str) -> str:
    """Accept either a short name (svg, jpeg) or a MIME identifier."""
    value = value.lower()
    if value in FORMAT_ALIASES:
        return FORMAT_ALIASES[value]
    if value in FORMAT_ALIASES.values():
        return value
    raise argparse.ArgumentTypeError(
        f"unknown format {value!r} (choose from {', '.join(sorted(FORMAT_ALIASES))})"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='cleave',
        description='Convert raster images to optimized raster or layered SVG output',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compress photos to JPEG at 70% quality
  cleave photo1.png photo2.png -f jpeg -q 0.7

  # Trace to SVG with a 12 color palette
  cleave logo.png -f svg --colors 12

  # Convert a folder's worth of images into one ZIP
  cleave *.png -f webp --zip out.zip
        """,
    )

    parser.add_argument('inputs', nargs='+', help='Input image file paths')

    parser.add_argument(
        '-o', '--output-dir',
        default=None,
        help='Directory for converted files (default: next to each input)',
    )

    parser.add_argument(
        '-f', '--format',
        type=parse_format,
        default='image/jpeg',
        help='Output format: jpeg, png, webp, avif or svg (default: jpeg)',
    )

    parser.add_argument(
        '-q', '--quality',
        type=float,
        default=0.7,
        help='Encoder quality in [0.1, 1.0] (default: 0.7)',
    )

    parser.add_argument(
        '-s', '--scale',
        type=float,
        default=1.0,
        help='Resize ratio in [0.1, 1.0] (default: 1.0)',
    )

    parser.add_argument(
        '-c', '--colors',
        type=int,
        default=16,
        help='Palette size for SVG tracing, 2-64 (default: 16)',
    )

    parser.add_argument(
        '--annotate',
        action='store_true',
        help='Describe and tag each image with Gemini (needs GEMINI_API_KEY)',
    )

    parser.add_argument(
        '--zip',
        nargs='?',
        const=ARCHIVE_NAME,
        default=None,
        help=f'Write all outputs into one ZIP archive (default name: {ARCHIVE_NAME})',
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Save tracer stage images next to the outputs (SVG only)',
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    verbosity.add_argument('--quiet', action='store_true', help='Only log warnings and errors')

    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 if every item converted, 1 otherwise)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)
    configure_logging(parsed.verbose, parsed.quiet)

    try:
        settings = ConversionSettings(
            format=parsed.format,
            quality=parsed.quality,
            resize_ratio=parsed.scale,
            use_ai_analysis=parsed.annotate,
            color_count=parsed.colors,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_dir = Path(parsed.output_dir) if parsed.output_dir else None
    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    debug_dir = None
    if parsed.debug and settings.is_vector:
        debug_dir = output_dir or Path('.')

    annotator = GeminiAnnotator() if parsed.annotate else None

    with BatchProcessor(settings, annotator=annotator, debug_dir=debug_dir) as batch:
        for input_path in parsed.inputs:
            path = Path(input_path)
            if not path.is_file():
                print(f"Error: Input file not found: {path}", file=sys.stderr)
                continue
            batch.add(path)

        if not batch.queue:
            print("Error: No image inputs to convert", file=sys.stderr)
            return 1

        batch.process()

        for item in batch.queue:
            if item.result is None:
                print(f"FAILED  {item.name}: {item.error}", file=sys.stderr)
                continue
            print(
                f"OK      {item.name}: {format_bytes(item.original_size)} -> "
                f"{format_bytes(item.result.size)}"
            )
            if item.result.description:
                print(f"        {item.result.description}")
            if item.result.tags:
                print(f"        tags: {', '.join(item.result.tags)}")

        if parsed.zip:
            zip_path = Path(parsed.zip)
            if output_dir is not None and not zip_path.is_absolute():
                zip_path = output_dir / zip_path
            if batch.completed():
                save_archive(batch.outputs(), zip_path)
                print(f"Archive saved: {zip_path}")
        else:
            for item in batch.completed():
                name = output_filename(item.name, item.result.mime_type)
                target_dir = output_dir or Path(item.source).parent
                target = target_dir / name
                target.write_bytes(item.result.data)
                print(f"Saved: {target}")

        return 1 if batch.failed() else 0


if __name__ == '__main__':
    sys.exit(main())
