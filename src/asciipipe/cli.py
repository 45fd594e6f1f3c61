import argparse
import logging
import os
import sys
from pathlib import Path

from PIL import Image, ImageFont

from asciipipe.buffer import MAX_DIMENSION
from asciipipe.palettes import PALETTES, get_palette
from asciipipe.pipeline import AsciiPipeline, PipelineConfig
from asciipipe.render import CHAR_SPACING_X, CHAR_SPACING_Y, FONT_SIZE, default_font

logger = logging.getLogger(__name__)


def terminal_columns() -> int:
    """Width of the terminal in characters, or 80 when stdout is not a tty."""
    if not sys.stdout.isatty():
        return 80
    return os.get_terminal_size().columns


def _page_size(value: str) -> tuple[int, int]:
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}") from None
    return width, height


def load_font(path: str | None, size: int = FONT_SIZE):
    """Load a TrueType font at ``size``, falling back to Pillow's default font at that size."""
    if path is None:
        return default_font(size)
    try:
        return ImageFont.truetype(path, size)
    except OSError as e:
        logger.warning("Could not load font %s (%s); using the default font", path, e)
        return default_font(size)


def default_height(image: Image.Image, width: int) -> int:
    """Row count that keeps the image's proportions once cells are drawn at the glyph pitch."""
    aspect_correction = CHAR_SPACING_X / CHAR_SPACING_Y
    return max(1, min(MAX_DIMENSION, round(image.height / image.width * width * aspect_correction)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render an image as character art")
    parser.add_argument("image", help="Path to input image")
    parser.add_argument(
        "-W", "--width", type=int, default=None, help="Grid width in characters (default: terminal width)"
    )
    parser.add_argument(
        "-H", "--height", type=int, default=None, help="Grid height in characters (default: keep aspect ratio)"
    )
    parser.add_argument(
        "-p",
        "--palette",
        default="Standard",
        help=f"Character palette: {', '.join(PALETTES)} (default: Standard)",
    )
    parser.add_argument("--dark", action="store_true", default=False, help="Render for a dark background")
    parser.add_argument("--background", default=None, help="Page colour (default: white, black with --dark)")
    parser.add_argument("--font", default=None, help="Path to a TrueType font for the rendered page")
    parser.add_argument(
        "--font-size", type=int, default=FONT_SIZE, help=f"Font size, with or without --font (default: {FONT_SIZE})"
    )
    parser.add_argument("--page", type=_page_size, default=(2000, 2000), help="Page size as WxH (default: 2000x2000)")
    parser.add_argument("-o", "--output", default=None, help="Save the rendered page here instead of printing text")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Log pipeline activity")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    image_path = Path(args.image)
    if not image_path.exists():
        print(f"File not found: {image_path}", file=sys.stderr)
        sys.exit(1)
    try:
        image = Image.open(image_path)
        image.load()
    except OSError as e:
        print(f"Cannot read image {image_path}: {e}", file=sys.stderr)
        sys.exit(1)

    width = args.width if args.width is not None else terminal_columns()
    height = args.height if args.height is not None else default_height(image, max(width, 1))
    background = args.background or ("black" if args.dark else "white")

    try:
        palette = get_palette(args.palette)
    except KeyError as e:
        parser.error(e.args[0])

    try:
        config = PipelineConfig(
            render_width=width,
            render_height=height,
            page_width=args.page[0],
            page_height=args.page[1],
            palette=palette,
            font=load_font(args.font, args.font_size),
            background_color=background,
            on_dark_background=args.dark,
        )
    except ValueError as e:
        parser.error(str(e))

    pipeline = AsciiPipeline(config, image)
    if args.output:
        pipeline.render().to_image().save(args.output)
        logger.info("Saved %s", args.output)
    else:
        sys.stdout.write(pipeline.to_text())
