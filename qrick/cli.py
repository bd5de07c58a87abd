"""QRick CLI — generate styled QR codes from the command line."""

import argparse
import sys
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from qrick.errors import InvalidInputError, QRickError, UnsupportedFormatError
from qrick.logging import audit, get_logger, setup_logging

log = get_logger("cli")


def _parse_hex_color(s: str) -> tuple[int, int, int]:
    """Parse a hex colour string (with or without '#') to an RGB tuple."""
    s = s.lstrip("#")
    if len(s) != 6:
        raise argparse.ArgumentTypeError(f"expected 6 hex digits, got {s!r}")
    try:
        return tuple(int(s[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex colour: {s!r}") from None


def _load_logo(path: str) -> Image.Image:
    """Decode an uploaded logo file (PNG/JPEG/...) into memory."""
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except FileNotFoundError as e:
        raise InvalidInputError(f"logo not found: {path}") from e
    except UnidentifiedImageError as e:
        raise UnsupportedFormatError(f"cannot decode logo {path!r}: {e}") from e


def cmd_generate(args):
    """Generate a QR code PNG."""
    from qrick.generator import generate
    from qrick.render import to_png

    logo = _load_logo(args.logo) if args.logo else None
    img = generate(
        args.text,
        fg_color=args.fg,
        bg_color=args.bg,
        logo=logo,
        logo_box_fraction=args.logo_box,
        box_size=args.box_size,
        border=args.border,
    )

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(to_png(img))
    print(f"Generated: {output} ({img.size[0]}x{img.size[1]})")


def cmd_bitmap(args):
    """Write a colour-coded module role map."""
    from qrick.matrix import Role
    from qrick.render import render_role_map
    from qrick.symbol import build_symbol

    matrix = build_symbol(args.text, mask=args.mask)
    img = render_role_map(matrix, scale=args.scale)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    img.save(output)

    size = matrix.size
    print(f"QR Version {matrix.version}-{matrix.ecc} ({size}x{size} = {size * size} modules), mask {matrix.mask}")
    print(f"  Function:  {matrix.count(Role.FUNCTION):5d} modules (red)")
    print(f"  Format:    {matrix.count(Role.FORMAT):5d} modules (yellow)")
    print(f"  Version:   {matrix.count(Role.RESERVED):5d} modules (blue)")
    print(f"  Data+ECC:  {matrix.count(Role.DATA):5d} modules (black/white)")
    print(f"Saved to: {output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrick", description="QRick: custom QR codes with colors and a centre logo")

    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    p_gen = subparsers.add_parser("generate", help="Generate a QR code PNG")
    p_gen.add_argument("text", help="Text or URL to encode")
    p_gen.add_argument("-o", "--output", default="qr.png", help="Output file path")
    p_gen.add_argument("--fg", type=_parse_hex_color, default=(0x32, 0xCD, 0x32), help="Code colour (hex, default 32CD32)")
    p_gen.add_argument("--bg", type=_parse_hex_color, default=(0x1E, 0x1E, 0x1E), help="Background colour (hex, default 1E1E1E)")
    p_gen.add_argument("--logo", default=None, help="Centre image (PNG/JPEG)")
    p_gen.add_argument("--logo-box", type=float, default=None, help="Logo window as a fraction of the code side (default 0.3)")
    p_gen.add_argument("--box-size", type=int, default=10, help="Module pixel size")
    p_gen.add_argument("--border", type=int, default=4, help="Quiet zone modules")

    # --- bitmap ---
    p_bmp = subparsers.add_parser("bitmap", help="Generate colour-coded module role map")
    p_bmp.add_argument("text", help="Text or URL to encode")
    p_bmp.add_argument("-o", "--output", default="bitmap.png", help="Output file path")
    p_bmp.add_argument("-m", "--mask", type=int, default=None, choices=range(8), help="Force mask pattern 0-7")
    p_bmp.add_argument("--scale", type=int, default=20, help="Pixels per module")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else "INFO"
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "generate": cmd_generate,
        "bitmap": cmd_bitmap,
    }
    try:
        commands[args.command](args)
    except QRickError as e:
        audit("cli.failed", logger=log, command=args.command, error=type(e).__name__)
        print(f"error: {e}", file=sys.stderr)
        return 2
    audit("cli.done", logger=log, command=args.command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
