"""qrstyle CLI — render styled QR symbols, inspect capacity and reconstructed grids."""

import argparse
import sys
from pathlib import Path

from PIL import Image

from qrstyle.config import Settings
from qrstyle.grid import PITCH_STRATEGIES
from qrstyle.logging import audit, get_logger, setup_logging

log = get_logger("cli")

SHAPES = ["squares", "dots", "rounded", "extra-rounded"]


def _parse_stop(s: str):
    """``OFFSET:COLOR``, e.g. ``0.5:#ff0000``."""
    from qrstyle.options import ColorStop

    offset, sep, color = s.partition(":")
    if not sep or not color:
        raise argparse.ArgumentTypeError(f"expected OFFSET:COLOR, got {s!r}")
    try:
        return ColorStop(float(offset), color)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def cmd_render(args, settings: Settings):
    """Render a styled QR symbol."""
    from qrstyle.errors import DecodeError, EncodeError, InsufficientVersion
    from qrstyle.export import FORMATS, export_image
    from qrstyle.options import GradientSpec, LogoSpec, RenderOptions
    from qrstyle.pipeline import render_sync

    output = Path(args.output)
    fmt = args.format or (output.suffix.lstrip(".").lower() or "png")
    if fmt not in FORMATS:
        print(f"Invalid options: unsupported output format {fmt!r} (expected one of {', '.join(FORMATS)})",
              file=sys.stderr)
        sys.exit(2)
    if not 0 < args.quality <= 1:
        print(f"Invalid options: quality must be within (0, 1], got {args.quality}", file=sys.stderr)
        sys.exit(2)

    try:
        gradient = None
        if args.gradient:
            stops = args.stop or [_parse_stop(f"0:{args.fg}"), _parse_stop("1:#1e3a8a")]
            gradient = GradientSpec(kind=args.gradient, stops=tuple(stops), rotation=args.rotation)
        options = RenderOptions(
            text=args.text,
            size=args.size or settings.size,
            margin=settings.margin if args.margin is None else args.margin,
            error_level=args.ecc or settings.error_level,
            version=args.version,
            foreground=args.fg,
            background="transparent" if args.transparent else args.bg,
            gradient=gradient,
            logo=LogoSpec(args.logo, args.logo_size) if args.logo else None,
            shape=args.shape,
        )
    except ValueError as e:
        print(f"Invalid options: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        result = render_sync(options, settings=settings)
    except InsufficientVersion as e:
        print(f"Error: {e}", file=sys.stderr)
        print(f"  Re-run with --version {e.minimum_required} or omit --version.", file=sys.stderr)
        sys.exit(2)
    except (EncodeError, DecodeError) as e:
        print(f"Failed to generate QR code: {e}", file=sys.stderr)
        sys.exit(1)

    data = export_image(
        result.image, fmt=fmt, quality=args.quality, transparent=args.transparent,
        dark=args.fg, light=args.bg, grid=result.grid,
    )
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)

    print(f"Generated: {output} ({options.size}x{options.size}, {fmt})")
    print(f"  Version: {result.version}, ECC: {result.error_level.name}"
          + (f" (requested {options.error_level.name})" if options.error_level != result.error_level else ""))
    print(f"  Grid: {result.grid.dimension}x{result.grid.dimension} @ {result.grid.pitch}px, shape: {options.shape.value}")
    if not result.styled:
        print("  Styling failed; wrote the unstyled symbol.")
    if options.logo and not result.logo_applied:
        print("  Logo could not be decoded; skipped.")

    if args.verify:
        from qrstyle.verify import verify_render

        scan = verify_render(result.image, args.text)
        status = "PASS" if scan.success else "FAIL"
        print(f"  Scan: [{scan.decoder}] {status} | {scan.decode_time_ms:.1f}ms | {scan.decoded_data or scan.error}")
        if not scan.success:
            sys.exit(1)


def cmd_capacity(args, settings: Settings):
    """Show payload mode, capacity usage and minimum version per error level."""
    from qrstyle.capacity import ErrorLevel, classify, estimate_usage_percent, max_capacity
    from qrstyle.version import minimum_version

    mode = classify(args.text)
    levels = [ErrorLevel.parse(args.ecc)] if args.ecc else list(ErrorLevel)
    print(f"Mode: {mode.value} ({len(args.text)} chars)")
    for level in levels:
        usage = estimate_usage_percent(args.text, level)
        limit = max_capacity(level, mode)
        fits = "" if len(args.text) <= limit else "  (exceeds version 40)"
        print(f"  {level.name}: {usage:5.1f}% of {limit:5d} | min version {minimum_version(args.text, level):2d}{fits}")


def cmd_grid(args, settings: Settings):
    """Reconstruct and print the module grid of a symbol image."""
    from qrstyle.grid import reconstruct_grid

    with Image.open(args.image) as img:
        grid = reconstruct_grid(img.convert("RGBA"), strategy=args.strategy or settings.pitch_strategy)
    print(f"Pitch: {grid.pitch}px, grid: {grid.dimension}x{grid.dimension}, dark modules: {grid.dark_count}")
    if not args.quiet:
        print(grid.to_text())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrstyle", description="qrstyle: styled QR symbol renderer")

    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--json-logs", action="store_true", help="JSON log lines on the console")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- render ---
    p_render = subparsers.add_parser("render", help="Render a styled QR symbol")
    p_render.add_argument("text", help="Text or URL to encode")
    p_render.add_argument("-o", "--output", default="output/qr.png", help="Output file path")
    p_render.add_argument("--size", type=int, default=None, help="Image size in pixels")
    p_render.add_argument("--margin", type=int, default=None, help="Quiet zone in modules")
    p_render.add_argument("-e", "--ecc", default=None, choices=["L", "M", "Q", "H"], help="Error correction level")
    p_render.add_argument("-v", "--version", type=int, default=None, help="QR version 1-40 (auto if omitted)")
    p_render.add_argument("--fg", default="#000000", help="Module colour")
    p_render.add_argument("--bg", default="#ffffff", help="Background colour")
    p_render.add_argument("--transparent", action="store_true", help="Transparent background")
    p_render.add_argument("--gradient", default=None, choices=["linear", "radial"], help="Gradient fill")
    p_render.add_argument("--rotation", type=float, default=0.0, help="Linear gradient angle in degrees")
    p_render.add_argument("--stop", type=_parse_stop, action="append", default=None,
                          help="Gradient stop OFFSET:COLOR (repeatable)")
    p_render.add_argument("--logo", default=None, help="Logo path or data: URI")
    p_render.add_argument("--logo-size", type=int, default=None, help="Logo size in pixels (max 30%% of size)")
    p_render.add_argument("--shape", default="squares", choices=SHAPES, help="Module shape")
    p_render.add_argument("--format", default=None, choices=["png", "jpg", "svg"],
                          help="Output format (default: from file extension)")
    p_render.add_argument("--quality", type=float, default=0.9, help="JPEG quality (0-1]")
    p_render.add_argument("--verify", action="store_true", help="Scan the result and fail if it does not decode")

    # --- capacity ---
    p_cap = subparsers.add_parser("capacity", help="Show capacity usage and minimum versions")
    p_cap.add_argument("text", help="Text to analyse")
    p_cap.add_argument("-e", "--ecc", default=None, choices=["L", "M", "Q", "H"])

    # --- grid ---
    p_grid = subparsers.add_parser("grid", help="Reconstruct the module grid of a symbol image")
    p_grid.add_argument("image", help="Path to symbol image")
    p_grid.add_argument("--strategy", default=None, choices=list(PITCH_STRATEGIES), help="Pitch detection strategy")
    p_grid.add_argument("-q", "--quiet", action="store_true", help="Only print the summary")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    level = "DEBUG" if args.verbose else settings.log_level
    setup_logging(level=level, log_file=args.log_file or settings.log_file,
                  json_format=args.json_logs or settings.log_json)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "render": cmd_render,
        "capacity": cmd_capacity,
        "grid": cmd_grid,
    }
    commands[args.command](args, settings)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
