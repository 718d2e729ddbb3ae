import sys
import argparse
from pathlib import Path
from typing import Optional, Sequence
from PIL import Image
from loguru import logger

from photo_edit_core.config import DEFAULT_CUBE_DIMENSION, DEFAULT_EFFECT_INTENSITY, load_settings
from photo_edit_core.errors import PhotoEditError
from photo_edit_core.logger import setup_logging
from photo_edit_core.pipeline.color_cube import build_color_cube
from photo_edit_core.pipeline.lut_decoder import decode_lut, identity_lut_image


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-edit-core",
        description="Decode LUT strip images and build color cube data",
    )
    parser.add_argument("--log-level", default=None, help="console log level (default from settings)")
    parser.add_argument("--no-log-file", action="store_true", help="log to the console only")

    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="show the cube layout of a LUT image")
    inspect_parser.add_argument("lut", help="LUT strip image")
    inspect_parser.set_defaults(handler=cmd_inspect)

    identity_parser = subparsers.add_parser("identity", help="write an identity LUT strip")
    identity_parser.add_argument("--size", type=int, default=DEFAULT_CUBE_DIMENSION, help="cube dimension N")
    identity_parser.add_argument("--columns", type=int, default=None, help="tiles per row")
    identity_parser.add_argument("--output", required=True, help="output image (PNG)")
    identity_parser.set_defaults(handler=cmd_identity)

    cube_parser = subparsers.add_parser("cube", help="blend an effect LUT into color cube data")
    cube_parser.add_argument("identity", help="identity LUT strip image")
    cube_parser.add_argument("lut", help="effect LUT strip image")
    cube_parser.add_argument("--intensity", type=float, default=DEFAULT_EFFECT_INTENSITY)
    cube_parser.add_argument("--output", required=True,
                             help=".cube/.spi3d/.csp for a LUT file, anything else for raw float32 RGBA")
    cube_parser.set_defaults(handler=cmd_cube)

    return parser


def cmd_inspect(args) -> int:
    cube = decode_lut(args.lut)
    n = cube.dimension
    print(f"{Path(args.lut).name}: N={n}, {cube.sample_count} samples, {cube.nbytes} bytes")
    return 0


def cmd_identity(args) -> int:
    strip = identity_lut_image(args.size, args.columns)
    Image.fromarray(strip).save(args.output)
    logger.info(f"✅ Wrote N={args.size} identity strip ({strip.shape[1]}x{strip.shape[0]}) to {args.output}")
    return 0


def cmd_cube(args) -> int:
    identity = decode_lut(args.identity)
    effect = decode_lut(args.lut)
    cube = build_color_cube(identity, effect, args.intensity)

    output = Path(args.output)
    if output.suffix.lower() in ('.cube', '.spi3d', '.csp'):
        cube.write_cube(output, name=Path(args.lut).stem)
    else:
        output.write_bytes(cube.to_bytes())
        logger.info(f"✅ Wrote {cube.nbytes} bytes of N={cube.dimension} cube data to {output.name}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    setup_logging(args.log_level or settings.log_level, file_output=not args.no_log_file)

    try:
        return args.handler(args)
    except PhotoEditError as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
