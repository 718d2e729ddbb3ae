"""
LUT strip decoding.

A LUT strip is a grid of square N x N tiles, N tiles in total, read row by row.
Tile k holds the blue slice k of the cube; inside a tile x walks red and y
walks green. The 512x512 assets (8x8 tiles of 64x64 pixels) hold a 64^3 cube.
Decoding flattens the tiles into RGBA samples ordered red fastest, then green,
then blue, which is the layout color cube filters consume.
"""
import io
import os
import math
from pathlib import Path
from typing import Optional, Union
import numpy as np
import tifffile
from PIL import Image
from loguru import logger

from photo_edit_core.errors import MalformedLUTError
from photo_edit_core.pipeline.color_cube import ColorCubeData

LUTSource = Union[str, os.PathLike, bytes, bytearray, io.IOBase, Image.Image, np.ndarray]

_PIL_NATIVE_MODES = ('L', 'RGB', 'RGBA', 'I;16')


def _describe(source) -> str:
    if isinstance(source, (str, os.PathLike)):
        return os.path.basename(os.fspath(source))
    if isinstance(source, np.ndarray):
        return f"<array {source.shape} {source.dtype}>"
    return f"<{type(source).__name__}>"


def _pil_to_array(img: Image.Image) -> np.ndarray:
    if img.mode not in _PIL_NATIVE_MODES:
        img = img.convert('RGBA')
    return np.array(img)


def load_lut_image(source: LUTSource) -> np.ndarray:
    """
    Read a LUT strip into an H x W [x C] pixel array.

    TIFF paths go through tifffile to keep 16-bit and float strips intact,
    everything else through Pillow.
    """
    if isinstance(source, np.ndarray):
        return source
    if isinstance(source, Image.Image):
        return _pil_to_array(source)

    name = _describe(source)
    try:
        if isinstance(source, (str, os.PathLike)) and Path(source).suffix.lower() in ('.tif', '.tiff'):
            return tifffile.imread(os.fspath(source))
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        with Image.open(source) as img:
            return _pil_to_array(img)
    except (OSError, ValueError) as e:
        raise MalformedLUTError(f"Unreadable LUT image {name}: {e}", name) from e


def _cube_root(value: int) -> Optional[int]:
    guess = int(round(value ** (1.0 / 3.0)))
    for n in (guess - 1, guess, guess + 1):
        if n > 0 and n ** 3 == value:
            return n
    return None


def _normalized_rgba(pixels: np.ndarray, name: str) -> np.ndarray:
    """H x W x 4 float32 in [0, 1]"""
    if pixels.ndim == 2:
        pixels = pixels[:, :, None]
    if pixels.ndim != 3 or pixels.shape[2] not in (1, 3, 4):
        raise MalformedLUTError(f"LUT {name}: unsupported pixel shape {pixels.shape}", name)

    if pixels.dtype == np.uint8:
        rgba = pixels.astype(np.float32) / 255.0
    elif pixels.dtype == np.uint16:
        rgba = pixels.astype(np.float32) / 65535.0
    elif np.issubdtype(pixels.dtype, np.floating):
        rgba = np.clip(np.nan_to_num(pixels.astype(np.float32), nan=0.0), 0.0, 1.0)
    else:
        raise MalformedLUTError(f"LUT {name}: unsupported pixel type {pixels.dtype}", name)

    channels = rgba.shape[2]
    if channels == 1:
        rgba = np.repeat(rgba, 3, axis=2)
    if rgba.shape[2] == 3:
        alpha = np.ones(rgba.shape[:2] + (1,), dtype=np.float32)
        rgba = np.concatenate([rgba, alpha], axis=2)
    return rgba


def decode_lut(source: LUTSource, dimension: Optional[int] = None) -> ColorCubeData:
    """
    Decode a LUT strip image into cube-ordered RGBA samples.

    Args:
        source: path, encoded bytes, file object, PIL image or pixel array
        dimension: expected cube size N; inferred from the pixel count if omitted

    Raises:
        MalformedLUTError: unreadable pixels or a layout that is not N tiles of N x N
    """
    name = _describe(source)
    pixels = load_lut_image(source)
    if pixels.ndim < 2:
        raise MalformedLUTError(f"LUT {name}: not an image (shape {pixels.shape})", name)

    height, width = pixels.shape[:2]
    n = int(dimension) if dimension is not None else _cube_root(width * height)
    if n is None or n < 2 or n ** 3 != width * height or width % n or height % n:
        raise MalformedLUTError(
            f"Invalid LUT {name}: {width}x{height} pixels is not a grid of N x N tiles"
            + (f" (N={dimension})" if dimension is not None else ""),
            name
        )

    rgba = _normalized_rgba(pixels, name)
    rows, columns = height // n, width // n
    # (rows, y, columns, x) -> (tile, y, x) == (blue, green, red)
    lattice = rgba.reshape(rows, n, columns, n, 4).transpose(0, 2, 1, 3, 4).reshape(n, n, n, 4)

    logger.debug(f"[LUT] Decoded {name}: N={n} ({rows}x{columns} tiles of {n}px)")
    return ColorCubeData(n, np.ascontiguousarray(lattice).reshape(-1))


def identity_lut_image(dimension: int, columns: Optional[int] = None) -> np.ndarray:
    """
    8-bit identity LUT strip for a cube of the given size.

    Perfect-square sizes get a square grid (64 -> 512x512), others a single row.
    """
    n = int(dimension)
    if n < 2:
        raise ValueError(f"cube dimension must be at least 2, got {dimension}")
    if columns is None:
        root = math.isqrt(n)
        columns = root if root * root == n else n
    if columns <= 0 or n % columns:
        raise ValueError(f"{columns} columns do not divide {n} tiles")
    rows = n // columns

    levels = np.round(np.arange(n) * 255.0 / (n - 1)).astype(np.uint8)
    blue, green, red = np.meshgrid(levels, levels, levels, indexing='ij')
    lattice = np.stack([red, green, blue, np.full_like(red, 255)], axis=-1)

    strip = lattice.reshape(rows, columns, n, n, 4).transpose(0, 2, 1, 3, 4)
    return np.ascontiguousarray(strip.reshape(rows * n, columns * n, 4))
