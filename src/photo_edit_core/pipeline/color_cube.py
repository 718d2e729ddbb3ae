import os
from typing import Optional, Union
import numpy as np
import colour
from loguru import logger

from photo_edit_core.errors import LUTSizeMismatchError
from photo_edit_core.geometry import clamp_unit


class ColorCubeData:
    """
    N^3 RGBA samples of a 3D color lookup table.

    Samples are float32 in [0, 1], ordered red fastest, then green, then blue.
    The buffer is read-only, so a cube can be shared between threads and
    cache entries without copying.
    """

    def __init__(self, dimension: int, data):
        n = int(dimension)
        samples = np.ascontiguousarray(data, dtype=np.float32).reshape(-1)
        if n < 2 or samples.size != n ** 3 * 4:
            raise ValueError(f"{samples.size} values do not form an N={n} RGBA cube")
        if samples.flags.writeable:
            samples = samples.copy()
            samples.setflags(write=False)
        self._dimension = n
        self._data = samples

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def data(self) -> np.ndarray:
        """Flat float32 buffer of N^3 * 4 values."""
        return self._data

    @property
    def sample_count(self) -> int:
        return self._dimension ** 3

    @property
    def nbytes(self) -> int:
        return self._data.nbytes

    def lattice(self) -> np.ndarray:
        """View indexed [blue, green, red, channel]"""
        n = self._dimension
        return self._data.reshape(n, n, n, 4)

    def to_bytes(self) -> bytes:
        return self._data.tobytes()

    @classmethod
    def identity(cls, dimension: int) -> "ColorCubeData":
        """Exact identity cube (no 8-bit quantization)."""
        n = int(dimension)
        levels = np.linspace(0.0, 1.0, n, dtype=np.float32)
        blue, green, red = np.meshgrid(levels, levels, levels, indexing='ij')
        lattice = np.stack([red, green, blue, np.ones_like(red)], axis=-1)
        return cls(n, lattice)

    def to_lut3d(self, name: Optional[str] = None) -> "colour.LUT3D":
        """colour-science LUT3D (table indexed [r, g, b]) for applying or exporting the cube."""
        table = self.lattice()[..., :3].transpose(2, 1, 0, 3).astype(np.float64)
        return colour.LUT3D(table=table, name=name or f"Color Cube {self._dimension}")

    def write_cube(self, path: Union[str, os.PathLike], name: Optional[str] = None):
        """Export as a LUT file; the format follows the extension (.cube, .spi3d, .csp)."""
        path = os.fspath(path)
        colour.write_LUT(self.to_lut3d(name), path)
        logger.info(f"[Cube] Wrote N={self._dimension} cube to {os.path.basename(path)}")

    def __eq__(self, other):
        if not isinstance(other, ColorCubeData):
            return NotImplemented
        return self._dimension == other._dimension and bool(np.array_equal(self._data, other._data))

    __hash__ = None

    def __repr__(self):
        return f"ColorCubeData(dimension={self._dimension})"


def build_color_cube(identity: ColorCubeData, effect: ColorCubeData,
                     intensity: float) -> ColorCubeData:
    """
    Blend an effect cube with the identity cube.

    Each value is (1 - t) * identity + t * effect with t clamped to [0, 1],
    so t = 0 reproduces the identity samples and t = 1 the effect samples
    exactly, and every value moves monotonically between the two as t grows.

    Raises:
        LUTSizeMismatchError: the two cubes have different dimensions
    """
    if identity.dimension != effect.dimension:
        raise LUTSizeMismatchError(identity.dimension, effect.dimension)

    t = clamp_unit(intensity, 0.0)
    if t != intensity:
        logger.debug(f"[Cube] Intensity {intensity} clamped to {t}")
    if t == 0.0:
        return identity
    if t == 1.0:
        return effect

    a = identity.data.astype(np.float64)
    b = effect.data.astype(np.float64)
    # Same value as (1 - t) * a + t * b, but every rounding step is monotonic in t
    mixed = a + t * (b - a)
    # Rounding must never step outside the segment between the two samples
    np.clip(mixed, np.minimum(a, b), np.maximum(a, b), out=mixed)

    result = mixed.astype(np.float32)
    result.setflags(write=False)
    return ColorCubeData(identity.dimension, result)
