import math
from enum import Enum, IntEnum
from typing import NamedTuple, Tuple
import numpy as np


def clamp_unit(value: float, fallback: float = 0.0, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp to [lo, hi]; NaN maps to fallback."""
    value = float(value)
    if math.isnan(value):
        return fallback
    return min(max(value, lo), hi)


class FocusType(Enum):
    OFF = "off"
    LINEAR = "linear"
    RADIAL = "radial"

    @classmethod
    def from_value(cls, value) -> "FocusType":
        """Tolerant constructor, unknown values map to OFF."""
        try:
            return cls(value)
        except (TypeError, ValueError):
            return cls.OFF


class Point(NamedTuple):
    """Normalized image-space point, origin at the top left."""
    x: float
    y: float

    def clamped(self) -> "Point":
        return Point(clamp_unit(self.x, 0.5), clamp_unit(self.y, 0.5))


class CropRect(NamedTuple):
    """Normalized crop rectangle relative to the unrotated image."""
    x: float
    y: float
    width: float
    height: float

    def clamped(self) -> "CropRect":
        """Keep the rect inside the unit square with a non-negative size"""
        x = clamp_unit(self.x, 0.0)
        y = clamp_unit(self.y, 0.0)
        width = clamp_unit(self.width, 1.0 - x, hi=1.0 - x)
        height = clamp_unit(self.height, 1.0 - y, hi=1.0 - y)
        return CropRect(x, y, width, height)

    def to_pixels(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """(left, top, right, bottom) pixel box for an image of the given size"""
        left = int(round(self.x * width))
        top = int(round(self.y * height))
        right = int(round((self.x + self.width) * width))
        bottom = int(round((self.y + self.height) * height))
        return left, top, right, bottom


FULL_CROP_RECT = CropRect(0.0, 0.0, 1.0, 1.0)


class Orientation(IntEnum):
    """Image orientation with the meaning of the EXIF orientation tag."""
    NORMAL = 1       # row 0 top, column 0 left
    FLIP_X = 2       # row 0 top, column 0 right
    ROTATE_180 = 3   # row 0 bottom, column 0 right
    FLIP_Y = 4       # row 0 bottom, column 0 left
    TRANSPOSE = 5    # row 0 left, column 0 top
    ROTATE_90 = 6    # row 0 right, column 0 top
    TRANSVERSE = 7   # row 0 right, column 0 bottom
    ROTATE_270 = 8   # row 0 left, column 0 bottom

    @classmethod
    def from_exif(cls, value) -> "Orientation":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.NORMAL

    @property
    def matrix(self) -> np.ndarray:
        return np.array(_ORIENTATION_MATRICES[self], dtype=np.int64)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Orientation":
        key = tuple(int(v) for v in np.asarray(matrix).ravel())
        return _MATRIX_ORIENTATIONS[key]

    def concat(self, other: "Orientation") -> "Orientation":
        """Orientation equivalent to applying self first, then other."""
        return Orientation.from_matrix(Orientation(other).matrix @ self.matrix)

    @property
    def inverse(self) -> "Orientation":
        # Orthogonal matrices: the inverse is the transpose
        return Orientation.from_matrix(self.matrix.T)

    @property
    def is_mirrored(self) -> bool:
        return self in (Orientation.FLIP_X, Orientation.FLIP_Y,
                        Orientation.TRANSPOSE, Orientation.TRANSVERSE)

    @property
    def swaps_dimensions(self) -> bool:
        return self >= Orientation.TRANSPOSE

    def apply(self, image: np.ndarray) -> np.ndarray:
        """Reorient an H x W [x C] array for display (ROTATE_90 turns it clockwise)."""
        if self is Orientation.NORMAL:
            return image
        if self is Orientation.FLIP_X:
            return image[:, ::-1]
        if self is Orientation.ROTATE_180:
            return image[::-1, ::-1]
        if self is Orientation.FLIP_Y:
            return image[::-1]
        if self is Orientation.TRANSPOSE:
            return image.swapaxes(0, 1)
        if self is Orientation.ROTATE_90:
            return np.rot90(image, k=-1)
        if self is Orientation.TRANSVERSE:
            return image[::-1, ::-1].swapaxes(0, 1)
        return np.rot90(image, k=1)


# Row-vector affine parts (a, b, c, d) of each orientation
_ORIENTATION_MATRICES = {
    Orientation.NORMAL: ((1, 0), (0, 1)),
    Orientation.FLIP_X: ((-1, 0), (0, 1)),
    Orientation.ROTATE_180: ((-1, 0), (0, -1)),
    Orientation.FLIP_Y: ((1, 0), (0, -1)),
    Orientation.TRANSPOSE: ((0, 1), (1, 0)),
    Orientation.ROTATE_90: ((0, -1), (1, 0)),
    Orientation.TRANSVERSE: ((0, -1), (-1, 0)),
    Orientation.ROTATE_270: ((0, 1), (-1, 0)),
}

_MATRIX_ORIENTATIONS = {
    (m[0][0], m[0][1], m[1][0], m[1][1]): o for o, m in _ORIENTATION_MATRICES.items()
}
