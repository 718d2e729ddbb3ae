import os
from typing import Optional
from loguru import logger

from photo_edit_core.geometry import clamp_unit
from photo_edit_core.pipeline.color_cube import ColorCubeData, build_color_cube
from photo_edit_core.pipeline.lut_decoder import LUTSource, decode_lut


def _same_source(a, b) -> bool:
    if a is b:
        return True
    if isinstance(a, (str, os.PathLike)) and isinstance(b, (str, os.PathLike)):
        return os.fspath(a) == os.fspath(b)
    return False


class LUTConverter:
    """
    Turns an effect LUT image into color cube data at a given intensity.

    The identity LUT is decoded on first use. Assigning `lut_source` decodes
    the new LUT immediately and only when the source actually changes.
    """

    def __init__(self, identity_source: LUTSource, intensity: float = 1.0):
        self.identity_source = identity_source
        self._identity: Optional[ColorCubeData] = None
        self._lut_source: Optional[LUTSource] = None
        self._lut: Optional[ColorCubeData] = None
        self._intensity = clamp_unit(intensity, 1.0)

    @property
    def identity_lut(self) -> ColorCubeData:
        if self._identity is None:
            self._identity = decode_lut(self.identity_source)
        return self._identity

    @property
    def lut_source(self) -> Optional[LUTSource]:
        return self._lut_source

    @lut_source.setter
    def lut_source(self, source: Optional[LUTSource]):
        if _same_source(source, self._lut_source):
            return
        # Decode first so a malformed LUT leaves the previous one in place
        lut = decode_lut(source) if source is not None else None
        self._lut_source = source
        self._lut = lut
        if lut is not None:
            logger.debug(f"[Converter] LUT changed (N={lut.dimension})")

    @property
    def intensity(self) -> float:
        return self._intensity

    @intensity.setter
    def intensity(self, value: float):
        self._intensity = clamp_unit(value, self._intensity)

    @property
    def color_cube_data(self) -> Optional[ColorCubeData]:
        """Blended cube, or None when no effect LUT is set."""
        if self._lut is None:
            return None
        return build_color_cube(self.identity_lut, self._lut, self._intensity)
