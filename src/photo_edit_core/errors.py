"""Exceptions raised by the LUT decoder and the color cube builder."""
from typing import Optional


class PhotoEditError(Exception):
    """Base exception for all photo_edit_core errors."""
    pass


class MalformedLUTError(PhotoEditError, ValueError):
    """LUT image is unreadable or its dimensions do not form a cube grid.

    Not retried. Callers should fall back to rendering without an effect filter.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class LUTSizeMismatchError(PhotoEditError, ValueError):
    """Identity and effect LUTs decode to different cube dimensions."""

    def __init__(self, identity_dimension: int, effect_dimension: int):
        super().__init__(
            f"LUT size mismatch: identity N={identity_dimension}, effect N={effect_dimension}"
        )
        self.identity_dimension = identity_dimension
        self.effect_dimension = effect_dimension
