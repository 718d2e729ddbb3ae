import math
import weakref
from dataclasses import dataclass, fields, replace
from typing import Optional, Any
import numpy as np
from PIL import Image

from photo_edit_core.config import DEFAULT_EFFECT_INTENSITY, DEFAULT_FOCUS_BLUR_RADIUS
from photo_edit_core.geometry import (
    FULL_CROP_RECT, CropRect, FocusType, Orientation, Point, clamp_unit
)


def values_equal(a: Any, b: Any) -> bool:
    """Field comparison; image buffers compare by dtype, shape and pixels."""
    if a is b:
        return True
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if not (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)):
            return False
        return a.dtype == b.dtype and a.shape == b.shape and bool(np.array_equal(a, b))
    return a == b


# Overlay buffers copied and frozen here, keyed by id; arrays are unhashable
_frozen_overlays = weakref.WeakValueDictionary()


def freeze_image(image) -> Optional[np.ndarray]:
    """Private read-only copy of an overlay image (numpy array or PIL image)."""
    if image is None:
        return None
    if isinstance(image, Image.Image):
        image = image.convert("RGBA")
    if isinstance(image, np.ndarray) and _frozen_overlays.get(id(image)) is image:
        # Frozen by a previous snapshot, safe to share
        return image
    frozen = np.array(image, copy=True)
    if frozen.ndim not in (2, 3):
        raise ValueError(f"overlay image must be H x W [x C], got shape {frozen.shape}")
    frozen.setflags(write=False)
    _frozen_overlays[id(frozen)] = frozen
    return frozen


def _finite(value, default: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else default


@dataclass(frozen=True, eq=False)
class PhotoEditModel:
    """
    Immutable snapshot of every edit applied to an image.

    Identity values are the neutral settings of the filters that consume each
    field: additive adjustments sit at 0, multiplicative ones (contrast,
    saturation, highlights) at 1. Out-of-range input is clamped on
    construction so a model always describes a renderable configuration.
    """
    orientation: Orientation = Orientation.NORMAL
    crop_rect: CropRect = FULL_CROP_RECT
    straighten_angle: float = 0.0  # radians
    exposure: float = 0.0  # EV
    brightness: float = 0.0
    contrast: float = 1.0
    saturation: float = 1.0
    shadows: float = 0.0
    highlights: float = 1.0
    clarity: float = 0.0
    auto_enhancement_enabled: bool = False
    focus_type: FocusType = FocusType.OFF
    focus_control_point1: Point = Point(0.5, 0.8)
    focus_control_point2: Point = Point(0.5, 0.2)
    focus_blur_radius: float = DEFAULT_FOCUS_BLUR_RADIUS
    effect_filter_identifier: Optional[str] = None
    effect_filter_intensity: float = DEFAULT_EFFECT_INTENSITY
    # Composited on top after all other effects
    overlay_image: Optional[np.ndarray] = None

    def __post_init__(self):
        set_field = object.__setattr__

        set_field(self, 'orientation', Orientation.from_exif(self.orientation))
        set_field(self, 'crop_rect', CropRect(*self.crop_rect).clamped())
        set_field(self, 'focus_type', FocusType.from_value(self.focus_type))
        set_field(self, 'focus_control_point1', Point(*self.focus_control_point1).clamped())
        set_field(self, 'focus_control_point2', Point(*self.focus_control_point2).clamped())
        set_field(self, 'auto_enhancement_enabled', bool(self.auto_enhancement_enabled))

        for name in ('straighten_angle', 'exposure', 'brightness', 'contrast',
                     'saturation', 'shadows', 'highlights', 'clarity'):
            set_field(self, name, _finite(getattr(self, name), _DEFAULTS[name]))

        set_field(self, 'focus_blur_radius',
                  max(0.0, _finite(self.focus_blur_radius, DEFAULT_FOCUS_BLUR_RADIUS)))
        set_field(self, 'effect_filter_intensity',
                  clamp_unit(self.effect_filter_intensity, DEFAULT_EFFECT_INTENSITY))

        if self.effect_filter_identifier is not None:
            set_field(self, 'effect_filter_identifier', str(self.effect_filter_identifier))
        set_field(self, 'overlay_image', freeze_image(self.overlay_image))

    @classmethod
    def identity_orientation(cls) -> Orientation:
        return Orientation.NORMAL

    @classmethod
    def identity_crop_rect(cls) -> CropRect:
        return FULL_CROP_RECT

    @property
    def is_geometry_identity(self) -> bool:
        """True if the image has been neither reoriented nor cropped."""
        return (self.orientation == self.identity_orientation()
                and self.crop_rect == self.identity_crop_rect())

    @property
    def is_identity(self) -> bool:
        return self.is_equal(_IDENTITY_MODEL)

    def is_equal(self, other) -> bool:
        if self is other:
            return True
        values = getattr(other, 'field_values', None)
        if values is None:
            return False
        other_values = values()
        return all(values_equal(getattr(self, name), other_values[name]) for name in FIELD_NAMES)

    def __eq__(self, other):
        # Mutable models hash by identity; compare them with is_equal()
        if not isinstance(other, PhotoEditModel):
            return NotImplemented
        return self.is_equal(other)

    def __hash__(self):
        scalars = tuple(getattr(self, name) for name in FIELD_NAMES if name != 'overlay_image')
        overlay = self.overlay_image
        overlay_key = None if overlay is None else (overlay.shape, overlay.dtype.str)
        return hash(scalars + (overlay_key,))

    def field_values(self) -> dict:
        return {name: getattr(self, name) for name in FIELD_NAMES}

    def copy(self) -> "PhotoEditModel":
        # Immutable, the snapshot is its own copy
        return self

    def with_changes(self, **changes) -> "PhotoEditModel":
        return replace(self, **changes)

    def mutable_copy(self, parent=None):
        from photo_edit_core.pipeline.mutable_model import MutablePhotoEditModel
        return MutablePhotoEditModel(self, parent=parent)

    def __repr__(self):
        changed = [
            f"{name}={getattr(self, name)!r}" for name in FIELD_NAMES
            if name != 'overlay_image' and not values_equal(getattr(self, name), _DEFAULTS[name])
        ]
        if self.overlay_image is not None:
            changed.append(f"overlay_image=<{self.overlay_image.shape} {self.overlay_image.dtype}>")
        return f"PhotoEditModel({', '.join(changed)})"


FIELD_NAMES = tuple(f.name for f in fields(PhotoEditModel))
_DEFAULTS = {f.name: f.default for f in fields(PhotoEditModel)}
_IDENTITY_MODEL = PhotoEditModel()
