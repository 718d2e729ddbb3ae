import os
import collections
from dataclasses import dataclass
from typing import Iterable, List, Optional
from loguru import logger

from photo_edit_core.config import (
    DEFAULT_CUBE_DIMENSION, IDENTITY_LUT_NAME, LUT_IMAGE_EXTENSIONS, NO_EFFECT_IDENTIFIER, Settings
)
from photo_edit_core.errors import LUTSizeMismatchError, MalformedLUTError
from photo_edit_core.geometry import clamp_unit
from photo_edit_core.pipeline.cache_manager import ColorCubeCache
from photo_edit_core.pipeline.color_cube import ColorCubeData, build_color_cube
from photo_edit_core.pipeline.lut_decoder import LUTSource, decode_lut, identity_lut_image


@dataclass(frozen=True)
class PhotoEffect:
    """A named color grading effect backed by a LUT strip image."""
    identifier: str
    lut_path: Optional[str] = None
    display_name: str = ""

    def __post_init__(self):
        if not self.display_name:
            object.__setattr__(self, 'display_name', self.identifier)

    @property
    def has_lut(self) -> bool:
        return self.lut_path is not None


NONE_EFFECT = PhotoEffect(NO_EFFECT_IDENTIFIER)


class EffectCatalog:
    """Ordered registry of effects; the "None" effect always comes first."""

    def __init__(self, effects: Iterable[PhotoEffect] = ()):
        self._effects = collections.OrderedDict()
        self._effects[NONE_EFFECT.identifier] = NONE_EFFECT
        for effect in effects:
            self.register(effect)

    @classmethod
    def from_directory(cls, directory) -> "EffectCatalog":
        """Register every LUT strip in directory under its file stem"""
        catalog = cls()
        if not directory or not os.path.isdir(directory):
            logger.warning(f"[Effects] LUT folder not found: {directory}")
            return catalog

        files = sorted(f for f in os.listdir(directory)
                       if f.lower().endswith(LUT_IMAGE_EXTENSIONS) and f != IDENTITY_LUT_NAME)
        for f in files:
            identifier = os.path.splitext(f)[0]
            catalog.register(PhotoEffect(identifier, os.path.join(directory, f)))

        logger.info(f"[Effects] Loaded {len(files)} effects from {directory}")
        return catalog

    def register(self, effect: PhotoEffect):
        if effect.identifier in self._effects:
            logger.debug(f"[Effects] Replacing effect {effect.identifier}")
        self._effects[effect.identifier] = effect

    def effect_with_identifier(self, identifier: Optional[str]) -> Optional[PhotoEffect]:
        if identifier is None:
            return None
        return self._effects.get(identifier)

    @property
    def identifiers(self) -> List[str]:
        return list(self._effects)

    def __iter__(self):
        return iter(list(self._effects.values()))

    def __len__(self):
        return len(self._effects)

    def __contains__(self, identifier):
        return identifier in self._effects


def _source_key(source) -> str:
    if isinstance(source, (str, os.PathLike)):
        return os.path.abspath(os.fspath(source))
    # In-memory sources are cached per object
    return f"<{type(source).__name__}@{id(source):x}>"


class ColorCubeProvider:
    """
    Resolves the effect of an edit model to color cube data.

    Decoded LUTs and blended cubes both go through one ColorCubeCache, so an
    intensity change only re-blends and never re-decodes the strips.
    """

    def __init__(self, catalog: EffectCatalog, identity_source: LUTSource,
                 cache: Optional[ColorCubeCache] = None):
        self.catalog = catalog
        self.identity_source = identity_source
        self.cache = cache if cache is not None else ColorCubeCache()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ColorCubeProvider":
        catalog = EffectCatalog.from_directory(settings.effects_dir)

        identity_source = settings.identity_lut_path
        if identity_source is None and settings.effects_dir:
            candidate = os.path.join(settings.effects_dir, IDENTITY_LUT_NAME)
            if os.path.exists(candidate):
                identity_source = candidate
        if identity_source is None:
            logger.info(f"[Effects] No identity LUT found, using a generated N={DEFAULT_CUBE_DIMENSION} strip")
            identity_source = identity_lut_image(DEFAULT_CUBE_DIMENSION)

        cache = ColorCubeCache(settings.cache_max_items, settings.cache_max_memory_mb)
        return cls(catalog, identity_source, cache)

    def _decoded(self, source: LUTSource) -> ColorCubeData:
        return self.cache.get_or_build(('lut', _source_key(source)), lambda: decode_lut(source))

    @property
    def identity_lut(self) -> ColorCubeData:
        return self._decoded(self.identity_source)

    def color_cube_for_effect(self, effect: PhotoEffect, intensity: float) -> Optional[ColorCubeData]:
        if not effect.has_lut:
            return None

        t = clamp_unit(intensity, 0.0)
        key = ('cube', _source_key(effect.lut_path), t)
        try:
            return self.cache.get_or_build(
                key, lambda: build_color_cube(self.identity_lut, self._decoded(effect.lut_path), t)
            )
        except (MalformedLUTError, LUTSizeMismatchError) as e:
            logger.warning(f"[Effects] {effect.identifier}: {e}. Rendering without effect.")
            return None

    def color_cube_for_model(self, model) -> Optional[ColorCubeData]:
        """Cube for the model's effect filter, None when no grading applies."""
        identifier = model.effect_filter_identifier
        if identifier is None or identifier == NO_EFFECT_IDENTIFIER:
            return None

        effect = self.catalog.effect_with_identifier(identifier)
        if effect is None:
            logger.warning(f"[Effects] Unknown effect '{identifier}'. Rendering without effect.")
            return None
        return self.color_cube_for_effect(effect, model.effect_filter_intensity)
