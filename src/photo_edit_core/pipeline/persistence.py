import io
import json
import base64
from pathlib import Path
from typing import Optional
import numpy as np
from PIL import Image
from loguru import logger

from photo_edit_core.geometry import CropRect, FocusType, Orientation, Point
from photo_edit_core.pipeline.model import PhotoEditModel

MODEL_VERSION = 1

_DEFAULT = PhotoEditModel()


def _png_compatible(image: np.ndarray) -> bool:
    if image.dtype != np.uint8:
        return False
    return image.ndim == 2 or (image.ndim == 3 and image.shape[2] in (3, 4))


def _overlay_to_raw(image: Optional[np.ndarray]) -> Optional[dict]:
    if image is None:
        return None
    buf = io.BytesIO()
    if _png_compatible(image):
        Image.fromarray(np.ascontiguousarray(image)).save(buf, format="PNG")
        fmt = "png"
    else:
        np.save(buf, image, allow_pickle=False)
        fmt = "npy"
    return {"format": fmt, "data": base64.b64encode(buf.getvalue()).decode("ascii")}


def _overlay_from_raw(raw) -> Optional[np.ndarray]:
    if not isinstance(raw, dict) or "data" not in raw:
        return None
    payload = base64.b64decode(raw["data"])
    if raw.get("format", "png") == "npy":
        return np.load(io.BytesIO(payload), allow_pickle=False)
    with Image.open(io.BytesIO(payload)) as img:
        return np.array(img)


def model_to_dict(model: PhotoEditModel) -> dict:
    return {
        "version": MODEL_VERSION,
        "model": {
            "orientation": int(model.orientation),
            "crop_rect": list(model.crop_rect),
            "straighten_angle": model.straighten_angle,
            "exposure": model.exposure,
            "brightness": model.brightness,
            "contrast": model.contrast,
            "saturation": model.saturation,
            "shadows": model.shadows,
            "highlights": model.highlights,
            "clarity": model.clarity,
            "auto_enhancement_enabled": model.auto_enhancement_enabled,
            "focus_type": model.focus_type.value,
            "focus_control_point1": list(model.focus_control_point1),
            "focus_control_point2": list(model.focus_control_point2),
            "focus_blur_radius": model.focus_blur_radius,
            "effect_filter_identifier": model.effect_filter_identifier,
            "effect_filter_intensity": model.effect_filter_intensity,
            "overlay_image": _overlay_to_raw(model.overlay_image),
        },
    }


def _pair(raw, default):
    if isinstance(raw, (list, tuple)) and len(raw) == len(default):
        return tuple(float(v) for v in raw)
    return tuple(default)


def model_from_dict(raw: dict) -> PhotoEditModel:
    """Rebuild a model; keys missing from older documents keep their identity values."""
    version = int(raw.get("version", MODEL_VERSION))
    if version > MODEL_VERSION:
        logger.warning(f"Edit model version {version} is newer than {MODEL_VERSION}, loading known fields only")
    state = raw.get("model", {})

    return PhotoEditModel(
        orientation=Orientation.from_exif(state.get("orientation", int(_DEFAULT.orientation))),
        crop_rect=CropRect(*_pair(state.get("crop_rect"), _DEFAULT.crop_rect)),
        straighten_angle=float(state.get("straighten_angle", _DEFAULT.straighten_angle)),
        exposure=float(state.get("exposure", _DEFAULT.exposure)),
        brightness=float(state.get("brightness", _DEFAULT.brightness)),
        contrast=float(state.get("contrast", _DEFAULT.contrast)),
        saturation=float(state.get("saturation", _DEFAULT.saturation)),
        shadows=float(state.get("shadows", _DEFAULT.shadows)),
        highlights=float(state.get("highlights", _DEFAULT.highlights)),
        clarity=float(state.get("clarity", _DEFAULT.clarity)),
        auto_enhancement_enabled=bool(state.get("auto_enhancement_enabled", False)),
        focus_type=FocusType.from_value(state.get("focus_type", _DEFAULT.focus_type.value)),
        focus_control_point1=Point(*_pair(state.get("focus_control_point1"), _DEFAULT.focus_control_point1)),
        focus_control_point2=Point(*_pair(state.get("focus_control_point2"), _DEFAULT.focus_control_point2)),
        focus_blur_radius=float(state.get("focus_blur_radius", _DEFAULT.focus_blur_radius)),
        effect_filter_identifier=state.get("effect_filter_identifier"),
        effect_filter_intensity=float(state.get("effect_filter_intensity", _DEFAULT.effect_filter_intensity)),
        overlay_image=_overlay_from_raw(state.get("overlay_image")),
    )


def save_model(path, model: PhotoEditModel) -> None:
    model_file = Path(path)
    model_file.write_text(json.dumps(model_to_dict(model), indent=2), encoding="utf-8")
    logger.debug(f"Saved edit model to {model_file.name}")


def load_model(path) -> PhotoEditModel:
    model_file = Path(path)
    raw = json.loads(model_file.read_text(encoding="utf-8"))
    return model_from_dict(raw)
