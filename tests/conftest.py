"""Shared pytest fixtures for photo_edit_core tests."""
from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from PySide6.QtCore import QCoreApplication

from photo_edit_core.pipeline.lut_decoder import identity_lut_image


# ============================================================================
# Qt
# ============================================================================

@pytest.fixture(scope="session")
def qapp():
    """Qt application instance for signal delivery."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


# ============================================================================
# Synthetic LUT strips
# ============================================================================

def _inverted(strip: np.ndarray) -> np.ndarray:
    out = strip.copy()
    out[..., :3] = 255 - out[..., :3]
    return out


def _warm(strip: np.ndarray) -> np.ndarray:
    out = strip.astype(np.int32)
    out[..., 0] += 40
    out[..., 2] -= 40
    return np.clip(out, 0, 255).astype(np.uint8)


@pytest.fixture
def identity_strip() -> np.ndarray:
    """N=8 identity strip, a single row of eight 8x8 tiles (64x8 pixels)."""
    return identity_lut_image(8)


@pytest.fixture
def inverted_strip(identity_strip) -> np.ndarray:
    """N=8 strip mapping every color to its complement."""
    return _inverted(identity_strip)


@pytest.fixture
def warm_strip(identity_strip) -> np.ndarray:
    """N=8 strip pushing red up and blue down."""
    return _warm(identity_strip)


@pytest.fixture
def lut_dir(tmp_path, identity_strip, inverted_strip, warm_strip) -> Path:
    """Folder of LUT strips as shipped with an app: identity, two effects, one broken, one N=16."""
    folder = tmp_path / "luts"
    folder.mkdir()
    Image.fromarray(identity_strip).save(folder / "Identity.png")
    Image.fromarray(inverted_strip).save(folder / "Invert.png")
    Image.fromarray(warm_strip).save(folder / "Warm.png")
    Image.fromarray(np.zeros((10, 10, 4), dtype=np.uint8)).save(folder / "Broken.png")
    Image.fromarray(_inverted(identity_lut_image(16))).save(folder / "Large.png")
    return folder
