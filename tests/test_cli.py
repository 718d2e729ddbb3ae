"""Tests for the photo-edit-core command line."""
import colour
import numpy as np
import pytest
from PIL import Image

from photo_edit_core import main as cli
from photo_edit_core.config import Settings


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Keep the user's config file out of the tests."""
    monkeypatch.setattr(cli, "load_settings", lambda: Settings())


def run(*args):
    return cli.main(["--no-log-file", *args])


class TestIdentity:
    def test_writes_strip(self, tmp_path):
        output = tmp_path / "Identity.png"
        assert run("identity", "--size", "8", "--output", str(output)) == 0
        with Image.open(output) as img:
            assert img.size == (64, 8)

    def test_grid_columns(self, tmp_path):
        output = tmp_path / "Identity.png"
        assert run("identity", "--size", "8", "--columns", "2", "--output", str(output)) == 0
        with Image.open(output) as img:
            assert img.size == (16, 32)


class TestInspect:
    def test_valid_lut(self, lut_dir, capsys):
        assert run("inspect", str(lut_dir / "Warm.png")) == 0
        assert "N=8" in capsys.readouterr().out

    def test_malformed_lut(self, lut_dir):
        assert run("inspect", str(lut_dir / "Broken.png")) == 1


class TestCube:
    def test_raw_output(self, lut_dir, tmp_path):
        output = tmp_path / "warm.bin"
        code = run("cube", str(lut_dir / "Identity.png"), str(lut_dir / "Warm.png"),
                   "--intensity", "1.0", "--output", str(output))
        assert code == 0
        data = np.frombuffer(output.read_bytes(), dtype=np.float32)
        assert data.size == 8 ** 3 * 4

    def test_cube_file(self, lut_dir, tmp_path):
        output = tmp_path / "warm.cube"
        code = run("cube", str(lut_dir / "Identity.png"), str(lut_dir / "Warm.png"),
                   "--output", str(output))
        assert code == 0
        assert colour.read_LUT(str(output)).size == 8

    def test_size_mismatch(self, lut_dir, tmp_path):
        code = run("cube", str(lut_dir / "Identity.png"), str(lut_dir / "Large.png"),
                   "--output", str(tmp_path / "x.bin"))
        assert code == 1

    def test_missing_command(self):
        with pytest.raises(SystemExit):
            run()
