from __future__ import annotations

import importlib
import logging
from pathlib import Path

import numpy as np
import pytest

from rasterkit.cli import run_demo
from rasterkit.models.raster_image import RasterImage
from rasterkit.models.rgb import Rgb
from rasterkit.pipeline import arithmetic_demo
from rasterkit.pipeline.arithmetic_demo import derive_images, run_arithmetic_demo
from rasterkit.repositories.pixmap_repository import PixmapRepository
from rasterkit.services.image_service import ImageService

EXPECTED_OUTPUTS = {"Add", "subtract", "times130", "gamma", "alpha85", "alpha50", "AddAssign"}


def _write_inputs(folder: Path) -> tuple[Path, Path]:
    first = RasterImage.from_array(
        [[[0, 0, 0], [100, 100, 100]], [[10, 20, 30], [200, 100, 50]]]
    )
    second = RasterImage.blank(2, 2, Rgb.gray(50))
    return (
        PixmapRepository.write(first, folder / "first.ppm"),
        PixmapRepository.write(second, folder / "second.ppm"),
    )


def test_derive_images_leaves_inputs_untouched() -> None:
    first = RasterImage.blank(2, 2, Rgb.gray(100))
    second = RasterImage.blank(2, 2, Rgb.gray(20))
    derived = derive_images(first, second, scale=1.3, gamma=0.5, alphas=(0.85, 0.5))

    assert set(derived) == EXPECTED_OUTPUTS
    assert first == RasterImage.blank(2, 2, Rgb.gray(100))
    assert derived["Add"].pixel(0, 0) == Rgb.gray(120)
    assert derived["subtract"].pixel(0, 0) == Rgb.gray(80)
    assert derived["AddAssign"].pixel(0, 0) == Rgb.gray(60)
    assert derived["alpha50"].pixel(0, 0) == Rgb.gray(60)
    np.testing.assert_allclose(derived["times130"].pixels, 130.0, rtol=1e-5)


def test_run_demo_writes_every_output(tmp_path: Path) -> None:
    first, second = _write_inputs(tmp_path)
    out_dir = tmp_path / "out"

    written = run_arithmetic_demo(first, second, out_dir, image_service=ImageService(overflow="wrap"))

    assert set(written) == EXPECTED_OUTPUTS
    for name, path in written.items():
        assert path == out_dir / f"{name}.ppm"
        assert path.read_bytes().startswith(b"P6\n2 2\n255\n")

    add_body = written["Add"].read_bytes()[len(b"P6\n2 2\n255\n"):]
    assert add_body == bytes([50, 50, 50, 150, 150, 150, 60, 70, 80, 250, 150, 100])


def test_run_demo_previews(tmp_path: Path) -> None:
    first, second = _write_inputs(tmp_path)
    run_arithmetic_demo(first, second, tmp_path / "out", write_previews=True)
    assert (tmp_path / "out" / "gamma.png").exists()


def test_run_demo_missing_input(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR)
    first, _ = _write_inputs(tmp_path)
    written = run_arithmetic_demo(first, tmp_path / "missing.ppm", tmp_path / "out")
    assert written == {}
    assert not (tmp_path / "out").exists()
    assert "Can't open input file" in caplog.text


def test_run_demo_size_mismatch(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR)
    first, _ = _write_inputs(tmp_path)
    other = PixmapRepository.write(RasterImage.blank(3, 1), tmp_path / "other.ppm")
    assert run_arithmetic_demo(first, other, tmp_path / "out") == {}
    assert "Input sizes differ" in caplog.text


def test_cli_main_runs_and_exits_zero(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    first, second = _write_inputs(tmp_path)
    monkeypatch.setattr(run_demo, "INPUT_A", str(first))
    monkeypatch.setattr(run_demo, "INPUT_B", str(second))
    monkeypatch.chdir(tmp_path)

    assert run_demo.main() == 0
    assert (tmp_path / "AddAssign.ppm").exists()


def test_cli_main_exits_zero_on_missing_inputs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(run_demo, "INPUT_A", str(tmp_path / "a.ppm"))
    monkeypatch.setattr(run_demo, "INPUT_B", str(tmp_path / "b.ppm"))
    monkeypatch.chdir(tmp_path)

    assert run_demo.main() == 0
    assert not list(tmp_path.glob("*.ppm"))


def test_bad_numeric_env_does_not_break_import(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RASTER_SCALE", "abc")
    monkeypatch.setenv("RASTER_ALPHAS", "")
    importlib.reload(arithmetic_demo)


def test_derive_images_reports_bad_env(monkeypatch: pytest.MonkeyPatch) -> None:
    img = RasterImage.blank(1, 1)
    monkeypatch.setenv("RASTER_ALPHAS", "")
    with pytest.raises(ValueError, match="RASTER_ALPHAS"):
        derive_images(img, img, scale=1.0, gamma=1.0)

    monkeypatch.setenv("RASTER_ALPHAS", "0.25")
    monkeypatch.setenv("RASTER_SCALE", "2")
    assert set(derive_images(img, img, gamma=1.0)) == {
        "Add", "subtract", "times200", "gamma", "alpha25", "AddAssign"
    }


def test_cli_main_exits_zero_on_bad_scale(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.ERROR)
    first, second = _write_inputs(tmp_path)
    monkeypatch.setattr(run_demo, "INPUT_A", str(first))
    monkeypatch.setattr(run_demo, "INPUT_B", str(second))
    monkeypatch.setenv("RASTER_SCALE", "abc")
    monkeypatch.chdir(tmp_path)

    assert run_demo.main() == 0
    assert "RASTER_SCALE must be a number" in caplog.text
    assert not (tmp_path / "Add.ppm").exists()
