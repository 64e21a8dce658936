import os

import numpy as np
import pytest
from PIL import Image, ImageDraw

from brandkit import pipeline
from brandkit.colors import Color
from brandkit.exceptions import EncodeFailure, InvalidColorFormat, SourceImageUnreadable
from brandkit.pipeline import (
    FIT_EXACT_HEIGHT_PREFERRED,
    FIT_EXACT_LONGER_AXIS,
    Palette,
    build_asset_specs,
    composite_asset,
    derive_assets,
    render_assets,
    resolve_palette,
)
from brandkit.selector import BEST_EFFORT_KEPT, LOSSLESS_ACCEPTED, LOSSY_ACCEPTED

KB = 1024
CAPS = {"background": 300 * KB, "header": 10 * KB, "banner": 50 * KB, "square": 50 * KB}
HEX = {"page": "#FFFFFF", "light": "#FFFFFF", "dark": "#111111"}
EXPECTED_SIZES = {
    "background": (1920, 1080),
    "header_logo": (245, 36),
    "banner_logo": (245, 36),
    "square_logo_light": (240, 240),
    "square_logo_dark": (240, 240),
}


def _photo(path, size=(4000, 2000)):
    w, h = size
    x = np.linspace(0, 255, w, dtype=np.float32)[None, :]
    y = np.linspace(0, 255, h, dtype=np.float32)[:, None]
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[..., 0] = np.broadcast_to(x, (h, w)).astype(np.uint8)
    arr[..., 1] = np.broadcast_to(y, (h, w)).astype(np.uint8)
    arr[..., 2] = 128
    img = Image.fromarray(arr)
    ImageDraw.Draw(img).ellipse((w // 4, h // 4, 3 * w // 4, 3 * h // 4), fill=(240, 200, 20))
    img.save(path)
    return path


def _logo_with_transparency(size=(300, 200)):
    img = Image.new("RGBA", size, (0, 0, 0, 0))
    ImageDraw.Draw(img).rectangle((100, 20, 199, 179), fill=(30, 90, 200, 255))
    return img


def _outputs(out_dir):
    return sorted(f for f in os.listdir(out_dir) if not f.startswith("."))


def test_end_to_end_wide_photo(tmp_path):
    src = _photo(tmp_path / "source.png")
    out = tmp_path / "out"
    out.mkdir()
    warnings = []
    results = derive_assets(str(src), str(out), HEX, CAPS, warnings=warnings)

    assert [r.spec.name for r in results] == list(EXPECTED_SIZES)
    assert len(_outputs(out)) == 5
    for item in results:
        assert os.path.exists(item.path)
        assert os.path.getsize(item.path) == item.result.size
        with Image.open(item.path) as img:
            assert img.size == EXPECTED_SIZES[item.spec.name]
        if item.met_cap:
            assert item.result.size <= item.spec.cap

    background = results[0]
    assert background.path.endswith("background_1920x1080.jpg")
    assert background.state == LOSSY_ACCEPTED

    for item in results[1:]:
        if item.result.fmt.key == "png":
            assert item.state in (LOSSLESS_ACCEPTED, BEST_EFFORT_KEPT)
        else:
            assert item.state in (LOSSY_ACCEPTED, BEST_EFFORT_KEPT)
    assert len(warnings) == sum(1 for r in results if r.state == BEST_EFFORT_KEPT)


def test_one_pixel_source_produces_all_five(tmp_path):
    src = tmp_path / "dot.png"
    Image.new("RGB", (1, 1), (200, 10, 10)).save(src)
    out = tmp_path / "out"
    out.mkdir()
    results = derive_assets(str(src), str(out), HEX, CAPS)
    assert len(results) == 5
    for item in results:
        with Image.open(item.path) as img:
            assert img.size == EXPECTED_SIZES[item.spec.name]
    with Image.open(results[3].path) as light:
        # the 1x1 crop fills the whole square
        assert light.convert("RGB").getpixel((120, 120)) == (200, 10, 10)


def test_invalid_color_aborts_before_any_output(tmp_path, monkeypatch):
    src = _photo(tmp_path / "source.png", size=(40, 20))
    out = tmp_path / "out"
    out.mkdir()

    def _must_not_open(path):
        raise AssertionError("source opened before colors were validated")

    monkeypatch.setattr(pipeline, "open_source", _must_not_open)
    with pytest.raises(InvalidColorFormat):
        derive_assets(str(src), str(out), dict(HEX, page="not-a-color"), CAPS)
    assert _outputs(out) == []


def test_unreadable_source(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    with pytest.raises(SourceImageUnreadable):
        derive_assets(str(tmp_path / "missing.png"), str(out), HEX, CAPS)
    garbage = tmp_path / "garbage.png"
    garbage.write_bytes(b"definitely not an image")
    with pytest.raises(SourceImageUnreadable):
        derive_assets(str(garbage), str(out), HEX, CAPS)
    assert _outputs(out) == []


def test_square_crop_computed_once_and_shared(monkeypatch):
    calls = []
    real_crop = pipeline.center_square_crop

    def _counting_crop(image):
        calls.append(image.size)
        return real_crop(image)

    monkeypatch.setattr(pipeline, "center_square_crop", _counting_crop)
    palette = resolve_palette(**HEX)
    specs = build_asset_specs(CAPS)
    results = render_assets(_logo_with_transparency(), specs, palette)
    assert calls == [(300, 200)]
    assert [r.spec.name for r in results][-2:] == ["square_logo_light", "square_logo_dark"]


def test_light_and_dark_squares_differ_only_in_backdrop():
    source = _logo_with_transparency()
    square = pipeline.center_square_crop(source)
    palette = Palette(page=Color(255, 255, 255), light=Color(250, 250, 250), dark=Color(17, 17, 17))
    light_spec, dark_spec = build_asset_specs(CAPS)[3:]
    light = np.asarray(composite_asset(light_spec, source, square, palette)).astype(int)
    dark = np.asarray(composite_asset(dark_spec, source, square, palette)).astype(int)
    mask = np.asarray(pipeline.pad_to_fit(square, (240, 240)))[..., 3]

    opaque = mask == 255
    clear = mask == 0
    assert opaque.any() and clear.any()
    assert np.array_equal(light[opaque], dark[opaque])
    assert (light[clear][:, :3] == 250).all()
    assert (dark[clear][:, :3] == 17).all()


def test_fit_policy_selects_logo_strategy():
    aspect = build_asset_specs(CAPS, fit_policy="aspect")
    limiting = build_asset_specs(CAPS, fit_policy="limiting")
    assert {s.strategy for s in aspect[1:3]} == {FIT_EXACT_HEIGHT_PREFERRED}
    assert {s.strategy for s in limiting[1:3]} == {FIT_EXACT_LONGER_AXIS}
    with pytest.raises(ValueError):
        build_asset_specs(CAPS, fit_policy="cover")


def test_caps_are_validated():
    with pytest.raises(ValueError):
        build_asset_specs({"background": 1, "header": 1, "banner": 1})
    with pytest.raises(ValueError):
        build_asset_specs(dict(CAPS, square=0))


def test_stale_file_of_other_format_is_removed(tmp_path):
    src = tmp_path / "dot.png"
    Image.new("RGB", (1, 1), (0, 0, 0)).save(src)
    out = tmp_path / "out"
    out.mkdir()
    stale = out / "header_logo_245x36.jpg"
    stale.write_bytes(b"old")
    results = derive_assets(str(src), str(out), HEX, CAPS)
    header = results[1]
    assert header.result.fmt.key == "png"
    assert not stale.exists()
    assert len(_outputs(out)) == 5


def test_missing_output_directory_is_not_created(tmp_path):
    src = tmp_path / "dot.png"
    Image.new("RGB", (1, 1)).save(src)
    with pytest.raises(NotADirectoryError):
        derive_assets(str(src), str(tmp_path / "nope"), HEX, CAPS)
    assert not (tmp_path / "nope").exists()


def test_encoder_failure_still_releases_intermediate_rasters(monkeypatch):
    closed = []
    real_crop = pipeline.center_square_crop
    real_composite = pipeline.composite_asset

    def _tracked(image, label):
        real_close = image.close

        def _close():
            closed.append(label)
            real_close()

        image.close = _close
        return image

    def _crop(image):
        return _tracked(real_crop(image), "square")

    def _composite(spec, source, square, palette):
        return _tracked(real_composite(spec, source, square, palette), spec.name)

    def _failing_select(image, cap, fallback, *, name="asset", **kwargs):
        if name == "square_logo_light":
            raise EncodeFailure("PNG", "disk full")
        return pipeline.select_lossy(image, cap, fallback, name=name, **kwargs)

    monkeypatch.setattr(pipeline, "center_square_crop", _crop)
    monkeypatch.setattr(pipeline, "composite_asset", _composite)
    monkeypatch.setattr(pipeline, "select_format", _failing_select)
    palette = resolve_palette(**HEX)
    with pytest.raises(EncodeFailure):
        render_assets(_logo_with_transparency(), build_asset_specs(CAPS), palette)
    assert "square_logo_light" in closed
    assert "square" in closed
    assert "square_logo_dark" not in closed
