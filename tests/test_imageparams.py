import io
import struct

import pytest

from qfem.imageparams import Color, ImageParams


def test_cmyk_white_and_black():
    assert Color.from_cmyk_f(0.0, 0.0, 0.0, 0.0).rgb() == (255, 255, 255)
    assert Color.from_cmyk_f(0.0, 0.0, 0.0, 1.0).rgb() == (0, 0, 0)


def test_cmyk_out_of_range_raises():
    with pytest.raises(ValueError):
        Color.from_cmyk_f(1.5, 0.0, 0.0, 0.0)


def test_color_channel_out_of_range_raises():
    with pytest.raises(ValueError):
        Color(70000, 0, 0)


def test_darker_halves_white():
    white = Color.from_cmyk_f(0.0, 0.0, 0.0, 0.0)
    assert white.darker().rgb() == (127, 127, 127)


@pytest.mark.parametrize("color", [Color(0xFFFF, 0xFFFF, 0xFFFF), Color(0xFFFF, 0, 0), Color(0, 0x8000, 0)])
def test_darker_100_is_identity(color):
    assert color.darker(100) == color


def test_darker_keeps_hue_and_reduces_brightness():
    base = Color.from_cmyk_f(0.39, 0.39, 0.0, 0.0)
    dark = base.darker()
    assert max(dark.rgb()) < max(base.rgb())
    assert dark.red == dark.green
    assert dark.blue > dark.red
    assert dark.alpha == base.alpha


def test_darker_nonpositive_factor_returns_same():
    c = Color(100, 200, 300)
    assert c.darker(0) == c


def test_small_factor_lightens():
    c = Color(0x4000, 0x2000, 0x1000)
    assert c.darker(50).red > c.red


def test_default_background_is_darkened_cmyk():
    params = ImageParams()
    assert params.bkg_color == Color.from_cmyk_f(0.39, 0.39, 0.0, 0.0).darker()


def test_reset_restores_defaults():
    params = ImageParams()
    params.num_color = 3
    params.is_mesh = True
    params.scale = 4.5
    params.bkg_color = Color(1, 2, 3)
    params.reset()
    assert params == ImageParams()


def test_write_read_round_trip():
    params = ImageParams(
        is_mesh=True,
        is_face=False,
        num_color=32,
        angle_x=30,
        angle_y=-45,
        angle_z=90,
        translate_x=0.25,
        translate_y=-1.5,
        translate_z=2.0,
        koff=10.0,
        alpha=0.5,
        scale=2.0,
        is_normal=True,
        bkg_color=Color(0x1234, 0x5678, 0x9ABC, 0x8000),
    )
    buf = io.BytesIO()
    params.write(buf)
    buf.seek(0)
    assert ImageParams.read(buf) == params
    assert buf.read() == b""


def test_write_starts_with_koff_and_alpha_as_doubles():
    params = ImageParams(koff=3.0, alpha=0.75)
    buf = io.BytesIO()
    params.write(buf)
    data = buf.getvalue()
    assert data[:16] == struct.pack(">dd", 3.0, 0.75)
    assert data[16:20] == struct.pack(">i", params.num_color)


def test_read_truncated_raises():
    buf = io.BytesIO()
    ImageParams().write(buf)
    with pytest.raises(EOFError):
        ImageParams.read(io.BytesIO(buf.getvalue()[:-1]))