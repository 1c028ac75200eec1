"""Display settings of the result viewer and their binary serialisation."""

from __future__ import annotations

import colorsys
import struct
from dataclasses import dataclass, field, fields
from typing import BinaryIO

__all__ = ["Color", "ImageParams"]

_MAX = 0xFFFF

_SPEC_INVALID = 0
_SPEC_RGB = 1
_SPEC_CMYK = 3


@dataclass(frozen=True)
class Color:
    """An RGBA colour with 16-bit channels."""

    red: int
    green: int
    blue: int
    alpha: int = _MAX

    def __post_init__(self):
        for name in ("red", "green", "blue", "alpha"):
            value = getattr(self, name)
            if not 0 <= value <= _MAX:
                raise ValueError(f"{name} channel out of range: {value}")

    @classmethod
    def from_cmyk_f(cls, c, m, y, k, a=1.0) -> "Color":
        """Build a colour from CMYK components given as fractions in [0, 1]."""
        for value in (c, m, y, k, a):
            if not 0.0 <= value <= 1.0:
                raise ValueError("CMYK components must lie in [0, 1]")
        return cls(
            round((1.0 - c) * (1.0 - k) * _MAX),
            round((1.0 - m) * (1.0 - k) * _MAX),
            round((1.0 - y) * (1.0 - k) * _MAX),
            round(a * _MAX),
        )

    def _to_hsv(self) -> tuple[float, float, int]:
        h, s, v = colorsys.rgb_to_hsv(self.red / _MAX, self.green / _MAX, self.blue / _MAX)
        return h, s, round(v * _MAX)

    def _from_hsv(self, h: float, s: float, value: int) -> "Color":
        r, g, b = colorsys.hsv_to_rgb(h, s, value / _MAX)
        return Color(round(r * _MAX), round(g * _MAX), round(b * _MAX), self.alpha)

    def _lighter(self, factor: int) -> "Color":
        if factor <= 0:
            return self
        if factor < 100:
            return self.darker(10000 // factor)
        h, s, value = self._to_hsv()
        sat = round(s * _MAX)
        value = value * factor // 100
        if value > _MAX:
            sat = max(sat - (value - _MAX), 0)
            value = _MAX
        return self._from_hsv(h, sat / _MAX, value)

    def darker(self, factor=200) -> "Color":
        """Return a darker colour; ``factor`` 200 halves the brightness."""
        if factor <= 0:
            return self
        if factor < 100:
            return self._lighter(10000 // factor)
        h, s, value = self._to_hsv()
        return self._from_hsv(h, s, value * 100 // factor)

    def rgb(self) -> tuple[int, int, int]:
        """Return the 8-bit red, green and blue components."""
        return self.red >> 8, self.green >> 8, self.blue >> 8


def _default_background() -> Color:
    return Color.from_cmyk_f(0.39, 0.39, 0.0, 0.0).darker()


# Field order and type codes of the serialised form.
_LAYOUT = (
    ("koff", "d"),
    ("alpha", "d"),
    ("num_color", "i"),
    ("is_color", "?"),
    ("is_coord", "?"),
    ("is_light", "?"),
    ("is_double_sided", "?"),
    ("is_mesh", "?"),
    ("is_face", "?"),
    ("is_vertex", "?"),
    ("is_spectral", "?"),
    ("is_negative", "?"),
    ("is_bw", "?"),
    ("is_show_legend", "?"),
    ("bkg_color", "color"),
    ("scale", "d"),
    ("angle_x", "i"),
    ("angle_y", "i"),
    ("angle_z", "i"),
    ("translate_x", "d"),
    ("translate_y", "d"),
    ("translate_z", "d"),
    ("is_normal", "?"),
)

_COLOR_STRUCT = struct.Struct(">bHHHHH")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("unexpected end of image parameters stream")
    return data


def _write_color(stream: BinaryIO, color: Color) -> None:
    stream.write(_COLOR_STRUCT.pack(_SPEC_RGB, color.alpha, color.red, color.green, color.blue, 0))


def _read_color(stream: BinaryIO) -> Color:
    spec, alpha, c1, c2, c3, c4 = _COLOR_STRUCT.unpack(_read_exact(stream, _COLOR_STRUCT.size))
    if spec == _SPEC_RGB:
        return Color(c1, c2, c3, alpha)
    if spec == _SPEC_CMYK:
        return Color.from_cmyk_f(c1 / _MAX, c2 / _MAX, c3 / _MAX, c4 / _MAX, alpha / _MAX)
    if spec == _SPEC_INVALID:
        return Color(0, 0, 0, alpha)
    raise ValueError(f"unsupported colour specification {spec}")


@dataclass
class ImageParams:
    """How the mesh and results are drawn."""

    is_mesh: bool = False
    is_vertex: bool = False
    is_face: bool = True
    is_coord: bool = True
    is_light: bool = True
    is_show_legend: bool = True
    is_normal: bool = False
    is_double_sided: bool = True
    is_color: bool = True
    is_spectral: bool = False
    is_negative: bool = False
    is_bw: bool = False
    num_color: int = 16
    angle_x: int = 0
    angle_y: int = 0
    angle_z: int = 0
    translate_x: float = 0.0
    translate_y: float = 0.0
    translate_z: float = 0.0
    koff: float = 0.0
    alpha: float = 1.0
    scale: float = 1.0
    bkg_color: Color = field(default_factory=_default_background)

    def reset(self) -> None:
        """Restore every setting to its default."""
        fresh = type(self)()
        for f in fields(self):
            setattr(self, f.name, getattr(fresh, f.name))

    def write(self, stream: BinaryIO) -> None:
        """Write the settings to a binary stream in big-endian order."""
        for name, kind in _LAYOUT:
            value = getattr(self, name)
            if kind == "color":
                _write_color(stream, value)
            elif kind == "?":
                stream.write(struct.pack(">b", 1 if value else 0))
            else:
                stream.write(struct.pack(">" + kind, value))

    @classmethod
    def read(cls, stream: BinaryIO) -> "ImageParams":
        """Read settings previously written by :meth:`write`."""
        values = {}
        for name, kind in _LAYOUT:
            if kind == "color":
                values[name] = _read_color(stream)
            elif kind == "?":
                values[name] = struct.unpack(">b", _read_exact(stream, 1))[0] != 0
            else:
                fmt = ">" + kind
                values[name] = struct.unpack(fmt, _read_exact(stream, struct.calcsize(fmt)))[0]
        return cls(**values)