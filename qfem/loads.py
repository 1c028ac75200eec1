"""Nodal loads, boundary conditions and stress intensity of a finite-element model.

The functions work on duck-typed mesh and parameter objects.

The mesh provides:

* ``num_vertex``, ``num_fe``, ``num_be``: numbers of nodes, finite elements
  and boundary elements;
* ``freedom``: degrees of freedom per node;
* ``size_fe``, ``size_be``: nodes per finite or boundary element;
* ``is_plate``: True for plate elements, whose deflection is the first
  degree of freedom;
* ``coord_vertex(i)``: coordinates of node ``i``;
* ``coord_fe(i)``, ``coord_be(i)``: coordinates of the nodes of an element;
* ``center_fe(i)``, ``center_be(i)``: coordinates of an element's centre;
* ``fe_volume(i)``, ``be_volume(i)``: measure of an element;
* ``fe_nodes(i)``, ``be_nodes(i)``: node indices of an element;
* ``volume_load_share()``, ``surface_load_share()``: fraction of an
  element load carried by each of its nodes;
* ``normal(i)``: unit normal of boundary element ``i``.

The parameters provide ``plist``, an iterable of items with ``type``
(:class:`~qfem.kinds.ParamType`) and ``direct``
(:class:`~qfem.kinds.Direction`), and the methods
``predicate_value(item, coord)``, ``expression_value(item, coord)``,
``check_elm(coords, item)`` and ``check_elm_center(coords, item)``.
Point coordinates passed to the parameters end with the time.
"""

from __future__ import annotations

import math
from typing import Callable, Iterator, Optional

import numpy as np

from .kinds import Direction, FEType, ParamType, contains
from .messages import ErrorCode, FEMError

__all__ = [
    "concentrated_load",
    "surface_load",
    "pressure_load",
    "volume_load",
    "boundary_conditions",
    "stress_intensity",
]

AbortCheck = Optional[Callable[[], bool]]


def _check_abort(should_abort: AbortCheck) -> None:
    if should_abort is not None and should_abort():
        raise FEMError(ErrorCode.EAbort)


def _items(params, kind: ParamType, directed: bool = True) -> Iterator:
    for item in params.plist:
        if item.type != kind:
            continue
        if directed and not item.direct:
            continue
        yield item


def _point(coord, t: float) -> list[float]:
    return [*(float(c) for c in coord), float(t)]


def _z_offset(mesh) -> int:
    return 0 if mesh.is_plate else 2


def _apply(load, base: int, direct: Direction, value: float, z_offset: int) -> None:
    if contains(direct, Direction.X):
        load[base] += value
    if contains(direct, Direction.Y):
        load[base + 1] += value
    if contains(direct, Direction.Z):
        load[base + z_offset] += value


def concentrated_load(mesh, params, load, t=0.0, should_abort=None):
    """Add concentrated loads acting at the nodes to ``load`` and return it."""
    items = list(_items(params, ParamType.ConcentratedLoad))
    freedom = mesh.freedom
    z_offset = _z_offset(mesh)
    for i in range(mesh.num_vertex):
        for item in items:
            _check_abort(should_abort)
            coord = _point(mesh.coord_vertex(i), t)
            if not params.predicate_value(item, coord):
                continue
            value = params.expression_value(item, coord)
            _apply(load, i * freedom, item.direct, value, z_offset)
    return load


def surface_load(mesh, params, load, t=0.0, should_abort=None):
    """Add loads distributed over boundary elements to ``load`` and return it."""
    items = list(_items(params, ParamType.SurfaceLoad))
    freedom = mesh.freedom
    z_offset = _z_offset(mesh)
    share = list(mesh.surface_load_share())
    for i in range(mesh.num_be):
        for item in items:
            _check_abort(should_abort)
            if not params.check_elm(mesh.coord_be(i), item):
                continue
            coord = _point(mesh.center_be(i), t)
            value = params.expression_value(item, coord) * mesh.be_volume(i)
            for node, part in zip(mesh.be_nodes(i), share):
                _apply(load, int(node) * freedom, item.direct, value * part, z_offset)
    return load


def pressure_load(mesh, params, load, t=0.0, should_abort=None):
    """Add pressure acting along the boundary normals to ``load`` and return it."""
    items = list(_items(params, ParamType.PressureLoad, directed=False))
    freedom = mesh.freedom
    share = list(mesh.surface_load_share())
    for i in range(mesh.num_be):
        for item in items:
            _check_abort(should_abort)
            if not params.check_elm(mesh.coord_be(i), item):
                continue
            coord = _point(mesh.center_be(i), t)
            value = params.expression_value(item, coord) * mesh.be_volume(i)
            normal = [float(c) for c in mesh.normal(i)]
            for node, part in zip(mesh.be_nodes(i), share):
                base = int(node) * freedom
                if mesh.is_plate:
                    load[base] += value * part
                    continue
                load[base] += value * part * normal[0]
                if freedom > 1:
                    load[base + 1] += value * part * normal[1]
                if freedom > 2:
                    load[base + 2] += value * part * normal[2]
    return load


def volume_load(mesh, params, load, t=0.0, should_abort=None):
    """Add body loads over the finite elements to ``load`` and return it."""
    items = list(_items(params, ParamType.VolumeLoad))
    freedom = mesh.freedom
    z_offset = _z_offset(mesh)
    share = list(mesh.volume_load_share())
    for i in range(mesh.num_fe):
        _check_abort(should_abort)
        for item in items:
            if not params.check_elm_center(mesh.coord_fe(i), item):
                continue
            coord = _point(mesh.center_fe(i), t)
            value = params.expression_value(item, coord) * mesh.fe_volume(i)
            for node, part in zip(mesh.fe_nodes(i), share):
                _apply(load, int(node) * freedom, item.direct, value * part, z_offset)
    return load


def boundary_conditions(mesh, params, solver, should_abort=None):
    """Pass the prescribed nodal values to ``solver``; return how many were set."""
    items = list(_items(params, ParamType.BoundaryCondition))
    freedom = mesh.freedom
    count = 0
    for i in range(mesh.num_vertex):
        for item in items:
            _check_abort(should_abort)
            coord = _point(mesh.coord_vertex(i), 0.0)
            if not params.predicate_value(item, coord):
                continue
            value = params.expression_value(item, coord)
            for axis, offset in ((Direction.X, 0), (Direction.Y, 1), (Direction.Z, 2)):
                if contains(item.direct, axis):
                    solver.set_boundary_condition(i * freedom + offset, value)
                    count += 1
    return count


_PLANE = {FEType.fe2d3, FEType.fe2d4, FEType.fe2d6}
_SOLID = {
    FEType.fe2d3p,
    FEType.fe2d4p,
    FEType.fe2d6p,
    FEType.fe3d4,
    FEType.fe3d8,
    FEType.fe3d10,
}
_SHELL = {FEType.fe3d3s, FEType.fe3d4s, FEType.fe3d6s}


def stress_intensity(fe_type, results, num_vertex) -> np.ndarray:
    """Nodal stress intensity computed from the result functions.

    ``results[k][i]`` is the value of result function ``k`` at node ``i``,
    in the order the element type defines.
    """
    n = int(num_vertex)

    def r(k: int) -> np.ndarray:
        return np.asarray(results[k], dtype=float)[:n]

    c = 0.5 * math.sqrt(2.0)
    fe_type = FEType(fe_type)
    if fe_type == FEType.fe1d2:
        return c * np.abs(r(2))
    if fe_type in _PLANE:
        return c * np.sqrt((r(5) - r(6)) ** 2 + 6.0 * r(7) ** 2)
    if fe_type in _SOLID:
        return c * np.sqrt(
            (r(9) - r(10)) ** 2
            + (r(9) - r(11)) ** 2
            + (r(11) - r(12)) ** 2
            + 6.0 * (r(12) ** 2 + r(13) ** 2 + r(14) ** 2)
        )
    if fe_type in _SHELL:
        return c * np.sqrt(
            (r(12) - r(13)) ** 2
            + (r(12) - r(14)) ** 2
            + (r(13) - r(14)) ** 2
            + 6.0 * (r(15) ** 2 + r(16) ** 2 + r(17) ** 2)
        )
    return np.zeros(n)