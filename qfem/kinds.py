"""Enumerations shared by the mesh, the parameters and the solvers."""

from __future__ import annotations

import enum

__all__ = [
    "Direction",
    "ParamType",
    "FEType",
    "FEMType",
    "InitialCondition",
    "contains",
]


class Direction(enum.Flag):
    """Coordinate directions a load or boundary condition acts along."""

    Undefined = 0
    X = enum.auto()
    Y = enum.auto()
    Z = enum.auto()


class InitialCondition(enum.Flag):
    """Quantities an initial condition of a dynamic problem sets."""

    Undefined = 0
    U = enum.auto()
    V = enum.auto()
    W = enum.auto()
    Ut = enum.auto()
    Vt = enum.auto()
    Wt = enum.auto()
    Utt = enum.auto()
    Vtt = enum.auto()
    Wtt = enum.auto()


class ParamType(enum.Enum):
    """Kinds of parameters that describe a problem."""

    Undefined = "undefined"
    InitialCondition = "initial_condition"
    BoundaryCondition = "boundary_condition"
    VolumeLoad = "volume_load"
    SurfaceLoad = "surface_load"
    ConcentratedLoad = "concentrated_load"
    PressureLoad = "pressure_load"
    YoungModulus = "young_modulus"
    PoissonRatio = "poisson_ratio"
    Thickness = "thickness"
    Temperature = "temperature"
    Alpha = "alpha"
    Density = "density"
    Damping = "damping"
    StressStrainCurve = "stress_strain_curve"


class FEType(enum.Enum):
    """Finite element types."""

    undefined = "notype"
    fe1d2 = "fe1d2"
    fe2d3 = "fe2d3"
    fe2d4 = "fe2d4"
    fe2d6 = "fe2d6"
    fe2d3p = "fe2d3p"
    fe2d4p = "fe2d4p"
    fe2d6p = "fe2d6p"
    fe3d4 = "fe3d4"
    fe3d8 = "fe3d8"
    fe3d10 = "fe3d10"
    fe3d3s = "fe3d3s"
    fe3d4s = "fe3d4s"
    fe3d6s = "fe3d6s"


class FEMType(enum.Enum):
    """Kind of analysis."""

    StaticProblem = "static"
    DynamicProblem = "dynamic"


def contains(flags, flag) -> bool:
    """Return True if ``flags`` shares any set bit with ``flag``."""
    return bool(flags & flag)