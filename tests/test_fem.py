import io
import math
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
import pytest

from qfem.fem import FEMStatic
from qfem.kinds import Direction, FEMType, FEType, ParamType
from qfem.messages import ErrorCode, FEMError, Messenger, ProcessCode, say_process, text
from qfem.solvers import DirectSolver

E = 2.0e11
AREA = 1.0e-4
FORCE = 1000.0
LENGTH = 2.0


@dataclass
class Item:
    type: ParamType
    direct: Direction = Direction.Undefined
    expression: Callable = lambda *c: 0.0
    predicate: Callable = lambda *c: True


class Params:
    eps = 1.0e-12
    width = 12
    precision = 5

    def __init__(self, plist, young=E, poisson=0.3, thickness=AREA, density=0.0, damping=0.0):
        self.plist = plist
        self._young = young
        self._poisson = poisson
        self._thickness = thickness
        self._density = density
        self._damping = damping

    def young_modulus(self, x):
        return self._young

    def poisson_ratio(self, x):
        return self._poisson

    def thickness(self, x):
        return self._thickness

    def temperature(self, x):
        return 0.0

    def alpha(self, x):
        return 0.0

    def density(self, x):
        return self._density

    def damping(self, x):
        return self._damping

    def predicate_value(self, item, coord):
        return bool(item.predicate(*coord))

    def expression_value(self, item, coord):
        return float(item.expression(*coord))

    def check_elm(self, coords, item):
        return all(item.predicate(*row, 0.0) for row in coords)

    def check_elm_center(self, coords, item):
        return self.check_elm(coords, item)

    def num_result(self, fe_type):
        return 3

    def name(self, i, fe_type):
        return ["U", "Exx", "Sxx"][i]


class BarMesh:
    freedom = 1
    size_fe = 2
    size_be = 1
    num_be = 0
    is_plate = False
    is_1d = True
    is_3d = False
    fe_type = FEType.fe1d2

    def __init__(self, n_fe=4, length=LENGTH):
        self.xs = np.linspace(0.0, length, n_fe + 1)
        self.num_fe = n_fe
        self.num_vertex = n_fe + 1

    def coord_vertex(self, i):
        return [self.xs[i]]

    def coord_fe(self, i):
        return np.array([[self.xs[i]], [self.xs[i + 1]]])

    def fe_nodes(self, i):
        return [i, i + 1]

    def center_fe(self, i):
        return [(self.xs[i] + self.xs[i + 1]) / 2]

    def fe_volume(self, i):
        return self.xs[i + 1] - self.xs[i]

    def volume_load_share(self):
        return [0.5, 0.5]

    def surface_load_share(self):
        return [1.0]


class BarFE:
    size = 2
    freedom = 1

    def __init__(self):
        self.coord = None
        self.young_modulus = 0.0
        self.poisson_ratio = 0.0
        self.thickness = 0.0
        self.temperature = 0.0
        self.alpha = 0.0
        self.density = 0.0
        self.damping = 0.0
        self.stiffness_matrix = None
        self.load = None

    def _length(self):
        return self.coord[1, 0] - self.coord[0, 0]

    def generate(self, is_static):
        k = self.young_modulus * self.thickness / self._length()
        self.stiffness_matrix = k * np.array([[1.0, -1.0], [-1.0, 1.0]])
        self.load = np.zeros(2)

    def calc(self, u):
        strain = (u[1] - u[0]) / self._length()
        return np.array([[strain, strain], [self.young_modulus * strain] * 2])


@dataclass
class Entry:
    name: str
    values: np.ndarray
    time: float = 0.0


class Results(list):
    solved = False

    def set_result(self, values, name, t=0.0):
        self[:] = [e for e in self if e.name != name]
        self.append(Entry(name, np.array(values, dtype=float), t))

    def add_result(self, values, name):
        self.append(Entry(name, np.array(values, dtype=float)))

    def set_current_solution_time(self):
        self.solved = True


def bar_params(**kwargs):
    plist = [
        Item(ParamType.BoundaryCondition, Direction.X, lambda *c: 0.0, lambda x, t: x == 0.0),
        Item(ParamType.ConcentratedLoad, Direction.X, lambda *c: FORCE, lambda x, t: x == LENGTH),
    ]
    return Params(plist, **kwargs)


def make_fem(n_fe=4, params=None, threads=1, notes=None, messenger=None):
    mesh = BarMesh(n_fe)
    results = Results()
    fem = FEMStatic("bar", mesh, results, notes, fe_factory=BarFE, messenger=messenger,
                    out=io.StringIO())
    fem.set_params(params if params is not None else bar_params())
    fem.set_num_thread(threads)
    return fem, mesh, results


def test_static_bar_displacements_are_linear():
    fem, mesh, results = make_fem()
    fem.start_process()
    u = next(e for e in results if e.name == "U").values
    expected = FORCE * mesh.xs / (E * AREA)
    assert np.allclose(u, expected, rtol=1e-9, atol=1e-15)
    assert results.solved


def test_static_bar_strain_and_stress_are_uniform():
    fem, _, results = make_fem()
    fem.start_process()
    strain = next(e for e in results if e.name == "Exx").values
    stress = next(e for e in results if e.name == "Sxx").values
    assert np.allclose(strain, FORCE / (E * AREA))
    assert np.allclose(stress, FORCE / AREA)


def test_is_calculated_and_lead_time_note():
    notes = []
    fem, _, _ = make_fem(notes=notes)
    assert fem.is_calculated() is False
    fem.start_process()
    assert fem.is_calculated() is True
    assert len(notes) == 1
    assert notes[0].startswith(text("MSG_LEAD_TIME"))
    assert notes[0].endswith("00:00:00")


def test_thread_count_does_not_change_results():
    fem1, _, res1 = make_fem(n_fe=7, threads=1)
    fem3, _, res3 = make_fem(n_fe=7, threads=3)
    fem1.start_process()
    fem3.start_process()
    for a, b in zip(res1, res3):
        assert a.name == b.name
        assert np.allclose(a.values, b.values)


def test_setup_fe_rejects_zero_young_modulus():
    fem, _, _ = make_fem(params=bar_params(young=0.0))
    with pytest.raises(FEMError) as info:
        fem.setup_fe(BarFE(), 0)
    assert info.value.code == ErrorCode.EYoungModulus


def test_setup_fe_rejects_zero_thickness():
    fem, _, _ = make_fem(params=bar_params(thickness=0.0))
    with pytest.raises(FEMError) as info:
        fem.setup_fe(BarFE(), 0)
    assert info.value.code == ErrorCode.EThickness


def test_setup_fe_requires_poisson_ratio_beyond_1d():
    fem, mesh, _ = make_fem(params=bar_params(poisson=0.0))
    fe = BarFE()
    fem.setup_fe(fe, 0)
    assert fe.poisson_ratio == 0.0
    mesh.is_1d = False
    with pytest.raises(FEMError) as info:
        fem.setup_fe(fe, 0)
    assert info.value.code == ErrorCode.EPoissonRatio


def test_setup_fe_dynamic_requires_density():
    fem, _, _ = make_fem()
    fem.fem_type = FEMType.DynamicProblem
    with pytest.raises(FEMError) as info:
        fem.setup_fe(BarFE(), 0)
    assert info.value.code == ErrorCode.EDensity


def test_setup_fe_loads_coordinates():
    fem, mesh, _ = make_fem()
    fe = BarFE()
    fem.setup_fe(fe, 1)
    assert np.array_equal(fe.coord, mesh.coord_fe(1))
    assert fe.young_modulus == E


def test_break_process_aborts_assembly():
    fem, mesh, _ = make_fem()
    fem.solver.set_matrix(mesh)
    fem.break_process()
    with pytest.raises(FEMError) as info:
        fem.calc_global_matrix()
    assert info.value.code == ErrorCode.EAbort


def test_assemble_local_matrix_is_symmetric():
    fem, mesh, _ = make_fem()
    fem.solver.set_matrix(mesh)
    fe = BarFE()
    fem.setup_fe(fe, 1)
    fe.generate(True)
    fem.assemble_local_matrix(fe, 1)
    k = fe.stiffness_matrix
    assert fem.solver.get_stiffness(1, 1) == pytest.approx(k[0, 0])
    assert fem.solver.get_stiffness(1, 2) == pytest.approx(k[0, 1])
    assert fem.solver.get_stiffness(2, 1) == fem.solver.get_stiffness(1, 2)


def test_apply_load_adds_to_solver():
    fem, mesh, _ = make_fem()
    fem.solver.set_matrix(mesh)
    load = np.arange(mesh.num_vertex, dtype=float)
    fem.apply_load(load)
    fem.apply_load(load)
    assert [fem.solver.get_load(i) for i in range(mesh.num_vertex)] == list(2 * load)


def test_calc_load_puts_force_at_tip():
    fem, mesh, _ = make_fem()
    load = fem.calc_load(np.zeros(mesh.num_vertex))
    assert load[-1] == FORCE
    assert np.count_nonzero(load) == 1


def test_unsupported_bar_is_not_solved():
    params = Params([Item(ParamType.ConcentratedLoad, Direction.X, lambda *c: FORCE,
                          lambda x, t: x == LENGTH)])
    fem, _, _ = make_fem(params=params)
    with pytest.raises(FEMError) as info:
        fem.start_process()
    assert info.value.code == ErrorCode.EEquationNotSolved
    assert fem.is_calculated() is False


def test_stress_intensity_matches_stress():
    fem, mesh, results = make_fem()
    fem.start_process()
    si = np.zeros(mesh.num_vertex)
    peak = fem.calc_stress_intensity(si)
    stress = next(e for e in results if e.name == "Sxx").values
    assert np.allclose(si, math.sqrt(0.5) * np.abs(stress))
    assert peak == pytest.approx(si.max())


def test_print_result_summary_filters_by_time():
    fem, _, results = make_fem()
    fem.start_process()
    results.append(Entry("Later", np.array([1.0, 2.0]), 1.0))
    fem.out = io.StringIO()
    fem.print_result_summary()
    lines = fem.out.getvalue().splitlines()
    assert len(lines) == 6
    assert lines[0] == "-" * 69
    assert "min" in lines[1] and "max" in lines[1]
    assert not any(line.startswith("Later") for line in lines)
    fem.out = io.StringIO()
    fem.print_result_summary(1.0)
    assert any(line.startswith("Later") for line in fem.out.getvalue().splitlines())


def test_messenger_reports_stages():
    buffer = io.StringIO()
    messenger = Messenger(out=buffer, spin_interval=0.01)
    fem, mesh, _ = make_fem(messenger=messenger)
    fem.solver = DirectSolver(messenger=messenger)
    fem.start_process()
    output = buffer.getvalue()
    assert say_process(ProcessCode.GeneratingStaticMatrix) in output
    assert say_process(ProcessCode.GeneratingResult) in output
    assert fem.is_calculated() is True


def test_set_num_thread_rejects_zero():
    fem, _, _ = make_fem()
    with pytest.raises(ValueError):
        fem.set_num_thread(0)
    fem.set_num_thread(2)
    assert fem.num_thread == 2