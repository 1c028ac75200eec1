from types import SimpleNamespace

import numpy as np
import pytest

from qfem.messages import ErrorCode, FEMError
from qfem.solvers import CGSolver, Condition, DirectSolver, LZHSolver

SPD = np.array([[4.0, -1.0, 0.0], [-1.0, 4.0, -1.0], [0.0, -1.0, 3.0]])
RHS = np.array([1.0, 2.0, 3.0])


def _mesh(num_vertex=3, freedom=1):
    return SimpleNamespace(num_vertex=num_vertex, freedom=freedom)


def _fill(solver, matrix=SPD, rhs=RHS, is_dynamic=False):
    solver.set_matrix(_mesh(len(rhs)), is_dynamic)
    for (i, j), value in np.ndenumerate(matrix):
        if value != 0.0:
            solver.add_stiffness(value, i, j)
    for i, value in enumerate(rhs):
        solver.add_load(value, i)
    return solver


def _matrix_of(solver):
    return np.array([[solver.get_stiffness(i, j) for j in range(solver.size)] for i in range(solver.size)])


def test_condition_defaults():
    c = Condition()
    assert (c.used, c.value) == (False, 0.0)


def test_set_matrix_sizes_system():
    solver = DirectSolver()
    solver.set_matrix(_mesh(4, 3))
    assert solver.size == 12
    assert len(solver.boundary_conditions) == 12
    assert np.array_equal(solver.load, np.zeros(12))


def test_set_matrix_keeps_boundary_conditions():
    solver = DirectSolver()
    solver.set_matrix(_mesh())
    solver.set_boundary_condition(1, 2.5)
    solver.set_matrix(_mesh())
    assert solver.boundary_conditions[1] == Condition(True, 2.5)


def test_load_accessors():
    solver = DirectSolver()
    solver.set_matrix(_mesh())
    solver.set_load(2.0, 0)
    solver.add_load(3.0, 0)
    assert solver.get_load(0) == 5.0
    assert solver.get_load(1) == 0.0


def test_add_and_set_entries():
    solver = DirectSolver()
    solver.set_matrix(_mesh(), is_dynamic=True)
    solver.add_stiffness(1.5, 0, 1)
    solver.add_stiffness(1.5, 0, 1)
    solver.set_mass(2.0, 1, 1)
    solver.add_damping(0.5, 2, 2)
    assert solver.get_stiffness(0, 1) == 3.0
    assert solver.get_mass(1, 1) == 2.0
    assert solver.get_damping(2, 2) == 0.5
    assert solver.get_stiffness(1, 0) == 0.0


def test_constrained_entries_are_ignored():
    solver = DirectSolver()
    solver.set_matrix(_mesh())
    solver.set_boundary_condition(0, 0.0)
    solver.add_stiffness(7.0, 0, 1)
    solver.add_stiffness(7.0, 2, 0)
    solver.add_stiffness(7.0, 1, 2)
    assert solver.get_stiffness(0, 1) == 0.0
    assert solver.get_stiffness(2, 0) == 0.0
    assert solver.get_stiffness(1, 2) == 7.0


def test_direct_solver_matches_dense_solution():
    solver = _fill(DirectSolver())
    x = solver.solution(1e-12)
    assert np.allclose(x, np.linalg.solve(SPD, RHS))


def test_direct_solver_reads_lower_triangle_only():
    garbage = SPD.copy()
    garbage[0, 2] = 100.0
    solver = _fill(DirectSolver(), matrix=garbage)
    x = solver.solution(1e-12)
    assert np.allclose(x, np.linalg.solve(SPD, RHS))


def test_direct_solver_applies_boundary_condition():
    solver = DirectSolver()
    solver.set_matrix(_mesh())
    solver.set_boundary_condition(0, 1.25)
    for (i, j), value in np.ndenumerate(SPD):
        if value != 0.0:
            solver.add_stiffness(value, i, j)
    x = solver.solution(1e-12)
    assert x[0] == pytest.approx(1.25)
    reduced = SPD[1:, 1:]
    assert np.allclose(x[1:], np.linalg.solve(reduced, np.zeros(2)))


def test_direct_solver_rejects_indefinite_matrix():
    solver = _fill(DirectSolver(), matrix=np.array([[1.0, 2.0], [2.0, 1.0]]), rhs=np.ones(2))
    with pytest.raises(FEMError) as info:
        solver.solution(1e-12)
    assert info.value.code == ErrorCode.EEquationNotSolved


def test_direct_solver_rejects_singular_matrix():
    solver = _fill(DirectSolver(), matrix=np.zeros((2, 2)), rhs=np.ones(2))
    with pytest.raises(FEMError) as info:
        solver.solution(1e-12)
    assert info.value.code == ErrorCode.EEquationNotSolved


def test_lzh_solver_converges():
    solver = _fill(LZHSolver())
    x = solver.solution(1e-20)
    assert np.allclose(x, np.linalg.solve(SPD, RHS), atol=1e-8)


def test_lzh_solver_canceled_returns_none():
    solver = _fill(LZHSolver())
    assert solver.solution(1e-20, is_canceled=True) is None


def test_lzh_solver_accepts_callable_cancel():
    solver = _fill(LZHSolver())
    assert solver.solution(1e-20, is_canceled=lambda: True) is None


def test_cg_solver_converges():
    solver = _fill(CGSolver())
    x = solver.solution(1e-12)
    assert np.allclose(x, np.linalg.solve(SPD, RHS), atol=1e-9)


def test_cg_solver_canceled_returns_none():
    solver = _fill(CGSolver())
    assert solver.solution(1e-12, is_canceled=True) is None


def test_cg_boundary_condition_rewrites_row_and_column():
    solver = _fill(CGSolver())
    solver.set_boundary_condition(0, 0.0)
    assert solver.get_stiffness(0, 1) == 0.0
    assert solver.get_stiffness(1, 0) == 0.0
    assert solver.get_stiffness(0, 0) == SPD[0, 0]
    assert solver.get_load(0) == 0.0
    x = solver.solution(1e-12)
    assert x[0] == pytest.approx(0.0, abs=1e-9)
    assert np.allclose(x, np.linalg.solve(_matrix_of(solver), solver.load), atol=1e-9)


def test_cg_solver_ignores_nothing_when_adding():
    solver = CGSolver()
    solver.set_matrix(_mesh())
    solver.add_stiffness(2.0, 0, 1)
    solver.set_stiffness(3.0, 1, 1)
    assert solver.get_stiffness(0, 1) == 2.0
    assert solver.get_stiffness(1, 1) == 3.0
    assert solver.boundary_conditions == []