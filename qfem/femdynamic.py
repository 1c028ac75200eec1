"""Dynamic finite-element analysis integrated in time by the Wilson theta method.

Besides what :mod:`qfem.fem` needs, the parameters provide the time range
``t0`` and ``t1``, the time step ``th`` and the Wilson parameter ``theta``;
``names`` (optional) holds the variable names, the fourth being time.
The mesh also provides ``dimension``. Initial-condition items of the
parameter list carry ``initial_condition``
(:class:`~qfem.kinds.InitialCondition` flags); their expressions are
evaluated at the origin at time zero. The results store's ``set_result``
takes the time of the result as a third argument.

Elements may provide ``mass_matrix`` and ``damping_matrix``; otherwise
their stiffness matrix is assembled into all three global matrices.
"""

from __future__ import annotations

import numpy as np

from .fem import FEMStatic
from .kinds import FEMType, InitialCondition, ParamType, contains
from .messages import text

__all__ = ["FEMDynamic"]

_INITIAL_ROWS = (
    InitialCondition.U,
    InitialCondition.V,
    InitialCondition.W,
    InitialCondition.Ut,
    InitialCondition.Vt,
    InitialCondition.Wt,
    InitialCondition.Utt,
    InitialCondition.Vtt,
    InitialCondition.Wtt,
)


class FEMDynamic(FEMStatic):
    """Transient analysis (Hamilton-Ostrogradsky principle)."""

    fem_type = FEMType.DynamicProblem

    def __init__(self, name, mesh, results, notes=None, *, fe_factory, solver=None,
                 messenger=None, out=None):
        super().__init__(name, mesh, results, notes, fe_factory=fe_factory,
                         solver=solver, messenger=messenger, out=out)
        self.t = 0.0
        # U, V, W, Ut, Vt, Wt, Utt, Vtt, Wtt of the previous step, by node.
        self.u0 = np.zeros((len(_INITIAL_ROWS), 0))

    def start_process(self) -> None:
        """Step through time from ``t0 + th`` to ``t1``, solving at every step."""
        params = self.params
        self._begin()
        self.t = params.t0 + params.th
        self.is_process_started = True
        self.is_process_aborted = False
        self.solver.set_matrix(self.mesh, True)

        self.calc_global_matrix(False)
        self.create_dynamic_matrix(params.th, params.theta)
        self.initial_condition()

        self._print(text("MSG_TIME_ITERATION"))
        names = getattr(params, "names", ("x", "y", "z", "t"))
        while self.t <= params.t1:
            self._print(f"{names[3]}={self.t:g}")
            self.create_dynamic_vector()
            self.calc_boundary_condition()
            result = self.solver.solution(params.eps, self._should_abort)
            if result is not None:
                self.gen_results(result)
            self._check_abort()
            self.print_result_summary(self.t)
            if abs(params.t1 - (self.t + params.th)) <= params.eps:
                self.t = params.t1
            else:
                self.t += params.th

        self.is_process_started = False
        self._is_process_calculated = True
        note = self._lead_time()
        if self.notes is not None:
            self.notes.append(note)
        self._print(note)

    def assemble_local_matrix(self, fe, i) -> None:
        """Add the element's stiffness, mass and damping matrices and its load."""
        freedom = fe.freedom
        nodes = [int(n) for n in self.mesh.fe_nodes(i)]
        size = fe.size * freedom
        index = [nodes[l // freedom] * freedom + l % freedom for l in range(size)]
        k = np.asarray(fe.stiffness_matrix, dtype=float)
        m = np.asarray(getattr(fe, "mass_matrix", k), dtype=float)
        c = np.asarray(getattr(fe, "damping_matrix", k), dtype=float)
        fe_load = np.asarray(fe.load, dtype=float)
        solver = self.solver
        for l, gl in enumerate(index):
            for kk in range(l, size):
                gk = index[kk]
                solver.add_stiffness(k[l, kk], gl, gk)
                solver.add_mass(m[l, kk], gl, gk)
                solver.add_damping(c[l, kk], gl, gk)
                if l != kk:
                    solver.add_stiffness(k[l, kk], gk, gl)
                    solver.add_mass(m[l, kk], gk, gl)
                    solver.add_damping(c[l, kk], gk, gl)
            solver.add_load(fe_load[l], gl)

    def initial_condition(self) -> np.ndarray:
        """Fill the state of the previous step from the initial conditions."""
        self.u0 = np.zeros((len(_INITIAL_ROWS), self.mesh.num_vertex))
        origin = [0.0, 0.0, 0.0, 0.0]
        for item in self.params.plist:
            if item.type != ParamType.InitialCondition:
                continue
            value = self.params.expression_value(item, origin)
            for row, flag in enumerate(_INITIAL_ROWS):
                if contains(item.initial_condition, flag):
                    self.u0[row, :] = value
        return self.u0

    def calc_dynamic_result(self, results) -> None:
        """Fill the velocity and acceleration rows of ``results`` by finite differences.

        The displacements, velocities and accelerations are kept for the next step.
        """
        dim = self.mesh.dimension
        nv = self.mesh.num_vertex
        th = self.params.th
        rows = results.shape[0]
        for i in range(dim):
            ut = (results[i, :nv] - self.u0[i, :nv]) / th
            utt = (ut - self.u0[dim + i, :nv]) / th
            results[rows - 2 * dim + i, :nv] = ut
            results[rows - dim + i, :nv] = utt
            self.u0[i, :nv] = results[i, :nv]
            self.u0[dim + i, :nv] = ut
            self.u0[2 * dim + i, :nv] = utt

    def gen_results(self, u, is_add=False) -> None:
        """Compute and store the results of the current time step."""
        res = self.calc_result(u)
        self.calc_dynamic_result(res)
        fe_type = self.mesh.fe_type
        for i in range(self.params.num_result(fe_type)):
            name = f"{self.params.name(i, fe_type)}({self.t:g})"
            self.results.set_result(res[i], name, self.t)
        self.results.set_current_solution_time()

    def _size(self) -> int:
        return self.mesh.num_vertex * self.mesh.freedom

    def create_dynamic_vector(self) -> np.ndarray:
        """Add the load at the current time and the inertia and damping terms."""
        params = self.params
        nv = self.mesh.num_vertex
        freedom = self.mesh.freedom
        dim = self.mesh.dimension
        size = self._size()
        theta, th = params.theta, params.th
        k1 = 3.0 / (theta * th)
        k2 = 6.0 / (theta * theta * th * th)
        k3 = 0.5 * theta * th

        load = np.zeros(size)
        self.calc_load(load, self.t)

        rows = self.u0.shape[0]
        u1 = np.zeros(size)
        u2 = np.zeros(size)
        for j in range(freedom):
            u = self.u0[j, :nv]
            ut = self.u0[rows - 2 * dim + j, :nv]
            utt = self.u0[rows - dim + j, :nv]
            u1[j::freedom] = (k1 * u + 2.0 * k2 * ut + 2.0 * utt) / k2
            u2[j::freedom] = (k2 * u + 2.0 * ut + k3 * utt) / k1

        mass = np.array([[self.solver.get_mass(i, j) for j in range(size)] for i in range(size)])
        damping = np.array([[self.solver.get_damping(i, j) for j in range(size)] for i in range(size)])
        load += mass.reshape(size, size) @ u1 + damping.reshape(size, size) @ u2
        self.apply_load(load)
        return load

    def create_dynamic_matrix(self, th, theta) -> None:
        """Add the mass and damping terms of the Wilson scheme to the stiffness matrix."""
        k1 = 3.0 / (theta * th)
        k2 = 6.0 / (theta * theta * th * th)
        size = self._size()
        for i in range(size):
            for j in range(size):
                value = k1 * self.solver.get_damping(i, j) + k2 * self.solver.get_mass(i, j)
                if value != 0.0:
                    self.solver.add_stiffness(value, i, j)