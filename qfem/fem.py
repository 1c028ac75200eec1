"""Finite-element analysis driven by the principle of virtual displacements.

The analysis works on duck-typed collaborators.

The mesh provides everything :mod:`qfem.loads` needs. It also provides
``fe_type`` (:class:`~qfem.kinds.FEType`) and the flags ``is_1d`` and
``is_3d``.

The parameters provide what :mod:`qfem.loads` needs and also:

* the material functions ``young_modulus(x)``, ``poisson_ratio(x)``,
  ``thickness(x)``, ``temperature(x)``, ``alpha(x)``, ``density(x)`` and
  ``damping(x)``, where ``x`` holds the node coordinates of an element;
* ``num_result(fe_type)`` and ``name(i, fe_type)``: how many result
  functions an element type has, and the name of each;
* ``eps``, plus the optional ``width`` and ``precision`` used for printing.

A finite element, built by the ``fe_factory`` callable, has the writable
attributes ``coord``, ``young_modulus``, ``poisson_ratio``, ``thickness``,
``temperature``, ``alpha``, ``density`` and ``damping``. It also has
``size`` (number of nodes), ``freedom``, ``generate(is_static)``, which
fills ``stiffness_matrix`` and ``load``, and ``calc(u)``. The ``calc``
method returns the non-displacement results as rows over the element's
nodes.

The results store is a sequence of entries with ``name``, ``values`` and
``time``. It has ``clear()``, ``set_result(values, name)``,
``add_result(values, name)`` and ``set_current_solution_time()``.
"""

from __future__ import annotations

import contextlib
import os
import sys
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from . import loads
from .kinds import FEMType, ParamType
from .messages import ErrorCode, FEMError, ProcessCode, text
from .solvers import DirectSolver

__all__ = ["FEM", "FEMStatic"]


class FEM(ABC):
    """Common state and element set-up of a finite-element analysis."""

    fem_type = FEMType.StaticProblem

    def __init__(self, name, mesh, results, notes=None, *, messenger=None, out=None):
        self.name = name
        self.mesh = mesh
        self.results = results
        self.notes = notes
        self.params = None
        self.messenger = messenger
        self.out = out if out is not None else sys.stdout
        self.num_thread = max(1, (os.cpu_count() or 2) - 1)
        self.is_process_started = False
        self.is_process_aborted = False
        self._is_process_calculated = False
        self._timer = time.monotonic()

    def _begin(self) -> None:
        self._timer = time.monotonic()

    def _lead_time(self) -> str:
        elapsed = int(time.monotonic() - self._timer)
        hour = elapsed // 3600
        minute = (elapsed % 3600) // 60
        sec = elapsed % 60
        return f"{text('MSG_LEAD_TIME')}{hour:02d}:{minute:02d}:{sec:02d}"

    def _should_abort(self) -> bool:
        return self.is_process_aborted

    def _check_abort(self) -> None:
        if self.is_process_aborted:
            raise FEMError(ErrorCode.EAbort)

    def _print(self, line: str = "") -> None:
        print(line, file=self.out)

    def setup_fe(self, fe, i) -> None:
        """Load the coordinates and material properties of element ``i`` into ``fe``."""
        x = np.asarray(self.mesh.coord_fe(i), dtype=float)
        params = self.params
        fe.coord = x
        value = params.young_modulus(x)
        if value == 0.0:
            raise FEMError(ErrorCode.EYoungModulus)
        fe.young_modulus = value
        value = params.poisson_ratio(x)
        if value == 0.0 and not self.mesh.is_1d:
            raise FEMError(ErrorCode.EPoissonRatio)
        fe.poisson_ratio = value
        if not self.mesh.is_3d:
            value = params.thickness(x)
            if value == 0.0:
                raise FEMError(ErrorCode.EThickness)
            fe.thickness = value
        fe.temperature = params.temperature(x)
        fe.alpha = params.alpha(x)
        if self.fem_type == FEMType.DynamicProblem:
            value = params.density(x)
            if value == 0.0:
                raise FEMError(ErrorCode.EDensity)
            fe.density = value
            value = params.damping(x)
            if value == 0.0:
                raise FEMError(ErrorCode.EDamping)
            fe.damping = value

    def break_process(self) -> None:
        """Ask a running computation to stop."""
        self.is_process_aborted = True

    def set_params(self, params) -> None:
        self.params = params

    def set_num_thread(self, n) -> None:
        n = int(n)
        if n < 1:
            raise ValueError("the number of threads must be positive")
        self.num_thread = n

    def print_result_summary(self, t=0.0) -> None:
        """Print the minimum and maximum of every result function at time ``t``."""
        width = int(getattr(self.params, "width", 12))
        precision = int(getattr(self.params, "precision", 5))
        line = "-" * 69
        head_min = "\tmin"
        head_max = "\tmax"
        self._print(line)
        self._print(f"{' ':<10}{head_min:<{width}} {head_max:<{width}}")
        for entry in self.results:
            if entry.time != t:
                continue
            values = np.asarray(entry.values, dtype=float)
            if values.size == 0:
                continue
            self._print(
                f"{entry.name:<10}\t{values.min():<+{width}.{precision}e}"
                f"\t{values.max():<+{width}.{precision}e}"
            )
        self._print(line)

    def is_calculated(self) -> bool:
        return self._is_process_calculated

    @abstractmethod
    def start_process(self) -> None:
        """Run the whole computation."""


class FEMStatic(FEM):
    """Static linear analysis (Lagrange variational principle)."""

    fem_type = FEMType.StaticProblem

    def __init__(self, name, mesh, results, notes=None, *, fe_factory, solver=None,
                 messenger=None, out=None):
        super().__init__(name, mesh, results, notes, messenger=messenger, out=out)
        self.fe_factory = fe_factory
        self.solver = solver if solver is not None else DirectSolver(messenger=messenger)

    @contextlib.contextmanager
    def _stage(self, code: ProcessCode, total: int, step: int = 1):
        if self.messenger is not None:
            self.messenger.set_process(code, 1, total, step)
        yield
        if self.messenger is not None:
            self.messenger.stop_process()

    def _tick(self) -> None:
        if self.messenger is not None:
            self.messenger.add_progress()

    def _run_chunks(self, total: int, worker) -> list:
        n = self.num_thread
        step = total // n
        bounds = [(k * step, total if k == n - 1 else (k + 1) * step) for k in range(n)]
        if n == 1:
            return [worker(*bounds[0])]
        with ThreadPoolExecutor(max_workers=n) as pool:
            futures = [pool.submit(worker, begin, end) for begin, end in bounds]
            return [future.result() for future in futures]

    def _has_param(self, kind: ParamType) -> bool:
        return any(item.type == kind for item in self.params.plist)

    def start_process(self) -> None:
        """Assemble and solve the static problem, then compute the results."""
        mesh = self.mesh
        self.is_process_started = True
        self.is_process_aborted = False
        self.solver.set_matrix(mesh)
        self._print(f"{text('NUM_THREAD')}{self.num_thread}")

        self._begin()
        load = np.zeros(mesh.num_vertex * mesh.freedom)
        self.calc_load(load)
        self.calc_boundary_condition()
        self.calc_global_matrix()
        self.apply_load(load)

        res = self.solver.solution(self.params.eps, self._should_abort)
        if res is None:
            self._check_abort()
            raise FEMError(ErrorCode.EEquationNotSolved)
        self.gen_results(res)
        self._check_abort()
        self.is_process_started = False
        self._is_process_calculated = True

        note = self._lead_time()
        if self.notes is not None:
            self.notes.append(note)
        self._print(note)
        self.print_result_summary()

    def calc_load(self, load, t=0.0):
        """Add every kind of nodal load at time ``t`` to ``load`` and return it."""
        mesh = self.mesh
        stages = (
            (ParamType.ConcentratedLoad, ProcessCode.GeneratingConcentratedLoad,
             mesh.num_vertex, loads.concentrated_load),
            (ParamType.SurfaceLoad, ProcessCode.GeneratingSurfaceLoad,
             mesh.num_be, loads.surface_load),
            (ParamType.VolumeLoad, ProcessCode.GeneratingVolumeLoad,
             mesh.num_fe, loads.volume_load),
            (ParamType.PressureLoad, ProcessCode.GeneratingPressureLoad,
             mesh.num_be, loads.pressure_load),
        )
        for kind, code, total, compute in stages:
            if self._has_param(kind):
                with self._stage(code, total):
                    compute(mesh, self.params, load, t, self._should_abort)
        return load

    def calc_boundary_condition(self) -> None:
        """Pass the boundary conditions to the solver."""
        if self._has_param(ParamType.BoundaryCondition):
            with self._stage(ProcessCode.CalcBoundaryCondition, self.mesh.num_vertex):
                loads.boundary_conditions(self.mesh, self.params, self.solver, self._should_abort)

    def calc_global_matrix(self, is_static=True) -> None:
        """Build the local matrices of every element and assemble them."""
        code = ProcessCode.GeneratingStaticMatrix if is_static else ProcessCode.GeneratingDynamicMatrix

        def work(begin: int, end: int) -> None:
            fe = self.fe_factory()
            for i in range(begin, end):
                self._tick()
                self._check_abort()
                self.setup_fe(fe, i)
                fe.generate(is_static)
                self.assemble_local_matrix(fe, i)

        with self._stage(code, self.mesh.num_fe, 5):
            self._run_chunks(self.mesh.num_fe, work)

    def _global_indices(self, fe, i) -> list[int]:
        freedom = self.mesh.freedom
        nodes = [int(n) for n in self.mesh.fe_nodes(i)]
        size = fe.size * fe.freedom
        return [nodes[l // freedom] * freedom + l % freedom for l in range(size)]

    def assemble_local_matrix(self, fe, i) -> None:
        """Add the stiffness matrix and load of element ``i`` to the global system."""
        index = self._global_indices(fe, i)
        k = np.asarray(fe.stiffness_matrix, dtype=float)
        fe_load = np.asarray(fe.load, dtype=float)
        for l, gl in enumerate(index):
            for kk in range(l, len(index)):
                gk = index[kk]
                self.solver.add_stiffness(k[l, kk], gl, gk)
                if l != kk:
                    self.solver.add_stiffness(k[l, kk], gk, gl)
            self.solver.add_load(fe_load[l], gl)

    def apply_load(self, load) -> None:
        """Add the precomputed nodal load vector to the solver's load."""
        size = self.mesh.num_vertex * self.mesh.freedom
        with self._stage(ProcessCode.UsingLoad, size):
            for i in range(size):
                self._tick()
                self._check_abort()
                self.solver.add_load(load[i], i)

    def calc_result(self, u) -> np.ndarray:
        """Return every result function at every node for displacements ``u``.

        Row ``k`` holds result function ``k``; the first rows are the
        displacements, the others are averaged over the elements sharing a node.
        """
        mesh = self.mesh
        freedom = mesh.freedom
        nv = mesh.num_vertex
        nr = self.params.num_result(mesh.fe_type)
        u = np.asarray(u, dtype=float)
        nodal_u = u.reshape(nv, freedom)
        res = np.zeros((nr, nv))
        res[:freedom] = nodal_u.T

        def work(begin: int, end: int):
            fe = self.fe_factory()
            part = np.zeros((nr, nv))
            counter = np.zeros(nv, dtype=int)
            for i in range(begin, end):
                self._tick()
                self._check_abort()
                self.setup_fe(fe, i)
                nodes = [int(n) for n in mesh.fe_nodes(i)]
                fe_res = np.asarray(fe.calc(nodal_u[nodes].ravel()), dtype=float)
                if nr <= freedom:
                    continue
                for j, node in enumerate(nodes):
                    part[freedom:nr, node] += fe_res[: nr - freedom, j]
                    counter[node] += 1
            return part, counter

        with self._stage(ProcessCode.GeneratingResult, mesh.num_fe, 5):
            counter = np.zeros(nv, dtype=int)
            for part, count in self._run_chunks(mesh.num_fe, work):
                res += part
                counter += count
            used = counter > 0
            averaged = res[freedom:]
            averaged[:, used] /= counter[used]
            averaged[np.abs(averaged) < self.params.eps] = 0.0
        return res

    def _save_result(self, res, is_add: bool) -> None:
        fe_type = self.mesh.fe_type
        if not is_add:
            self.results.clear()
        for i in range(self.params.num_result(fe_type)):
            name = self.params.name(i, fe_type)
            if is_add:
                self.results.add_result(res[i], name)
            else:
                self.results.set_result(res[i], name)

    def gen_results(self, u, is_add=False) -> None:
        """Compute the results for ``u`` and store them."""
        res = self.calc_result(u)
        self._save_result(res, is_add)
        self.results.set_current_solution_time()

    def calc_stress_intensity(self, si) -> float:
        """Fill ``si`` with the nodal stress intensity and return its maximum."""
        nv = self.mesh.num_vertex
        functions = [np.asarray(entry.values, dtype=float) for entry in self.results]
        si[:] = loads.stress_intensity(self.mesh.fe_type, functions, nv)
        return float(np.max(si))