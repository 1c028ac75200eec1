"""Global stiffness, mass and damping matrices and the linear solvers.

A solver is sized from a mesh object that exposes ``num_vertex`` (number
of nodes) and ``freedom`` (degrees of freedom per node).
"""

from __future__ import annotations

import contextlib
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import splu

from .messages import ErrorCode, FEMError, ProcessCode

__all__ = ["Condition", "Solver", "DirectSolver", "LZHSolver", "CGSolver"]


@dataclass
class Condition:
    """A prescribed value of one degree of freedom."""

    used: bool = False
    value: float = 0.0


def _as_stop_check(is_canceled) -> Callable[[], bool]:
    if callable(is_canceled):
        return lambda: bool(is_canceled())
    flag = bool(is_canceled)
    return lambda: flag


class Solver(ABC):
    """Holds the global system of equations and solves it."""

    def __init__(self, messenger=None):
        self.messenger = messenger
        self._lock = threading.Lock()
        self.size = 0
        self.stiffness: dict[tuple[int, int], float] = {}
        self.mass: dict[tuple[int, int], float] = {}
        self.damping: dict[tuple[int, int], float] = {}
        self.load = np.zeros(0)
        self.boundary_conditions: list[Condition] = []

    @contextlib.contextmanager
    def _report(self, code: ProcessCode):
        if self.messenger is None:
            yield
            return
        self.messenger.set_process(code)
        try:
            yield
        finally:
            self.messenger.stop()

    def _matrix(self, entries: dict[tuple[int, int], float]) -> sp.csr_matrix:
        if entries:
            keys = np.array(list(entries.keys()), dtype=np.int64)
            values = np.fromiter(entries.values(), dtype=float, count=len(entries))
            rows, cols = keys[:, 0], keys[:, 1]
        else:
            rows = cols = np.zeros(0, dtype=np.int64)
            values = np.zeros(0)
        return sp.csr_matrix((values, (rows, cols)), shape=(self.size, self.size))

    def _is_free(self, i: int, j: int) -> bool:
        return not (self.boundary_conditions[i].used or self.boundary_conditions[j].used)

    def _set(self, entries, value, i, j) -> None:
        i, j = int(i), int(j)
        if self._is_free(i, j):
            with self._lock:
                entries[(i, j)] = float(value)

    def _add(self, entries, value, i, j) -> None:
        i, j = int(i), int(j)
        if self._is_free(i, j):
            with self._lock:
                entries[(i, j)] = entries.get((i, j), 0.0) + float(value)

    @staticmethod
    def _get(entries, i, j) -> float:
        return entries.get((int(i), int(j)), 0.0)

    def set_matrix(self, mesh, is_dynamic=False) -> None:
        """Size the system for ``mesh`` and clear the matrices and load.

        Mass and damping matrices are only created for a dynamic problem.
        Boundary conditions already set are kept.
        """
        self.size = int(mesh.num_vertex) * int(mesh.freedom)
        self.stiffness = {}
        if is_dynamic:
            self.mass = {}
            self.damping = {}
        self.load = np.zeros(self.size)
        extra = self.size - len(self.boundary_conditions)
        if extra > 0:
            self.boundary_conditions.extend(Condition() for _ in range(extra))
        else:
            del self.boundary_conditions[self.size:]

    def set_stiffness(self, value, i, j) -> None:
        self._set(self.stiffness, value, i, j)

    def add_stiffness(self, value, i, j) -> None:
        self._add(self.stiffness, value, i, j)

    def set_mass(self, value, i, j) -> None:
        self._set(self.mass, value, i, j)

    def add_mass(self, value, i, j) -> None:
        self._add(self.mass, value, i, j)

    def set_damping(self, value, i, j) -> None:
        self._set(self.damping, value, i, j)

    def add_damping(self, value, i, j) -> None:
        self._add(self.damping, value, i, j)

    def get_stiffness(self, i, j) -> float:
        return self._get(self.stiffness, i, j)

    def get_mass(self, i, j) -> float:
        return self._get(self.mass, i, j)

    def get_damping(self, i, j) -> float:
        return self._get(self.damping, i, j)

    def solution(self, eps, is_canceled=False):
        """Apply the boundary conditions and solve the system.

        ``is_canceled`` is a flag or a callable polled while iterating.
        Returns the solution vector, or None if it was not obtained.
        """
        for i, condition in enumerate(self.boundary_conditions):
            if condition.used:
                self.stiffness[(i, i)] = 1.0
                self.load[i] = condition.value
        return self._solve(float(eps), _as_stop_check(is_canceled))

    @abstractmethod
    def _solve(self, eps: float, should_stop: Callable[[], bool]):
        """Solve the prepared system."""

    def set_boundary_condition(self, index, value) -> None:
        condition = self.boundary_conditions[int(index)]
        condition.used = True
        condition.value = float(value)

    def set_load(self, value, i) -> None:
        self.load[int(i)] = value

    def add_load(self, value, i) -> None:
        with self._lock:
            self.load[int(i)] += value

    def get_load(self, i) -> float:
        return float(self.load[int(i)])


class DirectSolver(Solver):
    """Sparse Cholesky-type direct solver using the lower triangle of the matrix."""

    def _solve(self, eps, should_stop):
        if self.size == 0:
            return np.zeros(0)
        k = self._matrix(self.stiffness)
        lower = sp.tril(k, format="csc")
        a = (lower + sp.tril(k, -1, format="csc").T).tocsc()
        with self._report(ProcessCode.PreparingSystemEquation):
            try:
                lu = splu(
                    a,
                    permc_spec="MMD_AT_PLUS_A",
                    diag_pivot_thresh=0.0,
                    options={"SymmetricMode": True},
                )
            except RuntimeError as exc:
                raise FEMError(ErrorCode.EEquationNotSolved) from exc
        pivots = lu.U.diagonal()
        if not np.array_equal(lu.perm_r, lu.perm_c) or not np.all(pivots > 0.0):
            raise FEMError(ErrorCode.EEquationNotSolved)
        with self._report(ProcessCode.SolutionSystemEquation):
            x = lu.solve(np.asarray(self.load, dtype=float))
        if not np.all(np.isfinite(x)):
            raise FEMError(ErrorCode.EEquationNotSolved)
        return np.array(x, dtype=float)


class LZHSolver(DirectSolver):
    """Iterative conjugate-gradient solver started from the load vector."""

    def _solve(self, eps, should_stop):
        k = self._matrix(self.stiffness)
        x = np.array(self.load, dtype=float)
        r0 = k @ x - x
        s = r0.copy()
        norm = float(r0 @ r0)
        is_ok = False
        with self._report(ProcessCode.SolutionSystemEquation):
            for _ in range(5 * self.size):
                if should_stop():
                    break
                if norm < eps:
                    is_ok = True
                    break
                r = k @ s
                err = float(r @ s)
                if abs(err) < eps:
                    is_ok = True
                    break
                a = norm / err
                r0 -= a * r
                x -= a * s
                new_norm = float(r0 @ r0)
                a = new_norm / norm
                norm = new_norm
                s = s * a + r0
        return x if is_ok else None


class CGSolver(Solver):
    """Conjugate-gradient solver that folds boundary conditions into the matrix."""

    def _is_free(self, i, j):
        return True

    def set_matrix(self, mesh, is_dynamic=False) -> None:
        """Size the system for ``mesh`` and clear the matrices and load."""
        self.size = int(mesh.num_vertex) * int(mesh.freedom)
        self.stiffness = {}
        if is_dynamic:
            self.mass = {}
            self.damping = {}
        self.load = np.zeros(self.size)
        self.boundary_conditions = []

    def set_boundary_condition(self, index, value) -> None:
        index = int(index)
        value = float(value)
        with self._lock:
            for i in range(self.size):
                if i != index and self.stiffness.get((index, i), 0.0) != 0.0:
                    self.stiffness[(index, i)] = value
                    self.stiffness[(i, index)] = value
            self.load[index] = value * self.stiffness.get((index, index), 0.0)

    def _solve(self, eps, should_stop):
        a = self._matrix(self.stiffness)
        b = np.array(self.load, dtype=float)
        x = b.copy()
        resid = b - a @ x
        d = resid.copy()
        is_ok = bool(np.linalg.norm(resid) <= eps)
        with self._report(ProcessCode.SolutionSystemEquation):
            if not is_ok:
                for _ in range(10 * self.size):
                    if should_stop():
                        break
                    temp = a @ d
                    rr = float(resid @ resid)
                    alpha = rr / float(d @ temp)
                    x += d * alpha
                    resid_old = resid
                    resid = resid - temp * alpha
                    if np.linalg.norm(resid) <= eps:
                        is_ok = True
                        break
                    beta = float(resid @ resid) / float(resid_old @ resid_old)
                    d = resid + d * beta
        return x if is_ok else None