"""Elasto-plastic static analysis by the method of elastic solutions.

The parameters must also provide ``min_stress()``, the stress at which
plastic behaviour starts. They must provide ``stress_strain_curve(x)`` as
well: the stress-strain diagram for an element with node coordinates
``x``, given as rows of ``(stress, strain)`` in increasing order.
"""

from __future__ import annotations

import numpy as np

from .fem import FEMStatic
from .messages import ErrorCode, FEMError, text

__all__ = ["FEMStaticMVS"]


class FEMStaticMVS(FEMStatic):
    """Static analysis that follows a stress-strain diagram step by step.

    The load is first scaled so that the structure stays just inside the
    elastic zone. It is then increased by ``load_step`` percent per step,
    and the Young's modulus of every element is corrected from the
    diagram. The analysis ends when some element reaches the last point
    of its diagram.
    """

    def __init__(self, name, mesh, results, notes=None, *, load_step, fe_factory,
                 solver=None, messenger=None, out=None):
        super().__init__(name, mesh, results, notes, fe_factory=fe_factory,
                         solver=solver, messenger=messenger, out=out)
        self.load_step = float(load_step)
        self.iter_no = 0
        self.is_stop_global = False
        self.is_stop_local = False
        self.si = np.zeros(0)
        self.e0 = np.zeros(0)
        self.index0 = np.zeros(0, dtype=int)

    def setup_fe(self, fe, i) -> None:
        """Set up element ``i`` and correct its modulus from the stress-strain diagram."""
        super().setup_fe(fe, i)
        if self.iter_no == 0:
            return

        x = np.asarray(self.mesh.coord_fe(i), dtype=float)
        curve = np.asarray(self.params.stress_strain_curve(x), dtype=float)
        if curve.ndim != 2 or curve.shape[0] < 2 or curve.shape[1] < 2:
            raise FEMError(ErrorCode.EStressStrainCurve)

        nodes = [int(n) for n in self.mesh.fe_nodes(i)]
        fe_si = max(float(self.si[n]) for n in nodes)

        rows = curve.shape[0]
        if fe_si < curve[1, 0]:
            index = 0
        else:
            index = next(
                (k for k in range(1, rows) if curve[k - 1, 0] < fe_si <= curve[k, 0]),
                rows,
            )
        if index == rows:
            index -= 1
            self.is_stop_global = True

        previous = int(self.index0[i])
        if index != previous:
            new_e = abs(curve[index, 0] / curve[index, 1] - curve[previous, 0] / curve[previous, 1])
            self.is_stop_local = False
        else:
            new_e = fe.young_modulus if self.e0[i] == 0.0 else float(self.e0[i])

        fe.young_modulus = new_e
        fe.poisson_ratio = self.params.poisson_ratio(x)
        self.e0[i] = new_e
        self.index0[i] = index

    def start_process(self) -> None:
        """Run the load-stepping iterations until the diagram is exhausted."""
        mesh = self.mesh
        step = self.load_step * 0.01
        coef = 1.0
        add_count = 0
        count = 1
        max_si = 0.0
        is_loaded = False

        self._print(f"{text('NUM_THREAD')}{self.num_thread}")
        self.is_process_started = True
        self.is_process_aborted = False
        self._begin()

        load = np.zeros(mesh.num_vertex * mesh.freedom)
        self.calc_load(load)
        max_ssc = float(self.params.min_stress())

        self.e0 = np.zeros(mesh.num_fe)
        self.si = np.zeros(mesh.num_vertex)
        self.index0 = np.zeros(mesh.num_fe, dtype=int)

        while True:
            self.is_stop_local = True
            self.solver.set_matrix(mesh)
            self.calc_global_matrix()
            self.apply_load(load)
            self.calc_boundary_condition()
            result = self.solver.solution(self.params.eps, self._should_abort)
            if result is None:
                self._is_process_calculated = False
                self._check_abort()
                return

            if self.iter_no == 0:
                self.gen_results(result)
                max_si = self.calc_stress_intensity(self.si)
                if max_si > max_ssc:
                    # The initial load is too large: reduce it tenfold.
                    coef *= 0.1
                    load *= 0.1
                    self.iter_no -= 1
                elif not is_loaded:
                    # Skip the elastic zone.
                    load_factor = 0.95 * (max_ssc / max_si)
                    coef *= load_factor
                    load *= load_factor
                    is_loaded = True
                    self.iter_no -= 1
                else:
                    load *= step
            elif self.is_stop_local:
                self.gen_results(result, True)
                max_si = self.calc_stress_intensity(self.si)
                self.results.set_result(self.si.copy(), "Si")

            self.print_result_summary()
            self._print(f"{text('MSG_LOAD')} x {coef * (1 + add_count * step):g}")
            self._print(f"{text('MSG_SI')}{max_si:g}")
            self._print(f"{text('MSG_ITERATION')}{count}")
            count += 1

            self.iter_no += 1
            if self.iter_no > 0 and self.is_stop_local:
                add_count += 1
                self.is_stop_local = False
            if self.is_stop_global:
                break

        self.is_process_started = False
        self._is_process_calculated = True

        lines = [
            f"{text('MSG_LOAD')} x {coef * (1 + add_count * step):g}\n",
            f"{text('MSG_SI')}{max_si:g}\n",
            f"{text('MSG_ITERATION')}{count - 1}\n",
            f"{self._lead_time()}\n",
        ]
        if self.notes is not None:
            self.notes.extend(lines)
        self._print(lines[-1])