# qfem

A finite element toolkit for structural analysis. It covers linear static
problems, elasto-plastic problems solved by the method of elastic solutions,
and dynamic problems integrated in time with the Wilson theta method.

The analysis classes do not fix a mesh format, a parameter language or a
library of elements. They work on objects that you supply, which only need
the attributes and methods listed in the docstrings of `qfem.loads`,
`qfem.fem`, `qfem.femnonlinear` and `qfem.femdynamic`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `qfem.linalg`: small dense helpers.
  - `norm3` scales a 3-vector to unit length.
  - `create_vector3` gives the unit vector between two points.
  - `cross_product3` gives the normalised cross product.
  - `det` and `inv` work on 1x1, 2x2 and 3x3 matrices.
  - `gauss_solve(a, b, eps)` solves by Gaussian elimination without
    modifying its inputs.
  - `inv` and `gauss_solve` raise `SingularMatrixError` when the matrix
    cannot be inverted.
- `qfem.imageparams`: display settings of a result viewer. `ImageParams` is a
  dataclass of flags, angles, offsets and a background `Color`. `reset()`
  restores the defaults. `write(stream)` and `ImageParams.read(stream)` store
  the settings in a big-endian binary stream. `Color` holds 16-bit RGBA
  channels and has `from_cmyk_f`, `darker` and `rgb`.
- `qfem.kinds`: the enumerations `Direction` and `InitialCondition` (flags),
  and `ParamType`, `FEType` and `FEMType`. `contains(flags, flag)` tests flags.
- `qfem.messages`: English and Russian messages.
  - `set_language(Language.Russian)` and `get_language()` choose the
    language; `text(key)` looks a message up.
  - `say_process` and `say_error` describe a `ProcessCode` or an `ErrorCode`.
  - Failures are raised as `FEMError`, whose `code` is an `ErrorCode`.
  - `Messenger` prints progress to a text stream. It shows a spinner until
    `stop()`, or a percentage counted by `add_progress()` and closed by
    `stop_process()`.
- `qfem.solvers`: the global system of equations.
  - `Solver` holds sparse stiffness, mass and damping matrices, a load vector
    and per-degree-of-freedom boundary conditions (`Condition`).
  - Matrix entries in rows or columns with a boundary condition are ignored
    when assembled. `solution(eps, is_canceled)` puts the prescribed values
    in place and returns the solution vector, or `None`.
  - `DirectSolver` is a sparse direct solver that uses the lower triangle of
    the stiffness matrix; it raises `FEMError` when the system is not
    positive definite.
  - `LZHSolver` is a conjugate-gradient iteration started from the load
    vector.
  - `CGSolver` is a conjugate-gradient solver that writes boundary conditions
    straight into the matrix and load.
- `qfem.loads`: functions that add loads to a load vector.
  - `concentrated_load`, `surface_load`, `pressure_load` and `volume_load`
    add nodal loads.
  - `boundary_conditions` hands prescribed values to a solver.
  - `stress_intensity` computes the nodal stress intensity from the result
    functions of an element type.
- `qfem.fem`: `FEM` is the base class: element set-up, abort, thread count
  and a min/max summary of the results. `FEMStatic` runs the linear static
  analysis. It assembles element matrices in worker threads, applies loads
  and boundary conditions, solves, and then averages element results at the
  nodes.
- `qfem.femnonlinear`: `FEMStaticMVS` runs the elasto-plastic analysis. It
  steps the load by `load_step` percent and corrects each element's Young's
  modulus from its stress-strain curve. It stops when an element reaches the
  end of its curve.
- `qfem.femdynamic`: `FEMDynamic` runs the transient analysis from
  `t0 + th` to `t1`. Velocities and accelerations are obtained by finite
  differences and stored with the time in each result name.

## Examples

```python
from qfem.linalg import det, gauss_solve, inv

a = [[4.0, 1.0], [1.0, 3.0]]
print(det(a))                       # 11.0
print(inv(a))
print(gauss_solve(a, [1.0, 2.0], 1e-10))
```

```python
from types import SimpleNamespace

from qfem.solvers import DirectSolver

mesh = SimpleNamespace(num_vertex=2, freedom=1)
solver = DirectSolver()
solver.set_matrix(mesh, False)
solver.add_stiffness(2.0, 0, 0)
solver.set_boundary_condition(1, 0.0)
solver.add_load(1.0, 0)
print(solver.solution(1e-10, False))   # [0.5 0. ]
```

To run an analysis:

1. Build a mesh object, a parameter object, a results store and an element
   factory.
2. Pass them to `FEMStatic(name, mesh, results, notes, fe_factory=...)`,
   `FEMStaticMVS(..., load_step=..., fe_factory=...)` or `FEMDynamic(...)`.
3. Call `set_params(params)` and then `start_process()`.

`is_calculated()` reports whether the run finished, and `break_process()`
asks a running computation to stop.

## What the package does not do

- It reads no mesh files.
- It has no parser for load, boundary-condition or material expressions.
- It ships no finite element formulations (shape functions, element
  stiffness matrices).
- It does not save results to files.
- It has no command-line program and no graphical viewer: `ImageParams`
  only holds and serialises viewer settings.

All of these are expected from the objects you pass in.