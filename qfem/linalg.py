"""Small dense linear-algebra helpers used by the finite elements."""

from __future__ import annotations

import numpy as np

__all__ = [
    "SingularMatrixError",
    "norm3",
    "create_vector3",
    "cross_product3",
    "det",
    "inv",
    "gauss_solve",
]


class SingularMatrixError(ArithmeticError):
    """Raised when a matrix or a linear system cannot be inverted."""


def _as_vector3(v) -> np.ndarray:
    a = np.asarray(v, dtype=float).ravel()
    if a.size < 3:
        raise ValueError("expected a vector with at least three components")
    return a[:3].copy()


def _as_small_square(m) -> np.ndarray:
    a = np.asarray(m, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1] or not 1 <= a.shape[0] <= 3:
        raise ValueError("expected a square matrix of size 1, 2 or 3")
    return a


def norm3(v) -> np.ndarray:
    """Return the first three components of ``v`` scaled to unit length."""
    a = _as_vector3(v)
    length = float(np.sqrt(a @ a))
    if length == 0.0:
        raise ValueError("cannot normalise a zero-length vector")
    return a / length


def create_vector3(xi, xj) -> np.ndarray:
    """Return the unit vector pointing from point ``xi`` to point ``xj``."""
    return norm3(_as_vector3(xj) - _as_vector3(xi))


def cross_product3(a, b) -> np.ndarray:
    """Return the normalised cross product of two 3-vectors."""
    u = _as_vector3(a)
    w = _as_vector3(b)
    res = np.array(
        [
            u[1] * w[2] - u[2] * w[1],
            u[2] * w[0] - u[0] * w[2],
            u[0] * w[1] - u[1] * w[0],
        ]
    )
    return norm3(res)


def _det2(m: np.ndarray) -> float:
    return float(m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0])


def _det3(m: np.ndarray) -> float:
    return float(
        m[0, 0] * m[1, 1] * m[2, 2]
        + m[0, 1] * m[1, 2] * m[2, 0]
        + m[0, 2] * m[1, 0] * m[2, 1]
        - m[0, 2] * m[1, 1] * m[2, 0]
        - m[0, 0] * m[1, 2] * m[2, 1]
        - m[0, 1] * m[1, 0] * m[2, 2]
    )


def det(m) -> float:
    """Determinant of a 1x1, 2x2 or 3x3 matrix."""
    a = _as_small_square(m)
    size = a.shape[0]
    if size == 1:
        return float(a[0, 0])
    return _det2(a) if size == 2 else _det3(a)


def inv(m) -> np.ndarray:
    """Inverse of a 1x1, 2x2 or 3x3 matrix by the adjugate formula."""
    a = _as_small_square(m)
    size = a.shape[0]
    if size == 1:
        if a[0, 0] == 0.0:
            raise SingularMatrixError("matrix is singular")
        return np.array([[1.0 / a[0, 0]]])
    if size == 2:
        d = _det2(a)
        adj = np.array([[a[1, 1], -a[0, 1]], [-a[1, 0], a[0, 0]]])
    else:
        d = _det3(a)
        adj = np.array(
            [
                [
                    a[1, 1] * a[2, 2] - a[1, 2] * a[2, 1],
                    a[0, 2] * a[2, 1] - a[0, 1] * a[2, 2],
                    a[0, 1] * a[1, 2] - a[0, 2] * a[1, 1],
                ],
                [
                    a[1, 2] * a[2, 0] - a[1, 0] * a[2, 2],
                    a[0, 0] * a[2, 2] - a[0, 2] * a[2, 0],
                    a[0, 2] * a[1, 0] - a[0, 0] * a[1, 2],
                ],
                [
                    a[1, 0] * a[2, 1] - a[1, 1] * a[2, 0],
                    a[0, 1] * a[2, 0] - a[0, 0] * a[2, 1],
                    a[0, 0] * a[1, 1] - a[0, 1] * a[1, 0],
                ],
            ]
        )
    if d == 0.0:
        raise SingularMatrixError("matrix is singular")
    return adj * (1.0 / d)


def gauss_solve(a, b, eps=1.0e-10) -> np.ndarray:
    """Solve ``a @ x = b`` by Gaussian elimination and return ``x``.

    The inputs are not modified. Raises SingularMatrixError when a pivot
    smaller than ``eps`` remains after elimination.
    """
    m = np.array(a, dtype=float)
    x = np.array(b, dtype=float).ravel()
    if m.ndim != 2 or m.shape[0] != m.shape[1] or m.shape[0] == 0:
        raise ValueError("expected a non-empty square matrix")
    n = m.shape[0]
    if x.size != n:
        raise ValueError("right-hand side does not match the matrix size")

    for i in range(n - 1):
        if abs(m[i, i]) < eps:
            for j in range(i + 1, n):
                if abs(m[j, i]) < eps:
                    continue
                m[[i, j]] = m[[j, i]]
                x[[i, j]] = x[[j, i]]
        k1 = m[i, i]
        for j in range(i + 1, n):
            k2 = m[j, i]
            if abs(k2) < eps:
                continue
            m[j, i:] -= k2 * m[i, i:] / k1
            x[j] -= k2 * x[i] / k1

    if abs(m[n - 1, n - 1]) < eps:
        raise SingularMatrixError("system of equations is singular")
    x[n - 1] /= m[n - 1, n - 1]
    for i in range(n - 2, -1, -1):
        x[i] -= x[i + 1:] @ m[i, i + 1:]
        if abs(m[i, i]) < eps:
            raise SingularMatrixError("system of equations is singular")
        x[i] /= m[i, i]
    return x