"""Finite element analysis of elastic, elasto-plastic and dynamic problems.

Submodules: linalg, imageparams, kinds, messages, solvers, loads, fem,
femnonlinear and femdynamic.
"""

__version__ = "0.1.0"