"""
Fixed-point solvers for self-consistent-field (SCF) problems in JAX.

The SCF map F: rho_in -> rho_out is treated as an opaque callable. This
package provides:
- Damped (simple-mixing) fixed-point iteration
- Anderson-accelerated fixed-point iteration with least-squares extrapolation
- Residual preconditioning, including the Kerker preconditioner
- Model fixed-point problems for testing convergence behaviour
"""

from scfsolve.config import SolverConfig
from scfsolve.fixedpoint import DampedFixedPointSolver, SolverResult
from scfsolve.anderson import AndersonFixedPointSolver, SingularExtrapolation
from scfsolve.history import ResidualHistory
from scfsolve.preconditioner import PreconditionedResidual, KerkerPreconditioner
from scfsolve.vectorspace import ShapeMismatch
from scfsolve.driver import SCFCalculator, scf_fixpoint

__version__ = "0.1.0"
__all__ = [
    "SolverConfig",
    "SolverResult",
    "DampedFixedPointSolver",
    "AndersonFixedPointSolver",
    "ResidualHistory",
    "PreconditionedResidual",
    "KerkerPreconditioner",
    "ShapeMismatch",
    "SingularExtrapolation",
    "SCFCalculator",
    "scf_fixpoint",
]
