"""SCF-facing entry points.

Glue between an SCF driver that supplies F and an initial density and the
fixed-point solvers: picks the solver, composes preconditioning and damping
into the map, and reports the result.
"""

from dataclasses import dataclass
from typing import Callable

import jax.numpy as jnp

from scfsolve.anderson import AndersonFixedPointSolver
from scfsolve.config import SolverConfig
from scfsolve.fixedpoint import DampedFixedPointSolver, FixedPointSolver, SolverResult
from scfsolve.preconditioner import PreconditionedResidual
from scfsolve.vectorspace import norm

SOLVERS = {
    "damped": DampedFixedPointSolver,
    "anderson": AndersonFixedPointSolver,
}


def get_solver(name: str) -> FixedPointSolver:
    """Instantiate a solver by name ("damped" or "anderson")."""
    try:
        return SOLVERS[name]()
    except KeyError:
        raise ValueError(f"Unknown solver '{name}'. "
                         f"Available: {', '.join(sorted(SOLVERS))}") from None


def scf_fixpoint(
    f: Callable[[jnp.ndarray], jnp.ndarray],
    initial_state: jnp.ndarray,
    solver: str = "anderson",
    preconditioner: Callable[[jnp.ndarray], jnp.ndarray] | None = None,
    damping: float = 1.0,
    maxiter: int = 100,
    tol: float = 1e-6,
    history_size: int | None = None,
    verbose: bool = False,
) -> SolverResult:
    """Solve F(rho) = rho.

    Args:
        f: SCF map rho_in -> rho_out.
        initial_state: Initial density guess.
        solver: "damped" or "anderson".
        preconditioner: Optional residual preconditioner (e.g. Kerker).
        damping: Step scale. The damped solver applies it itself; for
            Anderson it is folded into the pre-composed map and must be > 0.
        maxiter: Maximum iterations.
        tol: Convergence tolerance on the preconditioned residual norm |P R|,
            for either solver.
        history_size: Anderson window (None for unbounded).
        verbose: Print convergence info.

    Returns:
        SolverResult.
    """
    fp_solver = get_solver(solver)
    effective = PreconditionedResidual.from_map(f, preconditioner)

    if isinstance(fp_solver, DampedFixedPointSolver):
        g = effective.fixpoint_map()
    else:
        if damping <= 0.0:
            raise ValueError(f"damping must be > 0 for solver '{solver}', got {damping}")
        g = effective.fixpoint_map(damping)
        # The map's residual is damping * P R
        tol = tol * damping

    config = SolverConfig(
        maxiter=maxiter,
        tol=tol,
        damping=damping,
        history_size=history_size,
        verbose=verbose,
    )
    return fp_solver.solve(g, initial_state, config)


@dataclass
class SCFCalculator:
    """High-level interface for running an SCF fixed-point problem.

    Example usage:
        calc = SCFCalculator(solver="anderson", tol=1e-8,
                             preconditioner=KerkerPreconditioner.from_lattice(a, grid))
        result = calc.run(f, rho0)
        calc.print_summary(result)
    """
    solver: str = "anderson"    # "damped" or "anderson"
    preconditioner: Callable[[jnp.ndarray], jnp.ndarray] | None = None
    damping: float = 1.0        # Step scale
    maxiter: int = 100          # Max SCF iterations
    tol: float = 1e-6           # SCF convergence tolerance
    history_size: int | None = None  # Anderson window (None for unbounded)
    verbose: bool = True        # Print info

    def run(self, f: Callable[[jnp.ndarray], jnp.ndarray],
            initial_state: jnp.ndarray) -> SolverResult:
        """Run the fixed-point solve for the map f from initial_state."""
        return scf_fixpoint(
            f,
            initial_state,
            solver=self.solver,
            preconditioner=self.preconditioner,
            damping=self.damping,
            maxiter=self.maxiter,
            tol=self.tol,
            history_size=self.history_size,
            verbose=self.verbose,
        )

    @staticmethod
    def print_summary(result: SolverResult):
        """Print a summary of the run."""
        print("\n" + "=" * 50)
        print("  SCF Summary")
        print("=" * 50)
        print(f"  Converged: {result.converged}")
        print(f"  Iterations: {result.n_iter}")
        print(f"  Final residual norm: {result.residual_norms[-1]:.6e}")
        print(f"  Fixpoint shape: {tuple(jnp.shape(result.fixpoint))}")
        print(f"  Fixpoint norm: {norm(result.fixpoint):.6e}")
        print("=" * 50)
