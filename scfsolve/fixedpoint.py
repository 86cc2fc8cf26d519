"""Damped fixed-point iteration for SCF problems.

The solver looks for rho with F(rho) = rho, where F is an opaque map
supplied by the SCF driver (typically: build the potential from rho,
diagonalize, return the output density). Each iteration:
1. Compute the residual R = F(rho) - rho
2. Check convergence on |R|
3. Update rho <- rho + damping * R
4. Re-evaluate F at the new rho

The convergence check of step 2 uses the residual of the state *before* the
update, and the state returned is that pre-update state. This one-step lag
is also kept in the final check when the iteration budget runs out.
"""

from typing import Callable, NamedTuple

import jax.numpy as jnp

from scfsolve.config import SolverConfig
from scfsolve.vectorspace import add, check_same_shape, norm, scale, sub


class SolverResult(NamedTuple):
    """Outcome of a fixed-point run."""
    fixpoint: jnp.ndarray  # accepted state, same shape as the initial guess
    converged: bool
    n_iter: int  # number of accepted state updates
    residual_norms: tuple[float, ...]  # every residual norm checked, in order


class FixedPointSolver:
    """Common driver plumbing: result assembly and the iteration table."""

    name = "fixed-point"

    def solve(self, f: Callable[[jnp.ndarray], jnp.ndarray],
              initial_state: jnp.ndarray,
              config: SolverConfig | None = None) -> SolverResult:
        raise NotImplementedError

    def _evaluate(self, f, state):
        fstate = f(state)
        check_same_shape(fstate, state)
        return fstate

    def _print_header(self, config: SolverConfig):
        print("=" * 60)
        print(f"  {self.name} solver")
        print("=" * 60)
        print(f"  Tolerance: {config.tol:.2e}")
        print(f"  Max iterations: {config.maxiter}")
        print()
        print(f"  {'Iter':>4s}  {'Residual Norm':>14s}")
        print("  " + "-" * 20)

    def _print_iteration(self, n_iter: int, res_norm: float):
        print(f"  {n_iter:4d}  {res_norm:14.6e}")

    def _finish(self, config: SolverConfig, state, converged, n_iter,
                residual_norms) -> SolverResult:
        if config.verbose:
            print()
            if converged:
                print(f"  {self.name} converged in {n_iter} iterations!")
            else:
                print(f"  WARNING: {self.name} not converged after {n_iter} iterations")
        return SolverResult(
            fixpoint=state,
            converged=bool(converged),
            n_iter=n_iter,
            residual_norms=tuple(residual_norms),
        )


class DampedFixedPointSolver(FixedPointSolver):
    """Plain (damping = 1) or damped fixed-point iteration.

    rho_{n+1} = rho_n + damping * (F(rho_n) - rho_n)

    With 0 < damping < 1 this is the simple linear mixing
    rho_{n+1} = (1 - damping) * rho_n + damping * F(rho_n).
    """

    name = "Damped fixed-point"

    def solve(self, f: Callable[[jnp.ndarray], jnp.ndarray],
              initial_state: jnp.ndarray,
              config: SolverConfig | None = None) -> SolverResult:
        """Iterate F from initial_state until the residual norm drops below tol.

        Args:
            f: Fixed-point map F, State -> State of the same shape.
            initial_state: Initial guess rho_0.
            config: Solver settings (defaults to SolverConfig()).

        Returns:
            SolverResult. On success ``fixpoint`` is the last state whose
            residual was checked; on exhaustion it is the last updated state
            and ``converged`` is evaluated once more against F at that state.
        """
        if config is None:
            config = SolverConfig()
        if config.verbose:
            self._print_header(config)

        state = jnp.asarray(initial_state)
        fstate = self._evaluate(f, state)
        residual_norms = []

        for n_iter in range(config.maxiter):
            residual = sub(fstate, state)
            res_norm = norm(residual)
            residual_norms.append(res_norm)
            if config.verbose:
                self._print_iteration(n_iter, res_norm)

            if res_norm < config.tol:
                return self._finish(config, state, True, n_iter, residual_norms)

            state = add(state, scale(residual, config.damping))
            fstate = self._evaluate(f, state)

        # Budget exhausted: one last check, still reporting the state F was
        # evaluated at rather than F(state).
        res_norm = norm(sub(fstate, state))
        residual_norms.append(res_norm)
        if config.verbose:
            self._print_iteration(config.maxiter, res_norm)
        return self._finish(config, state, res_norm < config.tol,
                            config.maxiter, residual_norms)
