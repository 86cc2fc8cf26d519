"""Anderson-accelerated fixed-point iteration.

Reference: D. G. Anderson, J. ACM 12, 547 (1965);
H. F. Walker, P. Ni, SIAM J. Numer. Anal. 49, 1715 (2011).

Given the current state x with residual r = F(x) - x and the history of
earlier pairs (x_i, r_i), the coefficients beta minimize

    | r + sum_i beta_i (r_i - r) |

and the next state is

    x + r + sum_i beta_i (x_i - x + r_i - r).

The base step has an implicit damping of 1. External damping or
preconditioning is applied by handing the solver a pre-composed map
(see scfsolve.preconditioner.PreconditionedResidual.fixpoint_map).
"""

from typing import Callable

import jax.numpy as jnp
import numpy as np

from scfsolve.config import SolverConfig
from scfsolve.fixedpoint import FixedPointSolver, SolverResult
from scfsolve.history import ResidualHistory
from scfsolve.vectorspace import add, flatten, norm, sub, unflatten


class SingularExtrapolation(np.linalg.LinAlgError):
    """The least-squares backend could not produce any extrapolation."""


def anderson_coefficients(history: ResidualHistory,
                          residual: jnp.ndarray) -> np.ndarray:
    """Least-squares coefficients beta for M beta = -residual.

    M has columns (residual_i - residual). Rank-deficient systems get the
    minimum-norm solution from ``np.linalg.lstsq``; this is accepted as is.
    Non-finite entries give NaN coefficients so that the anomaly travels on
    to the next residual norm instead of stopping the run here.

    Args:
        history: Earlier (state, residual) pairs.
        residual: Residual of the current state.

    Returns:
        (len(history),) coefficients.
    """
    M = history.residual_differences(residual)
    rhs = -np.asarray(flatten(residual))

    if not (np.all(np.isfinite(M)) and np.all(np.isfinite(rhs))):
        return np.full(M.shape[1], np.nan, dtype=M.dtype)

    try:
        beta, *_ = np.linalg.lstsq(M, rhs, rcond=None)
    except np.linalg.LinAlgError as err:
        raise SingularExtrapolation(
            f"Anderson least-squares solve failed with {len(history)} history entries"
        ) from err
    return beta


def anderson_extrapolate(history: ResidualHistory, state: jnp.ndarray,
                         residual: jnp.ndarray) -> jnp.ndarray:
    """Next Anderson iterate from the current pair and the history.

    With an empty history this is the plain step state + residual.
    """
    next_state = add(state, residual)
    if len(history) == 0:
        return next_state

    beta = anderson_coefficients(history, residual)
    correction = (history.state_differences(state)
                  + history.residual_differences(residual)) @ beta
    return add(next_state, unflatten(jnp.asarray(correction), jnp.shape(state)))


class AndersonFixedPointSolver(FixedPointSolver):
    """Fixed-point iteration accelerated by Anderson extrapolation.

    Drop-in replacement for DampedFixedPointSolver. ``config.damping`` is not
    used here; ``config.history_size`` turns on a sliding history window.
    """

    name = "Anderson"

    def solve(self, f: Callable[[jnp.ndarray], jnp.ndarray],
              initial_state: jnp.ndarray,
              config: SolverConfig | None = None) -> SolverResult:
        """Iterate F from initial_state with Anderson acceleration.

        Args:
            f: Fixed-point map F, State -> State of the same shape.
            initial_state: Initial guess.
            config: Solver settings (defaults to SolverConfig()).

        Returns:
            SolverResult whose ``fixpoint`` is always the state whose residual
            was checked last. When the budget runs out F is evaluated once
            more at the final state for that check.
        """
        if config is None:
            config = SolverConfig()
        if config.verbose:
            self._print_header(config)

        history = ResidualHistory(max_hist=config.history_size)
        state = jnp.asarray(initial_state)
        residual_norms = []

        for n_iter in range(config.maxiter):
            fstate = self._evaluate(f, state)
            residual = sub(fstate, state)
            res_norm = norm(residual)
            residual_norms.append(res_norm)
            if config.verbose:
                self._print_iteration(n_iter, res_norm)

            if res_norm < config.tol:
                return self._finish(config, state, True, n_iter, residual_norms)

            next_state = anderson_extrapolate(history, state, residual)
            history.append(state, residual)
            state = next_state

        res_norm = norm(sub(self._evaluate(f, state), state))
        residual_norms.append(res_norm)
        if config.verbose:
            self._print_iteration(config.maxiter, res_norm)
        return self._finish(config, state, res_norm < config.tol,
                            config.maxiter, residual_norms)
