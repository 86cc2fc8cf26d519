"""Residual history for Anderson extrapolation."""

import jax.numpy as jnp
import numpy as np

from scfsolve.vectorspace import check_same_shape, flatten


class ResidualHistory:
    """Ordered store of past (state, residual) pairs, most recent last.

    By default the history grows without bound during a run (it is bounded
    in practice by ``maxiter``). With ``max_hist`` set, the oldest pair is
    dropped once the length exceeds it, which turns Anderson acceleration
    into its sliding-window variant.
    """

    def __init__(self, max_hist: int | None = None):
        """
        Args:
            max_hist: Maximum number of stored pairs (None for unbounded).
        """
        if max_hist is not None and max_hist < 1:
            raise ValueError(f"max_hist must be >= 1 or None, got {max_hist}")
        self.max_hist = max_hist
        self._states: list[jnp.ndarray] = []
        self._residuals: list[jnp.ndarray] = []

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self):
        return iter(zip(self._states, self._residuals))

    @property
    def states(self) -> tuple[jnp.ndarray, ...]:
        return tuple(self._states)

    @property
    def residuals(self) -> tuple[jnp.ndarray, ...]:
        return tuple(self._residuals)

    def append(self, state: jnp.ndarray, residual: jnp.ndarray) -> None:
        """Append a (state, residual) pair at the end of the history."""
        check_same_shape(state, residual)
        if self._states:
            check_same_shape(self._states[-1], state)
        self._states.append(jnp.asarray(state))
        self._residuals.append(jnp.asarray(residual))

        # Trim history
        if self.max_hist is not None and len(self._states) > self.max_hist:
            self._states.pop(0)
            self._residuals.pop(0)

    def clear(self) -> None:
        """Drop all stored pairs."""
        self._states = []
        self._residuals = []

    def residual_differences(self, residual: jnp.ndarray) -> np.ndarray:
        """Matrix with columns (residual_i - residual), oldest entry first.

        Returns:
            (N, len(self)) array, N the flattened state size.
        """
        return self._differences(self._residuals, residual)

    def state_differences(self, state: jnp.ndarray) -> np.ndarray:
        """Matrix with columns (state_i - state), oldest entry first."""
        return self._differences(self._states, state)

    @staticmethod
    def _differences(entries: list[jnp.ndarray], current: jnp.ndarray) -> np.ndarray:
        current_flat = np.asarray(flatten(current))
        if not entries:
            return np.zeros((current_flat.shape[0], 0), dtype=current_flat.dtype)
        for entry in entries:
            check_same_shape(entry, current)
        columns = [np.asarray(flatten(entry)) - current_flat for entry in entries]
        return np.stack(columns, axis=1)
