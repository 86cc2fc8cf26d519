"""Solver configuration."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SolverConfig:
    """Settings of a single fixed-point run.

    Example usage:
        config = SolverConfig(maxiter=50, tol=1e-8, damping=0.5)
        result = DampedFixedPointSolver().solve(f, rho0, config)
    """
    maxiter: int = 100              # Iteration budget (0: evaluate once, no update)
    tol: float = 1e-6               # Threshold on the residual norm
    damping: float = 1.0            # Damped solver step scale, in [0, 2]
    history_size: int | None = None  # Anderson window (None for unbounded)
    verbose: bool = False           # Print iteration table

    def __post_init__(self):
        if self.maxiter < 0:
            raise ValueError(f"maxiter must be >= 0, got {self.maxiter}")
        if not self.tol > 0.0:
            raise ValueError(f"tol must be > 0, got {self.tol}")
        if not 0.0 <= self.damping <= 2.0:
            raise ValueError(f"damping must be in [0, 2], got {self.damping}")
        if self.history_size is not None and self.history_size < 1:
            raise ValueError(
                f"history_size must be >= 1 or None, got {self.history_size}"
            )

    def replace(self, **changes) -> "SolverConfig":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)
