"""Residual preconditioning for fixed-point SCF solvers.

Implements:
1. PreconditionedResidual: composes a raw residual with a preconditioner
2. KerkerPreconditioner: long-wavelength screening on a periodic FFT grid

Neither solver knows about preconditioning. Callers compose F and the
preconditioner ahead of time and pass the resulting map:

    res = PreconditionedResidual.from_map(f, KerkerPreconditioner.from_lattice(a, grid))
    result = AndersonFixedPointSolver().solve(res.fixpoint_map(), rho0, config)
"""

from typing import Callable

import jax.numpy as jnp

from scfsolve.lattice import g_squared_fft
from scfsolve.vectorspace import add, check_same_shape, scale, sub


def identity(x: jnp.ndarray) -> jnp.ndarray:
    return x


class PreconditionedResidual:
    """Effective residual P(R(x)).

    Holds no state beyond the two callables; calling the object is pure
    composition.
    """

    def __init__(self, apply_residual: Callable[[jnp.ndarray], jnp.ndarray],
                 apply_preconditioner: Callable[[jnp.ndarray], jnp.ndarray] | None = None):
        """
        Args:
            apply_residual: x -> R(x), usually F(x) - x.
            apply_preconditioner: r -> P r (identity if None).
        """
        self.apply_residual = apply_residual
        self.apply_preconditioner = identity if apply_preconditioner is None else apply_preconditioner

    @classmethod
    def from_map(cls, f: Callable[[jnp.ndarray], jnp.ndarray],
                 apply_preconditioner: Callable[[jnp.ndarray], jnp.ndarray] | None = None
                 ) -> "PreconditionedResidual":
        """Build the effective residual of the fixed-point map f (R = f(x) - x)."""
        return cls(lambda x: sub(f(x), x), apply_preconditioner)

    def __call__(self, x: jnp.ndarray) -> jnp.ndarray:
        residual = self.apply_residual(x)
        check_same_shape(residual, x)
        preconditioned = self.apply_preconditioner(residual)
        check_same_shape(preconditioned, x)
        return preconditioned

    def fixpoint_map(self, damping: float = 1.0) -> Callable[[jnp.ndarray], jnp.ndarray]:
        """Map x -> x + damping * P(R(x)).

        Its residual is damping * P(R(x)), so both solvers see the
        preconditioned (and, for Anderson, damped) residual.
        """
        def g(x):
            return add(x, scale(self(x), damping))
        return g


class KerkerPreconditioner:
    """Kerker preconditioner for density residuals on a periodic grid.

    Suppresses long-wavelength charge sloshing in metallic systems.
    K(G) = |G|^2 / (|G|^2 + q0^2), with K(G=0) = 1 to preserve total charge.

    Reference: G. P. Kerker, Phys. Rev. B 23, 3082 (1981).
    """

    def __init__(self, g2: jnp.ndarray, q0: float = 1.5):
        """
        Args:
            g2: |G|^2 on the FFT grid (shape of the density grid).
            q0: Screening wavevector in 1/Bohr.
        """
        if q0 < 0.0:
            raise ValueError(f"q0 must be >= 0, got {q0}")
        self.g2 = jnp.asarray(g2)
        self.q0 = q0

    @classmethod
    def from_lattice(cls, a: jnp.ndarray, fft_grid: tuple[int, int, int],
                     q0: float = 1.5) -> "KerkerPreconditioner":
        """Kerker preconditioner for the cell with lattice vectors a (rows, Bohr)."""
        return cls(g_squared_fft(fft_grid, a), q0=q0)

    @property
    def kernel(self) -> jnp.ndarray:
        q02 = self.q0 ** 2
        g2_safe = jnp.where(self.g2 == 0.0, 1.0, self.g2)
        return jnp.where(self.g2 == 0.0, 1.0, g2_safe / (g2_safe + q02))

    def precondition_reciprocal(self, residual_g: jnp.ndarray) -> jnp.ndarray:
        """Apply K(G) to a residual given in reciprocal space."""
        check_same_shape(residual_g, self.g2)
        return residual_g * self.kernel

    def __call__(self, residual_r: jnp.ndarray) -> jnp.ndarray:
        """Apply K(G) to a real-space residual, returning a real-space residual."""
        check_same_shape(residual_r, self.g2)
        res_g = jnp.fft.fftn(residual_r)
        prec_r = jnp.fft.ifftn(self.precondition_reciprocal(res_g))
        if jnp.iscomplexobj(residual_r):
            return prec_r
        return jnp.real(prec_r)
