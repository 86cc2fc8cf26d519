"""Model fixed-point problems.

Synthetic stand-ins for the SCF map F: linear contractions with a known
fixed point, an ill-conditioned linear map on which plain iteration is slow,
and a periodic density problem whose residual exhibits charge sloshing.
"""

import jax.numpy as jnp
import numpy as np

from scfsolve.lattice import g_squared_fft


def linear_contraction(c: float, target=0.0):
    """F(x) = x - c * (x - target).

    The plain iteration contracts the error by |1 - c * damping| per step.
    """
    target = jnp.asarray(target)

    def f(x):
        return x - c * (x - target)
    return f


def linear_map(matrix, target):
    """F(x) = x - A (x - target), A acting on the flattened state.

    Args:
        matrix: (N, N) Jacobian of the residual (up to sign).
        target: Fixed point, any shape with N entries.
    """
    A = jnp.asarray(matrix)
    target = jnp.asarray(target)
    shape = target.shape

    def f(x):
        delta = jnp.ravel(x - target)
        return x - jnp.reshape(A @ delta, shape)
    return f


def ill_conditioned_map(n: int, condition_number: float = 100.0, seed: int = 0):
    """Linear map with an SPD Jacobian of the given condition number.

    The eigenvalues of A are spread uniformly over [1/condition_number, 1], so
    undamped iteration contracts the slowest mode by 1 - 1/condition_number
    per step.

    Args:
        n: Dimension of the state.
        condition_number: Ratio of largest to smallest eigenvalue of A.
        seed: Seed of the random eigenbasis and target.

    Returns:
        f: The fixed-point map.
        target: (n,) its fixed point.
    """
    rng = np.random.default_rng(seed)
    Q, _ = np.linalg.qr(rng.standard_normal((n, n)))
    eigs = np.linspace(1.0 / condition_number, 1.0, n)
    A = (Q * eigs) @ Q.T
    target = rng.standard_normal(n)
    return linear_map(A, target), jnp.asarray(target)


def charge_sloshing_map(a: jnp.ndarray, fft_grid: tuple[int, int, int],
                        rho_target: jnp.ndarray, q_tf: float = 1.5):
    """Periodic density map whose residual blows up at long wavelength.

    R(rho)_G = -(1 + q_tf^2 / |G|^2) (rho - rho_target)_G for G != 0 and
    -(rho - rho_target)_G at G = 0. This mimics the Thomas-Fermi screened
    response of a metal: simple mixing needs damping ~ |G_min|^2 / q_tf^2,
    while a Kerker preconditioner with q0 = q_tf makes the residual exactly
    -(rho - rho_target).

    Args:
        a: (3, 3) lattice vectors (rows) in Bohr.
        fft_grid: (n1, n2, n3) real-space grid.
        rho_target: (n1, n2, n3) real fixed-point density.
        q_tf: Thomas-Fermi screening wavevector in 1/Bohr.

    Returns:
        The fixed-point map F(rho) = rho + R(rho).
    """
    rho_target = jnp.asarray(rho_target)
    g2 = g_squared_fft(fft_grid, a)
    g2_safe = jnp.where(g2 == 0.0, 1.0, g2)
    amplification = jnp.where(g2 == 0.0, 1.0, 1.0 + q_tf**2 / g2_safe)

    def f(rho):
        delta_g = jnp.fft.fftn(rho - rho_target)
        residual = -jnp.real(jnp.fft.ifftn(amplification * delta_g))
        return rho + residual
    return f
