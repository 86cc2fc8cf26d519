"""Periodic-grid helpers for residual preconditioning."""

import jax.numpy as jnp

from scfsolve.constants import TWO_PI


def cell_volume(a: jnp.ndarray) -> jnp.ndarray:
    """Unit cell volume |det a|."""
    return jnp.abs(jnp.linalg.det(a))


def g_squared_fft(fft_grid: tuple[int, int, int], a: jnp.ndarray) -> jnp.ndarray:
    """|G|^2 on the FFT grid of the cell spanned by the rows of a.

    Entries follow FFT frequency order, so ``g2[i, j, k]`` belongs to the
    coefficient ``jnp.fft.fftn(f)[i, j, k]``.

    Args:
        fft_grid: (n1, n2, n3) FFT grid dimensions.
        a: (3, 3) real-space lattice vectors (rows), in Bohr.

    Returns:
        (n1, n2, n3) array of |G|^2 in 1/Bohr^2. The G=0 entry is exactly 0.
    """
    # Rows of b satisfy a_i . b_j = 2 pi delta_ij
    b = TWO_PI * jnp.linalg.inv(jnp.asarray(a)).T
    axes = [jnp.fft.fftfreq(n, d=1.0 / n) for n in fft_grid]
    miller = jnp.stack(jnp.meshgrid(*axes, indexing='ij'), axis=-1)
    g = miller @ b
    return jnp.sum(g * g, axis=-1)
