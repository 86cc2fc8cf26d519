"""Vector-space operations on SCF states.

A state is any finite-dimensional ``jnp.ndarray`` (a density on a grid, a
potential, a plain vector). The solvers only ever touch states through the
functions below, so every operand pair is shape-checked in one place.
"""

import jax.numpy as jnp


class ShapeMismatch(ValueError):
    """Operands of a vector-space operation have incompatible shapes."""


def check_same_shape(a: jnp.ndarray, b: jnp.ndarray) -> None:
    """Raise ShapeMismatch unless a and b have identical shapes."""
    if jnp.shape(a) != jnp.shape(b):
        raise ShapeMismatch(
            f"State shapes differ: {jnp.shape(a)} vs {jnp.shape(b)}"
        )


def add(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    """Return a + b."""
    check_same_shape(a, b)
    return jnp.add(a, b)


def sub(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    """Return a - b. Used for residuals R = F(x) - x."""
    check_same_shape(a, b)
    return jnp.subtract(a, b)


def scale(a: jnp.ndarray, c: float) -> jnp.ndarray:
    """Return c * a."""
    return c * jnp.asarray(a)


def norm(a: jnp.ndarray) -> float:
    """Euclidean norm of the flattened state.

    Works for 0-d states as well. NaN/Inf entries are not trapped; the
    returned norm is then NaN or inf and fails any ``< tol`` comparison.
    """
    return float(jnp.linalg.norm(flatten(a)))


def flatten(a: jnp.ndarray) -> jnp.ndarray:
    """Flatten a state to a 1-D array (C order)."""
    return jnp.ravel(jnp.asarray(a))


def unflatten(flat: jnp.ndarray, shape: tuple[int, ...]) -> jnp.ndarray:
    """Reshape a 1-D array back to a state of the given shape.

    Args:
        flat: 1-D array, as returned by :func:`flatten`.
        shape: Target state shape.

    Returns:
        Array of the given shape.
    """
    flat = jnp.asarray(flat)
    size = 1
    for n in shape:
        size *= n
    if flat.ndim != 1 or flat.shape[0] != size:
        raise ShapeMismatch(
            f"Cannot unflatten array of shape {flat.shape} to {tuple(shape)}"
        )
    return jnp.reshape(flat, shape)
