"""Tests for vector-space operations on states."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

jax.config.update("jax_enable_x64", True)

from scfsolve.vectorspace import (
    ShapeMismatch, add, sub, scale, norm, flatten, unflatten, check_same_shape,
)


def _random_states(shape=(3, 4), n=3, seed=0):
    rng = np.random.default_rng(seed)
    return [jnp.array(rng.standard_normal(shape)) for _ in range(n)]


def test_add_associative():
    """Test (a + b) + c == a + (b + c)."""
    a, b, c = _random_states()
    np.testing.assert_allclose(add(add(a, b), c), add(a, add(b, c)), atol=1e-14)


def test_scale_linear():
    """Test c * (a + b) == c * a + c * b."""
    a, b, _ = _random_states()
    np.testing.assert_allclose(scale(add(a, b), 2.5),
                               add(scale(a, 2.5), scale(b, 2.5)), atol=1e-14)


def test_sub_inverts_add():
    """Test (a + b) - b == a."""
    a, b, _ = _random_states()
    np.testing.assert_allclose(sub(add(a, b), b), a, atol=1e-14)


def test_norm_properties():
    """Test norm(0) = 0, homogeneity and triangle inequality."""
    a, b, _ = _random_states()
    assert norm(jnp.zeros((3, 4))) == 0.0
    np.testing.assert_allclose(norm(scale(a, -3.0)), 3.0 * norm(a), rtol=1e-12)
    assert norm(add(a, b)) <= norm(a) + norm(b) + 1e-12


def test_norm_matches_flattened_2norm():
    """Test that norm is the Euclidean norm of the flattened state."""
    a, _, _ = _random_states(shape=(2, 3, 4))
    np.testing.assert_allclose(norm(a), np.linalg.norm(np.ravel(a)), rtol=1e-12)


def test_norm_scalar_state():
    """Test that 0-d states are supported."""
    assert norm(jnp.array(-4.0)) == pytest.approx(4.0)


def test_norm_nan_passthrough():
    """Test that NaN entries give a NaN norm instead of an error."""
    assert np.isnan(norm(jnp.array([1.0, jnp.nan])))


def test_flatten_unflatten():
    """Test flatten/unflatten roundtrip for a 3D grid."""
    a, _, _ = _random_states(shape=(2, 3, 4))
    flat = flatten(a)
    assert flat.shape == (24,)
    np.testing.assert_allclose(unflatten(flat, (2, 3, 4)), a)


def test_unflatten_wrong_size():
    """Test that unflatten rejects a size mismatch."""
    with pytest.raises(ShapeMismatch):
        unflatten(jnp.zeros(5), (2, 3))


@pytest.mark.parametrize("op", [add, sub])
def test_shape_mismatch(op):
    """Test that binary operations reject different shapes."""
    with pytest.raises(ShapeMismatch):
        op(jnp.zeros((3,)), jnp.zeros((3, 1)))


def test_shape_mismatch_is_value_error():
    """Test that ShapeMismatch can be caught as ValueError."""
    with pytest.raises(ValueError):
        check_same_shape(jnp.zeros(2), jnp.zeros(3))
