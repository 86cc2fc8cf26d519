"""Tests for residual preconditioning and the Kerker preconditioner."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

jax.config.update("jax_enable_x64", True)

from scfsolve.config import SolverConfig
from scfsolve.fixedpoint import DampedFixedPointSolver
from scfsolve.models import charge_sloshing_map
from scfsolve.preconditioner import KerkerPreconditioner, PreconditionedResidual
from scfsolve.vectorspace import ShapeMismatch


def _sloshing_problem(q_tf=1.5, fft_grid=(8, 8, 8), box=10.0, seed=0):
    """Random positive target density in a cubic box, uniform initial guess."""
    rng = np.random.default_rng(seed)
    a = jnp.eye(3) * box
    rho_target = jnp.array(1.0 + 0.2 * rng.random(fft_grid))
    rho0 = jnp.full(fft_grid, float(jnp.mean(rho_target)))
    return a, fft_grid, rho_target, rho0, charge_sloshing_map(a, fft_grid, rho_target, q_tf)


def test_identity_by_default():
    """Test that without preconditioner the raw residual is returned."""
    res = PreconditionedResidual(lambda x: x + 1.0)
    np.testing.assert_allclose(res(jnp.array([1.0, 2.0])), [2.0, 3.0])


def test_composition_order():
    """Test that the preconditioner acts on the residual: P(R(x))."""
    res = PreconditionedResidual(lambda x: x + 1.0, lambda r: 2.0 * r)
    np.testing.assert_allclose(res(jnp.array([1.0, 2.0])), [4.0, 6.0])


def test_from_map():
    """Test that from_map builds R(x) = F(x) - x."""
    res = PreconditionedResidual.from_map(lambda x: 0.5 * x)
    np.testing.assert_allclose(res(jnp.array([4.0])), [-2.0])


@pytest.mark.parametrize("damping", [1.0, 0.3])
def test_fixpoint_map(damping):
    """Test that the composed map has residual damping * P(R(x))."""
    res = PreconditionedResidual.from_map(lambda x: 0.5 * x, lambda r: 3.0 * r)
    g = res.fixpoint_map(damping)
    x = jnp.array([4.0, -1.0])
    np.testing.assert_allclose(g(x) - x, damping * 3.0 * (-0.5 * x), atol=1e-14)


def test_preconditioner_shape_check():
    """Test that a preconditioner changing the shape is rejected."""
    res = PreconditionedResidual(lambda x: x, lambda r: jnp.ravel(r))
    with pytest.raises(ShapeMismatch):
        res(jnp.zeros((2, 2)))


def test_kerker_kernel():
    """Test K(G=0) = 1 and 0 < K(G) < 1 elsewhere."""
    kerker = KerkerPreconditioner.from_lattice(jnp.eye(3) * 10.0, (6, 6, 6), q0=1.5)
    kernel = kerker.kernel
    assert kernel.shape == (6, 6, 6)
    np.testing.assert_allclose(kernel[0, 0, 0], 1.0)
    rest = np.asarray(kernel).ravel()[1:]
    assert np.all(rest > 0.0) and np.all(rest < 1.0)


def test_kerker_preserves_total_charge():
    """Test that the G=0 (mean) component of the residual is untouched."""
    rng = np.random.default_rng(3)
    residual = jnp.array(rng.standard_normal((8, 8, 8)))
    kerker = KerkerPreconditioner.from_lattice(jnp.eye(3) * 10.0, (8, 8, 8))
    prec = kerker(residual)
    assert not jnp.iscomplexobj(prec)
    np.testing.assert_allclose(jnp.mean(prec), jnp.mean(residual), atol=1e-12)
    # Long-wavelength components are damped
    assert float(jnp.linalg.norm(prec - jnp.mean(prec))) < \
        float(jnp.linalg.norm(residual - jnp.mean(residual)))


def test_kerker_zero_q0_is_identity():
    rng = np.random.default_rng(4)
    residual = jnp.array(rng.standard_normal((4, 4, 4)))
    kerker = KerkerPreconditioner.from_lattice(jnp.eye(3) * 10.0, (4, 4, 4), q0=0.0)
    np.testing.assert_allclose(kerker(residual), residual, atol=1e-12)


def test_kerker_shape_check():
    kerker = KerkerPreconditioner.from_lattice(jnp.eye(3) * 10.0, (4, 4, 4))
    with pytest.raises(ShapeMismatch):
        kerker(jnp.zeros((4, 4, 5)))


def test_kerker_invalid_q0():
    with pytest.raises(ValueError):
        KerkerPreconditioner(jnp.zeros((2, 2, 2)), q0=-1.0)


def test_charge_sloshing_diverges_without_preconditioner():
    """Test that simple mixing with damping 1 blows up on the sloshing model."""
    *_, rho0, f = _sloshing_problem()
    result = DampedFixedPointSolver().solve(f, rho0, SolverConfig(maxiter=20, tol=1e-8))
    assert not result.converged
    assert result.residual_norms[-1] > result.residual_norms[0]


def test_kerker_cures_charge_sloshing():
    """Test that Kerker with q0 = q_tf turns the residual into -(rho - rho*)."""
    a, fft_grid, rho_target, rho0, f = _sloshing_problem(q_tf=1.5)
    kerker = KerkerPreconditioner.from_lattice(a, fft_grid, q0=1.5)
    g = PreconditionedResidual.from_map(f, kerker).fixpoint_map()

    result = DampedFixedPointSolver().solve(g, rho0, SolverConfig(maxiter=20, tol=1e-8))
    assert result.converged
    assert result.n_iter <= 2
    np.testing.assert_allclose(result.fixpoint, rho_target, atol=1e-8)
