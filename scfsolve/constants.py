"""Numerical constants."""

import jax.numpy as jnp

TWO_PI = 2.0 * jnp.pi
