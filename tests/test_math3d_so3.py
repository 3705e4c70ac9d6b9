import jax.numpy as jnp

from exprad.geometry.math3d import hat, so3_exp, so3_log, vee, yaw_matrix


def test_so3_log_exp_roundtrip_small_angle():
    w = jnp.array([0.1, -0.05, 0.02])
    R = so3_exp(w)
    w_est = so3_log(R)
    assert jnp.all(jnp.isfinite(w_est))
    assert jnp.allclose(w_est, w, atol=1e-10)


def test_so3_log_exp_roundtrip_large_angle():
    w = jnp.array([1.2, -0.4, 0.9])
    assert jnp.allclose(so3_log(so3_exp(w)), w, atol=1e-9)


def test_so3_log_no_nan_for_identity():
    R = jnp.eye(3)
    w = so3_log(R)
    assert jnp.all(jnp.isfinite(w))
    assert jnp.linalg.norm(w) < 1e-12


def test_so3_exp_is_a_rotation():
    R = so3_exp(jnp.array([0.3, 0.2, -0.7]))
    assert jnp.allclose(R.T @ R, jnp.eye(3), atol=1e-12)
    assert jnp.linalg.det(R) > 0.0


def test_hat_vee():
    w = jnp.array([1.0, 2.0, 3.0])
    v = jnp.array([-0.5, 0.25, 2.0])
    assert jnp.allclose(hat(w) @ v, jnp.cross(w, v))
    assert jnp.allclose(vee(hat(w)), w)


def test_yaw_matches_exponential():
    assert jnp.allclose(yaw_matrix(0.4), so3_exp(jnp.array([0.0, 0.0, 0.4])), atol=1e-12)
