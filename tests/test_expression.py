from __future__ import annotations

import jax
import jax.numpy as jnp
import pytest

from exprad.core.errors import MalformedExpressionError
from exprad.core.expression import Expression
from exprad.core.numerical import (
    numerical_derivative31,
    numerical_derivative32,
)
from exprad.core.types import symbol
from exprad.core.values import Values
from exprad.geometry.unit3 import Unit3


X = symbol("x", 0)
Y = symbol("y", 0)
S = symbol("s", 0)
D = symbol("d", 0)


@pytest.fixture
def values():
    return Values({
        X: jnp.array([1.0, -2.0, 0.5]),
        Y: jnp.array([0.3, 0.2, 0.1]),
        S: 2.0,
    })


def test_copies_share_the_same_node():
    e = Expression.leaf(X, jax.Array)
    alias = e
    parent = Expression.binary(lambda a, b, H1=None, H2=None: a, e, alias)
    assert alias.root() is e.root()
    assert parent.root().children[0] is parent.root().children[1]


def test_constant_expression(values):
    e = Expression.constant(jnp.array([1.0, 2.0]))
    assert e.keys() == frozenset()
    assert e.augmented(values).constant()


def test_sum_and_difference(values):
    x = Expression.leaf(X, jax.Array)
    y = Expression.leaf(Y, jax.Array)

    augmented = (x + y).augmented(values)
    assert jnp.allclose(augmented.value, values.at(X) + values.at(Y))
    assert jnp.allclose(augmented.jacobians[X], jnp.eye(3))
    assert jnp.allclose(augmented.jacobians[Y], jnp.eye(3))

    augmented = (x - y).augmented(values)
    assert jnp.allclose(augmented.jacobians[X], jnp.eye(3))
    assert jnp.allclose(augmented.jacobians[Y], -jnp.eye(3))

    augmented = (-x).augmented(values)
    assert jnp.allclose(augmented.value, -values.at(X))
    assert jnp.allclose(augmented.jacobians[X], -jnp.eye(3))


def test_x_minus_x_has_zero_jacobian(values):
    x = Expression.leaf(X, jax.Array)
    augmented = (x - x).augmented(values)
    assert jnp.allclose(augmented.value, jnp.zeros(3))
    assert jnp.allclose(augmented.jacobians[X], jnp.zeros((3, 3)))


def test_plain_values_are_wrapped_as_constants(values):
    x = Expression.leaf(X, jax.Array)
    e = 2.0 * x + [1.0, 1.0, 1.0]
    augmented = e.augmented(values)
    assert e.keys() == frozenset({X})
    assert jnp.allclose(augmented.value, 2.0 * values.at(X) + 1.0)
    assert jnp.allclose(augmented.jacobians[X], 2.0 * jnp.eye(3))

    e = 1.0 - x
    assert jnp.allclose(e.augmented(values).jacobians[X], -jnp.eye(3))


def test_scalar_times_vector(values):
    s = Expression.leaf(S, float)
    x = Expression.leaf(X, jax.Array)

    for e in (s * x, x * s):
        augmented = e.augmented(values)
        assert jnp.allclose(augmented.value, 2.0 * values.at(X))
        assert augmented.jacobians[S].shape == (3, 1)
        assert jnp.allclose(augmented.jacobians[S][:, 0], values.at(X))
        assert jnp.allclose(augmented.jacobians[X], 2.0 * jnp.eye(3))


def test_scalar_algebra(values):
    s = Expression.leaf(S, float)
    e = 3.0 * s * s + 1.0
    augmented = e.augmented(values)
    assert augmented.value == pytest.approx(13.0)
    # d(3 s^2)/ds = 6 s
    assert float(augmented.jacobians[S][0, 0]) == pytest.approx(12.0)


def test_elementwise_product(values):
    x = Expression.leaf(X, jax.Array)
    y = Expression.leaf(Y, jax.Array)
    augmented = (x * y).augmented(values)
    assert jnp.allclose(augmented.jacobians[X], jnp.diag(values.at(Y)))
    assert jnp.allclose(augmented.jacobians[Y], jnp.diag(values.at(X)))


def test_lift_uses_jax_jacobians(values):
    x = Expression.leaf(X, jax.Array)
    e = Expression.lift(jnp.sin, x)
    augmented = e.augmented(values)
    assert jnp.allclose(augmented.value, jnp.sin(values.at(X)))
    assert jnp.allclose(augmented.jacobians[X], jnp.diag(jnp.cos(values.at(X))))


def test_lift_binary_scalar_output(values):
    x = Expression.leaf(X, jax.Array)
    y = Expression.leaf(Y, jax.Array)
    e = Expression.lift(jnp.dot, x, y)
    augmented = e.augmented(values)
    assert float(augmented.value) == pytest.approx(float(jnp.dot(values.at(X), values.at(Y))))
    assert jnp.allclose(augmented.jacobians[X], values.at(Y)[None, :])
    assert jnp.allclose(augmented.jacobians[Y], values.at(X)[None, :])


def test_lift_ternary_mixes_with_analytic_nodes(values):
    x = Expression.leaf(X, jax.Array)
    s = Expression.leaf(S, float)

    def fma(a, b, c):
        return a * b + c

    e = Expression.lift(fma, s, x, x)
    augmented = e.augmented(values)
    assert jnp.allclose(augmented.value, 2.0 * values.at(X) + values.at(X))
    assert jnp.allclose(augmented.jacobians[X], 3.0 * jnp.eye(3))
    assert jnp.allclose(augmented.jacobians[S][:, 0], values.at(X))


def test_lift_on_constants_is_constant(values):
    e = Expression.lift(jnp.exp, Expression.constant(jnp.zeros(2)))
    augmented = e.augmented(values)
    assert augmented.constant()
    assert jnp.allclose(augmented.value, jnp.ones(2))


def test_lift_rejects_bad_arity():
    x = Expression.leaf(X, jax.Array)
    with pytest.raises(MalformedExpressionError):
        Expression.lift(lambda *a: a[0], x, x, x, x)
    with pytest.raises(MalformedExpressionError):
        Expression.lift(jnp.sin)


# ---------------------------------------------------------------------------
# Scale / direction / bias scenario
# ---------------------------------------------------------------------------

s0 = 3.0
d0 = Unit3(jnp.array([1.0, 2.0, 2.0]))
b = jnp.array([0.1, -0.2, 0.3])
measured = s0 * d0.p + b


def scaled_direction_error(s, d, bias, H1=None, H2=None, H3=None):
    """measured - (s d + bias)"""
    if H1 is not None:
        H1.set(-jnp.reshape(d.p, (3, 1)))
    if H2 is not None:
        H2.set(-s * d.basis())
    if H3 is not None:
        H3.set(-jnp.eye(3))
    return measured - (s * d.point3() + bias)


def test_scale_direction_bias_ternary():
    """
    Ternary error over Leaf(s), Leaf(d), Constant(b): zero at the ground
    truth, with Jacobians matching finite differences.
    """
    e = Expression.ternary(
        scaled_direction_error,
        Expression.leaf(S, float),
        Expression.leaf(D, Unit3),
        Expression.constant(b),
    )
    values = Values({S: s0, D: d0})

    augmented = e.augmented(values)
    assert jnp.allclose(augmented.value, jnp.zeros(3), atol=1e-12)
    assert e.keys() == frozenset({S, D})
    assert set(augmented.jacobians) == {S, D}

    H_s = numerical_derivative31(scaled_direction_error, s0, d0, b)
    H_d = numerical_derivative32(scaled_direction_error, s0, d0, b)
    assert augmented.jacobians[S].shape == (3, 1)
    assert augmented.jacobians[D].shape == (3, 2)
    assert jnp.allclose(augmented.jacobians[S], H_s, atol=1e-7)
    assert jnp.allclose(augmented.jacobians[D], H_d, atol=1e-7)
