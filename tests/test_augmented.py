from __future__ import annotations

import jax.numpy as jnp
import pytest

from exprad.core.augmented import Augmented, JacobianMap
from exprad.core.types import symbol


X = symbol("x", 0)
Y = symbol("x", 1)


def test_constant_has_no_jacobians():
    a = Augmented.from_constant(jnp.array([1.0, 2.0]))
    assert a.constant()
    assert len(a.jacobians) == 0
    assert jnp.array_equal(a.value, jnp.array([1.0, 2.0]))


def test_leaf_jacobian_is_identity():
    a = Augmented.from_leaf(jnp.array([1.0, 2.0, 3.0]), X)
    assert not a.constant()
    assert list(a.jacobians) == [X]
    assert jnp.allclose(a.jacobians[X], jnp.eye(3))


def test_scalar_leaf_jacobian_is_1x1():
    a = Augmented.from_leaf(2.5, X)
    assert a.jacobians[X].shape == (1, 1)
    assert float(a.jacobians[X][0, 0]) == 1.0


def test_from_terms_premultiplies_child_jacobians():
    child = JacobianMap({X: jnp.eye(2), Y: 2.0 * jnp.eye(2)})
    H = jnp.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])

    a = Augmented.from_terms(jnp.zeros(3), (H, child))

    assert jnp.allclose(a.jacobians[X], H)
    assert jnp.allclose(a.jacobians[Y], 2.0 * H)


def test_same_key_contributions_are_summed():
    """
    Two argument paths reaching the same key must add up, not overwrite
    each other.
    """
    H1 = jnp.array([[1.0, 0.0], [0.0, 2.0]])
    H2 = jnp.array([[0.5, 1.0], [1.0, 0.5]])
    m1 = JacobianMap({X: jnp.eye(2)})
    m2 = JacobianMap({X: jnp.eye(2), Y: jnp.eye(2)})

    a = Augmented.from_terms(jnp.zeros(2), (H1, m1), (H2, m2))

    assert jnp.allclose(a.jacobians[X], H1 + H2)
    assert jnp.allclose(a.jacobians[Y], H2)


def test_term_order_does_not_matter():
    H1 = jnp.array([[1.0, 2.0]])
    H2 = jnp.array([[3.0, -1.0]])
    H3 = jnp.array([[0.0, 4.0]])
    m1 = JacobianMap({X: jnp.eye(2)})
    m2 = JacobianMap({X: jnp.eye(2), Y: jnp.eye(2)})
    m3 = JacobianMap({Y: jnp.eye(2)})

    a = Augmented.from_terms(0.0, (H1, m1), (H2, m2), (H3, m3))
    b = Augmented.from_terms(0.0, (H3, m3), (H1, m1), (H2, m2))

    for key in (X, Y):
        assert jnp.allclose(a.jacobians[key], b.jacobians[key])
    assert jnp.allclose(a.jacobians[X], H1 + H2)
    assert jnp.allclose(a.jacobians[Y], H2 + H3)


def test_missing_local_jacobian_contributes_nothing():
    """A constant argument passes no local Jacobian and is skipped."""
    m1 = JacobianMap()
    m2 = JacobianMap({Y: jnp.eye(1)})

    a = Augmented.from_terms(1.0, (None, m1), (jnp.array([[3.0]]), m2))

    assert list(a.jacobians) == [Y]
    assert float(a.jacobians[Y][0, 0]) == 3.0


def test_all_constant_terms_give_constant_value():
    a = Augmented.from_terms(1.0, (None, JacobianMap()), (None, JacobianMap()))
    assert a.constant()


def test_jacobian_map_iterates_in_key_order():
    m = JacobianMap()
    m.add(Y, jnp.eye(1))
    m.add(X, jnp.eye(1))
    assert list(m) == [X, Y]
    assert "x0: 1x1" in repr(m)


def test_built_augmented_value_is_read_only():
    """Jacobians cannot be changed once the Augmented value exists."""
    source = JacobianMap({X: jnp.eye(2)})
    a = Augmented(jnp.zeros(2), source)

    with pytest.raises(TypeError):
        a.jacobians.add(Y, jnp.eye(2))
    with pytest.raises(TypeError):
        a.jacobians.accumulate(jnp.eye(2), JacobianMap({X: jnp.eye(2)}))

    # later changes to the map it was built from do not leak in
    source.add(X, jnp.eye(2))
    assert jnp.allclose(a.jacobians[X], jnp.eye(2))
    assert list(a.jacobians) == [X]
