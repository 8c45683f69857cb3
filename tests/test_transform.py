import math

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from geocluster import SimilarityTransform, compose


def _random_transform(rng, dim=3):
    if dim == 3:
        rotation = Rotation.from_quat(rng.normal(size=4))
        return SimilarityTransform.from_scipy_rotation(
            rotation, rng.uniform(-10.0, 10.0, size=3), rng.uniform(0.5, 2.0)
        )
    return SimilarityTransform(
        rng.uniform(-math.pi, math.pi), rng.uniform(-10.0, 10.0, size=2), rng.uniform(0.5, 2.0), dim=2
    )


def test_identity_fields():
    t = SimilarityTransform.identity()
    assert np.array_equal(t.rotation, [1.0, 0.0, 0.0, 0.0])
    assert np.array_equal(t.translation, [0.0, 0.0, 0.0])
    assert t.scaling == 1.0
    v = np.array([1.5, -2.0, 3.0])
    assert np.allclose(t(v), v)


def test_translation_is_rotated_frame_and_scaled():
    t = SimilarityTransform(translation=[1.0, 2.0, 3.0], scale=2.0)
    assert np.allclose(t.transform_vector([0.0, 0.0, 0.0]), [2.0, 4.0, 6.0])

    quarter = Rotation.from_euler("z", 90, degrees=True)
    t = SimilarityTransform.from_scipy_rotation(quarter, [1.0, 0.0, 0.0], 3.0)
    # s * (R v + t)
    assert np.allclose(t.transform_vector([1.0, 0.0, 0.0]), [3.0, 3.0, 0.0])


def test_rotation_is_normalized_on_construction():
    t = SimilarityTransform([1.0, 2.0, 3.0, 4.0])
    expected = np.array([1.0, 2.0, 3.0, 4.0]) / math.sqrt(30.0)
    assert np.allclose(t.rotation, expected, atol=1e-12)


@pytest.mark.parametrize("dim", [2, 3])
@pytest.mark.parametrize("seed", range(5))
def test_composition_is_associative(dim, seed):
    rng = np.random.default_rng(seed)
    a, b, c = (_random_transform(rng, dim) for _ in range(3))
    v = rng.uniform(-50.0, 50.0, size=dim)

    left = compose(compose(a, b), c)
    right = compose(a, compose(b, c))
    assert np.allclose(left(v), right(v), atol=1e-10, rtol=0.0)


@pytest.mark.parametrize("dim", [2, 3])
@pytest.mark.parametrize("seed", range(5))
def test_composition_applies_left_operand_first(dim, seed):
    rng = np.random.default_rng(100 + seed)
    a, b = _random_transform(rng, dim), _random_transform(rng, dim)
    v = rng.uniform(-50.0, 50.0, size=dim)

    assert np.allclose((a * b)(v), b(a(v)), atol=1e-10, rtol=0.0)

    combined = a.copy()
    combined *= b
    assert combined.is_approx(a * b, 1e-12)


def test_composition_field_law():
    rng = np.random.default_rng(7)
    a, b = _random_transform(rng), _random_transform(rng)
    ab = a * b

    assert math.isclose(ab.scaling, a.scaling * b.scaling)
    assert np.allclose(ab.translation, b.rotate_vector(a.translation) + b.translation / a.scaling)
    expected_rot = Rotation.from_quat(np.roll(b.rotation, -1)) * Rotation.from_quat(np.roll(a.rotation, -1))
    assert np.allclose(ab.rotation_matrix(), expected_rot.as_matrix(), atol=1e-12)


@pytest.mark.parametrize("dim", [2, 3])
@pytest.mark.parametrize("seed", range(5))
def test_inverse_undoes_transform(dim, seed):
    rng = np.random.default_rng(200 + seed)
    t = _random_transform(rng, dim)
    v = rng.uniform(-50.0, 50.0, size=dim)

    assert np.allclose(t.inverse()(t(v)), v, atol=1e-10, rtol=0.0)
    assert np.allclose(compose(t, t.inverse())(v), v, atol=1e-10, rtol=0.0)


def test_invert_in_place_matches_inverse():
    rng = np.random.default_rng(3)
    t = _random_transform(rng)
    expected = t.inverse()
    assert t.invert() is t
    assert t.is_approx(expected, 1e-14)
    assert math.isclose(t.scaling * expected.inverse().scaling, 1.0)


def test_rotation_stays_unit_after_mutation():
    rng = np.random.default_rng(11)
    t = _random_transform(rng)
    for _ in range(20):
        t.rotate(rng.normal(size=4))
        t *= _random_transform(rng)
        t.invert()
        assert math.isclose(float(np.linalg.norm(t.rotation)), 1.0, abs_tol=1e-12)
    t.set_rotation([0.0, 0.0, 0.0, 5.0])
    assert np.allclose(t.rotation, [0.0, 0.0, 0.0, 1.0])


def test_single_field_operations():
    t = SimilarityTransform(translation=[1.0, 0.0, 0.0], scale=2.0)
    half_turn = Rotation.from_euler("x", 180, degrees=True)

    t.rotate(half_turn).translate([0.0, 1.0, 0.0]).scale(3.0)

    assert np.allclose(t.rotation_matrix(), half_turn.as_matrix(), atol=1e-12)
    assert np.allclose(t.translation, [1.0, 1.0, 0.0])
    assert t.scaling == pytest.approx(6.0)


def test_vector_application_does_not_touch_input():
    rng = np.random.default_rng(5)
    t = _random_transform(rng)
    v = np.array([1.0, 2.0, 3.0])
    original = v.copy()
    for method in (t.rotate_vector, t.translate_vector, t.scale_vector, t.transform_vector):
        out = method(v)
        assert out is not v
        assert np.array_equal(v, original)


def test_transform_vector_is_translate_rotate_scale_chain():
    rng = np.random.default_rng(9)
    t = _random_transform(rng)
    v = rng.normal(size=3)
    chained = t.scale_vector(t.translate_vector(t.rotate_vector(v)))
    assert np.allclose(t.transform_vector(v), chained)


def test_is_approx_tolerances():
    base = SimilarityTransform([1.0, 0.0, 0.0, 0.0], [1.0, 2.0, 3.0], 2.0)
    assert base.is_approx(base.copy(), 1e-12)

    shifted = base.copy().translate([0.0, 0.0, 1e-3])
    assert not shifted.is_approx(base, 1e-4)
    assert shifted.is_approx(base, 1e-2)

    rescaled = base.copy().scale(1.001)
    assert not rescaled.is_approx(base, 1e-4)

    assert not base.is_approx(SimilarityTransform.identity(dim=2), 1.0)


def test_is_approx_defaults_to_configured_tolerance():
    base = SimilarityTransform(translation=[1.0, 2.0, 3.0])
    assert base.is_approx(base.copy().translate([0.0, 0.0, 1e-12]))
    assert not base.is_approx(base.copy().translate([0.0, 0.0, 1e-8]))


def test_affine_matrix_omits_scale():
    quarter = Rotation.from_euler("z", 90, degrees=True)
    t = SimilarityTransform.from_scipy_rotation(quarter, [1.0, 2.0, 3.0], 5.0)

    matrix = t.as_affine_matrix()

    assert matrix.shape == (3, 4)
    assert np.allclose(matrix[:, :3], quarter.as_matrix(), atol=1e-12)
    assert np.allclose(matrix[:, 3], quarter.apply([1.0, 2.0, 3.0]), atol=1e-12)
    unscaled = SimilarityTransform.from_scipy_rotation(quarter, [1.0, 2.0, 3.0], 1.0)
    assert np.allclose(unscaled.as_affine_matrix(), matrix)


def test_two_dimensional_rotation_is_an_angle():
    t = SimilarityTransform(math.pi / 2, [1.0, 0.0], 2.0, dim=2)
    assert np.allclose(t([1.0, 0.0]), [2.0, 2.0])

    t.rotate(math.pi / 2)
    assert t.rotation[0] == pytest.approx(math.pi)
    assert t.as_affine_matrix().shape == (2, 3)


def test_mismatched_dimensions_rejected():
    with pytest.raises(ValueError):
        SimilarityTransform.identity(3) * SimilarityTransform.identity(2)
    with pytest.raises(ValueError):
        SimilarityTransform.identity(3).transform_vector([1.0, 2.0])
    with pytest.raises(ValueError):
        SimilarityTransform(dim=4)


def test_str_lists_fields():
    text = str(SimilarityTransform(translation=[1.0, 2.0, 3.0], scale=0.5))
    assert text.splitlines() == ["Rotation:    1 0 0 0", "Translation: 1 2 3", "Scale:       0.5"]
