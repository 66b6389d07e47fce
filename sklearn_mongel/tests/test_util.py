"""Tests for `sklearn_mongel.util`."""
import functools

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from sklearn_mongel import util
from sklearn_mongel.common import INCOMPARABLE


def test_categorical_mask():
    build_mask = functools.partial(util.build_categorical_mask, n_features=3)
    assert_array_equal(build_mask(None), [False, False, False])
    assert_array_equal(build_mask([]), [False, False, False])
    assert_array_equal(build_mask('all'), [True, True, True])
    assert_array_equal(build_mask(np.array([True, False, False])),
                       [True, False, False])
    assert_array_equal(build_mask(np.array([0, 2])), [True, False, True])
    assert_array_equal(build_mask([1]), [False, True, False])
    assert_array_equal(build_mask([-1]), [False, False, True])
    assert build_mask('some') is None
    assert build_mask([3]) is None
    assert build_mask([True, False]) is None
    assert build_mask([0.5]) is None


def test_compare_instances():
    assert util.compare_instances([1, 2], [1, 2]) == 0
    assert util.compare_instances([1, 3], [1, 2]) == 1
    assert util.compare_instances([0, 2], [1, 2]) == -1
    assert util.compare_instances([0, 3], [1, 2]) == INCOMPARABLE
    with pytest.raises(ValueError):
        util.compare_instances([1, 2], [1, 2, 3])


def test_prediction_non_monotonicity():
    X = np.array([[0., 0.],
                  [1., 1.],
                  [0., 1.],
                  [1., 0.]])
    monotonic = np.array([0, 2, 1, 1])
    assert util.prediction_non_monotonicity(X, monotonic) == 0.

    # [0, 1] <= [1, 1] but predicted higher
    violating = np.array([0, 1, 2, 1])
    assert util.prediction_non_monotonicity(X, violating) == \
        pytest.approx(1 / 6)

    # identical instances are never counted
    assert util.prediction_non_monotonicity([[0.], [0.]], [1, 0]) == 0.
    assert util.prediction_non_monotonicity([[0.]], [1]) == 0.
    assert util.prediction_non_monotonicity(X[::-1], violating[::-1]) == \
        pytest.approx(1 / 6)
    with pytest.raises(ValueError):
        util.prediction_non_monotonicity(X, [0, 1])
