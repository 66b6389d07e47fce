"""
Miscellaneous helpers working on plain arrays instead of rules.
"""

import numpy as np

from sklearn_mongel.common import INCOMPARABLE


def build_categorical_mask(which_features, n_features: int
                           ) -> np.ndarray or None:
    """:return: A mask array of length `n_features` based on `which_features`.
        For its contents, see `MoNGELEstimator` docs.
        Returns None if `which_features` cannot be recognized.
    """
    # which_features modeled like sklearn.preprocessing.OneHotEncoder
    categorical_mask_ = np.zeros(n_features, dtype=bool)  # default "all False"
    if which_features is None:
        return categorical_mask_
    if isinstance(which_features, str):
        return np.ones(n_features, dtype=bool) if which_features == 'all' \
            else None
    which_features = np.asarray(which_features)
    if not which_features.size:
        pass  # keep default
    elif which_features.dtype == bool:
        if which_features.shape != (n_features,):
            return None
        categorical_mask_[which_features] = True
    elif np.issubdtype(which_features.dtype, np.integer):
        if which_features.ndim != 1 \
                or np.any((which_features < -n_features)
                          | (which_features >= n_features)):
            return None
        categorical_mask_[which_features] = True
    else:
        return None
    return categorical_mask_


def compare_instances(a, b) -> int:
    """Dominance comparison of two instances, with the same convention as
    `Rule.compare_input`.

    :return: `0` if `a == b`, `1` if `b <= a`, `-1` if `a <= b`,
        `INCOMPARABLE` otherwise.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError("cannot compare instances of shape {} and {}"
                         .format(a.shape, b.shape))
    greater = np.any(a > b)
    less = np.any(a < b)
    if greater and less:
        return INCOMPARABLE
    if greater:
        return 1
    if less:
        return -1
    return 0


def prediction_non_monotonicity(X, y_pred) -> float:
    """Fraction of instance pairs whose predictions contradict their input
    ordering, i.e. `X[i] <= X[j]` (but not equal) while
    `y_pred[i] > y_pred[j]`.

    Pairs are compared like `compare_instances`, for all pairs at once.

    :param X: Array of shape `(n_samples, n_features)`.
    :param y_pred: Ordered predictions, array of shape `(n_samples,)`.
    :return: A value in `[0, 1]`, 0 for less than two instances.
    """
    X = np.asarray(X, dtype=float)
    y_pred = np.asarray(y_pred)
    if len(X) != len(y_pred):
        raise ValueError("X and y_pred have inconsistent lengths %d and %d"
                         % (len(X), len(y_pred)))
    n_samples = len(X)
    if n_samples < 2:
        return 0.0
    left = X[:, np.newaxis, :]
    right = X[np.newaxis, :, :]
    dominated = np.all(left <= right, axis=2) & np.any(left != right, axis=2)
    violations = dominated & (y_pred[:, np.newaxis] > y_pred[np.newaxis, :])
    return 2 * np.count_nonzero(violations) / (n_samples * (n_samples - 1))
