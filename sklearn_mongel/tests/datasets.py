"""Artificial dataset (generator functions) for the sklearn_mongel unittests.

Induction is roughly cubic in the number of distinct instances, so all of
them are kept small.
"""

from typing import Union

import numpy as np
from sklearn.utils import check_random_state, Bunch


class Dataset(Bunch):
    def __init__(self,
                 x_train: np.ndarray,
                 y_train: np.ndarray,
                 x_test: np.ndarray = None,
                 y_test: np.ndarray = None,
                 categorical_features: Union[None, str, np.ndarray] = None,
                 **kwargs):
        if x_test is not None:
            kwargs["x_test"] = x_test
        if y_test is not None:
            kwargs["y_test"] = y_test
        super().__init__(x_train=x_train, y_train=y_train,
                         categorical_features=categorical_features,
                         **kwargs)

    def get_opt(self, key):
        """:return: `self.get(key, default=None)`"""
        return self.get(key, None)


def monotone_2d(n_samples=40, random=None):
    """Two numeric features in `[0, 1]`, three classes ordered by the sum of
    the features. No label noise, so the problem is monotonic.
    """
    if random is None:
        random = check_random_state(7)
    X = random.random_sample((n_samples * 2, 2))
    X_train, X_test = X[:n_samples], X[n_samples:]

    def label(x):
        total = x.sum(axis=1)
        return (total > 0.7).astype(int) + (total > 1.3).astype(int)

    return Dataset(X_train, label(X_train), X_test, label(X_test))


def noisy_monotone_2d(n_samples=30, n_flipped=4, random=None):
    """Like `monotone_2d`, but binary and with `n_flipped` labels inverted,
    introducing anti-monotonic instance pairs.
    """
    if random is None:
        random = check_random_state(3)
    X = random.random_sample((n_samples, 2))
    y = (X.sum(axis=1) > 1.0).astype(int)
    flipped = random.choice(n_samples, size=n_flipped, replace=False)
    y[flipped] = 1 - y[flipped]
    return Dataset(X, y, flipped=flipped)


def mixed_nominal(n_samples=30, random=None):
    """One numeric feature in `[0, 10]` and one nominal feature with values
    `{10, 20, 30}`. The class rises with both.
    """
    if random is None:
        random = check_random_state(5)
    numeric = np.round(random.uniform(0, 10, size=n_samples), 1)
    nominal = random.choice([10., 20., 30.], size=n_samples)
    X = np.column_stack([numeric, nominal])
    y = ((numeric / 10 + (nominal - 10) / 20) > 1.0).astype(int)
    return Dataset(X, y, categorical_features=np.array([1]))


def ordinal_grades(random=None):
    """Integer grades in `{1..5}` of three subjects, labelled with string
    classes whose sort order equals their meaning.
    """
    if random is None:
        random = check_random_state(9)
    X = random.randint(1, 6, size=(36, 3)).astype(float)
    mean = X.mean(axis=1)
    y = np.where(mean >= 4, 'c_good',
                 np.where(mean >= 2.5, 'b_average', 'a_poor'))
    return Dataset(X, y)


def identical_inputs():
    """Two copies of one instance with different classes, plus an unrelated
    instance."""
    X = np.array([[0.5, 0.5],
                  [0.5, 0.5],
                  [0.9, 0.9]])
    y = np.array([0, 1, 1])
    return Dataset(X, y)
