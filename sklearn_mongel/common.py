"""
Implementation of the MoNGEL algorithm:
Common `Rule` (a generalized hyperrectangle) and the `Attributes` it is
defined over.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

INCOMPARABLE = -2
"""Result of `Rule.compare_input` if no dominance direction exists."""

RuleSet = Tuple['Rule', ...]


class Attributes:
    """Description of the condition attributes shared by all rules of a rule
    set.

    All rule geometry works on values normalized into `[0, 1]`, see
    `normalize`. The original scale is only needed for `denormalize`, i.e. for
    printing rules.

    Attributes
    -----
    categorical_mask : array of dtype bool, shape `(n_features,)`
        True for nominal attributes, False for numeric ones.

    n_values : array of dtype int, shape `(n_features,)`
        Number of distinct values of each nominal attribute, 1 for numeric
        attributes.

    minimum, maximum : arrays of dtype float, shape `(n_features,)`
        Range of each numeric attribute in the original scale. Unused for
        nominal attributes.

    categories : list of length `n_features`
        For nominal attributes the sorted array of original values, so that
        normalized value `k / (n_values - 1)` stands for `categories[k]`.
        None for numeric attributes.

    names : list of str
        Feature names, used by `Rule.to_string`.
    """

    def __init__(self,
                 categorical_mask,
                 n_values,
                 minimum=None,
                 maximum=None,
                 categories: Optional[List[Optional[np.ndarray]]] = None,
                 names: Optional[Sequence[str]] = None):
        self.categorical_mask = np.asarray(categorical_mask, dtype=bool)
        n_features = len(self.categorical_mask)
        self.n_values = np.where(self.categorical_mask,
                                 np.asarray(n_values, dtype=int), 1)
        if np.any(self.n_values < 1):
            raise ValueError("nominal attributes need at least one value, "
                             "got n_values={}".format(self.n_values))
        self.minimum = (np.zeros(n_features) if minimum is None
                        else np.asarray(minimum, dtype=float))
        self.maximum = (np.ones(n_features) if maximum is None
                        else np.asarray(maximum, dtype=float))
        if categories is None:
            categories = [np.arange(n, dtype=float) if nominal else None
                          for nominal, n in zip(self.categorical_mask,
                                                self.n_values)]
        self.categories = categories
        if names is None:
            names = ['feature_{}'.format(i + 1) for i in range(n_features)]
        elif len(names) != n_features:
            raise ValueError("names must contain %d elements, got %d"
                             % (n_features, len(names)))
        self.names = list(names)

    @classmethod
    def for_normalized(cls, categorical_mask, n_values=None,
                       names: Optional[Sequence[str]] = None
                       ) -> 'Attributes':
        """:return: `Attributes` for data already normalized into `[0, 1]`,
            i.e. `normalize` and `denormalize` are the identity on numeric
            attributes, and nominal values are their indices.

        :param n_values: Number of values per attribute, only read for
            nominal attributes. May be None if there are none.
        """
        categorical_mask = np.asarray(categorical_mask, dtype=bool)
        if n_values is None:
            if categorical_mask.any():
                raise ValueError("n_values is required for nominal attributes")
            n_values = np.ones(len(categorical_mask), dtype=int)
        return cls(categorical_mask, n_values, names=names)

    @classmethod
    def from_data(cls, X: np.ndarray, categorical_mask,
                  names: Optional[Sequence[str]] = None) -> 'Attributes':
        """Learn attribute ranges and nominal values from training data.

        :param X: An array of shape `(n_samples, n_features)`, in original
            scale. Nominal attributes have to be numerically encoded.
        :param categorical_mask: An array of shape `(n_features,)` and type
            bool, True for nominal attributes.
        """
        X = np.asarray(X, dtype=float)
        categorical_mask = np.asarray(categorical_mask, dtype=bool)
        if X.ndim != 2 or X.shape[0] == 0:
            raise ValueError("need a non-empty 2d array to learn attributes, "
                             "got shape {}".format(X.shape))
        if X.shape[1] != len(categorical_mask):
            raise ValueError("categorical_mask has %d entries but X has %d "
                             "features" % (len(categorical_mask), X.shape[1]))
        categories = [np.unique(X[:, i]) if nominal else None
                      for i, nominal in enumerate(categorical_mask)]
        n_values = [len(c) if c is not None else 1 for c in categories]
        return cls(categorical_mask, n_values,
                   minimum=X.min(axis=0), maximum=X.max(axis=0),
                   categories=categories, names=names)

    @property
    def n_features(self) -> int:
        return len(self.categorical_mask)

    @property
    def max_values(self) -> int:
        """Width of `Rule.members`, the biggest nominal cardinality."""
        return int(self.n_values.max(initial=1))

    def check_n_features(self, n_features: int):
        if n_features != self.n_features:
            raise ValueError("expected %d attributes, got %d"
                             % (self.n_features, n_features))

    def normalize(self, X: np.ndarray) -> np.ndarray:
        """Map `X` (original scale) into `[0, 1]`.

        Numeric values become `(x - minimum) / (maximum - minimum)`, or 0 for
        constant attributes; values outside the learned range end up outside
        `[0, 1]`. Nominal values become `index / (n_values - 1)`.

        :raise ValueError: if `X` contains a nominal value not in
            `categories`.
        """
        X = np.asarray(X, dtype=float)
        if X.ndim != 2:
            raise ValueError("expected 2d array, got shape {}"
                             .format(X.shape))
        self.check_n_features(X.shape[1])
        normalized = np.zeros_like(X)
        numeric = ~self.categorical_mask
        span = self.maximum[numeric] - self.minimum[numeric]
        # constant attributes map to 0
        normalized[:, numeric] = np.divide(
            X[:, numeric] - self.minimum[numeric], span,
            out=np.zeros((len(X), np.count_nonzero(numeric))),
            where=span > 0)
        for feature in np.flatnonzero(self.categorical_mask):
            values = self.categories[feature]
            column = X[:, feature]
            index = np.minimum(np.searchsorted(values, column),
                               len(values) - 1)
            unknown = values[index] != column
            if unknown.any():
                raise ValueError("unknown values {} for nominal attribute {}"
                                 .format(np.unique(column[unknown]),
                                         self.names[feature]))
            normalized[:, feature] = index / max(len(values) - 1, 1)
        return normalized

    def nominal_indices(self, X: np.ndarray) -> np.ndarray:
        """:return: For normalized `X`, the integer value index of each
            nominal attribute. Entries for numeric attributes are 0.

        :raise ValueError: if a nominal value lies outside `[0, 1]`.
        """
        indices = np.rint(X * (self.n_values - 1)).astype(int)
        nominal = self.categorical_mask
        out_of_range = (indices[:, nominal] < 0) \
            | (indices[:, nominal] >= self.n_values[nominal])
        if out_of_range.any():
            raise ValueError("nominal values outside [0, 1] in {}"
                             .format(X[:, nominal][out_of_range.any(axis=1)]))
        return indices

    def denormalize(self, feature: int, value: float):
        """:return: `value` of attribute `feature` in original scale; for
            nominal attributes `value` is the value index.
        """
        if self.categorical_mask[feature]:
            return self.categories[feature][int(value)]
        span = self.maximum[feature] - self.minimum[feature]
        return value * span + self.minimum[feature]

    def __repr__(self):
        return 'Attributes({!r}, {!r})'.format(self.categorical_mask,
                                               self.n_values)


class Rule:
    """A generalized hyperrectangle mapping attribute values to an output
    class.

    Rules are values: all geometry operations return new objects, the arrays
    are read-only and `area` is computed once on construction.

    Attributes
    -----
    head : int
        The output class index predicted by the rule.

    body : array of dtype float, shape `(2, n_features)`
        First row "lower", second row "upper": the closed interval
        `[lower, upper]` of each numeric attribute. Zero for nominal
        attributes.

    members : array of dtype bool, shape `(n_features, max_values)`
        For nominal attribute `i`, `members[i, k]` tells whether value index
        `k` is covered. All False for numeric attributes and for the padding
        beyond `attributes.n_values[i]`.

    attributes : Attributes
        The attribute description the rule is defined over.

    area : float
        Sum of `upper - lower` over numeric attributes plus the fraction of
        covered values over nominal attributes.
    """

    LOWER = 0
    UPPER = 1

    head: int
    body: np.ndarray
    members: np.ndarray
    attributes: Attributes
    area: float

    def __init__(self, head: int, body, members, attributes: Attributes):
        self.head = int(head)
        self.attributes = attributes
        self.body = np.array(body, dtype=float)
        self.members = np.array(members, dtype=bool)
        if self.body.shape != (2, attributes.n_features):
            raise ValueError("rule body must have shape {}, got {}".format(
                (2, attributes.n_features), self.body.shape))
        if self.members.shape != (attributes.n_features,
                                  attributes.max_values):
            raise ValueError("rule members must have shape {}, got {}".format(
                (attributes.n_features, attributes.max_values),
                self.members.shape))
        numeric = ~attributes.categorical_mask
        if not np.all(self.lower[numeric] <= self.upper[numeric]):
            raise ValueError("empty interval in rule body")
        if not self.members[attributes.categorical_mask].any(axis=1).all():
            raise ValueError("empty nominal value set")
        self.body.flags.writeable = False
        self.members.flags.writeable = False
        self.area = self._compute_area()

    @classmethod
    def from_instance(cls, instance, head: int, attributes: Attributes
                      ) -> 'Rule':
        """:return: A `Rule` covering exactly the single point `instance`,
            which has to be normalized.
        """
        instance = np.asarray(instance, dtype=float)
        if instance.ndim != 1:
            raise ValueError("expected a single instance, got shape {}"
                             .format(instance.shape))
        attributes.check_n_features(len(instance))
        nominal = attributes.categorical_mask
        point = np.where(nominal, 0.0, instance)
        members = np.zeros((attributes.n_features, attributes.max_values),
                           dtype=bool)
        indices = attributes.nominal_indices(instance[np.newaxis])[0]
        nominal_features = np.flatnonzero(nominal)
        members[nominal_features, indices[nominal_features]] = True
        return cls(head, np.vstack([point, point]), members, attributes)

    @property
    def lower(self) -> np.ndarray:
        """The "lower" part of the rule body, i.e. `rule.lower <= X`."""
        return self.body[Rule.LOWER]

    @property
    def upper(self) -> np.ndarray:
        """The "upper" part of the rule body, i.e. `rule.upper >= X`."""
        return self.body[Rule.UPPER]

    @property
    def size(self) -> int:
        """Number of condition attributes."""
        return self.attributes.n_features

    def _compute_area(self) -> float:
        nominal = self.attributes.categorical_mask
        widths = np.where(nominal,
                          np.count_nonzero(self.members, axis=1)
                          / self.attributes.n_values,
                          self.upper - self.lower)
        return float(widths.sum())

    def _check_compatible(self, other: 'Rule'):
        if other.size != self.size:
            raise ValueError("rules over %d and %d attributes are not "
                             "comparable" % (self.size, other.size))

    def distances(self, X: np.ndarray) -> np.ndarray:
        """Distance of each (normalized) instance in `X` to this rule.

        Numeric attributes contribute the squared distance to the nearest
        interval bound, 0 if the value is covered. Nominal attributes
        contribute 1 if the value is not a member.

        :param X: An array of shape `(n_samples, n_features)`.
        :return: An array of shape `(n_samples,)`, 0 where the rule covers the
            instance.
        """
        X = np.asarray(X, dtype=float)
        if X.ndim != 2:
            raise ValueError("expected 2d array, got shape {}"
                             .format(X.shape))
        self.attributes.check_n_features(X.shape[1])
        nominal = self.attributes.categorical_mask
        excess = (np.maximum(self.lower - X, 0)
                  + np.maximum(X - self.upper, 0))
        excess[:, nominal] = 0
        distances = np.sum(excess ** 2, axis=1)
        if nominal.any():
            nominal_features = np.flatnonzero(nominal)
            indices = self.attributes.nominal_indices(X)[:, nominal_features]
            distances += np.count_nonzero(
                ~self.members[nominal_features, indices], axis=1)
        return distances

    def distance_to_instance(self, instance) -> float:
        """:return: `self.distances` for a single instance."""
        instance = np.asarray(instance, dtype=float)
        if instance.ndim != 1:
            raise ValueError("expected a single instance, got shape {}"
                             .format(instance.shape))
        return float(self.distances(instance[np.newaxis])[0])

    def distance_to_rule(self, other: 'Rule') -> float:
        """:return: The distance between `self` and `other`: per numeric
            attribute the squared distance of the interval centers, per
            nominal attribute the squared fraction of differing values.
        """
        self._check_compatible(other)
        nominal = self.attributes.categorical_mask
        differing = np.count_nonzero(self.members != other.members, axis=1)
        center = (self.lower + self.upper) / 2
        other_center = (other.lower + other.upper) / 2
        terms = np.where(nominal,
                         differing / self.attributes.n_values,
                         center - other_center)
        return float(np.sum(terms ** 2))

    def compare_input(self, other: 'Rule') -> int:
        """Compare the conditions of `self` and `other` by dominance.

        Per attribute, `other` is either *below* `self` (numeric:
        `other.upper < self.lower`, nominal: proper subset), *above* it (the
        mirrored case), *equal*, or neither, which makes the rules
        incomparable regardless of all other attributes.

        :return: `0` if all attributes are equal, `1` if `other` is below or
            equal everywhere, `-1` if `other` is above or equal everywhere,
            `INCOMPARABLE` otherwise.
        """
        self._check_compatible(other)
        nominal = self.attributes.categorical_mask
        self_subset = ~np.any(self.members & ~other.members, axis=1)
        other_subset = ~np.any(other.members & ~self.members, axis=1)
        equal = np.where(nominal,
                         self_subset & other_subset,
                         (self.lower == other.lower)
                         & (self.upper == other.upper))
        below = np.where(nominal,
                         other_subset & ~self_subset,
                         other.upper < self.lower)
        above = np.where(nominal,
                         self_subset & ~other_subset,
                         self.upper < other.lower)
        if not np.all(equal | below | above):
            return INCOMPARABLE
        if below.any() and above.any():
            return INCOMPARABLE
        if equal.all():
            return 0
        return 1 if below.any() else -1

    def is_anti_monotonic(self, other: 'Rule') -> bool:
        """:return: True iff the input ordering of `self` and `other`
            contradicts their output ordering, or their inputs are equal but
            the outputs differ.
        """
        comparison = self.compare_input(other)
        if comparison == INCOMPARABLE:
            return False
        if comparison == 0:
            return self.head != other.head
        return comparison * (self.head - other.head) < 0

    def is_monotonic(self, other: 'Rule') -> bool:
        """:return: True iff `self` and `other` are comparable and not
            anti-monotonic.
        """
        return (self.compare_input(other) != INCOMPARABLE
                and not self.is_anti_monotonic(other))

    def overlaps(self, other: 'Rule') -> bool:
        """:return: True iff `self` and `other` intersect on every attribute.
        """
        self._check_compatible(other)
        nominal = self.attributes.categorical_mask
        common_values = np.any(self.members & other.members, axis=1)
        left = (other.upper >= self.lower) & (other.upper <= self.upper)
        right = (self.upper >= other.lower) & (self.upper <= other.upper)
        return bool(np.all(np.where(nominal, common_values, left | right)))

    def merge(self, other: 'Rule') -> 'Rule':
        """:return: A new `Rule` covering both `self` and `other`.

        The head is `max(self.head, other.head)`; merged rules always share
        their head when called from `merge_rules`.
        """
        self._check_compatible(other)
        body = np.vstack([np.minimum(self.lower, other.lower),
                          np.maximum(self.upper, other.upper)])
        return Rule(max(self.head, other.head), body,
                    self.members | other.members, self.attributes)

    def __eq__(self, other):
        if not isinstance(other, Rule):
            return NotImplemented
        return (self.head == other.head
                and self.area == other.area
                and np.array_equal(self.body, other.body)
                and np.array_equal(self.members, other.members))

    __hash__ = None

    def to_string(self,
                  feature_names: List[str] = None,
                  class_names: List[str] = None,
                  ) -> str:
        """:return: a string representation of `self`, with bounds and
            values in the original scale of `attributes`.
        """
        attributes = self.attributes
        if feature_names:
            assert len(feature_names) == self.size
        else:
            feature_names = attributes.names

        def condition(feature: int) -> str:
            if attributes.categorical_mask[feature]:
                values = np.flatnonzero(self.members[feature])
                return '({ft} in {{{values}}})'.format(
                    ft=feature_names[feature],
                    values=', '.join(
                        '{:g}'.format(attributes.denormalize(feature, value))
                        for value in values))
            return '({ft} in [{lower:.3}, {upper:.3}])'.format(
                ft=feature_names[feature],
                lower=attributes.denormalize(feature, self.lower[feature]),
                upper=attributes.denormalize(feature, self.upper[feature]))

        classification = str(class_names[self.head]
                              if class_names is not None
                              else self.head)
        return '{body} => {head} (area {area:.3})'.format(
            body=' and '.join(condition(i) for i in range(self.size)),
            head=classification,
            area=self.area)

    def __repr__(self):
        return 'Rule({!r},\n {!r},\n {!r})'.format(self.head, self.body,
                                                    self.members)
