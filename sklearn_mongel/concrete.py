"""
Implementation of the MoNGEL algorithm:
Post-processing of a merged rule set (`MonotonicityReducer`) and the
`ClassificationStrategy` implementations applying a rule set to new data.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Type, Union

import numpy as np

from sklearn_mongel.common import Rule

logger = logging.getLogger(__name__)


class MonotonicityReducer:
    """Remove rules until no anti-monotonic pair of rules is left.

    Repeatedly drops the rule involved in the most anti-monotonic pairs,
    preferring among equals the one covering the fewest training instances.

    Removal is incremental: the conflict matrix and its row sums are updated
    in place, and removed rules are only marked dead in `live`, so indices
    stay stable during `reduce`.

    Attributes
    -----
    rules : list of Rule
        All rules passed in, including the removed ones.

    matrix : array of dtype int8, shape `(n_rules, n_rules)`
        Symmetric, `matrix[i, j] == 1` iff rules `i` and `j` are
        anti-monotonic and both still live.

    row_sums : array of dtype int, shape `(n_rules,)`
        Number of live conflict partners of each rule.

    coverage : array of dtype int, shape `(n_rules,)`
        Number of training instances at distance 0 of each rule.

    live : array of dtype bool, shape `(n_rules,)`
        False for removed rules.
    """

    def __init__(self, rules: Sequence[Rule], X: np.ndarray, context=None):
        """
        :param X: The normalized training instances, for `coverage`.
        :param context: An `InductionContext` notified of every removal, or
            None.
        """
        self.rules = list(rules)
        self.context = context
        n_rules = len(self.rules)
        self.matrix = np.zeros((n_rules, n_rules), dtype=np.int8)
        for i, j in itertools.combinations(range(n_rules), 2):
            if self.rules[i].is_anti_monotonic(self.rules[j]):
                self.matrix[i, j] = self.matrix[j, i] = 1
        self.row_sums = self.matrix.sum(axis=1, dtype=int)
        self.coverage = np.array(
            [np.count_nonzero(rule.distances(X) == 0) for rule in self.rules],
            dtype=int)
        self.live = np.ones(n_rules, dtype=bool)

    def select(self) -> int:
        """:return: Index of the rule to remove next: maximum row sum, ties
            broken by minimal coverage, then by lowest index.
        """
        candidates = np.flatnonzero(self.row_sums == self.row_sums.max())
        return int(candidates[np.argmin(self.coverage[candidates])])

    def remove(self, index: int):
        """Remove rule `index`, updating the conflict counts of its partners.
        """
        assert self.live[index]
        self.row_sums -= self.matrix[index]
        self.matrix[index, :] = 0
        self.matrix[:, index] = 0
        self.row_sums[index] = 0
        self.live[index] = False

    def remaining(self) -> List[Rule]:
        """:return: The live rules, in their original order."""
        return list(itertools.compress(self.rules, self.live))

    def reduce(self) -> List[Rule]:
        """Remove rules until no anti-monotonic pair is left.

        :return: The remaining rules, in their original order.
        """
        while self.row_sums.sum() > 0:
            index = self.select()
            row_sum = int(self.row_sums[index])
            coverage = int(self.coverage[index])
            logger.debug("removing rule %d with %d conflicts, covering %d",
                         index, row_sum, coverage)
            self.remove(index)
            if self.context is not None:
                self.context.rule_removed(index, self.rules[index], row_sum,
                                          coverage,
                                          int(np.count_nonzero(self.live)))
        assert not self.matrix.any()
        return self.remaining()


def rule_set_non_monotonicity(rules: Sequence[Rule]) -> float:
    """:return: The fraction of rule pairs which are anti-monotonic, 0 for
        less than two rules.
    """
    n_rules = len(rules)
    if n_rules < 2:
        return 0.0
    conflicts = sum(1 for a, b in itertools.combinations(rules, 2)
                    if a.is_anti_monotonic(b))
    return 2 * conflicts / (n_rules * (n_rules - 1))


class ClassificationStrategy(ABC):
    """Assigns an output class index to instances, given a rule set."""

    name: str

    @abstractmethod
    def classify(self, rules: Sequence[Rule], X: np.ndarray) -> np.ndarray:
        """
        :param rules: A non-empty rule set.
        :param X: Normalized instances, array of shape
            `(n_samples, n_features)`.
        :return: The predicted class indices, array of shape `(n_samples,)`.
        """
        raise NotImplementedError

    @staticmethod
    def _check_rules(rules: Sequence[Rule]):
        if not len(rules):
            raise ValueError("cannot classify with an empty rule set")

    def __repr__(self):
        return '{}()'.format(type(self).__name__)


class NearestRuleClassification(ClassificationStrategy):
    """Predict the head of the rule with minimal `Rule.distances`, among
    equally distant rules the one with the smallest area, and among those the
    first one.
    """

    name = 'nearest'

    def classify(self, rules: Sequence[Rule], X: np.ndarray) -> np.ndarray:
        self._check_rules(rules)
        X = np.asarray(X, dtype=float)
        best_distance = np.full(len(X), np.inf)
        best_area = np.full(len(X), np.inf)
        heads = np.full(len(X), rules[0].head, dtype=int)
        for rule in rules:
            distance = rule.distances(X)
            better = (distance < best_distance) \
                | ((distance == best_distance) & (rule.area < best_area))
            best_distance[better] = distance[better]
            best_area[better] = rule.area
            heads[better] = rule.head
        return heads


class OrderedDominanceClassification(ClassificationStrategy):
    """Predict the head of the first rule (in rule set order) dominating the
    instance, i.e. where the instance is below the rule on every attribute.
    If no rule does, predict the head of the last rule.
    """

    name = 'ordered'

    def classify(self, rules: Sequence[Rule], X: np.ndarray) -> np.ndarray:
        self._check_rules(rules)
        attributes = rules[0].attributes
        heads = np.empty(len(X), dtype=int)
        for n, instance in enumerate(np.asarray(X, dtype=float)):
            point = Rule.from_instance(instance, 1, attributes)
            heads[n] = next((rule.head for rule in rules
                             if rule.compare_input(point) > 0),
                            rules[-1].head)
        return heads


CLASSIFICATION_STRATEGIES = {
    strategy.name: strategy
    for strategy in (NearestRuleClassification,
                     OrderedDominanceClassification)
}  # type: dict[str, Type[ClassificationStrategy]]


def make_classification_strategy(
        classification: Union[str, ClassificationStrategy]
) -> ClassificationStrategy:
    """:return: A `ClassificationStrategy` instance for `classification`,
        either a name from `CLASSIFICATION_STRATEGIES` or an instance which
        is returned unchanged.
    """
    if isinstance(classification, ClassificationStrategy):
        return classification
    if isinstance(classification, str) \
            and classification in CLASSIFICATION_STRATEGIES:
        return CLASSIFICATION_STRATEGIES[classification]()
    raise ValueError("unknown classification mode {!r}, expected one of {} "
                     "or a ClassificationStrategy instance"
                     .format(classification,
                             sorted(CLASSIFICATION_STRATEGIES)))
