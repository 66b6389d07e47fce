"""
Implementation of the MoNGEL algorithm: Rule set induction and the
scikit-learn estimator.
"""

import logging
from typing import List, Sequence, Type, Union

import numpy as np

from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.preprocessing import LabelEncoder
from sklearn.utils import check_X_y, check_array
from sklearn.utils.multiclass import check_classification_targets
from sklearn.utils.validation import check_is_fitted

from sklearn_mongel.common import Attributes, Rule, RuleSet, INCOMPARABLE
from sklearn_mongel.concrete import \
    ClassificationStrategy, MonotonicityReducer, make_classification_strategy
from sklearn_mongel.util import build_categorical_mask

logger = logging.getLogger(__name__)


class InductionContext:
    """State of one `induce` run, and hooks called at every step.

    The hooks do nothing here; subclass and set
    `MoNGELEstimator.InductionContextClass` to observe induction, see
    `sklearn_mongel.extra.trace_induction`.

    Attributes
    -----
    attributes : Attributes
        Description of the condition attributes.

    X : np.ndarray
        The normalized training instances.

    y : np.ndarray
        The class indices of `X`.
    """

    def __init__(self, attributes: Attributes, X: np.ndarray, y: np.ndarray):
        self.attributes = attributes
        self.X = X
        self.y = y

    def rules_initialized(self, rules: List[Rule]):
        """Called with the deduplicated point rules."""
        pass

    def merge_accepted(self, i: int, j: int, merged: Rule, rules: List[Rule]):
        """Called after rules `i` and `j` were replaced by `merged`, which is
        now at position `i` of `rules`.
        """
        pass

    def merge_rejected(self, i: int, j: int, blocking: int):
        """Called if the merge of rules `i` and `j` would overlap rule
        `blocking`, which has a different head.
        """
        pass

    def rule_removed(self, index: int, rule: Rule, row_sum: int,
                     coverage: int, n_rules: int):
        """Called after `MonotonicityReducer` removed `rule`, leaving
        `n_rules` rules.
        """
        pass

    def induction_finished(self, rules: RuleSet):
        """Called with the final rule set."""
        pass


def initialize_rules(X: np.ndarray, y: np.ndarray, attributes: Attributes
                     ) -> List[Rule]:
    """:return: One point rule per distinct `(instance, class)` pair, ordered
        by descending class index; equal classes keep their order of first
        occurrence in `X`.
    """
    rules = [Rule.from_instance(instance, head, attributes)
             for instance, head in zip(X, y)]
    rules.sort(key=lambda rule: rule.head, reverse=True)
    unique_rules = []
    for rule in rules:
        if rule not in unique_rules:
            unique_rules.append(rule)
    return unique_rules


def _find_merge_partner(rules: Sequence[Rule], i: int) -> Union[int, None]:
    """:return: Index of the nearest rule after `i` with the same head and
        comparable conditions, first one among equally near rules. None if
        there is no such rule.
    """
    rule = rules[i]
    partner = None
    partner_distance = np.inf
    for j in range(i + 1, len(rules)):
        other = rules[j]
        if other.head != rule.head \
                or rule.compare_input(other) == INCOMPARABLE:
            continue
        distance = rule.distance_to_rule(other)
        if distance < partner_distance:
            partner, partner_distance = j, distance
    return partner


def _find_blocking_rule(rules: Sequence[Rule], candidate: Rule,
                        i: int, j: int) -> Union[int, None]:
    """:return: Index of the first rule with a head different from
        `candidate` which `candidate` overlaps, ignoring `i` and `j`.
    """
    for k, other in enumerate(rules):
        if k in (i, j) or other.head == candidate.head:
            continue
        if candidate.overlaps(other):
            return k
    return None


def merge_rules(rules: Sequence[Rule],
                context: InductionContext = None) -> List[Rule]:
    """Greedily merge rules of equal head into bigger hyperrectangles.

    Each rule, in order, tries its nearest comparable partner of same head
    (see `_find_merge_partner`). The merge is accepted unless the merged rule
    overlaps a rule of a different head. After each accepted merge the scan
    restarts at the first rule; it ends after a full scan without merges.

    :return: The merged rules; each merge takes the position of the earlier
        of its two rules.
    """
    rules = list(rules)
    merged_any = True
    while merged_any:
        merged_any = False
        for i in range(len(rules)):
            j = _find_merge_partner(rules, i)
            if j is None:
                continue
            merged = rules[i].merge(rules[j])
            blocking = _find_blocking_rule(rules, merged, i, j)
            if blocking is not None:
                logger.debug("merge of rules %d and %d blocked by rule %d",
                             i, j, blocking)
                if context is not None:
                    context.merge_rejected(i, j, blocking)
                continue
            rules[i] = merged
            del rules[j]
            logger.debug("merged rules %d and %d, %d rules left",
                         i, j, len(rules))
            if context is not None:
                context.merge_accepted(i, j, merged, rules)
            merged_any = True
            break
    return rules


def induce(X: np.ndarray, y: np.ndarray, attributes: Attributes,
           context: InductionContext = None) -> RuleSet:
    """Learn a monotonic rule set.

    :param X: The training instances, normalized by `attributes.normalize`.
    :param y: The class index of each instance in `X`. Higher indices stand
        for higher classes.
    :param context: Receives progress notifications. None to not observe.
    :return: The rule set, free of anti-monotonic rule pairs.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y)
    if X.ndim != 2 or not len(X):
        raise ValueError("cannot induce rules from an empty training set, "
                         "got X of shape {}".format(X.shape))
    attributes.check_n_features(X.shape[1])
    if y.shape != (len(X),):
        raise ValueError("y of shape {} does not fit X of shape {}"
                         .format(y.shape, X.shape))
    if not np.array_equal(y, y.astype(int)):
        raise ValueError("y has to contain integer class indices, got {}"
                         .format(np.unique(y)))
    y = y.astype(int)
    if context is None:
        context = InductionContext(attributes, X, y)

    rules = initialize_rules(X, y, attributes)
    logger.info("initialized %d rules from %d instances", len(rules), len(X))
    context.rules_initialized(rules)

    rules = merge_rules(rules, context)
    logger.info("merged into %d rules", len(rules))

    rules = MonotonicityReducer(rules, X, context).reduce()
    logger.info("reduced to %d monotonic rules", len(rules))

    rule_set = tuple(rules)
    context.induction_finished(rule_set)
    return rule_set


def classify(rule_set: RuleSet, instance,
             mode: Union[str, ClassificationStrategy] = 'nearest') -> int:
    """:return: The class index predicted for the normalized `instance`.

    :param mode: 'nearest', 'ordered' or a `ClassificationStrategy`, see
        `sklearn_mongel.concrete.CLASSIFICATION_STRATEGIES`.
    """
    instance = np.asarray(instance, dtype=float)
    if instance.ndim != 1:
        raise ValueError("expected a single instance, got shape {}"
                         .format(instance.shape))
    strategy = make_classification_strategy(mode)
    return int(strategy.classify(rule_set, instance[np.newaxis])[0])


def describe(rule_set: RuleSet, feature_names: List[str] = None,
             class_names: List[str] = None) -> List[str]:
    """:return: One line per rule, see `Rule.to_string`."""
    return [rule.to_string(feature_names, class_names) for rule in rule_set]


def rule_count(rule_set: RuleSet) -> int:
    return len(rule_set)


# noinspection PyAttributeOutsideInit
class MoNGELEstimator(ClassifierMixin, BaseEstimator):
    """A monotonic classifier using generalized hyperrectangles (rules)
    learned with the MoNGEL algorithm.

    Class labels are sorted (see `LabelEncoder`) and that order is the output
    ordering the learned rule set is monotonic in. Features are assumed to be
    ordered as well, including the numerically encoded nominal ones.

    Fields
    -----
    InductionContextClass : subclass of InductionContext
        Instantiated once per `fit`, receives the induction hooks.

    Parameters
    -----
    categorical_features : None or "all" or array of indices or mask
        Specify what features are treated as nominal, modeled after
        `sklearn.preprocessing.OneHotEncoder`:

        - None (default): All features are treated as numeric & ordinal.
        - 'all': All features are treated as nominal.
        - array of indices: Array of nominal feature indices.
        - mask: Array of length n_features and with dtype=bool.

        Nominal features are compared by value set inclusion and their
        values have to be seen during `fit`.

    classification : str or ClassificationStrategy
        How `predict` applies the rules:

        - 'nearest' (default): the nearest rule, see
          :class:`NearestRuleClassification`.
        - 'ordered': the first dominating rule, see
          :class:`OrderedDominanceClassification`.
        - a `ClassificationStrategy` instance.

    Attributes
    -----
    classes_ : np.ndarray
        `np.unique(y)`, in ascending order.

    n_features_in_ : int
        The number of features of the training data.

    categorical_mask_ : np.ndarray
        The resolved `categorical_features`, a bool mask.

    attributes_ : Attributes
        Ranges and nominal values seen during `fit`.

    classification_strategy_ : ClassificationStrategy
        The resolved `classification`.

    rules_ : RuleSet
        The learned rules, over normalized attributes and heads indexing
        `classes_`.
    """

    InductionContextClass: Type[InductionContext] = InductionContext

    def __init__(self, categorical_features=None, classification='nearest'):
        self.categorical_features = categorical_features
        self.classification = classification

    def fit(self, X, y):
        """Fit to data, i.e. learn the rule set.

        :param X: Training instances, nominal features numerically encoded.
        :param y: Ordered classification labels for `X`.
        """
        X, y = check_X_y(X, y, dtype=np.float64)
        check_classification_targets(y)

        # prepare  target / labels / y
        self.label_encoder_ = LabelEncoder().fit(y)
        self.classes_ = self.label_encoder_.classes_
        y_index = self.label_encoder_.transform(y)

        # prepare  attributes / features / X
        self.n_features_in_ = X.shape[1]
        self.categorical_mask_ = \
            build_categorical_mask(self.categorical_features,
                                   self.n_features_in_)
        if self.categorical_mask_ is None:
            raise ValueError("categorical_features must be one of: None,"
                             " 'all', array of dtype bool or integer,"
                             " but got {}.".format(self.categorical_features))
        self.classification_strategy_ = \
            make_classification_strategy(self.classification)
        self.attributes_ = Attributes.from_data(X, self.categorical_mask_)
        X_normalized = self.attributes_.normalize(X)

        # run MoNGEL algorithm
        context = self.InductionContextClass(self.attributes_, X_normalized,
                                             y_index)
        self.rules_: RuleSet = induce(X_normalized, y_index, self.attributes_,
                                      context)
        return self

    @property
    def n_rules_(self) -> int:
        """Number of rules learned."""
        check_is_fitted(self, 'rules_')
        return rule_count(self.rules_)

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predict classes of `X` by applying `classification_strategy_`.

        :raise ValueError: if `X` has a nominal value not seen during `fit`.
        """
        check_is_fitted(self, ['rules_', 'attributes_',
                               'classification_strategy_'])
        X: np.ndarray = check_array(X, dtype=np.float64)
        n_features = X.shape[1]
        if self.n_features_in_ != n_features:
            raise ValueError("X has %d features, but MoNGELEstimator is "
                             "expecting %d features as input."
                             % (n_features, self.n_features_in_))
        indices = self.classification_strategy_.classify(
            self.rules_, self.attributes_.normalize(X))
        return self.classes_[indices]

    def export_text(self, feature_names: List[str] = None,
                    class_names: List[str] = None) -> str:
        """Build a text report showing the learned rules.

        See Also `sklearn.tree.export_text`

        Parameters
        -----
        feature_names : list, optional
            A list of length n_features containing the feature names.
            If None, generic names will be generated.

        class_names: list, optional
            A list of length n_classes containing the class names, ordered
            like `self.classes_`. If None, `classes_` will be used.
        """
        check_is_fitted(self, 'rules_')
        if feature_names:
            if len(feature_names) != self.n_features_in_:
                raise ValueError(
                    "feature_names must contain %d elements, got %d"
                    % (self.n_features_in_, len(feature_names)))
        if class_names is None:
            class_names = [str(c) for c in self.classes_]
        return '\n'.join(describe(self.rules_, feature_names, class_names))
