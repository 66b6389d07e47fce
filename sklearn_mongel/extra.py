"""
Implementation of the MoNGEL algorithm:
Helpers in addition to the algorithms in `abstract.py`, for tracing and
plotting rule set induction.
"""

import json
import warnings
from typing import Callable, IO, List, MutableSequence, NamedTuple, \
    Optional, Tuple, Type, Union

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure  # needed only for type hints
from matplotlib.patches import Rectangle

from sklearn_mongel.abstract import InductionContext, MoNGELEstimator
from sklearn_mongel.common import Rule, RuleSet


class Trace:
    """Trace of a MoNGEL induction run, i.e. `induce` invocation.

    Attributes
    -----
    - `n_initial_rules`: int
      Number of point rules after deduplication, i.e. before merging.

    - `steps`: MutableSequence[Trace.Step]
      Each item represents one accepted merge, rejected merge or removal of
      a rule, in order of occurrence.

    - `n_final_rules`: int
      Size of the learned rule set, None while induction is running.
    """

    _JSON_DUMP_DESCRIPTION = "sklearn_mongel.extra.trace_induction dump"
    _JSON_DUMP_VERSION = 1

    MERGE = 'merge'
    REJECT = 'reject'
    REMOVE = 'remove'

    class Step(NamedTuple):
        """One induction step.

        - `kind`: one of `Trace.MERGE`, `Trace.REJECT`, `Trace.REMOVE`
        - `index`: the rule kept by a merge resp. removed
        - `other`: the rule merged away resp. the rule blocking a merge;
          -1 for removals
        - `n_rules`: number of rules after the step
        - `row_sum`, `coverage`: anti-monotonic partners and covered
          instances of a removed rule; 0 for merges
        """
        kind: str
        index: int
        other: int
        n_rules: int
        row_sum: int = 0
        coverage: int = 0

    steps: MutableSequence['Trace.Step']

    def __init__(self):
        self.n_initial_rules = None
        self.n_final_rules = None
        self.steps = []

    def __eq__(self, other):
        if type(other) is type(self):
            return self.__dict__ == other.__dict__
        return NotImplemented

    def n_rules(self) -> np.ndarray:
        """:return: The number of rules before the first and after each step.
        """
        return np.array([self.n_initial_rules]
                        + [step.n_rules for step in self.steps], dtype=int)

    def count(self, kind: str) -> int:
        """:return: Number of steps of `kind`."""
        return sum(1 for step in self.steps if step.kind == kind)

    def plot(self, **kwargs):
        """Plot the trace, see :func:`plot_trace`."""
        return plot_trace(self, **kwargs)

    def to_json(self):
        """:return: A string containing a JSON representation of the trace."""
        return json.dumps({
            "description": Trace._JSON_DUMP_DESCRIPTION,
            "version": Trace._JSON_DUMP_VERSION,
            "n_initial_rules": self.n_initial_rules,
            "n_final_rules": self.n_final_rules,
            "steps": [step._asdict() for step in self.steps],
        }, allow_nan=False)

    @staticmethod
    def from_json(dump: Union[str, IO]) -> 'Trace':
        """
        :param dump: A file-like object or string containing JSON.
        :return : The `Trace` dumped previously with `to_json`.
        """
        loader = json.loads if isinstance(dump, str) else json.load
        dec = loader(dump)

        if dec.get("description") != Trace._JSON_DUMP_DESCRIPTION:
            raise ValueError("No/invalid induction trace json: %s"
                             % repr(dec))
        if dec["version"] != Trace._JSON_DUMP_VERSION:
            raise ValueError("Unsupported induction trace version: %s"
                             % dec["version"])
        trace = Trace()
        trace.n_initial_rules = dec['n_initial_rules']
        trace.n_final_rules = dec['n_final_rules']
        trace.steps = [Trace.Step(**step) for step in dec['steps']]
        return trace


class TraceInductionContext(InductionContext):
    """`InductionContext` recording every step into `trace`."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.trace = Trace()

    def rules_initialized(self, rules: List[Rule]):
        super().rules_initialized(rules)
        self.trace.n_initial_rules = len(rules)

    def merge_accepted(self, i: int, j: int, merged: Rule, rules: List[Rule]):
        super().merge_accepted(i, j, merged, rules)
        self.trace.steps.append(Trace.Step(Trace.MERGE, i, j, len(rules)))

    def merge_rejected(self, i: int, j: int, blocking: int):
        super().merge_rejected(i, j, blocking)
        n_rules = self.trace.n_rules()[-1]
        self.trace.steps.append(
            Trace.Step(Trace.REJECT, i, blocking, int(n_rules)))

    def rule_removed(self, index: int, rule: Rule, row_sum: int,
                     coverage: int, n_rules: int):
        super().rule_removed(index, rule, row_sum, coverage, n_rules)
        self.trace.steps.append(
            Trace.Step(Trace.REMOVE, index, -1, n_rules, row_sum, coverage))

    def induction_finished(self, rules: RuleSet):
        super().induction_finished(rules)
        self.trace.n_final_rules = len(rules)


LogTraceCallback = Callable[[Trace], None]


def trace_induction(est_cls: Type[MoNGELEstimator],
                    log_trace_callback: LogTraceCallback,
                    ) -> Type[MoNGELEstimator]:
    """Decorator for `MoNGELEstimator` that adds tracing of the rule count
    while inducing the rule set. Traces can be plotted with `plot_trace`.

    At the end of each `fit`, the collected trace is submitted to the
    `log_trace_callback` function.

    Usage
    =====
    Define the callback function to receive the trace & display it:

    >>> def callback(trace):
    ...     plot_trace(trace).show()

    and call directly:

    >>> MyTracedMoNGEL = trace_induction(MoNGELEstimator, callback)
    """

    class TracedEstimator(est_cls):
        class InductionContextClass(TraceInductionContext,
                                    est_cls.InductionContextClass):

            def induction_finished(self, rules: RuleSet):
                super().induction_finished(rules)
                # transfer collected trace from the context object which is
                # in local scope of `fit`
                log_trace_callback(self.trace)

    TracedEstimator.__name__ = 'Traced' + est_cls.__name__
    TracedEstimator.__qualname__ = TracedEstimator.__name__
    return TracedEstimator


def plot_trace(trace: Trace,
               *,
               title: Optional[str] = None,
               figure: Optional[Figure] = None,
               ) -> Figure:
    """Plot the number of rules over the induction steps, marking rejected
    merges and removals.

    :param trace: collected `Trace`, see also `trace_induction`.
    :param title: string or None. If not None, set as figure title.
    :param figure: If None, use `plt.figure()` to create a figure, otherwise
      use this parameter.
    :return: The figure.
    """
    if trace.n_initial_rules is None or not trace.steps:
        # issue a warning, user can decide handling. See module `warnings`
        warnings.warn("Empty trace collected, useless plot.")
    if figure is None:
        figure = plt.figure()
    ax = figure.add_subplot(1, 1, 1)
    ax.set_xlabel('step')
    ax.set_ylabel('rules')
    if trace.n_initial_rules is None:
        return figure

    n_rules = trace.n_rules()
    ax.plot(np.arange(len(n_rules)), n_rules, color='grey',
            drawstyle='steps-post', label='rules')
    for kind, marker in ((Trace.MERGE, 'o'),
                         (Trace.REJECT, 'x'),
                         (Trace.REMOVE, 'v')):
        # steps are numbered from 1, the initial state is 0
        positions = [n + 1 for n, step in enumerate(trace.steps)
                     if step.kind == kind]
        if positions:
            ax.plot(positions, n_rules[positions], marker=marker,
                    linestyle='', label=kind)
    ax.legend()
    if title is not None:
        figure.suptitle(title)
    return figure


def plot_rules(rules: RuleSet,
               features: Tuple[int, int] = (0, 1),
               *,
               X: Optional[np.ndarray] = None,
               y: Optional[np.ndarray] = None,
               title: Optional[str] = None,
               figure: Optional[Figure] = None,
               ) -> Figure:
    """Draw the rules projected onto two numeric features, in the original
    scale of their `Attributes`.

    :param features: Indices of the two features to draw, both numeric.
    :param X: If not None, scatter these instances (original scale) as well.
    :param y: The class indices of `X`, for coloring. Needs `X`.
    :param title: string or None. If not None, set as figure title.
    :param figure: If None, use `plt.figure()` to create a figure, otherwise
      use this parameter.
    :return: The figure.
    """
    if figure is None:
        figure = plt.figure()
    ax = figure.add_subplot(1, 1, 1)
    if not len(rules):
        warnings.warn("Empty rule set, useless plot.")
        return figure

    attributes = rules[0].attributes
    fx, fy = features
    if attributes.categorical_mask[[fx, fy]].any():
        raise ValueError("can only draw numeric features, but {} are nominal"
                         .format([f for f in features
                                  if attributes.categorical_mask[f]]))
    colors = plt.get_cmap('tab10')
    for rule in rules:
        lower = [attributes.denormalize(f, rule.lower[f]) for f in features]
        upper = [attributes.denormalize(f, rule.upper[f]) for f in features]
        ax.add_patch(Rectangle(lower, upper[0] - lower[0],
                               upper[1] - lower[1],
                               edgecolor=colors(rule.head % 10),
                               facecolor=colors(rule.head % 10),
                               alpha=0.3))
    if X is not None:
        X = np.asarray(X)
        colors_X = None if y is None else \
            [colors(int(head) % 10) for head in y]
        ax.scatter(X[:, fx], X[:, fy], c=colors_X, marker='.')

    def limits(feature: int) -> Tuple[float, float]:
        margin = 0.05 * (attributes.maximum[feature]
                         - attributes.minimum[feature]) or 0.5
        return (attributes.minimum[feature] - margin,
                attributes.maximum[feature] + margin)

    ax.set_xlim(*limits(fx))
    ax.set_ylim(*limits(fy))
    ax.set_xlabel(attributes.names[fx])
    ax.set_ylabel(attributes.names[fy])
    if title is not None:
        figure.suptitle(title)
    return figure
