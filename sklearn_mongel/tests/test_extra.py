"""Tests for `sklearn_mongel.extra`."""
import io
from typing import Tuple

import matplotlib
matplotlib.use('Agg')  # noqa: E402, no display needed
import numpy as np
import pytest
from numpy.testing import assert_array_equal

from sklearn_mongel.abstract import MoNGELEstimator
from sklearn_mongel.common import Attributes, Rule
from sklearn_mongel.extra import Trace, trace_induction, plot_trace, \
    plot_rules
from sklearn_mongel.tests.datasets import Dataset, noisy_monotone_2d, \
    identical_inputs


@pytest.fixture
def trace_estimator() -> Tuple[Trace, MoNGELEstimator, Dataset]:

    trace: Trace = None

    def trace_callback(trace_: Trace):
        nonlocal trace
        assert trace is None  # only one run
        trace = trace_

    estimator = trace_induction(MoNGELEstimator, trace_callback)()
    dataset = noisy_monotone_2d()
    estimator.fit(dataset.x_train, dataset.y_train)
    assert trace is not None
    return trace, estimator, dataset


def test_trace_consistency(trace_estimator):
    """Test the `trace_induction` decorator."""
    trace, estimator, dataset = trace_estimator
    assert isinstance(estimator, MoNGELEstimator)
    assert type(estimator).__name__ == 'TracedMoNGELEstimator'
    assert trace.n_initial_rules == len(dataset.x_train)
    assert trace.n_final_rules == estimator.n_rules_
    assert trace.n_rules()[-1] == estimator.n_rules_
    assert trace.n_initial_rules - trace.count(Trace.MERGE) \
        - trace.count(Trace.REMOVE) == estimator.n_rules_
    for step in trace.steps:
        if step.kind == Trace.REMOVE:
            assert step.row_sum > 0
    assert np.all(np.diff(trace.n_rules()) <= 0)


def test_trace_json(trace_estimator):
    trace, _, _ = trace_estimator
    json_str = trace.to_json()
    assert Trace.from_json(json_str) == trace
    assert Trace.from_json(io.StringIO(json_str)) == trace

    with pytest.raises(ValueError, match="invalid induction trace"):
        Trace.from_json('{"steps": []}')
    with pytest.raises(ValueError, match="Unsupported"):
        Trace.from_json(json_str.replace('"version": 1', '"version": 99'))


def test_plot_trace(trace_estimator):
    trace, _, _ = trace_estimator
    figure = plot_trace(trace, title="noisy monotone 2d")
    assert len(figure.axes) == 1
    assert trace.plot() is not None

    with pytest.warns(UserWarning, match="Empty trace"):
        plot_trace(Trace())


def test_plot_rules(trace_estimator):
    _, estimator, dataset = trace_estimator
    y_index = estimator.label_encoder_.transform(dataset.y_train)
    figure = plot_rules(estimator.rules_, X=dataset.x_train, y=y_index,
                        title="rules")
    ax = figure.axes[0]
    assert len(ax.patches) == estimator.n_rules_
    assert ax.get_xlabel() == 'feature_1'

    with pytest.warns(UserWarning, match="Empty rule set"):
        plot_rules(())


def test_plot_rules_nominal():
    attributes = Attributes.for_normalized([False, True], [1, 2])
    rules = (Rule.from_instance([0.5, 1.], 0, attributes),)
    with pytest.raises(ValueError, match="nominal"):
        plot_rules(rules)
    assert_array_equal(rules[0].members[1], [False, True])


def test_trace_identical_inputs():
    traces = []
    estimator = trace_induction(MoNGELEstimator, traces.append)()
    dataset = identical_inputs()
    estimator.fit(dataset.x_train, dataset.y_train)
    trace, = traces
    assert trace.n_initial_rules == 3
    assert trace.steps == [
        Trace.Step(Trace.REJECT, 0, 2, 3),
        Trace.Step(Trace.REMOVE, 0, -1, 2, row_sum=1, coverage=2),
    ]
    assert trace.n_final_rules == 2
    assert_array_equal(trace.n_rules(), [3, 3, 2])
