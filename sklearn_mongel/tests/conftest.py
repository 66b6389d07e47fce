"""pytest fixtures for the test cases in this directory."""

import numpy as np
import pytest

from sklearn_mongel.common import Attributes, Rule, RuleSet

from .datasets import Dataset, \
    monotone_2d, noisy_monotone_2d, mixed_nominal, ordinal_grades, \
    identical_inputs


# pytest plugin, to print the learned rules on test failure
@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    default = yield
    report = default.get_result()
    if report.failed and report.user_properties:
        for name, prop in report.user_properties:
            if name == 'rules':
                report.longrepr.addsection(name, str(prop))
                break
    return default


@pytest.fixture
def record_rules(record_property):
    def _record(rules: RuleSet):
        record_property("rules", '\n'.join(rule.to_string()
                                           for rule in rules))
    return _record


def interval_rule(head: int, *bounds, attributes: Attributes = None) -> Rule:
    """:return: A `Rule` over numeric attributes only, with one
        `(lower, upper)` tuple per attribute in `bounds`.
    """
    if attributes is None:
        attributes = Attributes.for_normalized([False] * len(bounds))
    body = np.array(bounds, dtype=float).T
    members = np.zeros((len(bounds), attributes.max_values), dtype=bool)
    return Rule(head, body, members, attributes)


@pytest.fixture
def numeric_1d() -> Attributes:
    """One numeric attribute, values already normalized."""
    return Attributes.for_normalized([False])


@pytest.fixture
def mixed_attributes() -> Attributes:
    """A numeric attribute followed by a nominal one with 3 values."""
    return Attributes.for_normalized([False, True], [1, 3],
                                     names=['size', 'color'])


@pytest.fixture(params=[monotone_2d,
                        noisy_monotone_2d,
                        mixed_nominal,
                        ordinal_grades,
                        identical_inputs,
                        ])
def blackbox_test(request) -> Dataset:
    return request.param()
