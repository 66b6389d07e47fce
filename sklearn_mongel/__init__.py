"""Implementation of the MoNGEL algorithm, learning monotonic rule sets of
generalized hyperrectangles.

Limitations / Assumptions
=====

- no sparse input
- no missing values
- no NaN, inf, or -inf values in data
- classes are ordered; their sort order (see `LabelEncoder`) is the output
  ordering monotonicity refers to
- all features are assumed to be ordered, nominal ones included; nominal
  values have to be numerically encoded and all of them seen during `fit`
- nominal features only support value set inclusion, numeric features only
  closed intervals
- induction is quadratic in memory and roughly cubic in time in the number of
  distinct training instances
- no weighting
- classification only, no regression
"""

__all__ = ['abstract', 'common', 'concrete', 'extra', 'tests', 'util']
