# script fitting MoNGEL on the iris dataset, whose classes are ordered by
# petal size, and calculating usual evaluation measures on the training data

import logging

from sklearn.datasets import load_iris
from sklearn.metrics import confusion_matrix, classification_report, \
    mean_absolute_error
from sklearn.utils import Bunch

from sklearn_mongel.abstract import MoNGELEstimator
from sklearn_mongel.concrete import rule_set_non_monotonicity
from sklearn_mongel.util import prediction_non_monotonicity

logging.basicConfig(level=logging.INFO)

# petal length & width only, these are monotonic in the class
iris = load_iris()  # type: Bunch
X = iris.data[:, 2:]
feature_names = iris.feature_names[2:]

est = MoNGELEstimator()
est.fit(X, iris.target)

# print learning results
print(flush=True)
print("feature names: " + ', '.join(feature_names))

print("# rules #")
print(est.export_text(feature_names, list(iris.target_names)))
print("rule set non-monotonicity: {:.4f}"
      .format(rule_set_non_monotonicity(est.rules_)))

print("\n" + '# "evaluation" on training set #')
pred = est.predict(X)
print(confusion_matrix(iris.target, pred))
print(classification_report(iris.target, pred,
                            target_names=iris.target_names))
print("mean absolute error: {:.4f}".format(
    mean_absolute_error(iris.target, pred)))
print("prediction non-monotonicity: {:.4f}".format(
    prediction_non_monotonicity(X, pred)))
