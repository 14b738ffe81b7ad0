import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin

from bankchurn.modeling import ClassifierAdapter


class FlakyClassifier(ClassifierMixin, BaseEstimator):
    """
    Predicts the training churn rate for everyone; raises in fit when asked to.
    `bias` shifts the predicted probability so grid entries score differently.
    """

    def __init__(self, fail=False, bias=0.0):
        self.fail = fail
        self.bias = bias

    def fit(self, X, y):
        if self.fail:
            raise ValueError("singular matrix")
        self.classes_ = np.unique(y)
        self.rate_ = float(np.mean(y))
        return self

    def predict_proba(self, X):
        p = float(np.clip(self.rate_ + self.bias, 0.0, 1.0))
        n = X.shape[0]
        return np.column_stack([np.full(n, 1 - p), np.full(n, p)])


class CancellingAdapter(ClassifierAdapter):
    """
    Sets `event` during the n-th call to fit.
    """

    def __init__(self, *args, event, after, **kwargs):
        super().__init__(*args, **kwargs)
        self.event = event
        self.after = after
        self.calls = 0

    def fit(self, train, config):
        self.calls += 1
        if self.calls >= self.after:
            self.event.set()
        return super().fit(train, config)
