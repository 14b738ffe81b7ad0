"""
Exception and warning types raised by the harness.
"""


class ChurnHarnessError(Exception):
    """Base class for every error the harness raises on purpose."""


class DataIntegrityError(ChurnHarnessError, ValueError):
    """Missing or malformed fields in the input data."""


class ConfigurationError(ChurnHarnessError, ValueError):
    """Unknown or invalid configuration key, hyperparameter or grid entry."""


class InsufficientMinoritySamples(ChurnHarnessError, ValueError):
    """The balancer has too few minority rows to interpolate between neighbours."""


class ConvergenceFailure(ChurnHarnessError, RuntimeError):
    """A classifier could not be fitted with a given configuration."""


class SearchCancelled(ChurnHarnessError, RuntimeError):
    """
    A grid search was cancelled before every unit finished.

    `completed` holds the scores of configurations whose folds all finished.
    """

    def __init__(self, message, completed=None):
        super().__init__(message)
        self.completed = list(completed or [])


class MetricUndefined(UserWarning):
    """A metric has no defined value (reported as NaN)."""
