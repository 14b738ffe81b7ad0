"""
Churn model evaluation harness for the bank customer dataset.
"""

__version__ = "0.1.0"
