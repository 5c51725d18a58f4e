"""
FeeWatch - Fee Estimate Refresh Engine

Keeps a single fee-estimate snapshot fresh under unreliable network
conditions: fetches it, retries failed fetches with linear backoff and
re-polls on a fixed cadence once a value is available.
"""

__version__ = "0.1.0"
__author__ = "FeeWatch Team"
