"""
Upstream fee-estimate sources.
"""
from .http_source import HttpFeeSource

__all__ = ["HttpFeeSource"]
