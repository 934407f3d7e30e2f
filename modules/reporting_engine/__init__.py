"""
Reporting Module.

Responsible for rendering the run into a human-readable PDF summary.
"""

from .reporting_engine import ReportingEngine

__all__ = [
    'ReportingEngine'
]
