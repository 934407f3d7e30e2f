"""
Data Manager Module
===================

Responsibility:
- Import of the raw CSV into the H2O cluster.
- Validation of referenced columns.
- Filtering to the two target classes and declaration of response levels.
- Column profile and class distribution reports.
"""

from .data_manager import DataManager

__all__ = ['DataManager']
