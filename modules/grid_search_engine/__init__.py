"""
Grid Search Engine
==================

Responsibility:
- Build the GLM template (binomial family, lambda search).
- Run H2OGridSearch over the alpha hyper-parameter on the cluster.
- Guard against oversized grids and report failed grid members.
- Tabulate per-model regularization and metrics.
"""

from .grid_search_engine import GridSearchEngine

__all__ = ['GridSearchEngine']
