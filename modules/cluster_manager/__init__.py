"""
Cluster Manager Module
======================

Responsibility:
- Start or attach to the H2O cluster (h2o.init).
- Report cluster identity and size.
- Guaranteed teardown through a session context manager.
"""

from .cluster_manager import ClusterManager

__all__ = ['ClusterManager']
