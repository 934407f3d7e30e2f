"""
Model Export Module.

Persists the selected GLM (binary model and optional MOJO) with a metadata sidecar.
"""

from .model_export_engine import ModelExportEngine

__all__ = [
    'ModelExportEngine'
]
