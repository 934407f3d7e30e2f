from .diagnostics_engine import DiagnosticsEngine

__all__ = ['DiagnosticsEngine']
