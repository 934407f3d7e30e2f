from .evaluation_engine import EvaluationEngine

__all__ = ['EvaluationEngine']
