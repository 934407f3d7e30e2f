"""
Custom exception hierarchy for the H2O GLM Regularization Grid pipeline.
"""

class GLMGridException(Exception):
    """Base exception for all pipeline errors."""
    pass

class ConfigurationError(GLMGridException):
    """Configuration validation failed."""
    pass

class ClusterConnectionError(GLMGridException):
    """Starting or connecting to the H2O cluster failed."""
    pass

class DataValidationError(GLMGridException):
    """Data ingestion or validation failed."""
    pass

class GridSearchError(GLMGridException):
    """Grid search produced no usable models."""
    pass

class ModelSelectionError(GLMGridException):
    """Best model could not be selected from the grid."""
    pass

class ReportingError(GLMGridException):
    """Report extraction or rendering failed."""
    pass
