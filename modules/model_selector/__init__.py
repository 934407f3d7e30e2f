from .model_selector import ModelSelector

__all__ = ['ModelSelector']
