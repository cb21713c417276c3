"""Model build tools."""

from .api import register_model_tools

__all__ = ["register_model_tools"]
