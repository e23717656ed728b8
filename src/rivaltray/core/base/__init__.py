"""Base classes for components"""

from .lifecycle_component import ComponentState, LifecycleComponent

__all__ = ["ComponentState", "LifecycleComponent"]
