"""Gói visualization: các tiện ích vẽ biểu đồ.

Cung cấp lớp:
- EDAVisualizer
- EvaluateVisualizer
"""
from .eda_plots import EDAVisualizer
from .evaluate_plots import EvaluateVisualizer

__all__ = [
    'EDAVisualizer',
    'EvaluateVisualizer'
]
