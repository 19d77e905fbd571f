"""
attendance/data/__init__.py

Data Processing Module - Load, Clean, Encode, Split.
    - DataPreprocessor: Load, clean, split
    - DataEncoder: Categorical typing + model matrix
"""
from .preprocessor import DataPreprocessor, parse_duration, impute_mean, missing_summary
from .encoder import DataEncoder
from .schema import normalize_day, CategoricalSpec

__all__ = [
    'DataPreprocessor',
    'DataEncoder',
    'CategoricalSpec',
    'parse_duration',
    'impute_mean',
    'missing_summary',
    'normalize_day',
]
