"""
attendance/models/__init__.py

ML Models Module - Training, Evaluation.
    - ModelTrainer: Train logistic regression + random forest
    - ModelEvaluator: Tính metrics (accuracy, RMSE, ROC-AUC)
"""
from .trainer import ModelTrainer
from .evaluator import ModelEvaluator

__all__ = ['ModelTrainer', 'ModelEvaluator']
