"""
Module `models.evaluator` - đánh giá hiệu năng mô hình phân loại attendance.

Important keywords: Args, Returns, Methods
"""

import numpy as np
import pandas as pd
from typing import Dict, Any, Optional
from sklearn.metrics import (
    classification_report, confusion_matrix, precision_score,
    recall_score, f1_score, roc_curve, roc_auc_score, mean_squared_error
)

# Metric càng nhỏ càng tốt khi so sánh mô hình
LOWER_IS_BETTER = {'rmse'}


def accuracy_from_confusion(cm: np.ndarray) -> float:
    """Accuracy = tổng đường chéo confusion matrix / tổng số mẫu."""
    total = cm.sum()
    if total == 0:
        raise ValueError("Cannot compute accuracy on an empty confusion matrix")
    return float(np.trace(cm) / total)


def rmse(y_true, y_pred) -> float:
    """RMSE giữa nhãn và dự đoán đã ép về số (giữ nguyên cách tính của bản phân tích gốc)."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


class ModelEvaluator:
    """
    Class: ModelEvaluator
    Chịu trách nhiệm tính toán các chỉ số đánh giá (metrics) cho mô hình phân loại.

    Methods:
        evaluate(model, X_test, y_test, model_name, threshold): Đánh giá toàn diện và trả về kết quả.
        build_comparison_table(results): Bảng accuracy / RMSE / AUC để in ra console.
    """

    def __init__(self, logger=None):
        """
        Constructor: __init__
        Khởi tạo ModelEvaluator.

        Args:
            logger (logging.Logger, optional): Đối tượng logger để ghi lại kết quả đánh giá. Defaults to None.
        """
        self.logger = logger

    def evaluate(self, model: Any, X_test, y_test, model_name: str = 'model',
                 threshold: Optional[float] = None) -> Dict[str, Any]:
        """
        Method: evaluate
        Tính toán các metrics và trả về dictionary chứa kết quả chi tiết.

        Args:
            model (Any): Mô hình đã huấn luyện (cần .predict, tùy chọn .predict_proba).
            X_test (pd.DataFrame or np.ndarray): Đặc trưng tập kiểm thử.
            y_test (pd.Series or np.ndarray): Nhãn thực tế 0/1.
            model_name (str, optional): Tên mô hình để hiển thị trong log. Defaults to 'model'.
            threshold (float, optional): Nếu có, dự đoán = 1 khi xác suất > threshold
                (dùng cho logistic regression). Nếu None, dùng model.predict.

        Returns:
            Dict[str, Any]: Dictionary chứa kết quả đánh giá, bao gồm các keys:
                - 'metrics': accuracy, rmse, precision, recall, f1, roc_auc (nếu có xác suất).
                - 'y_pred': Mảng dự đoán nhãn.
                - 'y_pred_proba': Xác suất class 1 (forest: trung bình xác suất lá của các cây), None nếu không có.
                - 'classification_report': Báo cáo chi tiết dạng text.
                - 'confusion_matrix': Ma trận nhầm lẫn 2x2.
                - 'roc_curve_data': Tuple (fpr, tpr, auc) để vẽ biểu đồ ROC.

        Raises:
            ValueError: Nếu cần threshold nhưng mô hình không có predict_proba,
                hoặc y_test chỉ có một class (AUC không xác định).
        """
        y_true = np.asarray(y_test).astype(int)
        y_pred_proba = model.predict_proba(X_test)[:, 1] if hasattr(model, 'predict_proba') else None

        if threshold is not None:
            if y_pred_proba is None:
                raise ValueError(f"Model '{model_name}' has no predict_proba; cannot apply threshold")
            y_pred = (y_pred_proba > threshold).astype(int)
        else:
            y_pred = np.asarray(model.predict(X_test)).astype(int)

        cm = confusion_matrix(y_true, y_pred, labels=[0, 1])

        metrics = {
            'accuracy': accuracy_from_confusion(cm),
            'rmse': rmse(y_true, y_pred),
            'precision': precision_score(y_true, y_pred, zero_division=0),
            'recall': recall_score(y_true, y_pred, zero_division=0),
            'f1': f1_score(y_true, y_pred, zero_division=0)
        }

        roc_curve_data = None
        if y_pred_proba is not None:
            if len(np.unique(y_true)) < 2:
                raise ValueError(f"Cannot compute ROC-AUC for '{model_name}': test labels contain a single class")
            metrics['roc_auc'] = float(roc_auc_score(y_true, y_pred_proba))
            fpr, tpr, _ = roc_curve(y_true, y_pred_proba)
            roc_curve_data = (fpr, tpr, metrics['roc_auc'])

        result = {
            'metrics': metrics,
            'y_pred': y_pred,
            'y_pred_proba': y_pred_proba,
            'classification_report': classification_report(y_true, y_pred, labels=[0, 1], zero_division=0),
            'confusion_matrix': cm,
            'roc_curve_data': roc_curve_data
        }

        if self.logger:
            self.logger.info(f"[EVALUATION] {model_name.upper()}")
            log_msg = " | ".join([f"{k.upper()}: {v:.4f}" for k, v in metrics.items()])
            self.logger.info(f"  {log_msg}")

        return result

    @staticmethod
    def build_comparison_table(results: Dict[str, Dict[str, Any]]) -> pd.DataFrame:
        """
        Gom accuracy / RMSE / AUC của các mô hình vào một bảng.

        Args:
            results (Dict): {model_name: kết quả evaluate()} hoặc {model_name: metrics dict}.

        Returns:
            pd.DataFrame: index = model, columns = ['accuracy', 'rmse', 'roc_auc'].
        """
        rows = {}
        for name, res in results.items():
            metrics = res.get('metrics', res)
            rows[name] = {
                'accuracy': metrics.get('accuracy', np.nan),
                'rmse': metrics.get('rmse', np.nan),
                'roc_auc': metrics.get('roc_auc', np.nan),
            }
        table = pd.DataFrame.from_dict(rows, orient='index', columns=['accuracy', 'rmse', 'roc_auc'])
        table.index.name = 'model'
        return table
