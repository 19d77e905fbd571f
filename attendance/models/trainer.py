"""
Module `models.trainer` - quản lý huấn luyện và đánh giá hai mô hình dự đoán attendance.

Important keywords: Args, Returns, Methods, Raises
"""

import numpy as np
import pandas as pd
from datetime import datetime
from typing import Dict, Any, Optional

from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression

from .evaluator import ModelEvaluator, LOWER_IS_BETTER


SUPPORTED_MODELS = ('logistic_regression', 'random_forest')

# Tham số mặc định khi config không khai báo
DEFAULT_MODEL_PARAMS = {
    'logistic_regression': {'penalty': None, 'max_iter': 1000},
    'random_forest': {'n_estimators': 100},
}


class ModelTrainer:
    """
    Class: ModelTrainer
    Huấn luyện Logistic Regression và Random Forest trên tập train, đánh giá trên tập test.

    Methods:
        set_data: Gán dữ liệu train/test (đã qua DataEncoder.to_model_matrix).
        train_model: Huấn luyện một mô hình với tham số cố định.
        train_all_models: Huấn luyện và đánh giá mọi mô hình trong config.
        evaluate: Đánh giá hiệu năng của một mô hình cụ thể.
        select_best_model: Chọn ra mô hình tốt nhất dựa trên metrics.
        get_feature_importance: Trích xuất độ quan trọng của các đặc trưng.
    """

    def __init__(self, config: Dict[str, Any], logger=None):
        """Khởi tạo ModelTrainer.

        Args:
            config (Dict): cấu hình mô hình (models, evaluation, data.random_state)
            logger: logger (optional)
        """
        self.config = config
        self.logger = logger

        self.evaluator = ModelEvaluator(logger)

        # State
        self.models = {}
        self.best_model = None
        self.best_model_name = None
        self.results = {}

        # Data Placeholders
        self.X_train = None
        self.X_test = None
        self.y_train = None
        self.y_test = None

        if self.logger:
            self.logger.info("ModelTrainer Initialized")

    # ==================== DATA ====================

    def set_data(self, X_train: pd.DataFrame, y_train: pd.Series,
                 X_test: pd.DataFrame, y_test: pd.Series) -> None:
        """Gán các partition đã encode cho trainer.

        Raises:
            ValueError: Nếu X/y lệch số dòng hoặc train/test khác bộ cột.
        """
        if len(X_train) != len(y_train) or len(X_test) != len(y_test):
            raise ValueError("Feature and label lengths do not match")
        if list(X_train.columns) != list(X_test.columns):
            raise ValueError("Train and test feature columns differ")

        self.X_train, self.y_train = X_train, y_train
        self.X_test, self.y_test = X_test, y_test

        if self.logger:
            self.logger.info(f"Data Shape    | Train: {self.X_train.shape} | Test: {self.X_test.shape}")

    # ==================== MODEL FACTORY ====================

    def _model_names(self):
        names = list(self.config.get('models', {}).keys()) or list(SUPPORTED_MODELS)
        return names

    def _get_model_instance(self, model_name: str, params: Dict = None) -> Any:
        """
        Factory method để tạo instance của model dựa trên tên.

        Args:
            model_name (str): 'logistic_regression' hoặc 'random_forest'.
            params (Dict, optional): Tham số khởi tạo; mặc định lấy từ config['models'][model_name].

        Returns:
            Any: Scikit-learn estimator object.

        Raises:
            ValueError: Nếu tên mô hình không được hỗ trợ.
        """
        if model_name not in SUPPORTED_MODELS:
            raise ValueError(f"Unknown model: {model_name}")

        if params is None:
            params = (self.config.get('models') or {}).get(model_name) or {}
        merged = {**DEFAULT_MODEL_PARAMS[model_name], **params}
        if model_name == 'random_forest':
            # random_state trong models.random_forest được ưu tiên hơn data.random_state
            merged.setdefault('random_state', self.config.get('data', {}).get('random_state', 42))
            return RandomForestClassifier(**merged)
        return LogisticRegression(**merged)

    # ==================== TRAINING ====================

    def _check_trainable(self) -> None:
        """
        Raises:
            ValueError: Nếu chưa có dữ liệu hoặc nhãn train chỉ có một class.
        """
        if self.X_train is None or self.y_train is None:
            raise ValueError("No training data. Call set_data() first.")
        classes = np.unique(np.asarray(self.y_train))
        if len(classes) < 2:
            raise ValueError(f"Training labels contain a single class: {classes.tolist()}")

    def train_model(self, model_name: str, params: Dict = None) -> Any:
        """
        Huấn luyện một mô hình với tham số cố định (không tuning).

        Args:
            model_name (str): Tên mô hình cần huấn luyện.
            params (Dict, optional): Tham số mô hình.

        Returns:
            Any: Mô hình đã được huấn luyện (Fitted Estimator).
        """
        self._check_trainable()
        if self.logger: self.logger.info(f"\n[TRAINING] {model_name.upper()}")

        estimator = self._get_model_instance(model_name, params)

        start_time = datetime.now()
        estimator.fit(self.X_train, self.y_train)

        if self.logger:
            self.logger.info(f"  Time: {(datetime.now() - start_time).total_seconds():.2f}s")

        self.models[model_name] = estimator
        return estimator

    def _threshold_for(self, model_name: str) -> Optional[float]:
        """Ngưỡng xác suất cho logistic regression; random forest dùng predict (class có xác suất trung bình lớn nhất)."""
        if model_name != 'logistic_regression':
            return None
        return self.config.get('evaluation', {}).get('threshold', 0.5)

    def train_all_models(self) -> Dict[str, Dict]:
        """
        Huấn luyện và đánh giá tất cả các mô hình được định nghĩa trong file cấu hình.

        Returns:
            Dict[str, Dict]: Dictionary chứa metrics của tất cả các mô hình đã huấn luyện.

        Notes:
            Lỗi khi fit/đánh giá không bị nuốt: pipeline dừng ngay.
        """
        model_names = self._model_names()

        if self.logger:
            self.logger.info("=" * 70)
            self.logger.info(f"TRAINING RUN | Models: {len(model_names)} | {', '.join(model_names)}")
            self.logger.info("=" * 70)

        all_metrics = {}
        for model_name in model_names:
            self.train_model(model_name)
            eval_result = self.evaluate(model_name)
            all_metrics[model_name] = eval_result['metrics']

        self.select_best_model(all_metrics)
        return all_metrics

    # ==================== HELPERS ====================

    def evaluate(self, model_name: str) -> Dict:
        """
        Đánh giá một mô hình đã có trong danh sách self.models.

        Args:
            model_name (str): Tên mô hình cần đánh giá.

        Returns:
            Dict: Kết quả đánh giá từ ModelEvaluator.
        """
        model = self.models.get(model_name)
        if model is None:
            raise ValueError(f"Model {model_name} not found")

        eval_result = self.evaluator.evaluate(
            model, self.X_test, self.y_test, model_name, threshold=self._threshold_for(model_name)
        )
        self.results[model_name] = eval_result
        return eval_result

    def select_best_model(self, all_metrics: Dict[str, Dict]) -> None:
        """
        So sánh metrics của các mô hình và chọn ra mô hình tốt nhất.

        Args:
            all_metrics (Dict): Dictionary chứa metrics của các mô hình.

        Notes:
            Metric so sánh lấy từ config['evaluation']['scoring'] (mặc định roc_auc).
            RMSE: nhỏ hơn là tốt hơn; các metric còn lại: lớn hơn là tốt hơn.
            Chỉ phục vụ báo cáo; không có mô hình nào bị huấn luyện lại.
        """
        scoring_metric = self.config.get('evaluation', {}).get('scoring', 'roc_auc')
        lower_is_better = scoring_metric in LOWER_IS_BETTER
        best_score = None
        best_name = None

        for model_name, metrics in all_metrics.items():
            score = metrics.get(scoring_metric)
            if score is None or np.isnan(score):
                continue
            if best_score is None or (score < best_score if lower_is_better else score > best_score):
                best_score = score
                best_name = model_name

        if best_name:
            self.best_model_name = best_name
            self.best_model = self.models[best_name]
            if self.logger:
                self.logger.info("-" * 70)
                self.logger.info(f"BEST MODEL: {best_name.upper()} | {scoring_metric.upper()}: {best_score:.4f}")
                self.logger.info("-" * 70)

    def get_feature_importance(self, model_name: str = None, top_n: int = 20) -> Optional[pd.DataFrame]:
        """
        Lấy danh sách các đặc trưng quan trọng nhất.

        Random Forest dùng impurity importance; Logistic Regression dùng |hệ số|.

        Args:
            model_name (str, optional): Tên mô hình. Nếu None, dùng best model.
            top_n (int, optional): Số lượng đặc trưng lấy ra. Defaults to 20.

        Returns:
            Optional[pd.DataFrame]: DataFrame gồm 2 cột ['feature', 'importance'], hoặc None nếu model không hỗ trợ.
        """
        if model_name is None:
            model_name = self.best_model_name
        model = self.models.get(model_name)
        if model is None:
            return None

        if hasattr(model, 'feature_importances_'):
            importance = model.feature_importances_
        elif hasattr(model, 'coef_'):
            importance = np.abs(model.coef_).ravel()
        else:
            return None

        importance_df = pd.DataFrame({
            'feature': self.X_train.columns,
            'importance': importance
        }).sort_values('importance', ascending=False).head(top_n)

        return importance_df.reset_index(drop=True)
