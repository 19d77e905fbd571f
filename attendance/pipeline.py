"""
Module `pipeline` - điều phối các bước: Load -> Clean -> Encode -> Split -> Train -> Evaluate -> Plot.

Important keywords: Args, Returns, Methods, Notes
"""

import os
import logging
import pandas as pd
from typing import Dict, Any, Tuple, Optional

from .data import DataPreprocessor, DataEncoder, missing_summary
from .models import ModelTrainer, ModelEvaluator
from .visualization import EDAVisualizer, EvaluateVisualizer
from .utils import IOHandler, make_rng, get_timestamp, ensure_dir


VALID_MODES = ('full', 'eda', 'train')


class Pipeline:
    """
    Lớp điều phối pipeline.

    Mục đích:
    - Thiết lập các component (preprocessor, encoder, trainer, visualizers)
    - Điều phối các stage theo thứ tự cố định, lỗi ở bất kỳ stage nào đều dừng run

    Methods:
        load_and_clean(), run_eda(), run_training(), run_visualization(), run()
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger):
        """Khởi tạo Pipeline với config và logger.

        Args:
            config (Dict): cấu hình dự án
            logger (logging.Logger): logger instance
        """
        self.config = config
        self.logger = logger
        self.target_col = config['data'].get('target_col', 'attended')
        self.id_col = config['data'].get('id_col', 'booking_id')

        # Generator tường minh cho mọi bước ngẫu nhiên (split)
        self.rng = make_rng(config['data'].get('random_state', 42))

        self.preprocessor = DataPreprocessor(config, logger)
        self.encoder = DataEncoder(config, logger)
        self.trainer = ModelTrainer(config, logger)

        # Vis (khởi tạo lại trong run() để gắn với thư mục output cụ thể)
        self.eda_viz = EDAVisualizer(config)
        self.eval_viz = EvaluateVisualizer(config)

        self.run_dir: Optional[str] = None
        self._raw_df: Optional[pd.DataFrame] = None
        self._clean_df: Optional[pd.DataFrame] = None

        self.logger.info("Pipeline Initialized")

    def _log_header(self, title: str) -> None:
        self.logger.info("\n" + "=" * 70)
        self.logger.info(title)
        self.logger.info("=" * 70)

    # =========================================================================
    # STAGE 1: LOAD & CLEAN
    # =========================================================================
    def load_and_clean(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Load dữ liệu thô và làm sạch (kết quả được giữ lại để các stage sau dùng chung).

        Returns:
            Tuple[pd.DataFrame, pd.DataFrame]: (raw_df, clean_df)
        """
        if self._clean_df is None:
            raw_path = self.config['data']['raw_path']
            self._raw_df = self.preprocessor.load_data(raw_path)
            self._clean_df = self.preprocessor.clean_data(self._raw_df)
        return self._raw_df, self._clean_df

    def _log_missing_table(self, df: pd.DataFrame, label: str) -> None:
        counts = missing_summary(df)
        self.logger.info(f"Missing values ({label}):\n{counts.to_string()}")

    # =========================================================================
    # STAGE 2: EXPLORATORY DATA ANALYSIS (EDA)
    # =========================================================================
    def run_eda(self) -> dict:
        """Chạy EDA: in bảng missing values, vẽ bar chart / histogram / box plot.

        Returns:
            dict: EDA summary (attendance_rate, missing_raw, n_rows, n_cols)
        """
        self._log_header("STAGE: EXPLORATORY DATA ANALYSIS")

        raw_df, clean_df = self.load_and_clean()
        self._log_missing_table(raw_df, "raw")
        self._log_missing_table(clean_df, "cleaned")

        self.eda_viz.plot_missing_values(raw_df)
        self.eda_viz.run_full_eda(clean_df, self.target_col, self.id_col)

        summary = {
            'n_rows': int(clean_df.shape[0]),
            'n_cols': int(clean_df.shape[1]),
            'missing_raw': int(raw_df.isnull().sum().sum()),
        }
        if self.target_col in clean_df.columns:
            summary['attendance_rate'] = float(pd.to_numeric(clean_df[self.target_col]).mean())

        return summary

    # =========================================================================
    # STAGE 3: ENCODE, SPLIT, TRAIN, EVALUATE
    # =========================================================================
    def run_training(self) -> Tuple[ModelTrainer, Dict]:
        """
        Encode -> Split (70/30, stratified) -> Train cả hai mô hình -> Đánh giá trên tập test.

        Returns:
            Tuple[ModelTrainer, Dict]: Đối tượng Trainer và Dictionary metrics của các mô hình.
        """
        self._log_header("STAGE: MODEL TRAINING")

        _, clean_df = self.load_and_clean()

        encoded = self.encoder.encode(clean_df)
        train_df, test_df = self.preprocessor.split_data(encoded, self.rng)

        X_train, y_train = self.encoder.to_model_matrix(train_df)
        X_test, y_test = self.encoder.to_model_matrix(test_df)

        self.trainer.set_data(X_train, y_train, X_test, y_test)
        metrics = self.trainer.train_all_models()

        table = ModelEvaluator.build_comparison_table(metrics)
        self.logger.info(f"Model comparison:\n{table.to_string(float_format=lambda v: f'{v:.4f}')}")

        return self.trainer, metrics

    # =========================================================================
    # STAGE 4: VISUALIZATION
    # =========================================================================
    def run_visualization(self, trainer: ModelTrainer, metrics: Dict) -> None:
        """
        Vẽ ROC curves, confusion matrices, feature importance và so sánh mô hình.

        Args:
            trainer (ModelTrainer): Đối tượng trainer chứa mô hình đã huấn luyện.
            metrics (Dict): Kết quả đánh giá mô hình.
        """
        self._log_header("STAGE: VISUALIZATION")

        self.eval_viz.plot_model_comparison(metrics, ['accuracy', 'rmse', 'roc_auc'])

        roc_data = {
            name: result['roc_curve_data']
            for name, result in trainer.results.items()
            if result.get('roc_curve_data') is not None
        }
        self.eval_viz.plot_roc_curve(roc_data)

        for name, result in trainer.results.items():
            self.eval_viz.plot_confusion_matrix(trainer.y_test, result['y_pred'], name)
            self.eval_viz.plot_feature_importance(trainer.get_feature_importance(name), model_name=name)

        self.logger.info("Visualization Completed")

    # =========================================================================
    # MAIN ENTRY POINT
    # =========================================================================
    def _setup_run_dir(self, mode: str) -> str:
        figures_dir = self.config.get('artifacts', {}).get('figures_dir', 'artifacts/figures')
        self.run_dir = os.path.join(figures_dir, f"{get_timestamp()}_{mode.upper()}")
        ensure_dir(self.run_dir)
        self.eda_viz = EDAVisualizer(self.config, self.logger, run_specific_dir=self.run_dir)
        self.eval_viz = EvaluateVisualizer(self.config, self.logger, run_specific_dir=self.run_dir)
        return self.run_dir

    def run(self, mode: str = 'full') -> Any:
        """
        Điểm điều phối chính để thực thi pipeline theo chế độ được yêu cầu.

        Args:
            mode (str, optional): 'full' (EDA + train + plots), 'eda', hoặc 'train'. Defaults to 'full'.

        Returns:
            Any: EDA summary (mode='eda') hoặc (trainer, metrics) (mode='train'/'full').

        Raises:
            ValueError: Nếu mode không hợp lệ.
        """
        if mode not in VALID_MODES:
            raise ValueError(f"Unknown mode: {mode}. Valid modes: {list(VALID_MODES)}")

        run_dir = self._setup_run_dir(mode)
        self._log_header(f"PIPELINE STARTED  Mode: {mode.upper()}  Output: {run_dir}")

        if mode == 'eda':
            return self.run_eda()

        if mode == 'full':
            self.run_eda()

        trainer, metrics = self.run_training()
        self.run_visualization(trainer, metrics)
        IOHandler.save_json(metrics, os.path.join(run_dir, 'metrics.json'))
        return trainer, metrics
