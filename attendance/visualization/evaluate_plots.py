"""
Module `visualization.evaluate_plots` - biểu đồ kết quả hai mô hình attendance.

Gồm: confusion matrix theo nhãn Absent/Attended, ROC của các mô hình trên cùng một trục,
feature importance (tô màu theo nhóm biến gốc) và so sánh accuracy / RMSE / AUC.

Important keywords: Args, Returns, Methods
"""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd
import numpy as np
import os
from typing import Dict, Sequence
from sklearn.metrics import confusion_matrix
from ..utils import ensure_dir
from ..models.evaluator import LOWER_IS_BETTER

CLASS_LABELS = ['Absent (0)', 'Attended (1)']

# Tiền tố cột one-hot -> màu theo nhóm biến gốc
_FEATURE_GROUP_COLORS = {
    'category_': '#9467BD',
    'day_of_week_': '#17BECF',
    'time_': '#BCBD22',
}
_NUMERIC_FEATURE_COLOR = '#1F77B4'


class EvaluateVisualizer:
    """
    Vẽ và lưu các biểu đồ đánh giá vào `<run_dir>/evaluation/`.

    Methods:
        plot_confusion_matrix, plot_roc_curve, plot_feature_importance, plot_model_comparison
    """

    def __init__(self, config: dict, logger=None, run_specific_dir=None):
        """
        Args:
            config (dict): cấu hình dự án
            logger: logger (optional)
            run_specific_dir (str, optional): thư mục của run; None -> không lưu figure nào
        """
        self.config = config
        self.logger = logger
        self.eval_dir = None
        if run_specific_dir is not None:
            self.eval_dir = os.path.join(run_specific_dir, 'evaluation')
            ensure_dir(self.eval_dir)
        elif self.logger:
            self.logger.warning("EvaluateVisualizer: no run directory, evaluation figures are skipped")
        sns.set_style("whitegrid")

    def _save_plot(self, fig, filename: str):
        if self.eval_dir is None:
            plt.close(fig)
            return
        fig.savefig(os.path.join(self.eval_dir, filename), bbox_inches='tight', dpi=150)
        plt.close(fig)
        if self.logger:
            self.logger.info(f"Saved Plot      | EVAL       | {filename}")

    def plot_confusion_matrix(self, y_true, y_pred, model_name: str):
        """Heatmap số booking theo (thực tế, dự đoán), kèm tỷ lệ trên từng hàng nhãn thực tế.

        Args:
            y_true: nhãn attended thực tế (0/1)
            y_pred: nhãn dự đoán (0/1)
            model_name: tên mô hình, dùng trong tiêu đề và tên file
        """
        cm = confusion_matrix(np.asarray(y_true).astype(int), np.asarray(y_pred).astype(int), labels=[0, 1])
        row_totals = cm.sum(axis=1, keepdims=True)
        row_share = np.divide(cm, row_totals, out=np.zeros(cm.shape), where=row_totals > 0)

        cells = [[f"{cm[r, c]}\n({row_share[r, c]:.0%})" for c in range(2)] for r in range(2)]
        accuracy = np.trace(cm) / cm.sum() if cm.sum() else float('nan')

        fig, ax = plt.subplots(figsize=(6, 5))
        sns.heatmap(row_share, annot=np.array(cells), fmt='', cmap='Greens', vmin=0, vmax=1,
                    xticklabels=CLASS_LABELS, yticklabels=CLASS_LABELS, cbar=False, ax=ax)
        ax.set_xlabel('Predicted')
        ax.set_ylabel('Actual')
        ax.set_title(f"{model_name} | accuracy {accuracy:.3f}")
        self._save_plot(fig, f"confusion_matrix_{model_name}.png")

    def plot_roc_curve(self, roc_data_dict: Dict[str, tuple]):
        """ROC của mọi mô hình trên cùng một trục.

        Args:
            roc_data_dict: {model_name: (fpr, tpr, auc)}
        """
        if not roc_data_dict:
            return

        fig, ax = plt.subplots(figsize=(7, 7))
        palette = sns.color_palette('deep', n_colors=len(roc_data_dict))

        ranked = sorted(roc_data_dict.items(), key=lambda kv: kv[1][2], reverse=True)
        for color, (name, (fpr, tpr, auc_score)) in zip(palette, ranked):
            ax.step(fpr, tpr, where='post', color=color, linewidth=2, label=f"{name}: AUC {auc_score:.3f}")

        ax.plot([0, 1], [0, 1], color='grey', linestyle=':', linewidth=1.5, label='chance')
        ax.set_aspect('equal')
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1.02)
        ax.set_xlabel('False positive rate (absent predicted as attended)')
        ax.set_ylabel('True positive rate (attendance recall)')
        ax.set_title('ROC curves')
        ax.legend(loc='lower right', frameon=True)

        self._save_plot(fig, "roc_curve.png")

    def plot_feature_importance(self, importance_df: pd.DataFrame, model_name: str = 'model', top_n=20):
        """Bar chart top N đặc trưng, màu theo nhóm biến gốc (số / category / ngày / khung giờ).

        Args:
            importance_df: DataFrame ['feature', 'importance'] từ ModelTrainer.get_feature_importance
            model_name: tên mô hình, dùng trong tên file
            top_n: số đặc trưng hiển thị
        """
        if importance_df is None or importance_df.empty:
            return

        top = importance_df.nlargest(top_n, 'importance').iloc[::-1]
        colors = [self._feature_color(f) for f in top['feature']]

        fig, ax = plt.subplots(figsize=(9, max(3.5, 0.35 * len(top))))
        ax.barh(top['feature'], top['importance'], color=colors)
        ax.set_xlabel('importance')
        ax.set_title(f"Top features: {model_name}")
        ax.bar_label(ax.containers[0], fmt='%.3f', padding=2, fontsize=8)

        self._save_plot(fig, f"feature_importance_{model_name}.png")

    @staticmethod
    def _feature_color(feature: str) -> str:
        for prefix, color in _FEATURE_GROUP_COLORS.items():
            if feature.startswith(prefix):
                return color
        return _NUMERIC_FEATURE_COLOR

    def plot_model_comparison(self, metrics_dict: Dict[str, Dict],
                              metrics_to_plot: Sequence[str] = ('accuracy', 'rmse', 'roc_auc')):
        """Mỗi metric một panel (RMSE nhỏ hơn là tốt hơn nên không gộp chung trục với accuracy/AUC).

        Args:
            metrics_dict: {model_name: {'accuracy': ..., 'rmse': ..., 'roc_auc': ...}}
            metrics_to_plot: các metric cần vẽ
        """
        table = pd.DataFrame(metrics_dict).T
        shown = [m for m in metrics_to_plot if m in table.columns]
        if table.empty or not shown:
            return

        fig, axes = plt.subplots(1, len(shown), figsize=(4 * len(shown), 4), squeeze=False)
        for ax, metric in zip(axes[0], shown):
            values = table[metric].astype(float)
            best = values.idxmin() if metric in LOWER_IS_BETTER else values.idxmax()
            colors = ['#2CA02C' if name == best else '#7F7F7F' for name in values.index]

            ax.bar(values.index, values.values, color=colors)
            ax.bar_label(ax.containers[0], fmt='%.3f', padding=2, fontsize=9)
            ax.set_ylim(0, max(1.0, values.max()) * 1.15)
            direction = 'lower is better' if metric in LOWER_IS_BETTER else 'higher is better'
            ax.set_title(f"{metric.upper()} ({direction})")
            ax.tick_params(axis='x', rotation=15)

        fig.suptitle('Model comparison on the test partition', fontweight='bold')
        fig.tight_layout()
        self._save_plot(fig, "model_comparison.png")
