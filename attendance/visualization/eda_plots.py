"""
Module `visualization.eda_plots` - biểu đồ khám phá dữ liệu booking.

Mỗi hàm vẽ tự bắt lỗi và ghi log: một biểu đồ EDA hỏng không làm dừng run.

Important keywords: Args, Returns, Notes, Methods, Class
"""

import matplotlib
# Backend không cần màn hình (chạy trên server / CI)
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd
import numpy as np
import os
from typing import List
from ..utils import ensure_dir

ATTENDANCE_PALETTE = {0: '#D62728', 1: '#2CA02C'}
ATTENDANCE_NAMES = {0: 'Absent', 1: 'Attended'}


class EDAVisualizer:
    """
    Class: EDAVisualizer
    Vẽ và lưu biểu đồ EDA vào `<run_dir>/eda/`.

    Methods:
        run_full_eda: Toàn bộ biểu đồ cho một DataFrame đã làm sạch.
        plot_missing_values: Số giá trị thiếu theo cột.
        plot_category_counts: Số booking theo loại lớp.
        plot_target_distribution: Số booking Absent / Attended.
        plot_numerical_distributions: Histogram biến số, tách theo attendance nếu có target.
        plot_boxplot_by_target: Box plot một biến số theo attendance.
        plot_attendance_by_category: Tỷ lệ tham gia theo nhóm.
    """

    def __init__(self, config: dict, logger=None, run_specific_dir=None):
        """
        Args:
            config (dict): Cấu hình dự án.
            logger (logging.Logger, optional): Logger. Defaults to None.
            run_specific_dir (str, optional): Thư mục run; None -> không lưu figure. Defaults to None.
        """
        self.config = config
        self.logger = logger
        self.eda_dir = None
        if run_specific_dir is not None:
            self.eda_dir = os.path.join(run_specific_dir, 'eda')
            ensure_dir(self.eda_dir)
        elif self.logger:
            self.logger.warning("EDAVisualizer: no run directory, EDA figures are skipped")

        sns.set_theme(style="whitegrid", context="notebook", rc={
            'axes.titleweight': 'bold',
            'axes.titlesize': 13,
            'figure.facecolor': 'white',
        })

    def _save_plot(self, fig, filename: str):
        """
        Lưu figure vào eda_dir rồi đóng figure (kể cả khi không có eda_dir hoặc ghi lỗi).
        """
        try:
            if self.eda_dir is None:
                return
            fig.savefig(os.path.join(self.eda_dir, filename), bbox_inches='tight', dpi=150)
            if self.logger:
                self.logger.info(f"Saved Plot      | EDA        | {filename}")
        except OSError as e:
            if self.logger:
                self.logger.error(f"Cannot save EDA plot {filename}: {e}")
        finally:
            plt.close(fig)

    def _log_failure(self, what: str, err: Exception):
        if self.logger:
            self.logger.error(f"EDA plot '{what}' failed: {err}")

    # ==================== MISSING VALUES ====================

    def plot_missing_values(self, df: pd.DataFrame):
        """
        Method: plot_missing_values
        Bar chart số giá trị thiếu (và % số dòng) của các cột có thiếu; bỏ qua nếu dữ liệu đủ.

        Returns:
            None (Lưu file 'missing_values.png').
        """
        try:
            counts = df.isnull().sum()
            counts = counts[counts > 0]
            if counts.empty:
                return

            fig, ax = plt.subplots(figsize=(8, 1.5 + 0.6 * len(counts)))
            ax.barh(counts.index, counts.values, color='#FF7F0E')
            labels = [f"{c} ({c / len(df):.1%})" for c in counts.values]
            ax.bar_label(ax.containers[0], labels=labels, padding=3, fontsize=9)
            ax.set_xlabel('Missing values')
            ax.set_title(f'Missing values ({len(df)} bookings)')
            ax.set_xlim(0, counts.max() * 1.3)

            fig.tight_layout()
            self._save_plot(fig, "missing_values.png")
        except Exception as e:
            self._log_failure('missing values', e)

    # ==================== CATEGORY COUNTS ====================

    def plot_category_counts(self, df: pd.DataFrame, col: str = 'category'):
        """
        Method: plot_category_counts
        Bar chart số booking theo từng loại lớp học.

        Returns:
            None (Lưu file 'bookings_by_<col>.png').
        """
        try:
            if col not in df.columns:
                return

            counts = df[col].astype(str).value_counts()

            fig, ax = plt.subplots(figsize=(9, 5))
            bars = ax.bar(counts.index, counts.values, color='#1F77B4', alpha=0.9)
            ax.set_xlabel(col)
            ax.set_ylabel('Bookings')
            ax.set_title(f'Bookings by {col}')
            ax.bar_label(bars, fmt='%d', padding=3, fontsize=9)

            fig.tight_layout()
            self._save_plot(fig, f"bookings_by_{col}.png")
        except Exception as e:
            self._log_failure('category counts', e)

    # ==================== TARGET ====================

    def plot_target_distribution(self, y: pd.Series):
        """
        Method: plot_target_distribution
        Số booking Absent / Attended kèm tỷ lệ.

        Returns:
            None (Lưu file 'target_distribution.png').
        """
        try:
            counts = pd.to_numeric(pd.Series(y).astype(str)).astype(int).value_counts().sort_index()
            names = [ATTENDANCE_NAMES.get(k, str(k)) for k in counts.index]
            colors = [ATTENDANCE_PALETTE.get(k, '#7F7F7F') for k in counts.index]

            fig, ax = plt.subplots(figsize=(6, 5))
            ax.bar(names, counts.values, color=colors, width=0.6)
            total = counts.sum()
            ax.bar_label(ax.containers[0], labels=[f"{c} ({c / total:.1%})" for c in counts.values], padding=3)
            ax.set_ylabel('Bookings')
            ax.set_title(f'Outcome: {y.name}')
            ax.set_ylim(0, counts.max() * 1.15)

            fig.tight_layout()
            self._save_plot(fig, "target_distribution.png")
        except Exception as e:
            self._log_failure('target distribution', e)

    # ==================== HISTOGRAMS ====================

    def plot_numerical_distributions(self, df: pd.DataFrame, num_cols: List[str], target_col: str = None):
        """
        Method: plot_numerical_distributions
        Histogram từng biến số (một panel mỗi biến); có target_col thì chồng hai nhóm attendance.

        Returns:
            None (Lưu file 'numerical_distributions.png').
        """
        try:
            num_cols = [c for c in num_cols if c in df.columns]
            if not num_cols:
                return

            hue = None
            plot_df = df
            if target_col and target_col in df.columns:
                plot_df = df.assign(**{target_col: df[target_col].astype(int).map(ATTENDANCE_NAMES)})
                hue = target_col

            fig, axes = plt.subplots(1, len(num_cols), figsize=(5 * len(num_cols), 4), squeeze=False)
            for ax, col in zip(axes[0], num_cols):
                sns.histplot(data=plot_df, x=col, hue=hue, ax=ax, bins=25, element='step',
                             palette={'Absent': ATTENDANCE_PALETTE[0], 'Attended': ATTENDANCE_PALETTE[1]} if hue else None,
                             color=None if hue else '#1F77B4')
                ax.set_title(col)
                ax.set_xlabel('')

            fig.suptitle('Numeric features', fontweight='bold')
            fig.tight_layout()
            self._save_plot(fig, "numerical_distributions.png")
        except Exception as e:
            self._log_failure('numerical distributions', e)

    # ==================== BOXPLOT ====================

    def plot_boxplot_by_target(self, df: pd.DataFrame, col: str, target_col: str):
        """
        Method: plot_boxplot_by_target
        Box plot của một biến số, tách theo nhóm attendance.

        Returns:
            None (Lưu file 'boxplot_<col>_by_<target>.png').
        """
        try:
            if col not in df.columns or target_col not in df.columns:
                return

            groups = df[target_col].astype(int).map(ATTENDANCE_NAMES)

            fig, ax = plt.subplots(figsize=(7, 5))
            sns.boxplot(x=groups, y=df[col], ax=ax, order=['Absent', 'Attended'],
                        hue=groups, hue_order=['Absent', 'Attended'], legend=False,
                        palette={'Absent': ATTENDANCE_PALETTE[0], 'Attended': ATTENDANCE_PALETTE[1]},
                        fliersize=3)
            ax.set_xlabel(target_col)
            ax.set_title(f'{col} by {target_col}')

            fig.tight_layout()
            self._save_plot(fig, f"boxplot_{col}_by_{target_col}.png")
        except Exception as e:
            self._log_failure('boxplot', e)

    # ==================== ATTENDANCE RATE ====================

    def plot_attendance_by_category(self, df: pd.DataFrame, target_col: str, cat_cols: List[str]):
        """
        Method: plot_attendance_by_category
        Tỷ lệ tham gia của từng nhóm, một panel cho mỗi biến phân loại;
        đường đứt nét là tỷ lệ chung.

        Returns:
            None (Lưu file 'attendance_by_category.png').
        """
        try:
            valid_cols = [c for c in cat_cols if c in df.columns]
            if target_col not in df.columns or not valid_cols:
                return

            attended = df[target_col].astype(int)
            overall = attended.mean() * 100

            fig, axes = plt.subplots(1, len(valid_cols), figsize=(5 * len(valid_cols), 4), squeeze=False)
            for ax, col in zip(axes[0], valid_cols):
                # groupby giữ thứ tự level nếu cột là categorical có thứ tự (Mon..Sun, AM/PM)
                rate = attended.groupby(df[col], observed=True).mean() * 100
                colors = [ATTENDANCE_PALETTE[1] if v >= overall else ATTENDANCE_PALETTE[0] for v in rate.values]
                ax.bar(rate.index.astype(str), rate.values, color=colors, alpha=0.9)
                ax.axhline(overall, color='#333333', linestyle='--', linewidth=1.5, label=f'overall {overall:.1f}%')
                ax.set_ylabel('Attendance rate (%)')
                ax.set_title(col)
                ax.tick_params(axis='x', rotation=30)
                ax.legend(loc='upper right', fontsize=8)

            fig.suptitle('Attendance rate by group', fontweight='bold')
            fig.tight_layout()
            self._save_plot(fig, "attendance_by_category.png")
        except Exception as e:
            self._log_failure('attendance by category', e)

    # ==================== ALL ====================

    def run_full_eda(self, df: pd.DataFrame, target_col: str = None, id_col: str = None):
        """
        Method: run_full_eda
        Vẽ mọi biểu đồ EDA áp dụng được cho DataFrame đã làm sạch.

        Args:
            df (pd.DataFrame): DataFrame đã làm sạch.
            target_col (str, optional): Cột attendance.
            id_col (str, optional): Cột định danh, không vẽ.
        """
        excluded = {target_col, id_col}
        numeric_cols = [c for c in df.select_dtypes(include=[np.number]).columns if c not in excluded]
        cat_cols = [c for c in df.select_dtypes(include=['object', 'category', 'string']).columns
                    if c not in excluded]

        has_target = bool(target_col) and target_col in df.columns

        self.plot_category_counts(df, 'category')
        self.plot_numerical_distributions(df, numeric_cols, target_col if has_target else None)

        if has_target:
            self.plot_target_distribution(df[target_col])
            self.plot_boxplot_by_target(df, 'months_as_member', target_col)
            self.plot_attendance_by_category(df, target_col, cat_cols)

        if self.logger:
            self.logger.info("EDA Completed")
