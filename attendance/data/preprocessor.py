"""
attendance/data/preprocessor.py

Data Preprocessing Module - Giai đoạn 1: Load, Clean, Split

Module này chịu trách nhiệm:
    - Load dữ liệu booking từ file CSV và kiểm tra đủ cột
    - Làm sạch dữ liệu: mean imputation, parse 'N days', chuẩn hóa category và ngày trong tuần
    - Chia dữ liệu thành Train/Test sets với stratified sampling (70/30)

Đặc điểm:
    - Không thay đổi DataFrame gốc (luôn làm việc trên bản copy)
    - Giá trị không hợp lệ làm pipeline dừng ngay (ValueError), không âm thầm thành NaN
    - Tính ngẫu nhiên của split đến từ generator được truyền vào, không dùng global seed

Example:
    >>> preprocessor = DataPreprocessor(config, logger)
    >>> df = preprocessor.load_data('data/raw/fitness_class_2212.csv')
    >>> df_clean = preprocessor.clean_data(df)
    >>> train_df, test_df = preprocessor.split_data(df_clean, make_rng(42))
"""
import re
import numpy as np
import pandas as pd
from typing import Tuple, Dict, Optional
from sklearn.model_selection import train_test_split

from ..utils import IOHandler
from .schema import (
    REQUIRED_COLS, NUMERIC_COLS, DURATION_COL, DAY_COL, TIME_COL, CATEGORY_COL,
    ID_COL, TARGET_COL, UNKNOWN_CATEGORY, CATEGORY_PLACEHOLDERS, normalize_day
)

_DURATION_RE = re.compile(r"^\s*(-?\d+)\s*(?:days?)?\s*$", re.IGNORECASE)


# ==================== CLEANING RULES ====================

def parse_duration(value) -> int:
    """
    Parse một giá trị thời lượng dạng chuỗi ('7 days', '1 day') hoặc số về số nguyên ngày.

    Giá trị đã là số được trả lại nguyên vẹn (idempotent): parse_duration(parse_duration('7 days')) == 7.

    Args:
        value: Giá trị gốc.

    Returns:
        int: Số ngày.

    Raises:
        ValueError: Nếu giá trị thiếu, âm, hoặc phần còn lại sau khi bỏ đơn vị không phải số nguyên.
    """
    if isinstance(value, (bool, np.bool_)):
        raise ValueError(f"Cannot parse duration from boolean: {value!r}")

    if isinstance(value, (int, np.integer)):
        days = int(value)
    elif isinstance(value, (float, np.floating)):
        if np.isnan(value) or not float(value).is_integer():
            raise ValueError(f"Cannot parse duration from {value!r}")
        days = int(value)
    else:
        match = _DURATION_RE.match(str(value))
        if match is None:
            raise ValueError(f"Cannot parse duration from {value!r}")
        days = int(match.group(1))

    if days < 0:
        raise ValueError(f"Duration must be non-negative, got {value!r}")
    return days


def impute_mean(series: pd.Series) -> pd.Series:
    """
    Thay giá trị thiếu bằng trung bình cột (tính trên các giá trị không thiếu).

    Trung bình của cột sau khi impute bằng đúng trung bình trước khi impute.

    Raises:
        ValueError: Nếu cột không có giá trị nào để tính trung bình.
    """
    numeric = pd.to_numeric(series, errors='raise').astype(float)
    if numeric.notna().sum() == 0:
        raise ValueError(f"Cannot impute column '{series.name}': all values are missing")
    return numeric.fillna(numeric.mean())


def normalize_category(value) -> str:
    """Đổi placeholder ('-', rỗng, thiếu) thành 'unknown'; giữ nguyên các nhãn lớp khác."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return UNKNOWN_CATEGORY
    label = str(value).strip()
    return UNKNOWN_CATEGORY if label in CATEGORY_PLACEHOLDERS else label


def normalize_time(value) -> str:
    """
    Chuẩn hóa khung giờ về 'AM' / 'PM'.

    Raises:
        ValueError: Nếu giá trị thiếu hoặc không phải AM/PM.
    """
    label = '' if value is None or (not isinstance(value, str) and pd.isna(value)) else str(value).strip().upper()
    if label not in ('AM', 'PM'):
        raise ValueError(f"Unrecognized time slot: {value!r}")
    return label


def missing_summary(df: pd.DataFrame) -> pd.Series:
    """Số giá trị thiếu theo từng cột (dùng để in ra console)."""
    return df.isnull().sum()


class DataPreprocessor:
    """
    Data Preprocessor - Giai đoạn 1: Load, Clean, Split.

    Nhiệm vụ chính:
        1. Load Data: Đọc dữ liệu từ file và kiểm tra đủ các cột bắt buộc
        2. Clean: Imputation, parse duration, chuẩn hóa nhãn
        3. Split Train/Test: Chia dữ liệu với stratified sampling

    Attributes:
        config (Dict): Configuration dictionary từ config.yaml
        logger: Logger instance để ghi log
        target_col (str): Tên cột target (mặc định: 'attended')
        id_col (str): Tên cột định danh (mặc định: 'booking_id')
    """

    def __init__(self, config: Dict, logger=None):
        """
        Khởi tạo DataPreprocessor.

        Args:
            config (Dict): Configuration dictionary chứa các settings:
                - data.target_col: Tên cột target
                - data.id_col: Tên cột định danh
                - data.test_size: Tỷ lệ test set (0.0 - 1.0)
            logger: Logger instance (optional)
        """
        self.config = config
        self.logger = logger
        data_cfg = config.get('data', {})
        self.target_col = data_cfg.get('target_col', TARGET_COL)
        self.id_col = data_cfg.get('id_col', ID_COL)

    def _required_columns(self):
        cols = [c for c in REQUIRED_COLS if c not in (ID_COL, TARGET_COL)]
        return [self.id_col] + cols + [self.target_col]

    def load_data(self, raw_path: str) -> pd.DataFrame:
        """
        Load dữ liệu từ file và kiểm tra schema.

        Args:
            raw_path (str): Đường dẫn đến file dữ liệu

        Returns:
            pd.DataFrame: DataFrame chứa dữ liệu đã load

        Raises:
            FileNotFoundError: Nếu file không tồn tại
            IOError: Nếu file hỏng / không parse được
            ValueError: Nếu thiếu cột bắt buộc hoặc định dạng không hỗ trợ
        """
        if self.logger:
            self.logger.info("=" * 60)
            self.logger.info("STAGE 1: LOAD & CLEAN")

        try:
            df = IOHandler.read_data(raw_path)
        except Exception as e:
            if self.logger:
                self.logger.error(f"Load Error: {e}")
            raise

        df.columns = df.columns.str.strip()
        missing_cols = [c for c in self._required_columns() if c not in df.columns]
        if missing_cols:
            raise ValueError(f"Input file {raw_path} is missing required columns: {missing_cols}")

        if self.logger:
            self.logger.info(f"Loaded data: {df.shape[0]} rows, {df.shape[1]} columns")
        return df

    def clean_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Làm sạch dữ liệu booking.

        Các bước xử lý:
            1. Chuẩn hóa tên cột (strip whitespace)
            2. Mean imputation cho các cột số (months_as_member, weight)
            3. 'N days' -> N cho days_before
            4. '-' / thiếu -> 'unknown' cho category
            5. Chuẩn hóa day_of_week về Mon..Sun (fail nếu nhãn lạ)
            6. Chuẩn hóa time về AM/PM
            7. Kiểm tra không còn giá trị thiếu ngoài id và target

        Args:
            df (pd.DataFrame): DataFrame cần làm sạch

        Returns:
            pd.DataFrame: DataFrame đã được làm sạch (bản copy)

        Raises:
            ValueError: Nếu gặp giá trị không parse được hoặc còn giá trị thiếu sau khi làm sạch
        """
        df = df.copy()
        df.columns = df.columns.str.strip()

        before = missing_summary(df)
        if self.logger:
            self.logger.info(f"Shape: {df.shape} | Missing: {int(before.sum())}")
            for col, count in before[before > 0].items():
                self.logger.info(f"  Missing | {col:<18} | {count}")

        # 1. Numeric imputation
        for col in NUMERIC_COLS:
            if col in df.columns:
                df[col] = impute_mean(df[col])

        # 2. Duration strings
        df[DURATION_COL] = self._apply_rule(df[DURATION_COL], parse_duration).astype(int)

        # 3. Category placeholder
        df[CATEGORY_COL] = df[CATEGORY_COL].map(normalize_category)

        # 4. Day of week
        df[DAY_COL] = self._apply_rule(df[DAY_COL], normalize_day)

        # 5. Time slot
        df[TIME_COL] = self._apply_rule(df[TIME_COL], normalize_time)

        # 6. Invariant: chỉ id và target được phép thiếu
        feature_cols = [c for c in df.columns if c not in (self.id_col, self.target_col)]
        remaining = df[feature_cols].isnull().sum()
        remaining = remaining[remaining > 0]
        if not remaining.empty:
            raise ValueError(f"Missing values remain after cleaning: {remaining.to_dict()}")

        if self.logger:
            self.logger.info("Data cleaning completed")

        return df

    @staticmethod
    def _apply_rule(series: pd.Series, rule) -> pd.Series:
        """
        Áp dụng một rule theo từng giá trị, gom toàn bộ giá trị lỗi vào một ValueError duy nhất.

        Raises:
            ValueError: Liệt kê tên cột và các giá trị không hợp lệ.
        """
        results = []
        bad = []
        for value in series:
            try:
                results.append(rule(value))
            except ValueError:
                results.append(None)
                bad.append(value)

        if bad:
            examples = sorted({repr(v) for v in bad})[:10]
            raise ValueError(f"Column '{series.name}' has {len(bad)} unparseable values: {examples}")

        return pd.Series(results, index=series.index, name=series.name)

    def split_data(self, df: pd.DataFrame,
                   random_state: Optional[np.random.RandomState] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Chia dữ liệu thành Train/Test sets với Stratified Sampling.

        Stratified sampling đảm bảo tỷ lệ target class được giữ nguyên
        trong cả train và test sets.

        Args:
            df (pd.DataFrame): DataFrame cần chia (phải chứa target column)
            random_state (np.random.RandomState, optional): Generator truyền tường minh.
                Nếu None, tạo generator mới từ data.random_state trong config.

        Returns:
            Tuple[pd.DataFrame, pd.DataFrame]: (train_df, test_df)

        Raises:
            ValueError: Nếu thiếu target column, target có giá trị thiếu, hoặc một class có < 2 mẫu

        Configuration:
            - data.test_size: Tỷ lệ test set (default: 0.3)
            - data.random_state: Seed dùng khi không truyền generator (default: 42)
        """
        if self.logger:
            self.logger.info("=" * 60)
            self.logger.info("STAGE 2: SPLIT")

        if self.target_col not in df.columns:
            raise ValueError(f"Target '{self.target_col}' not found for splitting")

        labels = df[self.target_col]
        if labels.isnull().any():
            raise ValueError(f"Target '{self.target_col}' has {int(labels.isnull().sum())} missing values")

        class_counts = labels.value_counts()
        class_counts = class_counts[class_counts > 0]
        if len(class_counts) < 2:
            raise ValueError(f"Target '{self.target_col}' has a single class: {list(class_counts.index)}")
        if class_counts.min() < 2:
            raise ValueError(f"Each target class needs at least 2 rows for a stratified split: {class_counts.to_dict()}")

        data_cfg = self.config.get('data', {})
        test_size = data_cfg.get('test_size', 0.3)
        if random_state is None:
            random_state = np.random.RandomState(data_cfg.get('random_state', 42))

        train_df, test_df = train_test_split(
            df,
            test_size=test_size,
            random_state=random_state,
            stratify=labels
        )

        train_pct = (1 - test_size) * 100
        if self.logger:
            self.logger.info(f"Split: Train={len(train_df)} ({train_pct:.1f}%) | Test={len(test_df)}")

        return train_df, test_df
