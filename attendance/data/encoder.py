"""
attendance/data/encoder.py

DataEncoder: ép kiểu categorical có khai báo level và dựng ma trận đặc trưng cho mô hình.

Tóm tắt (Summary):
- encode(): target + category -> categorical không thứ tự; day_of_week -> Mon<...<Sun; time -> AM<PM.
- to_model_matrix(): bỏ cột định danh, tách target (0/1), one-hot các biến categorical
  (level đầu tiên làm baseline) để tập train và test luôn có cùng bộ cột.

Important keywords: Args, Returns, Raises, Notes, Attributes, Methods
"""

import pandas as pd
from typing import Tuple, Dict, List, Optional

from .schema import (
    CATEGORICAL_SPECS, CategoricalSpec, CLASS_CATEGORIES, CATEGORY_COL, ID_COL, TARGET_COL
)


class DataEncoder:
    """
    Quản lý bước ép kiểu categorical và dựng model matrix.

    Attributes:
        config (Dict): Cấu hình pipeline.
        logger: Logger tùy chọn.
        target_col (str): Tên cột target.
        id_col (str): Tên cột định danh (loại khỏi đầu vào mô hình).
        specs (Dict[str, CategoricalSpec]): Spec đã áp dụng ở lần encode gần nhất.

    Methods:
        encode(df): Trả về bản copy với các cột categorical đã ép kiểu.
        to_model_matrix(df): Trả về (X, y) dạng số cho scikit-learn.
        feature_names(): Danh sách cột của X.
    """

    def __init__(self, config: Dict, logger=None):
        """
        Khởi tạo DataEncoder.

        Args:
            config (Dict): Cấu hình dự án (đọc data.target_col, data.id_col).
            logger: Logger tuỳ chọn để log thông tin.
        """
        self.config = config
        self.logger = logger
        data_cfg = config.get('data', {})
        self.target_col = data_cfg.get('target_col', TARGET_COL)
        self.id_col = data_cfg.get('id_col', ID_COL)

        self.specs: Dict[str, CategoricalSpec] = {}
        self._feature_names: List[str] = []

    def _resolve_specs(self, df: pd.DataFrame) -> Dict[str, CategoricalSpec]:
        """
        Lấy spec cố định và mở rộng level của category nếu dữ liệu có lớp học mới.

        Notes:
            - Level mới được nối sau danh sách khai báo (sắp xếp alphabet) để thứ tự cột ổn định.
        """
        specs = {}
        for spec in CATEGORICAL_SPECS:
            column = self.target_col if spec.column == TARGET_COL else spec.column
            levels = spec.levels
            if spec.column == CATEGORY_COL and column in df.columns:
                extra = sorted({str(v) for v in df[column].dropna().unique()} - set(CLASS_CATEGORIES))
                if extra:
                    if self.logger:
                        self.logger.warning(f"New class categories found: {extra}")
                    levels = tuple(CLASS_CATEGORIES) + tuple(extra)
            specs[column] = CategoricalSpec(column, levels, spec.ordered)
        return specs

    def encode(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Ép các cột nominal / ordinal về kiểu categorical với level khai báo sẵn.

        Args:
            df (pd.DataFrame): DataFrame đã làm sạch.

        Returns:
            pd.DataFrame: Bản copy đã ép kiểu.

        Raises:
            ValueError: Nếu một cột có giá trị ngoài level khai báo.
        """
        df = df.copy()
        self.specs = self._resolve_specs(df)

        for column, spec in self.specs.items():
            if column not in df.columns:
                continue
            df[column] = spec.cast(df[column])

        if self.logger:
            casted = ", ".join(
                f"{c}{' (ordered)' if s.ordered else ''}" for c, s in self.specs.items() if c in df.columns
            )
            self.logger.info(f"Encode        | Categorical: {casted}")

        return df

    def to_model_matrix(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, Optional[pd.Series]]:
        """
        Dựng ma trận đặc trưng số cho scikit-learn.

        Args:
            df (pd.DataFrame): DataFrame đã qua encode().

        Returns:
            Tuple[pd.DataFrame, pd.Series]: (X, y) với y là số nguyên 0/1 (None nếu không có target).

        Notes:
            - Cột định danh bị loại bỏ.
            - One-hot với drop_first=True: level đầu tiên (Mon, AM, Aqua, ...) là baseline.
              Vì level được khai báo trong dtype nên mọi partition cho ra cùng bộ cột.
        """
        df = df.copy()

        y = None
        if self.target_col in df.columns:
            y = df[self.target_col].astype(int)
            df = df.drop(columns=[self.target_col])

        if self.id_col in df.columns:
            df = df.drop(columns=[self.id_col])

        cat_cols = df.select_dtypes(include=['category']).columns.tolist()
        X = pd.get_dummies(df, columns=cat_cols, drop_first=True, dtype=float)

        self._feature_names = X.columns.tolist()
        return X, y

    def feature_names(self) -> List[str]:
        return list(self._feature_names)
