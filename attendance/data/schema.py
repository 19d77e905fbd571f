"""
attendance/data/schema.py

Định nghĩa schema cố định của dữ liệu đặt lớp (Booking Record):
    - Tên các cột và nhóm cột (numeric / categorical / id / target)
    - Bảng tra cứu chuẩn hóa ngày trong tuần
    - CategoricalSpec: kiểu categorical có gắn thứ tự level tường minh

Important keywords: Attributes, Methods, Raises
"""
from dataclasses import dataclass
from typing import Dict, List, Tuple

import pandas as pd
from pandas.api.types import CategoricalDtype


# ==================== COLUMNS ====================

ID_COL = 'booking_id'
TARGET_COL = 'attended'

NUMERIC_COLS = ['months_as_member', 'weight']
DURATION_COL = 'days_before'
DAY_COL = 'day_of_week'
TIME_COL = 'time'
CATEGORY_COL = 'category'

REQUIRED_COLS = [
    ID_COL, 'months_as_member', 'weight', DURATION_COL,
    DAY_COL, TIME_COL, CATEGORY_COL, TARGET_COL
]

UNKNOWN_CATEGORY = 'unknown'
CATEGORY_PLACEHOLDERS = {'-', ''}

# Các lớp học có trong dữ liệu gốc, 'unknown' cho nhãn placeholder/thiếu
CLASS_CATEGORIES = ['Aqua', 'Cycling', 'HIIT', 'Strength', 'Yoga', UNKNOWN_CATEGORY]


# ==================== DAY OF WEEK ====================

DAY_ORDER = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

_DAY_FULL_NAMES = {
    'Mon': 'Monday',
    'Tue': 'Tuesday',
    'Wed': 'Wednesday',
    'Thu': 'Thursday',
    'Fri': 'Friday',
    'Sat': 'Saturday',
    'Sun': 'Sunday',
}


def _build_day_lookup() -> Dict[str, str]:
    """Sinh bảng tra cứu: mọi cách viết đã biết (viết tắt, đầy đủ, có dấu chấm) -> mã 3 chữ cái."""
    lookup = {}
    for code, full in _DAY_FULL_NAMES.items():
        for spelling in (code, full, f"{code}.", code.upper(), full.upper(), code.lower(), full.lower()):
            lookup[spelling] = code
    # Một số cách viết tắt 4 chữ cái hay gặp
    lookup.update({'Tues': 'Tue', 'Tues.': 'Tue', 'Thur': 'Thu', 'Thurs': 'Thu', 'Thurs.': 'Thu'})
    return lookup


DAY_LOOKUP: Dict[str, str] = _build_day_lookup()


def normalize_day(value) -> str:
    """
    Chuẩn hóa một nhãn ngày trong tuần về mã 3 chữ cái (Mon..Sun).

    Hàm tổng (total) trên tập cách viết đã liệt kê trong DAY_LOOKUP; không đoán.

    Args:
        value: Nhãn gốc (vd: 'Monday', 'Fri.', 'Wed').

    Returns:
        str: Mã chuẩn trong DAY_ORDER.

    Raises:
        ValueError: Nếu nhãn bị thiếu hoặc không nằm trong bảng tra cứu.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise ValueError("Missing day_of_week label")

    key = str(value).strip()
    if key not in DAY_LOOKUP:
        raise ValueError(f"Unrecognized day_of_week label: {value!r}")
    return DAY_LOOKUP[key]


# ==================== CATEGORICAL SPEC ====================

@dataclass(frozen=True)
class CategoricalSpec:
    """
    Kiểu categorical tường minh: tên cột, danh sách level theo thứ tự khai báo, có thứ tự hay không.

    Attributes:
        column (str): Tên cột áp dụng.
        levels (Tuple): Các level hợp lệ, theo thứ tự khai báo.
        ordered (bool): True nếu level có thứ tự toàn phần (vd: Mon < Tue < ...).
    """
    column: str
    levels: Tuple
    ordered: bool = False

    @property
    def dtype(self) -> CategoricalDtype:
        return CategoricalDtype(categories=list(self.levels), ordered=self.ordered)

    def cast(self, series: pd.Series) -> pd.Series:
        """
        Ép Series về kiểu categorical theo spec.

        Raises:
            ValueError: Nếu có giá trị nằm ngoài các level đã khai báo
                (pandas sẽ âm thầm biến chúng thành NaN nếu không kiểm tra).
        """
        present = series.dropna()
        unexpected = sorted({str(v) for v in present.unique() if v not in self.levels})
        if unexpected:
            raise ValueError(
                f"Column '{self.column}' has values outside declared levels {list(self.levels)}: {unexpected}"
            )
        return series.astype(self.dtype)


CATEGORICAL_SPECS: List[CategoricalSpec] = [
    CategoricalSpec(TARGET_COL, (0, 1), ordered=False),
    CategoricalSpec(CATEGORY_COL, tuple(CLASS_CATEGORIES), ordered=False),
    CategoricalSpec(DAY_COL, tuple(DAY_ORDER), ordered=True),
    CategoricalSpec(TIME_COL, ('AM', 'PM'), ordered=True),
]


__all__ = [
    'ID_COL', 'TARGET_COL', 'NUMERIC_COLS', 'DURATION_COL', 'DAY_COL', 'TIME_COL', 'CATEGORY_COL',
    'REQUIRED_COLS', 'UNKNOWN_CATEGORY', 'CATEGORY_PLACEHOLDERS', 'CLASS_CATEGORIES',
    'DAY_ORDER', 'DAY_LOOKUP', 'normalize_day', 'CategoricalSpec', 'CATEGORICAL_SPECS',
]
