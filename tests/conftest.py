"""
tests/conftest.py

Shared fixtures dùng chung cho toàn bộ test suite.
Bao gồm cấu hình mẫu, dữ liệu booking giả lập, temporary directories, và logger.
"""
import copy
import pytest
import pandas as pd
import numpy as np
import os
import sys
import tempfile
import shutil

# Fix matplotlib backend for headless testing
import matplotlib
matplotlib.use('Agg')

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


_BASE_CONFIG = {
    'data': {
        'raw_path': 'data/raw/test.csv',
        'target_col': 'attended',
        'id_col': 'booking_id',
        'test_size': 0.3,
        'random_state': 42,
    },
    'models': {
        'logistic_regression': {'penalty': None, 'max_iter': 1000},
        'random_forest': {'n_estimators': 100},
    },
    'evaluation': {
        'threshold': 0.5,
        'scoring': 'roc_auc',
    },
    'artifacts': {
        'figures_dir': 'artifacts/figures',
        'logs_dir': 'artifacts/logs',
    },
}


# ==================== CONFIG FIXTURES ====================

@pytest.fixture
def test_config():
    """Cấu hình mẫu dùng cho tests (deep copy để mỗi test được sửa thoải mái)."""
    return copy.deepcopy(_BASE_CONFIG)


# ==================== DATA FIXTURES ====================

def _make_bookings(n_samples: int, seed: int = 42) -> pd.DataFrame:
    rng = np.random.RandomState(seed)

    months = rng.randint(1, 60, n_samples).astype(float)
    days = rng.randint(1, 20, n_samples)
    # Thành viên lâu năm có xu hướng tham gia nhiều hơn
    attended = ((months + rng.normal(0, 10, n_samples)) > 25).astype(int)

    return pd.DataFrame({
        'booking_id': range(1, n_samples + 1),
        'months_as_member': months,
        'weight': rng.normal(80, 12, n_samples).round(2),
        'days_before': [f"{d} days" if i % 4 == 0 else str(d) for i, d in enumerate(days)],
        'day_of_week': rng.choice(['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun',
                                   'Monday', 'Wednesday', 'Fri.'], n_samples),
        'time': rng.choice(['AM', 'PM'], n_samples),
        'category': rng.choice(['Yoga', 'Aqua', 'Strength', 'HIIT', 'Cycling', '-'], n_samples),
        'attended': attended,
    })


@pytest.fixture
def sample_raw_df():
    """Sample RAW booking DataFrame (120 dòng) với days_before dạng chuỗi và cách viết ngày không đồng nhất."""
    df = _make_bookings(120)
    df.loc[[3, 7, 11], 'weight'] = np.nan
    return df


@pytest.fixture
def scenario_df():
    """10 dòng: 2 weight thiếu, 1 category '-', ngày viết lẫn 'Mon' / 'Monday'."""
    return pd.DataFrame({
        'booking_id': range(1, 11),
        'months_as_member': [17, 10, 16, 5, 15, 7, 11, 9, 23, 13],
        'weight': [79.56, 79.01, 74.53, np.nan, 86.12, 71.4, np.nan, 81.0, 90.2, 68.7],
        'days_before': ['8', '2', '14', '10 days', '8', '2', '6', '4 days', '1', '3'],
        'day_of_week': ['Wed', 'Mon', 'Sun', 'Fri', 'Thu', 'Monday', 'Sat', 'Tue', 'Mon', 'Fri.'],
        'time': ['PM', 'AM', 'AM', 'AM', 'AM', 'PM', 'AM', 'PM', 'AM', 'PM'],
        'category': ['Strength', 'HIIT', 'Strength', 'Cycling', 'HIIT', '-', 'Yoga', 'Aqua', 'HIIT', 'Yoga'],
        'attended': [0, 0, 0, 0, 0, 1, 1, 0, 1, 1],
    })


@pytest.fixture
def sample_clean_df(sample_raw_df, test_config):
    """Sample DataFrame đã qua clean_data."""
    from attendance.data.preprocessor import DataPreprocessor
    return DataPreprocessor(test_config).clean_data(sample_raw_df)


@pytest.fixture
def sample_train_test_split(sample_clean_df, test_config):
    """Encode + split + model matrix: (X_train, X_test, y_train, y_test)."""
    from attendance.data.preprocessor import DataPreprocessor
    from attendance.data.encoder import DataEncoder
    from attendance.utils import make_rng

    encoder = DataEncoder(test_config)
    encoded = encoder.encode(sample_clean_df)
    train_df, test_df = DataPreprocessor(test_config).split_data(encoded, make_rng(42))

    X_train, y_train = encoder.to_model_matrix(train_df)
    X_test, y_test = encoder.to_model_matrix(test_df)
    return X_train, X_test, y_train, y_test


# ==================== TEMP DIRECTORY FIXTURES ====================

@pytest.fixture
def temp_dir():
    """Tạo temp directory cho tests và xoá khi xong."""
    tmp = tempfile.mkdtemp()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_artifacts_dir(temp_dir):
    """Tạo thư mục artifacts/figures trong temp_dir."""
    artifacts_dir = os.path.join(temp_dir, 'artifacts')
    os.makedirs(os.path.join(artifacts_dir, 'figures'), exist_ok=True)
    return artifacts_dir


# ==================== MODEL FIXTURES ====================

@pytest.fixture
def trained_model(sample_train_test_split):
    """Random forest nhỏ đã train, dùng cho test evaluator và plots."""
    from sklearn.ensemble import RandomForestClassifier

    X_train, X_test, y_train, y_test = sample_train_test_split
    model = RandomForestClassifier(n_estimators=10, random_state=42)
    model.fit(X_train, y_train)

    return model


@pytest.fixture
def mock_logger():
    """Logger đơn giản cho tests (logging basic)."""
    import logging
    logger = logging.getLogger('test_logger')
    logger.setLevel(logging.DEBUG)
    return logger
