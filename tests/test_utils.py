"""
tests/test_utils.py

Các unit test cho `attendance/utils.py`.
Kiểm tra các helper: files, IO, config, timestamp, rng, logger.
"""
import pytest
import pandas as pd
import numpy as np
import os
import yaml

from attendance.utils import (
    ensure_dir,
    make_rng,
    get_timestamp,
    resolve_data_path,
    IOHandler,
    ConfigLoader,
    Logger,
)


class TestHelperFunctions:
    """Các test cho helper functions (ensure_dir, timestamp, data path, rng)."""

    def test_ensure_dir_creates_directory(self, temp_dir):
        """Kiểm tra `ensure_dir` tạo thư mục mới."""
        new_dir = os.path.join(temp_dir, 'new_folder')

        ensure_dir(new_dir)

        assert os.path.exists(new_dir)

    def test_ensure_dir_handles_empty_path(self):
        """Kiểm tra `ensure_dir` xử lý đường dẫn rỗng/None an toàn."""
        ensure_dir('')
        ensure_dir(None)

    def test_make_rng_is_reproducible(self):
        """Cùng seed -> cùng chuỗi số ngẫu nhiên."""
        assert make_rng(7).rand() == make_rng(7).rand()

    def test_make_rng_does_not_touch_global_state(self):
        """Dùng generator riêng không làm thay đổi global state của numpy."""
        np.random.seed(0)
        expected = np.random.rand()

        np.random.seed(0)
        make_rng(123).rand(100)
        assert np.random.rand() == expected

    def test_get_timestamp_format(self):
        """Kiểm tra `get_timestamp` trả về chuỗi theo định dạng YYYYMMDD_HHMMSS."""
        ts = get_timestamp()

        assert len(ts) == 15
        assert ts[8] == '_'

    def test_resolve_data_path(self, temp_dir):
        path = os.path.join(temp_dir, 'bookings.csv')
        pd.DataFrame({'a': [1]}).to_csv(path, index=False)

        assert resolve_data_path(path) == path
        assert resolve_data_path(os.path.join(temp_dir, 'missing.csv')) is None


class TestConfigLoader:
    """Các test cho ConfigLoader."""

    def test_load_config_success(self, temp_dir):
        path = os.path.join(temp_dir, 'config.yaml')
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump({'data': {'target_col': 'attended', 'test_size': 0.3}}, f)

        config = ConfigLoader.load_config(path)

        assert config['data']['target_col'] == 'attended'
        assert config['data']['test_size'] == 0.3

    def test_load_config_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_config(os.path.join(temp_dir, 'nope.yaml'))

    def test_load_config_empty_file(self, temp_dir):
        path = os.path.join(temp_dir, 'empty.yaml')
        open(path, 'w').close()

        with pytest.raises(ValueError, match="empty"):
            ConfigLoader.load_config(path)

    def test_load_config_non_mapping(self, temp_dir):
        path = os.path.join(temp_dir, 'list.yaml')
        with open(path, 'w', encoding='utf-8') as f:
            f.write("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            ConfigLoader.load_config(path)

    def test_project_config_is_valid(self):
        """File config/config.yaml của dự án load được và có đủ các section chính."""
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        config = ConfigLoader.validate(ConfigLoader.load_config(os.path.join(root, 'config', 'config.yaml')))

        for section in ('data', 'models', 'evaluation', 'artifacts'):
            assert section in config
        assert config['data']['test_size'] == 0.3
        assert config['models']['random_forest']['n_estimators'] == 100


class TestIOHandler:
    """Các test cho IOHandler."""

    def test_read_csv(self, temp_dir):
        df = pd.DataFrame({'a': [1, 2], 'b': ['x', 'y']})
        path = os.path.join(temp_dir, 'data.csv')
        df.to_csv(path, index=False)

        pd.testing.assert_frame_equal(IOHandler.read_data(path), df)

    def test_read_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            IOHandler.read_data(os.path.join(temp_dir, 'absent.csv'))

    def test_read_unsupported_extension(self, temp_dir):
        path = os.path.join(temp_dir, 'data.txt')
        open(path, 'w').close()

        with pytest.raises(ValueError, match="Unsupported"):
            IOHandler.read_data(path)

    def test_read_malformed_csv(self, temp_dir):
        path = os.path.join(temp_dir, 'broken.csv')
        with open(path, 'w', encoding='utf-8') as f:
            f.write("a,b\n1,2\n3,4,5,6\n")

        with pytest.raises(IOError):
            IOHandler.read_data(path)

    def test_read_empty_csv(self, temp_dir):
        path = os.path.join(temp_dir, 'empty.csv')
        open(path, 'w').close()

        with pytest.raises(IOError):
            IOHandler.read_data(path)

    def test_json_roundtrip(self, temp_dir):
        path = os.path.join(temp_dir, 'nested', 'metrics.json')
        data = {'logistic_regression': {'accuracy': 0.75, 'rmse': 0.5}}

        IOHandler.save_json(data, path)

        assert IOHandler.load_json(path) == data


class TestLogger:
    """Các test cho Logger."""

    def test_get_logger_creates_system_log(self, temp_dir):
        log_dir = os.path.join(temp_dir, 'logs')
        logger = Logger.get_logger('TEST_SYSTEM_LOG', log_dir=log_dir)

        logger.info("STAGE: TEST")

        files = os.listdir(log_dir)
        assert any(f.startswith('TEST_SYSTEM_LOG_') and f.endswith('.log') for f in files)

    def test_get_logger_is_singleton(self, temp_dir):
        log_dir = os.path.join(temp_dir, 'logs')
        first = Logger.get_logger('TEST_SINGLETON', log_dir=log_dir)
        second = Logger.get_logger('TEST_SINGLETON', log_dir=log_dir)

        assert first is second
        assert len(first.handlers) == 2


class TestConfigValidation:
    """Các test cho ConfigLoader.validate."""

    def test_valid_config_passes(self, test_config):
        assert ConfigLoader.validate(test_config) is test_config

    @pytest.mark.parametrize("section, key, value", [
        ('data', 'test_size', 0.0),
        ('data', 'test_size', 1.5),
        ('data', 'random_state', 'abc'),
        ('evaluation', 'threshold', 1.0),
    ])
    def test_out_of_range_values(self, test_config, section, key, value):
        test_config[section][key] = value

        with pytest.raises(ValueError, match=key):
            ConfigLoader.validate(test_config)

    def test_unsupported_model(self, test_config):
        test_config['models']['xgboost'] = {}

        with pytest.raises(ValueError, match="xgboost"):
            ConfigLoader.validate(test_config)

    def test_missing_data_section(self):
        with pytest.raises(ValueError, match="data"):
            ConfigLoader.validate({'models': {}})

    @pytest.mark.parametrize("section, key", [
        ('data', 'test_size'),
        ('evaluation', 'threshold'),
    ])
    def test_null_fraction_raises_value_error(self, test_config, section, key):
        """`test_size: ` hoặc `threshold: ` để trống trong YAML -> ValueError, không phải TypeError."""
        test_config[section][key] = None

        with pytest.raises(ValueError, match=key):
            ConfigLoader.validate(test_config)

    def test_non_numeric_fraction_raises_value_error(self, test_config):
        test_config['data']['test_size'] = 'a third'

        with pytest.raises(ValueError, match="test_size"):
            ConfigLoader.validate(test_config)

    def test_empty_models_and_evaluation_sections(self, test_config):
        """Section để trống (None) được coi như mapping rỗng."""
        test_config['models'] = None
        test_config['evaluation'] = None

        config = ConfigLoader.validate(test_config)

        assert config['models'] == {}
        assert config['evaluation'] == {}

    def test_unsupported_scoring(self, test_config):
        test_config['evaluation']['scoring'] = 'auc_pr'

        with pytest.raises(ValueError, match="scoring"):
            ConfigLoader.validate(test_config)

    def test_rmse_scoring_is_accepted(self, test_config):
        test_config['evaluation']['scoring'] = 'rmse'

        assert ConfigLoader.validate(test_config)['evaluation']['scoring'] == 'rmse'


def test_save_json_converts_numpy_values(temp_dir):
    path = os.path.join(temp_dir, 'metrics.json')

    IOHandler.save_json({'accuracy': np.float64(0.8), 'n': np.int64(3), 'cm': np.array([[1, 2], [3, 4]])}, path)

    assert IOHandler.load_json(path) == {'accuracy': 0.8, 'n': 3, 'cm': [[1, 2], [3, 4]]}
