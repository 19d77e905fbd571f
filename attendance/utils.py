"""
Hạ tầng dùng chung của pipeline attendance: thư mục / timestamp, generator ngẫu nhiên,
đọc + kiểm tra config YAML, logger hai đầu ra (console + system log) và đọc/ghi file.

Important keywords: Args, Returns, Raises, Notes, Class
"""

import os, sys, yaml, json, logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional
import numpy as np
import pandas as pd

SEPARATOR = '=' * 70

CONSOLE_FORMAT = "[%(asctime)s] | %(levelname)-7s | %(message)s"
CONSOLE_DATEFMT = "%H:%M:%S"
SYSTEM_FORMAT = "[%(asctime)s] | %(levelname)-7s | %(name)-15s | %(message)s"
SYSTEM_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ===================== Helpers =====================

def ensure_dir(dir_path: str) -> None:
    """Tạo thư mục (kể cả thư mục cha) nếu chưa có; đường dẫn rỗng/None thì bỏ qua."""
    if dir_path:
        os.makedirs(dir_path, exist_ok=True)


def make_rng(seed: int = 42) -> np.random.RandomState:
    """Generator riêng, được truyền tường minh cho các bước ngẫu nhiên (split).

    Args:
        seed (int, optional): Seed của run. Defaults to 42.

    Returns:
        np.random.RandomState: Không dùng chung state với np.random toàn cục.
    """
    return np.random.RandomState(seed)


def get_timestamp() -> str:
    """Timestamp dạng YYYYMMDD_HHMMSS, dùng đặt tên thư mục run và file log."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def resolve_data_path(data_arg: str) -> Optional[str]:
    """
    Tìm file dữ liệu truyền qua --data: đường dẫn tuyệt đối, rồi data/<arg>, rồi tương đối với cwd.

    Returns:
        Optional[str]: Đường dẫn tồn tại đầu tiên, None nếu không thấy.
    """
    candidates = [data_arg] if os.path.isabs(data_arg) else [os.path.join('data', data_arg), data_arg]
    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    return None


# ===================== Config =====================

class ConfigLoader:
    """
    Đọc config YAML của pipeline và kiểm tra các giá trị số quan trọng.

    Methods:
        load_config: YAML -> dict (mapping bắt buộc).
        validate: Kiểm tra test_size, threshold, random_state, scoring và tên mô hình.
    """

    SUPPORTED_MODELS = ('logistic_regression', 'random_forest')
    SUPPORTED_SCORING = ('accuracy', 'rmse', 'precision', 'recall', 'f1', 'roc_auc')

    @staticmethod
    def load_config(config_path: str = "config/config.yaml") -> Dict:
        """
        Args:
            config_path (str, optional): File YAML. Defaults to "config/config.yaml".

        Returns:
            Dict: Cấu hình.

        Raises:
            FileNotFoundError: File không tồn tại.
            ValueError: YAML lỗi cú pháp, file rỗng, hoặc gốc không phải mapping.
        """
        if not os.path.isfile(config_path):
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if config is None:
            raise ValueError(f"Config file is empty: {config_path}")
        if not isinstance(config, dict):
            raise ValueError(f"Config root must be a mapping, got {type(config).__name__}: {config_path}")
        return config

    @staticmethod
    def _fraction(value, key: str) -> float:
        try:
            fraction = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{key} must be a number in (0, 1), got {value!r}") from e
        if not 0 < fraction < 1:
            raise ValueError(f"{key} must be in (0, 1), got {value}")
        return fraction

    @classmethod
    def validate(cls, config: Dict) -> Dict:
        """
        Kiểm tra các giá trị mà pipeline dựa vào; trả về chính config để dùng nối tiếp.

        Notes:
            Section 'models' / 'evaluation' để trống trong YAML (None) được thay bằng {}.

        Raises:
            ValueError: Thiếu section 'data', test_size / threshold không phải số trong (0, 1),
                random_state không phải số nguyên, scoring hoặc mô hình không được hỗ trợ.
        """
        data_cfg = config.get('data')
        if not isinstance(data_cfg, dict):
            raise ValueError("Config needs a 'data' section")

        cls._fraction(data_cfg.get('test_size', 0.3), 'data.test_size')

        seed = data_cfg.get('random_state', 42)
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise ValueError(f"data.random_state must be an integer, got {seed!r}")

        for section in ('models', 'evaluation'):
            if config.get(section) is None:
                config[section] = {}
            elif not isinstance(config[section], dict):
                raise ValueError(f"Config section '{section}' must be a mapping")

        eval_cfg = config['evaluation']
        cls._fraction(eval_cfg.get('threshold', 0.5), 'evaluation.threshold')

        scoring = eval_cfg.get('scoring', 'roc_auc')
        if scoring not in cls.SUPPORTED_SCORING:
            raise ValueError(f"evaluation.scoring must be one of {list(cls.SUPPORTED_SCORING)}, got {scoring!r}")

        unknown = [m for m in config['models'] if m not in cls.SUPPORTED_MODELS]
        if unknown:
            raise ValueError(f"Unsupported models in config: {unknown}")

        return config


# ===================== Logging =====================

class SystemLogFilter(logging.Filter):
    """
    Filter của file system log: giữ mọi record không phải INFO,
    còn INFO chỉ giữ các mốc của run (stage, khởi tạo, kết quả đánh giá).
    """

    MILESTONE_KEYWORDS = (
        'STAGE:',
        'Pipeline',
        'Initialized',
        'Completed',
        '[EVALUATION]',
        'BEST MODEL',
        SEPARATOR,
    )

    def filter(self, record):
        if record.levelno != logging.INFO:
            return True
        msg = record.getMessage()
        return any(kw in msg for kw in self.MILESTONE_KEYWORDS)


class SystemMsgCleaner(logging.Filter):
    """Gọn message: bỏ dòng trống, chuẩn hóa dòng '=' về SEPARATOR, bỏ separator lặp liền nhau."""

    def __init__(self):
        super().__init__()
        self._last = ""

    def filter(self, record):
        msg = re.sub(r"\n\s*\n+", "\n", str(record.getMessage())).strip()
        if not msg:
            return False
        if re.fullmatch(r"=+", msg):
            msg = SEPARATOR
            if self._last == SEPARATOR:
                return False
        self._last = msg

        record.msg = msg
        record.args = ()
        return True


class Logger:
    """
    Logger theo tên, tạo một lần cho mỗi tên:

        Console (stdout): level cấu hình được, format ngắn; bảng missing values và bảng metrics in ở đây.
        System log (<log_dir>/<name>_<timestamp>.log): DEBUG trở lên, INFO chỉ giữ milestone.
    """
    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def get_logger(cls, name: str, log_dir: str = None, level: str = "INFO") -> logging.Logger:
        """
        Args:
            name: Tên logger (pipeline dùng 'MAIN').
            log_dir: Thư mục system log. Defaults to 'artifacts/logs'.
            level: Level của console handler. Defaults to 'INFO'.

        Returns:
            logging.Logger: Logger đã gắn 2 handler, không propagate lên root.
        """
        if name in cls._loggers:
            return cls._loggers[name]

        log_dir = log_dir or "artifacts/logs"
        ensure_dir(log_dir)

        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers.clear()

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
        console.addFilter(SystemMsgCleaner())
        logger.addHandler(console)

        log_file = os.path.join(log_dir, f"{name}_{get_timestamp()}.log")
        # utf-8-sig: log có tiếng Việt, mở đúng trên Windows
        system = logging.FileHandler(log_file, encoding="utf-8-sig")
        system.setLevel(logging.DEBUG)
        system.setFormatter(logging.Formatter(SYSTEM_FORMAT, datefmt=SYSTEM_DATEFMT))
        system.addFilter(SystemMsgCleaner())
        system.addFilter(SystemLogFilter())
        logger.addHandler(system)

        cls._loggers[name] = logger
        return logger


# ===================== IO =====================

def _json_default(obj):
    """numpy scalar / array trong metrics -> kiểu Python để json ghi được."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class IOHandler:
    """
    Đọc file booking (CSV) và đọc/ghi JSON kết quả của run.

    Methods:
        read_data: CSV -> DataFrame.
        save_json / load_json: metrics.json của từng run.
    """

    _SUPPORTED_EXT = {".csv"}

    @staticmethod
    def read_data(file_path: str, **kwargs) -> pd.DataFrame:
        """
        Args:
            file_path (str): File CSV.
            **kwargs: Chuyển tiếp cho pd.read_csv (vd: sep).

        Returns:
            pd.DataFrame: Dữ liệu thô, chưa đổi kiểu.

        Raises:
            FileNotFoundError: File không tồn tại.
            ValueError: Đuôi file không phải .csv.
            IOError: File rỗng, sai cấu trúc hoặc sai encoding.
        """
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Data file not found: {file_path}")

        ext = Path(file_path).suffix.lower()
        if ext not in IOHandler._SUPPORTED_EXT:
            raise ValueError(f"Unsupported file extension '{ext}', expected one of {sorted(IOHandler._SUPPORTED_EXT)}")

        try:
            return pd.read_csv(file_path, **kwargs)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise IOError(f"Cannot read {file_path}: {e}") from e

    @staticmethod
    def save_json(data: Dict, file_path: str, indent: int = 4) -> None:
        """Ghi dict ra JSON (tạo thư mục cha nếu cần); numpy scalar được đổi sang kiểu Python."""
        ensure_dir(os.path.dirname(file_path))
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=indent, ensure_ascii=False, default=_json_default)
        except (OSError, TypeError) as e:
            raise IOError(f"Cannot write JSON {file_path}: {e}") from e

    @staticmethod
    def load_json(file_path: str) -> Dict:
        """
        Raises:
            FileNotFoundError: File không tồn tại.
            IOError: Không đọc/giải mã được.
        """
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"JSON file not found: {file_path}")
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise IOError(f"Cannot read JSON {file_path}: {e}") from e


__all__ = [
    "ensure_dir",
    "make_rng",
    "get_timestamp",
    "resolve_data_path",
    "ConfigLoader",
    "SystemLogFilter",
    "SystemMsgCleaner",
    "Logger",
    "IOHandler",
]
