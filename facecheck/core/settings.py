# facecheck/core/settings.py
"""
Configuration cho FaceCheck client.

Thứ tự ưu tiên: giá trị mặc định -> config.json -> biến môi trường FACECHECK_*.
CLI (main.py) có thể ghi đè thêm lúc khởi động.
"""
import os
import json
import platform
from dataclasses import dataclass, field, fields
from typing import Optional


# === PLATFORM DETECTION ===
IS_WINDOWS = platform.system() == "Windows"
IS_PI = platform.system() == "Linux" and os.path.exists("/proc/device-tree/model")
HAS_DISPLAY = IS_WINDOWS or os.environ.get("DISPLAY", "") != ""

# === PATHS ===
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
CONFIG_PATH = os.environ.get(
    "FACECHECK_CONFIG",
    os.path.join(BASE_DIR, 'config', 'config.json')
)
ENV_PREFIX = "FACECHECK_"


def _load_json_config(path: str) -> dict:
    """Load config từ JSON file, trả về {} nếu lỗi."""
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError):
        return {}


def _coerce(raw: str, current):
    """Ép kiểu giá trị env theo kiểu của giá trị mặc định."""
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


@dataclass
class Settings:
    """Configuration của client chấm công."""

    # === PLATFORM (read-only) ===
    IS_WINDOWS: bool = field(default_factory=lambda: IS_WINDOWS)
    IS_PI: bool = field(default_factory=lambda: IS_PI)
    HAS_DISPLAY: bool = field(default_factory=lambda: HAS_DISPLAY)
    BASE_DIR: str = field(default_factory=lambda: BASE_DIR)

    # === ATTENDANCE API ===
    API_BASE_URL: str = "http://localhost:5000"
    API_TOKEN: str = ""
    REFRESH_TOKEN: str = ""
    REQUEST_TIMEOUT: float = 30.0

    # === CAMERA ===
    CAMERA_INDEX: int = 0
    CAMERA_WIDTH: int = 640
    CAMERA_HEIGHT: int = 480
    CAMERA_WARMUP_FRAMES: int = 3

    # === DETECTION ===
    DETECTION_MODEL: str = "models/detection/face_detection_front.tflite"
    DETECTION_SCORE_THRESHOLD: float = 0.75
    DETECTION_IOU_THRESHOLD: float = 0.3
    DETECT_INTERVAL: float = 0.1          # 10 Hz khi đang mở màn hình chụp
    ENROLL_DETECT_INTERVAL: float = 0.5   # 2 Hz khi đăng ký khuôn mặt
    DETECTION_HOLD_SECONDS: float = 0.0   # 0 = không debounce
    MIN_CONFIDENCE: float = 0.5
    TFLITE_NUM_THREADS: int = 4

    # === DISPLAY ===
    FORCE_GUI_MODE: bool = False
    HEADLESS_MODE: bool = False
    OVERLAY_ENABLED: bool = True

    def __post_init__(self):
        """Tính toán giá trị phụ thuộc platform."""
        self._load_from_json()
        self._load_from_env()
        self._compute_defaults()

    def _load_from_json(self, path: Optional[str] = None):
        """Load settings từ config.json nếu có."""
        config = _load_json_config(path or CONFIG_PATH)
        for key, value in config.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

    def _load_from_env(self, environ=None):
        """Ghi đè bằng biến môi trường FACECHECK_<KEY>."""
        environ = os.environ if environ is None else environ
        for f in fields(self):
            raw = environ.get(ENV_PREFIX + f.name)
            if raw is None:
                continue
            setattr(self, f.name, _coerce(raw, getattr(self, f.name)))

    def _compute_defaults(self):
        """Tính giá trị mặc định theo platform."""
        # Pi yếu hơn -> giảm resolution và thread
        if self.IS_PI:
            if self.CAMERA_WIDTH > 320:
                self.CAMERA_WIDTH = 320
            if self.CAMERA_HEIGHT > 240:
                self.CAMERA_HEIGHT = 240
            self.TFLITE_NUM_THREADS = 2

        if not self.HEADLESS_MODE:
            self.HEADLESS_MODE = not self.IS_WINDOWS and not self.FORCE_GUI_MODE and not self.HAS_DISPLAY
        self.OVERLAY_ENABLED = not self.HEADLESS_MODE

    # === PROPERTY ALIASES ===
    @property
    def api_base_url(self) -> str:
        return self.API_BASE_URL.rstrip('/')

    @property
    def min_confidence(self) -> float:
        return self.MIN_CONFIDENCE

    @property
    def detect_interval(self) -> float:
        return self.DETECT_INTERVAL

    @property
    def enroll_detect_interval(self) -> float:
        return self.ENROLL_DETECT_INTERVAL

    @property
    def tflite_num_threads(self) -> int:
        return self.TFLITE_NUM_THREADS

    @property
    def headless_mode(self) -> bool:
        return self.HEADLESS_MODE


# === SINGLETON ===
settings = Settings()
