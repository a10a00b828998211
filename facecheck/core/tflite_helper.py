# facecheck/core/tflite_helper.py
"""
Tạo TFLite Interpreter cho BlazeFace.

Runtime được chọn theo thứ tự: tflite_runtime (Pi, nhẹ) rồi tensorflow.lite (PC).
Mọi lỗi (thiếu runtime, file model hỏng) đều được đổi thành ModelLoadError để
Capture Gate tắt tính năng chụp thay vì crash.

Usage:
    interpreter = get_interpreter("models/detection/face_detection_front.tflite")
    interpreter.allocate_tensors()
"""
import logging

from .settings import settings
from .errors import ModelLoadError

logger = logging.getLogger(__name__)


def _interpreter_class():
    """
    Returns:
        (Interpreter class, tên runtime)

    Raises:
        ModelLoadError: không có runtime nào
    """
    try:
        from tflite_runtime.interpreter import Interpreter
        return Interpreter, "tflite_runtime"
    except ImportError:
        pass

    try:
        import tensorflow as tf
        return tf.lite.Interpreter, "tensorflow.lite"
    except ImportError:
        pass

    raise ModelLoadError(
        "No TFLite interpreter found. Install one of: "
        "`pip install tflite-runtime` (Pi) or `pip install tensorflow` (PC)"
    )


def get_interpreter(model_path, num_threads=None):
    """
    Tạo Interpreter từ file .tflite.

    Args:
        model_path: Đường dẫn đến file .tflite
        num_threads: Số threads cho inference (mặc định theo settings)

    Raises:
        ModelLoadError: thiếu runtime hoặc runtime không đọc được model
    """
    if num_threads is None:
        num_threads = settings.tflite_num_threads

    interpreter_cls, runtime = _interpreter_class()
    logger.info(f"[TFLite] {runtime}: {model_path} (threads={num_threads})")
    try:
        return interpreter_cls(model_path=str(model_path), num_threads=num_threads)
    except (ValueError, RuntimeError) as e:
        raise ModelLoadError(f"Failed to load face detection model: {e}") from e
