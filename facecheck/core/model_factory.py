# facecheck/core/model_factory.py
"""
Factory module để load face detection model.

Usage:
    from facecheck.core.model_factory import load_face_model

    model = load_face_model()            # raises ModelLoadError
    detections = model.estimate_faces(frame)
"""
import os
import logging

from .errors import ModelLoadError
from .settings import settings

logger = logging.getLogger(__name__)

DEFAULT_DETECTION_MODEL = "models/detection/face_detection_front.tflite"


def load_face_model(model_path=None, score_threshold=None, iou_threshold=None):
    """
    Load BlazeFace detector.

    Args:
        model_path: Đường dẫn model (None = settings.DETECTION_MODEL)
        score_threshold: Ngưỡng score của detector
        iou_threshold: Ngưỡng IoU cho NMS

    Returns:
        BlazeFaceDetector instance

    Raises:
        ModelLoadError: file không tồn tại, thiếu runtime hoặc model hỏng
    """
    from ..detect.detect import BlazeFaceDetector

    if model_path is None:
        model_path = settings.DETECTION_MODEL or DEFAULT_DETECTION_MODEL
    if not os.path.isabs(model_path) and not os.path.exists(model_path):
        model_path = os.path.join(settings.BASE_DIR, model_path)
    if score_threshold is None:
        score_threshold = settings.DETECTION_SCORE_THRESHOLD
    if iou_threshold is None:
        iou_threshold = settings.DETECTION_IOU_THRESHOLD

    if not os.path.exists(model_path):
        logger.error(f"❌ Không tìm thấy model: {model_path}")
        raise ModelLoadError(f"Face detection model not found: {model_path}")

    logger.info(f"[Detector] Model: {model_path}")
    try:
        return BlazeFaceDetector(
            model_path=model_path,
            score_threshold=score_threshold,
            iou_threshold=iou_threshold,
        )
    except ModelLoadError:
        raise
    except (ValueError, RuntimeError, OSError) as e:
        logger.error(f"❌ Lỗi load model: {e}")
        raise ModelLoadError(f"Failed to load face detection model: {e}") from e
