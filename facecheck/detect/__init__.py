"""
Face Detection module - BlazeFace (TFLite).

Exports:
- BlazeFaceDetector: model detect mặt, trả về Detection
- Detection: một khuôn mặt (box, 6 landmarks, probability)
- PresenceDetector: vòng lặp detect định kỳ
"""

from .detect import BlazeFaceDetector, Detection, NUM_KEYPOINTS
from .presence import PresenceDetector, PresenceState

__all__ = [
    'BlazeFaceDetector',
    'Detection',
    'NUM_KEYPOINTS',
    'PresenceDetector',
    'PresenceState',
]
