# facecheck/descriptor/descriptor.py
"""
Descriptor Extractor.

Chuyển một Detection thành vector số có độ dài cố định gửi lên server
thay cho ảnh gốc:

    [x0, y0, x1, y1, ..., x(K-1), y(K-1)]  # landmarks (2K)
    + [probability]                         # 1
    + [tl.x, tl.y, br.x, br.y]              # 4

Với BlazeFace (K=6) độ dài là 17. Đổi K là đổi contract với server.
"""
from typing import List, Sequence

from ..core.errors import NoFaceAtCapture
from ..detect.detect import Detection, NUM_KEYPOINTS

Descriptor = List[float]


def descriptor_length(num_keypoints: int = NUM_KEYPOINTS) -> int:
    """Độ dài descriptor cho model có num_keypoints landmarks."""
    return 2 * num_keypoints + 1 + 4


def describe(detection: Detection) -> Descriptor:
    """Flatten một Detection thành descriptor."""
    values = [float(v) for point in detection.landmarks for v in point]
    values.append(float(detection.probability))
    values.extend([
        float(detection.top_left[0]), float(detection.top_left[1]),
        float(detection.bottom_right[0]), float(detection.bottom_right[1]),
    ])
    return values


def extract_descriptor(detections: Sequence[Detection]) -> Descriptor:
    """
    Lấy descriptor của detection đầu tiên (mạnh nhất).

    Raises:
        NoFaceAtCapture: danh sách detection rỗng
    """
    if not detections:
        raise NoFaceAtCapture()
    return describe(detections[0])
