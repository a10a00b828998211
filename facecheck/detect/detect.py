# facecheck/detect/detect.py
"""
Face Detection module - BlazeFace (short-range, front camera).
Model: face_detection_front.tflite

Model có đặc điểm:
- Input: float32 [1, 128, 128, 3], normalize về [-1, 1]
- Output regressors: [1, 896, 16] = box (cx, cy, w, h) + 6 keypoints (x, y)
- Output classificators: [1, 896, 1] = logit của class "face"

Keypoints (K=6): mắt phải, mắt trái, mũi, miệng, tai phải, tai trái.

Thread-safe: Sử dụng Lock cho TFLite inference.
"""
import cv2
import numpy as np
import logging
import threading
from dataclasses import dataclass
from typing import List, Tuple

from ..core.tflite_helper import get_interpreter

logger = logging.getLogger(__name__)

# --- CẤU HÌNH MODEL ---
MODEL_PATH = "models/detection/face_detection_front.tflite"
INPUT_SIZE = 128
NUM_KEYPOINTS = 6
NUM_ANCHORS = 896

# SSD anchor options (giống MediaPipe face_detection_front)
ANCHOR_STRIDES = [8, 16, 16, 16]
ANCHOR_OFFSET = 0.5

Point = Tuple[float, float]


@dataclass(frozen=True)
class Detection:
    """Một khuôn mặt model trả về trong một lần detect (tọa độ pixel)."""
    top_left: Point
    bottom_right: Point
    landmarks: Tuple[Point, ...]
    probability: float

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(x, y, w, h) dạng int, dùng cho vẽ overlay."""
        x1, y1 = self.top_left
        x2, y2 = self.bottom_right
        return (int(x1), int(y1), int(x2 - x1), int(y2 - y1))


def generate_anchors(input_size: int = INPUT_SIZE, strides=ANCHOR_STRIDES) -> np.ndarray:
    """
    Generate anchor centers cho SSD-style detection.
    Các layer cùng stride được gộp lại (2 anchors ở stride 8, 6 anchors ở stride 16).

    Returns:
        np.ndarray [N, 2] với (cx, cy) normalize về [0, 1]
    """
    anchors = []
    layer_id = 0
    while layer_id < len(strides):
        stride = strides[layer_id]
        repeats = 0
        while layer_id < len(strides) and strides[layer_id] == stride:
            repeats += 2
            layer_id += 1

        grid = int(np.ceil(input_size / stride))
        for y in range(grid):
            cy = (y + ANCHOR_OFFSET) / grid
            for x in range(grid):
                cx = (x + ANCHOR_OFFSET) / grid
                for _ in range(repeats):
                    anchors.append((cx, cy))

    return np.asarray(anchors, dtype=np.float32)


class BlazeFaceDetector:
    """
    Face Detector BlazeFace qua TFLite. Thread-safe.

    estimate_faces() trả về danh sách Detection, sắp xếp giảm dần theo
    probability: phần tử đầu tiên là detection mạnh nhất.
    """

    def __init__(
        self,
        model_path=MODEL_PATH,
        score_threshold: float = 0.75,
        iou_threshold: float = 0.3,
        interpreter=None,
    ):
        self._inference_lock = threading.Lock()

        self.model_path = model_path
        self.score_threshold = score_threshold
        self.iou_threshold = iou_threshold

        self.interpreter = interpreter or get_interpreter(model_path)
        self.interpreter.allocate_tensors()
        self.input_details = self.interpreter.get_input_details()
        self.output_details = self.interpreter.get_output_details()

        self._input_index = self.input_details[0]['index']
        self._input_dtype = self.input_details[0].get('dtype', np.float32)
        self._output_indices = [d['index'] for d in self.output_details]

        # Quantization params (chỉ dùng khi model là int8/uint8)
        self._input_scale, self._input_zero_point = self._quant_params(self.input_details[0])
        self._output_params = [self._quant_params(d) for d in self.output_details]

        self._anchors = generate_anchors()
        logger.info(f"[BlazeFace] Loaded: {model_path} (anchors={len(self._anchors)})")

    @staticmethod
    def _quant_params(detail):
        quant = detail.get('quantization_parameters', {}) or {}
        scales = quant.get('scales')
        zero_points = quant.get('zero_points')
        scale = float(scales[0]) if scales is not None and len(scales) > 0 else 1.0
        zp = int(zero_points[0]) if zero_points is not None and len(zero_points) > 0 else 0
        return scale, zp

    def _preprocess(self, frame):
        """
        Pipeline:
        1. Resize về 128x128
        2. Convert BGR -> RGB
        3. Normalize về [-1, 1]
        4. Quantize nếu model là int8/uint8
        """
        img = cv2.resize(frame, (INPUT_SIZE, INPUT_SIZE))
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        img = (img.astype(np.float32) - 127.5) / 127.5

        if self._input_dtype in (np.int8, np.uint8):
            info = np.iinfo(self._input_dtype)
            img = np.clip(
                np.round(img / self._input_scale + self._input_zero_point),
                info.min, info.max
            ).astype(self._input_dtype)

        return np.expand_dims(img, axis=0)

    def _dequantize(self, output, idx):
        if output.dtype in (np.int8, np.uint8):
            scale, zp = self._output_params[idx]
            return (output.astype(np.float32) - zp) * scale
        return output.astype(np.float32)

    def estimate_faces(self, frame) -> List[Detection]:
        """
        Detect faces trong frame. Thread-safe.

        Args:
            frame: BGR image (numpy array)

        Returns:
            List[Detection], có thể rỗng
        """
        h_img, w_img = frame.shape[:2]
        img_input = self._preprocess(frame)

        with self._inference_lock:
            self.interpreter.set_tensor(self._input_index, img_input)
            self.interpreter.invoke()
            outputs = [
                np.array(self.interpreter.get_tensor(i)[0], copy=True)
                for i in self._output_indices
            ]

        outputs = [self._dequantize(out, i) for i, out in enumerate(outputs)]

        # regressors có shape [..., 16], scores có shape [..., 1]
        if outputs[0].shape[-1] == 4 + 2 * NUM_KEYPOINTS:
            raw_boxes, raw_scores = outputs[0], outputs[1]
        else:
            raw_boxes, raw_scores = outputs[1], outputs[0]

        return self._decode(raw_boxes, raw_scores.reshape(-1), w_img, h_img)

    def _decode(self, raw_boxes, raw_scores, w_img, h_img) -> List[Detection]:
        scores = 1.0 / (1.0 + np.exp(-np.clip(raw_scores, -100.0, 100.0)))

        mask = scores >= self.score_threshold
        if not np.any(mask):
            return []

        boxes = raw_boxes[mask] / INPUT_SIZE
        anchors = self._anchors[mask]
        scores = scores[mask]

        cx = boxes[:, 0] + anchors[:, 0]
        cy = boxes[:, 1] + anchors[:, 1]
        w = boxes[:, 2]
        h = boxes[:, 3]

        x_min = (cx - w / 2) * w_img
        y_min = (cy - h / 2) * h_img
        x_max = (cx + w / 2) * w_img
        y_max = (cy + h / 2) * h_img

        keypoints = boxes[:, 4:4 + 2 * NUM_KEYPOINTS].reshape(-1, NUM_KEYPOINTS, 2)
        keypoints = keypoints + anchors[:, None, :]
        keypoints[:, :, 0] *= w_img
        keypoints[:, :, 1] *= h_img

        # NMS (kết quả sắp xếp theo score giảm dần)
        rects = np.stack([x_min, y_min, x_max - x_min, y_max - y_min], axis=1)
        keep = cv2.dnn.NMSBoxes(
            rects.tolist(), scores.tolist(),
            self.score_threshold, self.iou_threshold
        )

        results = []
        for i in np.asarray(keep).flatten():
            results.append(Detection(
                top_left=(float(x_min[i]), float(y_min[i])),
                bottom_right=(float(x_max[i]), float(y_max[i])),
                landmarks=tuple((float(px), float(py)) for px, py in keypoints[i]),
                probability=float(scores[i]),
            ))

        results.sort(key=lambda d: d.probability, reverse=True)
        return results
