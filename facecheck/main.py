# facecheck/main.py
"""
FaceCheck - Main Entry Point.

File điều phối chính của client chấm công:
- core/: Infrastructure (settings, camera, tflite)
- detect/: Face detection + Presence Detector
- processing/: Capture Gate, view model, display
- api/: Attendance API client

Usage:
    python -m facecheck.main                         # GUI, bấm i/o để chấm công
    python -m facecheck.main --headless              # Tự chụp khi thấy mặt
    python -m facecheck.main --enroll                # Đăng ký khuôn mặt
    python -m facecheck.main --api-url http://host:5000 --token <JWT>
"""
import os
import sys
import time
import logging
import argparse

# === SETUP DISPLAY TRƯỚC KHI IMPORT CV2 ===
if os.environ.get("DISPLAY", "") == "":
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from .api import CaptureType, SubmissionClient, create_api_client
from .core import (
    settings, create_camera, load_face_model,
    CaptureError, FailureReason, ModelLoadError, SubmissionError,
)
from .detect import PresenceDetector
from .processing import (
    AttendanceSession, CaptureGate, DisplayHandler, FaceEnrollment, GateState,
)

logger = logging.getLogger(__name__)

WINDOW_NAME = "FaceCheck"

# Headless: số lần gửi tối đa và thời gian chờ giữa các lần
HEADLESS_MAX_ATTEMPTS = 3
HEADLESS_RETRY_DELAY = 1.0


def setup_logging(verbose: bool = False):
    """Cấu hình logging (ghi thêm ra file trên Pi)."""
    handlers = [logging.StreamHandler()]
    if settings.IS_PI:
        handlers.append(logging.FileHandler('facecheck.log', encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='FaceCheck - Face presence attendance client',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m facecheck.main                       # Run with defaults
  python -m facecheck.main --min-confidence 0.6  # Custom threshold
  python -m facecheck.main --headless --timeout 20
        """
    )

    # API
    parser.add_argument('--api-url', metavar='URL',
                        help=f'Attendance API base URL (default: {settings.API_BASE_URL})')
    parser.add_argument('--token', metavar='JWT', help='Bearer token')

    # Camera
    parser.add_argument('--camera', '-c', type=int, metavar='ID',
                        help=f'Camera device ID (default: {settings.CAMERA_INDEX})')
    parser.add_argument('--resolution', '-r', type=str, metavar='WxH',
                        help=f'Camera resolution (default: {settings.CAMERA_WIDTH}x{settings.CAMERA_HEIGHT})')

    # Detection
    parser.add_argument('--model', metavar='PATH',
                        help=f'BlazeFace .tflite model (default: {settings.DETECTION_MODEL})')
    parser.add_argument('--min-confidence', type=float, metavar='VALUE',
                        help=f'Min confidence to allow capture (default: {settings.MIN_CONFIDENCE})')

    # Mode
    parser.add_argument('--enroll', action='store_true', help='Register your face instead of marking attendance')
    parser.add_argument('--headless', action='store_true', help='Run without GUI, capture automatically')
    parser.add_argument('--timeout', type=float, default=30.0, metavar='SECONDS',
                        help='Headless: give up after this many seconds (default: 30)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    return parser.parse_args(argv)


def apply_arguments(args):
    """Apply command line arguments to settings."""
    changes = []

    if args.api_url:
        settings.API_BASE_URL = args.api_url
        changes.append(f"API: {args.api_url}")
    if args.token:
        settings.API_TOKEN = args.token
        changes.append("Token: (from CLI)")
    if args.camera is not None:
        settings.CAMERA_INDEX = args.camera
        changes.append(f"Camera: {args.camera}")
    if args.resolution:
        try:
            w, h = map(int, args.resolution.lower().split('x'))
            settings.CAMERA_WIDTH = w
            settings.CAMERA_HEIGHT = h
            changes.append(f"Resolution: {w}x{h}")
        except ValueError:
            logger.warning(f"⚠️ Invalid resolution format: {args.resolution} (use WxH, e.g., 640x480)")
    if args.model:
        settings.DETECTION_MODEL = args.model
        changes.append(f"Model: {args.model}")
    if args.min_confidence is not None:
        settings.MIN_CONFIDENCE = args.min_confidence
        changes.append(f"Min confidence: {args.min_confidence}")
    if args.headless:
        settings.HEADLESS_MODE = True
        settings.OVERLAY_ENABLED = False
        changes.append("Mode: headless")

    return changes


def build_components(interval=None):
    """
    Tạo camera, model, API client, view model.

    Returns:
        (camera, detector, api, model_error) - detector là None nếu model lỗi
    """
    camera = create_camera(settings)
    api = create_api_client(settings)

    model_error = None
    detector = None
    try:
        model = load_face_model()
        detector = PresenceDetector(
            model,
            interval=interval or settings.detect_interval,
            hold_time=settings.DETECTION_HOLD_SECONDS,
        )
    except ModelLoadError as e:
        logger.error(f"❌ {e.message}")
        model_error = e

    return camera, detector, api, model_error


def handle_keyboard(key: int, gate: CaptureGate, session: AttendanceSession) -> bool:
    """
    Xử lý phím nhấn.

    Returns:
        True nếu nên thoát chương trình
    """
    if key == ord('q'):
        return True
    elif key == ord('i'):
        gate.arm(CaptureType.CHECK_IN)
    elif key == ord('o'):
        gate.arm(CaptureType.CHECK_OUT)
    elif key in (ord(' '), ord('c')):
        gate.capture()
    elif key == ord('x'):
        gate.cancel()
    elif key == ord('r'):
        try:
            session.refresh()
        except SubmissionError as e:
            logger.warning(f"Refresh lỗi: {e.message}")
    return False


def run_gui(gate: CaptureGate, session: AttendanceSession):
    """Vòng lặp render OpenCV."""
    display = DisplayHandler(overlay_enabled=settings.OVERLAY_ENABLED)
    placeholder_size = (settings.CAMERA_WIDTH, settings.CAMERA_HEIGHT)

    try:
        while True:
            snapshot = gate.snapshot()
            stream = gate.camera.active_stream
            frame = stream.read() if stream is not None else None

            if frame is None:
                message = "No camera" if not snapshot.has_camera else "FaceCheck"
                frame = display.placeholder(message, placeholder_size)
            elif gate.detector is not None:
                presence = gate.detector.latest()
                if presence.detection is not None:
                    display.draw_detection(
                        frame, presence.detection,
                        ready=presence.confidence >= gate.min_confidence
                    )
                display.draw_confidence(frame, snapshot.confidence, gate.min_confidence)

            display.draw_gate_status(frame, snapshot)
            display.draw_record(frame, session.record)

            key = display.show(WINDOW_NAME, frame)
            if handle_keyboard(key, gate, session):
                break
            if stream is None:
                time.sleep(0.03)
    finally:
        display.destroy_windows()


def run_headless(
    gate: CaptureGate,
    timeout: float,
    max_attempts: int = HEADLESS_MAX_ATTEMPTS,
    retry_delay: float = HEADLESS_RETRY_DELAY,
) -> bool:
    """
    Arm loại hợp lệ, tự chụp khi đủ confidence.

    Server từ chối -> dừng ngay (không gửi lại). Lỗi mạng / mất mặt lúc chụp
    -> chờ retry_delay rồi thử lại, tối đa max_attempts lần.

    Returns:
        True nếu chấm công thành công
    """
    if not gate.arm():
        return False

    deadline = time.monotonic() + timeout
    attempts = 0
    while time.monotonic() < deadline and attempts < max_attempts:
        if gate.state is GateState.ARMED and gate.can_capture():
            attempts += 1
            gate.capture()
            gate.wait_for_submission(max(0.0, deadline - time.monotonic()))

            snapshot = gate.snapshot()
            if snapshot.state is GateState.SUCCEEDED:
                return True
            if snapshot.failure is FailureReason.SUBMISSION_REJECTED:
                logger.error(f"❌ Server từ chối: {snapshot.message}")
                return False
            if attempts < max_attempts:
                logger.info(f"🔁 Thử lại sau {retry_delay:.1f}s ({attempts}/{max_attempts})")
                time.sleep(retry_delay)
            continue
        time.sleep(0.05)

    if gate.state is GateState.SUCCEEDED:
        return True
    logger.warning(f"⏱️ Không chấm công được sau {attempts} lần thử")
    return False


def run_enrollment(camera, detector, api, timeout: float) -> bool:
    """Đăng ký khuôn mặt: chờ thấy mặt rồi gửi."""
    with FaceEnrollment(camera, detector, api) as enrollment:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if enrollment.face_detected:
                try:
                    enrollment.register()
                    return True
                except CaptureError as e:
                    logger.warning(f"⚠️ {e.message}")
            time.sleep(detector.interval)
    return False


def main(argv=None):
    """Main entry point."""

    # === 0. PARSE ARGUMENTS ===
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    for change in apply_arguments(args):
        logger.info(f"🔧 {change}")

    # === 1. ENROLLMENT MODE ===
    if args.enroll:
        camera, detector, api, model_error = build_components(settings.enroll_detect_interval)
        if model_error is not None:
            return 1
        try:
            ok = run_enrollment(camera, detector, api, args.timeout)
        except CaptureError as e:
            logger.error(f"❌ {e.message}")
            return 1
        return 0 if ok else 1

    # === 2. COMPONENTS ===
    camera, detector, api, model_error = build_components()
    session = AttendanceSession(api)
    gate = CaptureGate(
        camera, detector, session, SubmissionClient(api),
        min_confidence=settings.min_confidence,
        model_error=model_error,
    )

    # === 3. BẢN GHI HÔM NAY ===
    try:
        session.refresh()
    except SubmissionError as e:
        logger.error(f"❌ {e.message}")
        if settings.headless_mode:
            return 1

    # === 4. MAIN LOOP ===
    try:
        if settings.headless_mode:
            return 0 if run_headless(gate, args.timeout) else 1
        run_gui(gate, session)
        return 0
    except KeyboardInterrupt:
        logger.info("🛑 Đã dừng (Ctrl+C)")
        return 0
    finally:
        gate.close()
        gate.wait_for_submission(timeout=1.0)


if __name__ == "__main__":
    sys.exit(main())
