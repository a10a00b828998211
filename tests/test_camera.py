import cv2
import pytest

from facecheck.core.camera import CameraConfig, CameraManager
from facecheck.core.errors import CameraUnavailable, FailureReason

from conftest import FakeProvider


def test_acquire_configures_and_warms_up(camera, provider):
    stream = camera.acquire()

    capture = provider.last
    assert stream.active
    assert camera.has_camera
    assert capture.props[cv2.CAP_PROP_FRAME_WIDTH] == 640
    assert capture.props[cv2.CAP_PROP_FRAME_HEIGHT] == 480
    assert capture.grab_count == 2
    assert stream.read() is not None


def test_acquire_reuses_active_stream(camera, provider):
    first = camera.acquire()
    second = camera.acquire()

    assert first is second
    assert len(provider.captures) == 1


def test_release_is_idempotent(camera, provider):
    stream = camera.acquire()

    camera.release(stream)
    camera.release(stream)
    stream.stop()

    assert provider.last.release_count == 1
    assert not stream.active
    assert stream.read() is None
    assert camera.active_stream is None


def test_release_none_is_noop(camera, provider):
    stream = camera.acquire()
    camera.release(None)
    assert stream.active
    assert provider.last.release_count == 0


def test_context_manager_releases(camera, provider):
    with camera.acquire() as stream:
        assert stream.read() is not None
    assert provider.last.release_count == 1
    assert camera.active_stream is None


def test_reacquire_after_release_opens_new_capture(camera, provider):
    camera.release(camera.acquire())
    stream = camera.acquire()
    assert stream.active
    assert len(provider.captures) == 2


def test_unavailable_camera_raises_and_clears_flag():
    provider = FakeProvider(available=False)
    manager = CameraManager(
        config=CameraConfig(max_retries=3, retry_delay=0.0),
        provider=provider,
    )

    with pytest.raises(CameraUnavailable) as exc_info:
        manager.acquire()

    assert exc_info.value.reason is FailureReason.CAMERA_UNAVAILABLE
    assert not manager.has_camera
    assert len(provider.captures) == 3
    assert all(c.release_count == 1 for c in provider.captures)


def test_latest_frame_tracks_last_read(camera):
    stream = camera.acquire()
    assert stream.latest_frame() is None
    frame = stream.read()
    assert stream.latest_frame() is frame
