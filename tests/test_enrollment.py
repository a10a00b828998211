import pytest

from facecheck.core.errors import NoFaceAtCapture, SubmissionRejected
from facecheck.processing.enrollment import FaceEnrollment


@pytest.fixture
def enrollment(camera, detector, api):
    return FaceEnrollment(camera, detector, api)


def test_start_opens_camera_and_detector(enrollment, camera, detector):
    enrollment.start()
    assert enrollment.active
    assert detector.started == [camera.active_stream]


def test_register_without_face_is_refused(enrollment, api):
    enrollment.start()

    with pytest.raises(NoFaceAtCapture) as exc_info:
        enrollment.register()

    assert "position your face" in exc_info.value.message
    assert api.register_calls == []
    assert enrollment.active


def test_register_sends_descriptor_and_releases(enrollment, provider, detector, api, make_detection):
    enrollment.start()
    detector.see(make_detection(0.88))

    response = enrollment.register()

    assert response == {"message": "Face registered successfully"}
    descriptor, confidence = api.register_calls[0]
    assert len(descriptor) == 17
    assert confidence == 0.88
    assert not enrollment.active
    assert provider.last.release_count == 1


def test_face_lost_before_redetect(enrollment, detector, api, make_detection):
    enrollment.start()
    detector.see(make_detection(0.9))
    detector.detections = []

    with pytest.raises(NoFaceAtCapture):
        enrollment.register()
    assert api.register_calls == []


def test_server_error_keeps_camera_open(enrollment, detector, api, make_detection):
    api.register_result = SubmissionRejected("Face already registered", 400)
    enrollment.start()
    detector.see(make_detection(0.9))

    with pytest.raises(SubmissionRejected):
        enrollment.register()
    assert enrollment.active


def test_only_one_registration_in_flight(enrollment, detector, api, make_detection):
    nested = []
    api.register_hook = lambda: nested.append(enrollment.register())
    enrollment.start()
    detector.see(make_detection(0.9))

    enrollment.register()

    assert nested == [None]
    assert len(api.register_calls) == 1


def test_context_manager_stops(camera, detector, api, provider):
    with FaceEnrollment(camera, detector, api) as enrollment:
        assert enrollment.active
    assert provider.last.release_count == 1
    enrollment.stop()
    assert provider.last.release_count == 1
