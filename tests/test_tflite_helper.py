import sys
import types

import pytest

from facecheck.core.errors import ModelLoadError
from facecheck.core.tflite_helper import get_interpreter


class RecordingInterpreter:
    def __init__(self, model_path, num_threads):
        if model_path.endswith("broken.tflite"):
            raise ValueError("Could not open 'broken.tflite'")
        self.model_path = model_path
        self.num_threads = num_threads


@pytest.fixture
def fake_tflite_runtime(monkeypatch):
    package = types.ModuleType("tflite_runtime")
    module = types.ModuleType("tflite_runtime.interpreter")
    module.Interpreter = RecordingInterpreter
    package.interpreter = module
    monkeypatch.setitem(sys.modules, "tflite_runtime", package)
    monkeypatch.setitem(sys.modules, "tflite_runtime.interpreter", module)


def test_prefers_tflite_runtime(fake_tflite_runtime):
    interpreter = get_interpreter("face.tflite", num_threads=2)
    assert isinstance(interpreter, RecordingInterpreter)
    assert interpreter.num_threads == 2


def test_broken_model_is_model_load_error(fake_tflite_runtime):
    with pytest.raises(ModelLoadError) as exc_info:
        get_interpreter("broken.tflite", num_threads=1)
    assert "broken.tflite" in exc_info.value.message


def test_no_runtime_installed(monkeypatch):
    monkeypatch.setitem(sys.modules, "tflite_runtime", None)
    monkeypatch.setitem(sys.modules, "tflite_runtime.interpreter", None)
    monkeypatch.setitem(sys.modules, "tensorflow", None)

    with pytest.raises(ModelLoadError) as exc_info:
        get_interpreter("face.tflite", num_threads=1)
    assert "tflite-runtime" in exc_info.value.message
