"""
Keras runtime tests on tiny images — decoding, topologies, one-epoch fit,
prediction and save / load.  Also one end-to-end session on the real runtime.
"""

import numpy as np
import pytest

from conftest import make_request, png_bytes
from training.config import Architecture, ClassSamples, Hyperparameters, TrainingRequest
from training.data import decode_image, prepare_training_data
from training.events import OutcomeStatus
from training.runtime import KerasRuntime
from training.session import TrainingSessionController

SIZE = 32

RED, GREEN, BLUE = (220, 20, 20), (20, 220, 20), (20, 20, 220)


def _classes():
    return {
        1: ClassSamples("red", tuple(png_bytes(RED, size=12) for _ in range(3))),
        2: ClassSamples("green", tuple(png_bytes(GREEN, size=20) for _ in range(3))),
    }


@pytest.fixture(scope="module")
def keras_runtime():
    return KerasRuntime(image_size=SIZE, base_weights=None, validation_split=0.2)


class TestDecoding:

    def test_decode_resizes_and_normalises(self):
        arr = decode_image(png_bytes(BLUE, size=10), SIZE)
        assert arr.shape == (SIZE, SIZE, 3)
        assert arr.dtype == np.float32
        assert 0.0 <= arr.min() and arr.max() <= 1.0
        assert arr[..., 2].mean() == pytest.approx(220 / 255, abs=0.02)

    def test_prepare_one_hot_and_validation_split(self):
        data = prepare_training_data(_classes(), image_size=SIZE, validation_split=0.2)

        x_val, y_val = data.validation
        assert data.num_samples + int(x_val.shape[0]) == 6
        assert int(x_val.shape[0]) == 1
        assert tuple(data.inputs.shape[1:]) == (SIZE, SIZE, 3)
        assert tuple(data.labels.shape) == (data.num_samples, 2)
        assert np.allclose(np.sum(data.labels.numpy(), axis=1), 1.0)
        assert [label["name"] for label in data.class_labels] == ["red", "green"]

    def test_dispose_drops_tensors(self):
        data = prepare_training_data(_classes(), image_size=SIZE)
        data.dispose()
        assert data.disposed
        assert data.inputs is None and data.labels is None and data.validation is None

    def test_no_images_is_an_error(self):
        with pytest.raises(ValueError):
            prepare_training_data({}, image_size=SIZE)


class TestModels:

    def test_simple_cnn_output(self, keras_runtime):
        model = keras_runtime.build_model(Architecture.SIMPLE, 3)
        out = model.predict(np.zeros((1, SIZE, SIZE, 3), dtype=np.float32), verbose=0)
        assert out.shape == (1, 3)
        assert float(out.sum()) == pytest.approx(1.0, abs=1e-4)

    def test_transfer_model_reuses_frozen_base(self, keras_runtime):
        first = keras_runtime.build_model("transfer", 2)
        second = keras_runtime.build_model(Architecture.TRANSFER, 4)
        base = keras_runtime.transfer_base()

        assert base.trainable is False
        assert keras_runtime.transfer_base() is base
        assert first.output.shape[-1] == 2
        assert second.output.shape[-1] == 4

    def test_fit_one_epoch_reports_metrics_and_batches(self, keras_runtime):
        data = keras_runtime.prepare_data(_classes())
        model = keras_runtime.build_model(Architecture.SIMPLE, 2)
        keras_runtime.compile(model, 1e-3)

        batches = []
        result = keras_runtime.fit_one_epoch(
            model, data.inputs, data.labels, 2,
            lambda batch, total: batches.append((batch, total)),
            validation_data=data.validation,
        )

        assert np.isfinite(result.loss)
        assert 0.0 <= result.accuracy <= 1.0
        assert result.val_loss is not None
        assert batches[-1] == (2, 3)

    def test_predict_is_sorted_probabilities(self, keras_runtime):
        model = keras_runtime.build_model(Architecture.SIMPLE, 2)
        labels = ({"id": 7, "name": "red", "index": 0}, {"id": 9, "name": "green", "index": 1})

        predictions = keras_runtime.predict(model, png_bytes(RED), labels)
        assert {p["class_id"] for p in predictions} == {7, 9}
        assert predictions[0]["probability"] >= predictions[1]["probability"]
        assert sum(p["probability"] for p in predictions) == pytest.approx(1.0, abs=1e-4)

    def test_save_and_load(self, keras_runtime, tmp_path):
        model = keras_runtime.build_model(Architecture.SIMPLE, 2)
        token = keras_runtime.save(model, tmp_path / "nested" / "classifier.keras")
        restored = keras_runtime.load(token)

        sample = np.random.default_rng(0).random((1, SIZE, SIZE, 3)).astype(np.float32)
        np.testing.assert_allclose(
            model.predict(sample, verbose=0), restored.predict(sample, verbose=0), atol=1e-5,
        )

    def test_summary_lists_layers(self, keras_runtime):
        summary = keras_runtime.summarize(keras_runtime.build_model(Architecture.SIMPLE, 2))
        assert summary["total_params"] > 0
        assert summary["layers"][-1]["type"] == "Dense"
        assert summary["layers"][-1]["output_shape"][-1] == 2


def test_session_on_keras_runtime(keras_runtime):
    request = TrainingRequest(
        classes=_classes(),
        hyperparameters=Hyperparameters(epochs=2, batch_size=4),
    )
    controller = TrainingSessionController(keras_runtime)
    session = controller.start(request)

    outcome = controller.wait(120)
    assert outcome.status is OutcomeStatus.COMPLETED, outcome.reason
    assert outcome.epochs_completed == 2
    assert session.tensors is None
    assert outcome.model.output.shape[-1] == 2


def test_undecodable_image_fails_the_session(keras_runtime):
    request = make_request(num_classes=2, per_class=2, epochs=1)
    controller = TrainingSessionController(keras_runtime)
    controller.start(request)

    outcome = controller.wait(60)
    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.epochs_completed == 0
