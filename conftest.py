"""
Shared pytest fixtures: a scriptable in-memory ML runtime and request builders.

``FakeRuntime`` follows the runtime contract of ``training.runtime`` without
TensorFlow, so the session controller can be driven epoch by epoch:

* ``blocking=True``      – every ``fit_one_epoch`` waits for ``release()``.
* ``fail_on_epoch=N``    – ``fit_one_epoch`` raises on epoch *N*.
* ``entered``            – queue of epoch indices as each fit begins.
"""

from __future__ import annotations

import io
import os
import queue
import threading

import pytest
from PIL import Image

os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")

from training.config import ClassSamples, Hyperparameters, TrainingRequest  # noqa: E402
from training.train import EpochResult  # noqa: E402

RELEASE_TIMEOUT = 5.0


class FakeTensors:
    def __init__(self, classes):
        self.inputs = [img for s in classes.values() for img in s.images]
        self.labels = [i for i, s in enumerate(classes.values()) for _ in s.images]
        self.validation = None
        self.dispose_calls = 0

    def dispose(self):
        self.dispose_calls += 1


class FakeModel:
    def __init__(self, architecture, num_classes):
        self.architecture = architecture
        self.num_classes = num_classes
        self.learning_rate = None


class FakeRuntime:
    def __init__(self, blocking=False, fail_on_epoch=None, fail_on_prepare=False):
        self.blocking = blocking
        self.fail_on_epoch = fail_on_epoch
        self.fail_on_prepare = fail_on_prepare
        self.tensors: list[FakeTensors] = []
        self.fit_calls = 0
        self.raised = None
        self.entered: "queue.Queue[int]" = queue.Queue()
        self._permits = threading.Semaphore(0)

    def release(self, epochs=1):
        for _ in range(epochs):
            self._permits.release()

    # ── Training contract ───────────────────────────────────────────────

    def prepare_data(self, classes):
        if self.fail_on_prepare:
            raise OSError("cannot decode image")
        tensors = FakeTensors(classes)
        self.tensors.append(tensors)
        return tensors

    def build_model(self, architecture, num_classes):
        return FakeModel(architecture, num_classes)

    def compile(self, model, learning_rate):
        model.learning_rate = learning_rate

    def fit_one_epoch(self, model, inputs, labels, batch_size,
                      on_batch_progress=None, validation_data=None):
        epoch = self.fit_calls
        self.fit_calls += 1
        self.entered.put(epoch)
        if self.blocking and not self._permits.acquire(timeout=RELEASE_TIMEOUT):
            raise TimeoutError(f"epoch {epoch} was never released")
        if self.fail_on_epoch == epoch:
            self.raised = RuntimeError(f"out of memory in epoch {epoch}")
            raise self.raised
        batches = max(1, -(-len(inputs) // batch_size))
        for batch in range(batches):
            if on_batch_progress:
                on_batch_progress(batch, batches)
        return EpochResult(loss=1.0 / (epoch + 1), accuracy=0.5 + 0.1 * epoch)

    # ── Inference contract ──────────────────────────────────────────────

    def predict(self, model, image, class_labels):
        share = 1.0 / max(1, len(class_labels))
        predictions = [
            {"class_id": label["id"], "class_name": label["name"],
             "probability": share + (0.01 if label["index"] == 0 else 0.0)}
            for label in class_labels
        ]
        predictions.sort(key=lambda p: p["probability"], reverse=True)
        return predictions

    def save(self, model, path):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"fake-model")
        return str(path)

    def load(self, token):
        return FakeModel("simple", 0)

    def summarize(self, model):
        return {"total_params": 10, "layers": []}


# ── Builders ────────────────────────────────────────────────────────────────

def png_bytes(color=(255, 0, 0), size=8) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (size, size), color).save(buf, format="PNG")
    return buf.getvalue()


def make_request(num_classes=2, per_class=2, **params) -> TrainingRequest:
    classes = {
        class_id: ClassSamples(
            name=f"class-{class_id}",
            images=tuple(f"img-{class_id}-{i}".encode() for i in range(per_class)),
        )
        for class_id in range(1, num_classes + 1)
    }
    return TrainingRequest(classes=classes, hyperparameters=Hyperparameters(**params))


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def blocking_runtime():
    rt = FakeRuntime(blocking=True)
    yield rt
    # Never leave a session thread parked on the semaphore.
    rt.release(100)
