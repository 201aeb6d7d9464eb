"""
Tests for the Django-ORM persistent store.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from classifier.models import ImageClass, TrainingImage
from classifier.store import PersistentStore, RecordNotFound, StoreError
from training.config import ClassSamples

pytestmark = pytest.mark.django_db


@pytest.fixture
def store():
    return PersistentStore()


class TestClasses:

    def test_add_and_list_with_counts(self, store):
        cat = store.add_class("cat")
        dog = store.add_class("dog")
        store.add_image(cat, b"c1")
        store.add_image(cat, b"c2")

        classes = store.get_classes()
        assert [(c["id"], c["name"], c["image_count"]) for c in classes] == [
            (cat, "cat", 2), (dog, "dog", 0),
        ]

    def test_rename(self, store):
        cat = store.add_class("cat")
        assert store.update_class_name(cat, "kitten") is True
        assert store.get_class(cat)["name"] == "kitten"

    def test_rename_missing_class(self, store):
        with pytest.raises(RecordNotFound):
            store.update_class_name(999, "ghost")

    def test_get_missing_class(self, store):
        with pytest.raises(StoreError):
            store.get_class(999)

    def test_delete_cascades_to_images(self, store):
        cat = store.add_class("cat")
        dog = store.add_class("dog")
        store.add_image(cat, b"c1")
        store.add_image(dog, b"d1")

        assert store.delete_class(cat) is True
        assert not ImageClass.objects.filter(pk=cat).exists()
        assert list(TrainingImage.objects.values_list("image_class_id", flat=True)) == [dog]

    def test_delete_is_atomic(self, store):
        cat = store.add_class("cat")
        store.add_image(cat, b"c1")

        with patch("classifier.store.ImageClass.objects.filter", side_effect=DatabaseError("locked")):
            with pytest.raises(StoreError):
                store.delete_class(cat)

        assert TrainingImage.objects.filter(image_class_id=cat).count() == 1


class TestImages:

    def test_add_and_get_image(self, store):
        cat = store.add_class("cat")
        image_id = store.add_image(cat, b"\x89PNG-data", "image/png", "cat.png")

        image = store.get_image(image_id)
        assert image["data"] == b"\x89PNG-data"
        assert image["class_id"] == cat
        assert image["file_size"] == 9
        assert image["filename"] == "cat.png"

    def test_add_image_to_missing_class(self, store):
        with pytest.raises(RecordNotFound):
            store.add_image(999, b"x")

    def test_images_by_class_in_insertion_order(self, store):
        cat = store.add_class("cat")
        ids = [store.add_image(cat, bytes([i])) for i in range(3)]

        images = store.get_images_by_class(cat)
        assert [img["id"] for img in images] == ids
        assert [img["data"] for img in images] == [b"\x00", b"\x01", b"\x02"]
        assert "data" not in store.get_images_by_class(cat, include_data=False)[0]

    def test_delete_image_and_by_class(self, store):
        cat = store.add_class("cat")
        first = store.add_image(cat, b"a")
        store.add_image(cat, b"b")
        store.add_image(cat, b"c")

        assert store.delete_image(first) is True
        assert len(store.get_all_images()) == 2
        assert store.delete_images_by_class(cat) == 2
        assert store.get_images_by_class(cat) == []


class TestModelInfoAndSettings:

    def test_model_info_round_trip(self, store):
        assert store.get_model_info() is None
        labels = [{"id": 1, "name": "cat", "index": 0}]
        store.save_model_info({
            "class_labels": labels,
            "architecture": "simple",
            "model_path": "/tmp/classifier.keras",
            "accuracy": 0.9,
        })

        info = store.get_model_info()
        assert info["class_labels"] == labels
        assert info["architecture"] == "simple"
        assert info["model_path"] == "/tmp/classifier.keras"
        assert info["accuracy"] == 0.9
        assert info["saved_at"]

    def test_model_info_is_overwritten(self, store):
        store.save_model_info({"architecture": "simple"})
        store.save_model_info({"architecture": "transfer"})
        assert store.get_model_info()["architecture"] == "transfer"

    def test_settings(self, store):
        assert store.get_setting("training.hyperparameters", {"epochs": 20}) == {"epochs": 20}
        store.save_setting("training.hyperparameters", {"epochs": 5})
        store.save_setting("training.hyperparameters", {"epochs": 7})
        assert store.get_setting("training.hyperparameters") == {"epochs": 7}


class TestAggregates:

    def test_training_classes_skip_empty_ones(self, store):
        cat = store.add_class("cat")
        store.add_class("empty")
        dog = store.add_class("dog")
        store.add_image(dog, b"d1")
        store.add_image(cat, b"c1")
        store.add_image(cat, b"c2")

        classes = store.get_training_classes()
        assert list(classes) == [cat, dog]
        assert classes[cat] == ClassSamples("cat", (b"c1", b"c2"))
        assert classes[dog] == ClassSamples("dog", (b"d1",))

    def test_data_summary(self, store):
        cat = store.add_class("cat")
        store.add_class("dog")
        store.add_image(cat, b"c1")

        summary = store.get_data_summary()
        assert summary["num_classes"] == 2
        assert summary["total_images"] == 1
        assert summary["class_counts"] == {"cat": 1, "dog": 0}

    def test_clear_all(self, store):
        cat = store.add_class("cat")
        store.add_image(cat, b"c1")
        store.save_model_info({"architecture": "simple"})
        store.save_setting("k", 1)

        store.clear_all()
        assert store.get_classes() == []
        assert store.get_all_images() == []
        assert store.get_model_info() is None
        assert store.get_setting("k") is None

    def test_database_errors_are_wrapped(self, store):
        with patch("classifier.store.ImageClass.objects.create", side_effect=DatabaseError("disk full")):
            with pytest.raises(StoreError, match="disk full"):
                store.add_class("cat")
