"""
test_data.py
~~~~~~~~~~~~

Unit tests for ImageSet construction and its JSON/NPZ loaders.
"""

import json

import numpy as np
import pytest

from mini_cnn.data import ImageSet, one_hot
from mini_cnn.matrix import Matrix, Size, Vector


@pytest.mark.unit
class TestImageSet:
    """Sample construction and access."""

    def test_integer_labels_become_one_hot(self):
        image_set = ImageSet(num_classes=3)
        image_set.add_sample(np.zeros((2, 2)), 2)
        sample = image_set.get_sample(0)
        assert sample.target == Vector([0, 0, 1])
        assert sample.input[0].size == Size(2, 2)

    def test_multi_channel_image(self):
        image_set = ImageSet()
        image_set.add_sample(np.ones((3, 2, 2)), [1, 0])
        assert len(image_set.get_sample(0).input) == 3

    def test_matrix_input_is_copied(self):
        image = Matrix([[1, 2], [3, 4]])
        image_set = ImageSet()
        image_set.add_sample(image, Vector([1]))
        image[0, 0] = 9
        assert image_set.get_sample(0).input[0][0, 0] == 1.0

    def test_integer_label_without_classes_raises(self):
        with pytest.raises(ValueError):
            ImageSet().add_sample(np.zeros((2, 2)), 1)

    def test_shape_mismatch_raises(self):
        image_set = ImageSet(num_classes=2)
        image_set.add_sample(np.zeros((2, 2)), 0)
        with pytest.raises(ValueError):
            image_set.add_sample(np.zeros((3, 3)), 1)
        with pytest.raises(ValueError):
            image_set.add_sample(np.zeros((2, 2)), [1, 0, 0])

    def test_access(self):
        image_set = ImageSet(num_classes=2)
        for label in (0, 1, 1):
            image_set.add_sample(np.full((2, 2), label), label)
        assert len(image_set) == image_set.get_sample_size() == 3
        assert [s.target.argmax() for s in image_set] == [0, 1, 1]
        assert image_set.get_random_sample() in list(image_set)

    def test_random_sample_of_empty_set(self):
        with pytest.raises(IndexError):
            ImageSet().get_random_sample()

    def test_one_hot_range(self):
        assert one_hot(1, 2) == Vector([0, 1])
        with pytest.raises(ValueError):
            one_hot(2, 2)


@pytest.mark.unit
class TestLoaders:
    """JSON and NPZ round trips through the file system."""

    def test_json_directory(self, tmp_path):
        (tmp_path / 'x.json').write_text(json.dumps({'image': [[1, 0], [0, 1]], 'label': [1, 0]}))
        (tmp_path / 'o.json').write_text(json.dumps([{'image': [[0, 1], [1, 0]], 'label': [0, 1]}]))
        image_set = ImageSet().load_from_json(str(tmp_path))
        assert len(image_set) == 2
        # Files load in sorted order
        assert image_set.get_sample(0).target == Vector([0, 1])

    def test_json_save_and_load(self, tmp_path):
        image_set = ImageSet(num_classes=2)
        image_set.add_sample(np.arange(4).reshape(2, 2), 1)
        path = tmp_path / 'set.json'
        image_set.save_to_json(str(path))
        restored = ImageSet().load_from_json(str(path))
        assert restored.get_sample(0).input[0] == Matrix([[0, 1], [2, 3]])
        assert restored.get_sample(0).target == Vector([0, 1])

    def test_json_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ImageSet().load_from_json(str(tmp_path / 'missing'))

    def test_json_invalid_content(self, tmp_path):
        (tmp_path / 'bad.json').write_text('{not json')
        with pytest.raises(ValueError):
            ImageSet().load_from_json(str(tmp_path / 'bad.json'))
        (tmp_path / 'bad.json').write_text(json.dumps({'image': [[1]]}))
        with pytest.raises(ValueError):
            ImageSet().load_from_json(str(tmp_path / 'bad.json'))

    def test_npz_flat_images(self, tmp_path):
        path = tmp_path / 'set.npz'
        np.savez(path, images=np.arange(8).reshape(2, 4), labels=np.array([0, 1]))
        image_set = ImageSet(num_classes=2).load_from_npz(str(path), image_shape=(2, 2))
        assert len(image_set) == 2
        assert image_set.get_sample(1).input[0] == Matrix([[4, 5], [6, 7]])

    def test_npz_length_mismatch(self, tmp_path):
        path = tmp_path / 'set.npz'
        np.savez(path, images=np.zeros((3, 2, 2)), labels=np.array([0, 1]))
        with pytest.raises(ValueError):
            ImageSet(num_classes=2).load_from_npz(str(path))
