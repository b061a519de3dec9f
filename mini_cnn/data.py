"""
Labeled image sets for mini_cnn.

An ImageSet holds Samples: an ordered list of input matrices and a target
vector. Loaders read JSON (one file or a directory of files) and NPZ archives.
"""
import glob
import json
import logging
import os
from collections import namedtuple

import numpy as np

from .matrix import Matrix, Vector

logger = logging.getLogger(__name__)


Sample = namedtuple('Sample', ['input', 'target'])


def one_hot(label, num_classes):
    """Target vector with a 1 at the label position."""
    if not 0 <= int(label) < num_classes:
        raise ValueError(f"Label {label} outside [0, {num_classes})")
    target = np.zeros(num_classes, dtype=np.float64)
    target[int(label)] = 1.0
    return Vector.from_array(target)


class ImageSet:
    """
    In-memory collection of samples with index and random access.

    Args:
        num_classes: Length of one-hot targets built from integer labels
    """

    def __init__(self, num_classes=None):
        self.num_classes = num_classes
        self._samples = []

    def __len__(self):
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)

    def get_sample_size(self):
        return len(self._samples)

    def get_sample(self, index):
        return self._samples[index]

    def get_random_sample(self):
        if not self._samples:
            raise IndexError("get_random_sample on an empty ImageSet")
        return self._samples[np.random.randint(len(self._samples))]

    def add_sample(self, image, label):
        """
        Add one sample.

        Args:
            image: 2D array/Matrix, or a list of them for multi-channel input
            label: Integer class (needs num_classes) or a target sequence
        """
        if isinstance(image, Matrix):
            channels = [image.copy()]
        else:
            array = np.asarray(image, dtype=np.float64)
            if array.ndim == 2:
                channels = [Matrix.from_array(array)]
            elif array.ndim == 3:
                channels = [Matrix.from_array(channel) for channel in array]
            else:
                raise ValueError(f"Image must be 2D or a stack of 2D maps, got {array.ndim}D")

        if isinstance(label, Vector):
            target = label.copy()
        elif np.ndim(label) == 0:
            if self.num_classes is None:
                raise ValueError("Integer labels need num_classes")
            target = one_hot(label, self.num_classes)
        else:
            target = Vector.from_array(label)

        if self._samples:
            first = self._samples[0]
            if [m.size for m in channels] != [m.size for m in first.input]:
                raise ValueError("All samples must share the same input shape")
            if target.size != first.target.size:
                raise ValueError("All samples must share the same target length")
        self._samples.append(Sample(channels, target))

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    def load_from_json(self, path):
        """
        Load samples from a JSON file or every *.json file in a directory.

        Each file holds one record or a list of records shaped like
        {"image": [[...], ...], "label": 0 or [0, 1]}.
        """
        if os.path.isdir(path):
            files = sorted(glob.glob(os.path.join(path, '*.json')))
        elif os.path.isfile(path):
            files = [path]
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")

        before = len(self)
        for filename in files:
            with open(filename, 'r') as f:
                try:
                    content = json.load(f)
                except json.JSONDecodeError as e:
                    raise ValueError(f"{filename}: invalid JSON ({e})") from e
            records = content if isinstance(content, list) else [content]
            for record in records:
                if 'image' not in record or 'label' not in record:
                    raise ValueError(f"{filename}: record needs 'image' and 'label' keys")
                self.add_sample(record['image'], record['label'])
        logger.info("Loaded %d samples from %s", len(self) - before, path)
        return self

    def load_from_npz(self, path, images_key='images', labels_key='labels', image_shape=None):
        """
        Load samples from an .npz archive.

        Args:
            path: Archive path
            images_key: Array of images (N, H, W), (N, C, H, W) or flat (N, H*W)
            labels_key: Integer labels (N,) or targets (N, K)
            image_shape: (H, W) used to reshape flat images
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"No such file: {path}")
        with np.load(path) as archive:
            if images_key not in archive or labels_key not in archive:
                raise ValueError(f"{path}: expected arrays '{images_key}' and '{labels_key}'")
            images = archive[images_key]
            labels = archive[labels_key]
        if len(images) != len(labels):
            raise ValueError(f"{path}: {len(images)} images but {len(labels)} labels")
        if image_shape is not None:
            images = images.reshape(len(images), *image_shape)
        for image, label in zip(images, labels):
            self.add_sample(image, label)
        logger.info("Loaded %d samples from %s", len(images), path)
        return self

    def save_to_json(self, path):
        """Write the set as a list of records readable by load_from_json."""
        records = []
        for sample in self._samples:
            image = [m.data.tolist() for m in sample.input]
            records.append({
                'image': image[0] if len(image) == 1 else image,
                'label': sample.target.data.tolist(),
            })
        with open(path, 'w') as f:
            json.dump(records, f)
