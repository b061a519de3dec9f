#!/usr/bin/env python3
"""
Train the two-block convolutional classifier on a labeled image set.

Usage:
    python scripts/train_image_set.py data/XO/TrainSet --test data/XO/TestSet
    python scripts/train_image_set.py data/mnist.npz --image-shape 28 28 --classes 10

The network is conv -> ReLU -> pool -> conv -> ReLU -> pool -> serialize ->
dense (sigmoid) -> dense (ReLU) -> dense (sigmoid, MSE).
"""

import argparse
import logging
import os
import sys

import numpy as np

from mini_cnn import Activation, ImageSet, Loss, Pipeline, TrainConfig, Trainer, configure_logging
from mini_cnn import nn

logger = logging.getLogger('train_image_set')


def build_pipeline(input_size, num_classes, kernel_num=5, pool_sizes=(4, 2)):
    """Wire the layers, chaining every output size into the next layer's config."""
    conv1 = nn.ConvolutionalLayer(nn.ConvLayerConfig(
        input_size=input_size, kernel_size=(3, 3), kernel_num=kernel_num,
        stride=1, padding=1, activation=Activation.RELU))
    process1 = nn.ProcessLayer(nn.ProcessLayerConfig(conv1.output_size, Activation.RELU))
    pool1 = nn.PoolingLayer(nn.PoolLayerConfig(
        input_size=conv1.output_size, pool_size=(pool_sizes[0], pool_sizes[0])))

    conv2 = nn.ConvolutionalLayer(nn.ConvLayerConfig(
        input_size=pool1.output_size, kernel_size=(3, 3), kernel_num=kernel_num,
        stride=1, padding=1, activation=Activation.RELU))
    process2 = nn.ProcessLayer(nn.ProcessLayerConfig(conv2.output_size, Activation.RELU))
    pool2 = nn.PoolingLayer(nn.PoolLayerConfig(
        input_size=conv2.output_size, pool_size=(pool_sizes[1], pool_sizes[1])))

    map_size = pool2.output_size
    flat = kernel_num * map_size.m * map_size.n
    serial = nn.SerializeLayer(nn.SerializeLayerConfig(flat, map_size))

    input_layer = nn.InputLayer(nn.DenseLayerConfig(flat, flat, Activation.SIGMOID, Loss.MSE))
    hidden_layer = nn.HiddenLayer(nn.DenseLayerConfig(flat, flat, Activation.RELU, Loss.MSE))
    output_layer = nn.OutputLayer(nn.DenseLayerConfig(flat, num_classes, Activation.SIGMOID, Loss.MSE))

    return Pipeline([conv1, process1, pool1, conv2, process2, pool2, serial,
                     input_layer, hidden_layer, output_layer])


def load_set(path, num_classes, image_shape):
    image_set = ImageSet(num_classes=num_classes)
    if path.endswith('.npz'):
        return image_set.load_from_npz(path, image_shape=image_shape)
    return image_set.load_from_json(path)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.split('\n\n')[0])
    parser.add_argument('train', help="JSON file/directory or .npz archive")
    parser.add_argument('--test', help="Optional test set, same formats")
    parser.add_argument('--classes', type=int, default=2)
    parser.add_argument('--image-shape', type=int, nargs=2, default=None)
    parser.add_argument('--epochs', type=int)
    parser.add_argument('--batch-size', type=int)
    parser.add_argument('--learning-rate', type=float)
    parser.add_argument('--workers', type=int)
    parser.add_argument('--seed', type=int)
    parser.add_argument('--plot-dir', help="Save kernel and feature plots here after training")
    return parser.parse_args(argv)


def save_plots(pipeline, sample, plot_dir):
    # Imported here so training does not need a plotting backend
    from mini_cnn.plot import plot_layer

    os.makedirs(plot_dir, exist_ok=True)
    pipeline.forward(sample.input)
    for index, layer in enumerate(pipeline.layers):
        if isinstance(layer, nn.ConvolutionalLayer):
            plot_layer(layer, 'kernel').savefig(os.path.join(plot_dir, f"layer{index}_kernels.png"))
        if isinstance(layer, (nn.ConvolutionalLayer, nn.PoolingLayer, nn.ProcessLayer)):
            plot_layer(layer, 'feature').savefig(os.path.join(plot_dir, f"layer{index}_features.png"))
    logger.info("Saved plots to %s", plot_dir)


def main(argv=None):
    configure_logging()
    args = parse_args(argv)

    config = TrainConfig.from_env().with_overrides(
        epochs=args.epochs, batch_size=args.batch_size, learning_rate=args.learning_rate,
        num_workers=args.workers, seed=args.seed)
    if config.seed is not None:
        np.random.seed(config.seed)

    try:
        train_set = load_set(args.train, args.classes, args.image_shape)
        test_set = load_set(args.test, args.classes, args.image_shape) if args.test else None
    except (FileNotFoundError, ValueError) as e:
        logger.error("Could not load data: %s", e)
        return 1
    if len(train_set) == 0:
        logger.error("Training set %s is empty", args.train)
        return 1

    first = train_set.get_sample(0)
    pipeline = build_pipeline(first.input[0].size, args.classes)
    logger.info("Training on %d samples with %s", len(train_set), config)

    history = Trainer(pipeline, config).fit(train_set, test_set)
    if history['accuracy']:
        logger.info("Final training accuracy %.3f", history['accuracy'][-1])

    if args.plot_dir:
        save_plots(pipeline, first, args.plot_dir)
    return 0


if __name__ == '__main__':
    sys.exit(main())
