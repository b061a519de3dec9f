"""
Pipeline driver and mini-batch trainer for mini_cnn.

A Pipeline runs a fixed, linear sequence of layers. The Trainer feeds it
samples batch by batch and applies one SGD step per batch. With worker
threads, every worker owns a full replica of the pipeline and pulls sample
indices from a TaskQueue; the only state the threads share is that queue.
Replica gradients are merged into the master pipeline after the batch is done.
"""
import copy
import logging
import threading
from collections import deque

import numpy as np

from .config import TrainConfig
from .optim import SGD

logger = logging.getLogger(__name__)


class Pipeline:
    """
    Fixed linear sequence of layers ending with an OutputLayer.

    Args:
        layers: Layers in forward order
    """

    def __init__(self, layers):
        self.layers = list(layers)
        if not self.layers:
            raise ValueError("Pipeline needs at least one layer")
        if not hasattr(self.layers[-1], 'set_target'):
            raise ValueError("The last layer of a Pipeline must be an OutputLayer")

    def __len__(self):
        return len(self.layers)

    def forward(self, inputs):
        x = inputs
        for layer in self.layers:
            x = layer.forward(x)
        return x

    def backward(self, target):
        """Backward pass from the loss against target; returns the input gradient."""
        output_layer = self.layers[-1]
        output_layer.set_target(target)
        output_layer.backward_propagation()
        delta = output_layer.get_delta()
        for layer in reversed(self.layers[:-1]):
            layer.set_delta(delta)
            layer.backward_propagation()
            delta = layer.get_delta()
        return delta

    def loss(self, target):
        return self.layers[-1].loss(target)

    def predict(self, inputs):
        """Index of the largest output."""
        return self.forward(inputs).argmax()

    def train_sample(self, sample):
        """
        Forward and backward pass for one sample. Gradients are added to the
        layer accumulators, parameters are left untouched.

        Returns:
            (loss, correct) where correct tells whether the arg-max matched
        """
        output = self.forward(sample.input)
        loss = self.loss(sample.target)
        self.backward(sample.target)
        return loss, output.argmax() == sample.target.argmax()

    def zero_grad(self):
        for layer in self.layers:
            layer.zero_grad()

    def merge_gradients(self, other):
        for layer, other_layer in zip(self.layers, other.layers):
            layer.merge_gradients(other_layer)

    def load_parameters(self, other):
        for layer, other_layer in zip(self.layers, other.layers):
            layer.load_parameters(other_layer)

    def replicate(self):
        """Independent deep copy, used as a worker's private pipeline."""
        return copy.deepcopy(self)


class CancellationToken:
    """Stop signal handed to workers; checked between work items."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()


class TaskQueue:
    """
    FIFO of work items with blocking get/join. Waiters sleep on condition
    variables and wake up on new work, on completion, or on cancellation.
    """

    def __init__(self):
        self._tasks = deque()
        self._unfinished = 0
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._all_done = threading.Condition(self._lock)

    def __len__(self):
        with self._lock:
            return len(self._tasks)

    def put(self, task):
        with self._lock:
            self._tasks.append(task)
            self._unfinished += 1
            self._not_empty.notify()

    def get(self, *tokens):
        """Next task, or None once any of the tokens is cancelled."""
        with self._not_empty:
            while not self._tasks:
                if any(token.cancelled for token in tokens):
                    return None
                self._not_empty.wait()
            if any(token.cancelled for token in tokens):
                return None
            return self._tasks.popleft()

    def task_done(self):
        with self._lock:
            self._unfinished -= 1
            if self._unfinished <= 0:
                self._unfinished = 0
                self._all_done.notify_all()

    def join(self, *tokens):
        """Block until every task is done or any of the tokens is cancelled."""
        with self._all_done:
            while self._unfinished and not any(token.cancelled for token in tokens):
                self._all_done.wait()

    def clear(self):
        """Drop pending tasks."""
        with self._lock:
            self._unfinished -= len(self._tasks)
            self._tasks.clear()
            if self._unfinished <= 0:
                self._unfinished = 0
                self._all_done.notify_all()

    def wake_all(self):
        with self._lock:
            self._not_empty.notify_all()
            self._all_done.notify_all()


class _Worker:
    """Thread that owns a pipeline replica and per-batch statistics."""

    def __init__(self, index, pipeline):
        self.index = index
        self.pipeline = pipeline
        self.thread = None
        self.error = None
        self.reset_stats()

    def reset_stats(self):
        self.loss = 0.0
        self.correct = 0
        self.count = 0


class Trainer:
    """
    Mini-batch trainer and work scheduler.

    Args:
        pipeline: Pipeline holding the master parameters
        config: TrainConfig (defaults from the environment)
    """

    def __init__(self, pipeline, config=None):
        self.pipeline = pipeline
        self.config = config if config is not None else TrainConfig.from_env()
        self.optimizer = SGD(pipeline.layers, learning_rate=self.config.learning_rate,
                             batch_size=self.config.batch_size)
        # token: external cancellation of training; _stop: ends the current worker threads
        self.token = CancellationToken()
        self._stop = CancellationToken()
        self.queue = TaskQueue()
        self._workers = []

    @property
    def parallel(self):
        return self.config.num_workers > 1

    # ------------------------------------------------------------------
    # Worker management
    # ------------------------------------------------------------------

    def start(self):
        if self._workers or not self.parallel:
            return
        if self.token.cancelled:
            raise RuntimeError("Trainer was cancelled")
        self._stop = CancellationToken()
        for index in range(self.config.num_workers):
            worker = _Worker(index, self.pipeline.replicate())
            worker.thread = threading.Thread(target=self._worker_loop, args=(worker,),
                                             name=f"mini_cnn-worker-{index}", daemon=True)
            self._workers.append(worker)
            worker.thread.start()
        logger.debug("Started %d worker threads", len(self._workers))

    def cancel(self):
        """Stop training; workers finish their current sample first."""
        self.token.cancel()
        self.queue.wake_all()

    def shutdown(self):
        """Stop and join the worker threads."""
        self._stop.cancel()
        self.queue.wake_all()
        for worker in self._workers:
            worker.thread.join()
        self._workers = []
        self.queue.clear()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    def _worker_loop(self, worker):
        while not self.token.cancelled:
            task = self.queue.get(self.token, self._stop)
            if task is None:
                break
            dataset, index = task
            try:
                loss, correct = worker.pipeline.train_sample(dataset.get_sample(index))
                worker.loss += loss
                worker.correct += int(correct)
                worker.count += 1
            except Exception as e:
                logger.exception("Worker %d failed on sample %d", worker.index, index)
                worker.error = e
            finally:
                self.queue.task_done()

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def _run_inline(self, dataset, indices):
        loss, correct = 0.0, 0
        for index in indices:
            sample_loss, sample_correct = self.pipeline.train_sample(dataset.get_sample(index))
            loss += sample_loss
            correct += int(sample_correct)
        return loss, correct, len(indices)

    def _run_parallel(self, dataset, indices):
        self.start()
        for worker in self._workers:
            worker.pipeline.zero_grad()
            worker.reset_stats()
        for index in indices:
            self.queue.put((dataset, index))
        self.queue.join(self.token, self._stop)

        if self.token.cancelled:
            self.queue.clear()
            return None
        for worker in self._workers:
            if worker.error is not None:
                error, worker.error = worker.error, None
                raise RuntimeError(f"Worker {worker.index} failed") from error

        # Every task is done, so no worker is writing its accumulators now
        for worker in self._workers:
            self.pipeline.merge_gradients(worker.pipeline)
        return (sum(w.loss for w in self._workers),
                sum(w.correct for w in self._workers),
                sum(w.count for w in self._workers))

    def _sync_workers(self):
        for worker in self._workers:
            worker.pipeline.load_parameters(self.pipeline)

    def train_batch(self, dataset, indices):
        """
        Accumulate gradients over a batch and apply one SGD step.

        Returns:
            (mean loss, accuracy) of the batch, or None if cancelled
        """
        indices = list(indices)
        if not indices:
            return None
        self.pipeline.zero_grad()
        if self.parallel:
            result = self._run_parallel(dataset, indices)
        else:
            result = self._run_inline(dataset, indices)
        if result is None:
            logger.warning("Batch cancelled, no update applied")
            return None

        loss, correct, count = result
        self.optimizer.batch_size = count
        self.optimizer.step()
        self._sync_workers()
        return loss / count, correct / count

    def train_epoch(self, dataset):
        """One shuffled pass over the dataset. Returns (mean loss, accuracy)."""
        order = np.random.permutation(len(dataset))
        batch_size = self.config.batch_size
        total_loss, total_correct, seen = 0.0, 0.0, 0
        for batch_number, start in enumerate(range(0, len(order), batch_size), 1):
            if self.token.cancelled:
                break
            batch = order[start:start + batch_size]
            result = self.train_batch(dataset, batch)
            if result is None:
                break
            loss, accuracy = result
            total_loss += loss * len(batch)
            total_correct += accuracy * len(batch)
            seen += len(batch)
            if batch_number % self.config.log_every == 0:
                logger.info("batch %d: loss %.4f, accuracy %.3f", batch_number, loss, accuracy)
        if seen == 0:
            return 0.0, 0.0
        return total_loss / seen, total_correct / seen

    def evaluate(self, dataset):
        """Mean loss and accuracy of the master pipeline, without touching gradients."""
        if len(dataset) == 0:
            logger.warning("evaluate: empty dataset")
            return 0.0, 0.0
        loss, correct = 0.0, 0
        for sample in dataset:
            output = self.pipeline.forward(sample.input)
            loss += self.pipeline.loss(sample.target)
            correct += int(output.argmax() == sample.target.argmax())
        return loss / len(dataset), correct / len(dataset)

    def fit(self, train_set, test_set=None):
        """
        Train for config.epochs epochs.

        Returns:
            History dict with per-epoch 'loss', 'accuracy' and, with a test set,
            'test_loss' and 'test_accuracy'
        """
        if self.config.seed is not None:
            np.random.seed(self.config.seed)
        history = {'loss': [], 'accuracy': [], 'test_loss': [], 'test_accuracy': []}
        try:
            for epoch in range(1, self.config.epochs + 1):
                if self.token.cancelled:
                    logger.info("Training cancelled before epoch %d", epoch)
                    break
                loss, accuracy = self.train_epoch(train_set)
                history['loss'].append(loss)
                history['accuracy'].append(accuracy)
                message = f"Epoch {epoch}/{self.config.epochs}: loss {loss:.4f}, accuracy {accuracy:.3f}"
                if test_set is not None:
                    test_loss, test_accuracy = self.evaluate(test_set)
                    history['test_loss'].append(test_loss)
                    history['test_accuracy'].append(test_accuracy)
                    message += f", test loss {test_loss:.4f}, test accuracy {test_accuracy:.3f}"
                logger.info(message)
        finally:
            if self._workers:
                self.shutdown()
        return history
