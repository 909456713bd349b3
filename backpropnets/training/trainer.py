"""Mini-batch SGD with sharded gradient computation on worker threads."""

from __future__ import annotations

import contextlib
import enum
import time
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import reduce
from operator import add
from typing import Callable, Iterator, List, Sequence

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.matrix import Matrix
from ..core.network import Network
from ..core.types import Gradients, TrainingReport
from ..utils import get_logger
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss

logger = get_logger(__name__)


class TrainerState(str, enum.Enum):
    IDLE = "idle"
    EPOCH = "epoch"
    BATCHING = "batching"
    DISPATCH = "dispatch"
    AGGREGATE = "aggregate"
    UPDATE = "update"
    EVALUATE = "evaluate"
    ABORTED = "aborted"


@dataclass(frozen=True)
class TrainerConfig:
    """Hyper-parameters of one training run."""

    batch_size: int
    epochs: int
    test_every: int = 1
    learning_rate: float = 0.1
    worker_count: int = 1
    seed: int | None = None
    loss: str = "mse"

    def __post_init__(self) -> None:
        for name in ("batch_size", "epochs", "test_every", "worker_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not float(self.learning_rate) > 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate!r}")
        LOSS_REGISTRY.resolve(self.loss)


ReportSink = Callable[[TrainingReport], object]


class Trainer:
    """Run mini-batch SGD on a :class:`Network`.

    Each batch is split into at most ``worker_count`` shards.  Shards run the
    forward and backward pass concurrently, each producing its own gradient
    sum; the driving thread waits for every shard, adds the sums in shard
    order, averages over the batch and applies a single update before the next
    batch is dispatched.
    """

    def __init__(
        self,
        network: Network,
        config: TrainerConfig,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.config = config
        self.callbacks = list(callbacks or [])
        self.loss: Loss = LOSS_REGISTRY.resolve(config.loss)
        self._state = TrainerState.IDLE
        self._rng = np.random.default_rng(config.seed)

    @property
    def state(self) -> TrainerState:
        return self._state

    # ------------------------------------------------------------------
    # Public entry points

    def iter_train(
        self,
        train_inputs: Matrix,
        train_labels: Matrix,
        test_inputs: Matrix | None = None,
        test_labels: Matrix | None = None,
    ) -> Iterator[TrainingReport]:
        """Yield a :class:`TrainingReport` every ``test_every`` epochs.

        Training advances only while the iterator is consumed; closing it early
        stops the run after the current evaluation.
        """

        if test_inputs is None or test_labels is None:
            test_inputs, test_labels = train_inputs, train_labels
        try:
            self._validate_data(train_inputs, train_labels, "train")
            self._validate_data(test_inputs, test_labels, "test")
        except ShapeMismatch as exc:
            self._state = TrainerState.ABORTED
            logger.error("Training aborted: %s", exc)
            raise

        cfg = self.config
        if cfg.test_every > cfg.epochs:
            logger.warning(
                "test_every=%d exceeds epochs=%d; no reports will be produced",
                cfg.test_every,
                cfg.epochs,
            )
        logger.info(
            "Training %s on %d rows: batch_size=%d epochs=%d lr=%g workers=%d",
            self.network,
            train_inputs.rows,
            cfg.batch_size,
            cfg.epochs,
            cfg.learning_rate,
            cfg.worker_count,
        )

        start = time.perf_counter()
        with contextlib.ExitStack() as stack:
            executor: Executor | None = None
            if cfg.worker_count > 1:
                executor = stack.enter_context(
                    ThreadPoolExecutor(
                        max_workers=cfg.worker_count, thread_name_prefix="backpropnets-shard"
                    )
                )
            try:
                for epoch in range(1, cfg.epochs + 1):
                    self._state = TrainerState.EPOCH
                    self._run_epoch(train_inputs, train_labels, executor)
                    if epoch % cfg.test_every == 0:
                        self._state = TrainerState.EVALUATE
                        report = self._evaluate(epoch, test_inputs, test_labels, start)
                        self._emit(report, self.callbacks)
                        yield report
            except GeneratorExit:
                self._state = TrainerState.IDLE
                logger.info("Training stopped by the caller")
                raise
            except Exception as exc:
                self._state = TrainerState.ABORTED
                logger.error("Training aborted: %s", exc)
                raise
        self._state = TrainerState.IDLE
        logger.info("Training finished in %.2fs", time.perf_counter() - start)

    def train(
        self,
        train_inputs: Matrix,
        train_labels: Matrix,
        test_inputs: Matrix | None = None,
        test_labels: Matrix | None = None,
        sinks: Sequence[object] | None = None,
    ) -> List[TrainingReport]:
        """Blocking variant of :meth:`iter_train` that feeds ``sinks``."""

        reports: List[TrainingReport] = []
        for report in self.iter_train(train_inputs, train_labels, test_inputs, test_labels):
            self._emit(report, sinks or [])
            reports.append(report)
        return reports

    # ------------------------------------------------------------------
    # Epoch / batch machinery

    def epoch_batches(self, n_rows: int) -> List[np.ndarray]:
        """Shuffle ``range(n_rows)`` and cut it into batches of ``batch_size``."""

        order = self._rng.permutation(n_rows)
        size = self.config.batch_size
        return [order[start : start + size] for start in range(0, n_rows, size)]

    def batch_gradients(
        self,
        inputs: Matrix,
        labels: Matrix,
        executor: Executor | None = None,
    ) -> Gradients:
        """Gradient sums for one batch, sharded across ``executor`` when given."""

        workers = min(self.config.worker_count, inputs.rows)
        self._state = TrainerState.DISPATCH
        if executor is None or workers <= 1:
            return self._shard_gradients(inputs, labels)

        futures = [
            executor.submit(self._shard_gradients, x, y)
            for x, y in zip(inputs.split_rows(workers), labels.split_rows(workers))
        ]
        wait(futures)
        self._state = TrainerState.AGGREGATE
        return reduce(add, (future.result() for future in futures))

    def _shard_gradients(self, inputs: Matrix, labels: Matrix) -> Gradients:
        state = self.network.feed_forward(inputs)
        return self.network.gradient_sums(state, labels, self.loss)

    def _run_epoch(self, inputs: Matrix, labels: Matrix, executor: Executor | None) -> None:
        self._state = TrainerState.BATCHING
        for index in self.epoch_batches(inputs.rows):
            batch_inputs = inputs.take_rows(index)
            batch_labels = labels.take_rows(index)
            sums = self.batch_gradients(batch_inputs, batch_labels, executor)
            self._state = TrainerState.UPDATE
            self.network.apply_gradients(sums.mean(), self.config.learning_rate)
            logger.debug("Applied update for batch of %d rows", batch_inputs.rows)
            self._state = TrainerState.BATCHING

    def _evaluate(
        self, epoch: int, inputs: Matrix, labels: Matrix, start: float
    ) -> TrainingReport:
        result = self.network.evaluate(inputs, labels)
        report = TrainingReport(
            epoch=epoch,
            loss=result.loss,
            accuracy=result.accuracy,
            metrics={"bit_accuracy": result.bit_accuracy},
            elapsed=time.perf_counter() - start,
        )
        logger.info(
            "epoch %d: loss=%.6f accuracy=%.4f bit_accuracy=%.4f",
            epoch,
            report.loss,
            report.accuracy,
            result.bit_accuracy,
        )
        return report

    def _validate_data(self, inputs: Matrix, labels: Matrix, split: str) -> None:
        if inputs.rows != labels.rows:
            raise ShapeMismatch(f"{split} data", [inputs.shape, labels.shape], "row counts differ")
        if inputs.cols != self.network.input_size:
            raise ShapeMismatch(
                f"{split} inputs",
                [inputs.shape, (inputs.rows, self.network.input_size)],
                "input width differs from network",
            )
        if labels.cols != self.network.output_size:
            raise ShapeMismatch(
                f"{split} labels",
                [labels.shape, (labels.rows, self.network.output_size)],
                "label width differs from network",
            )

    @staticmethod
    def _emit(report: TrainingReport, sinks: Sequence[object]) -> None:
        for sink in sinks:
            if hasattr(sink, "on_report"):
                sink.on_report(report)  # type: ignore[attr-defined]
            elif hasattr(sink, "on_epoch"):
                sink.on_epoch(report.epoch, report.as_dict())  # type: ignore[attr-defined]
            elif callable(sink):
                sink(report)


def train(
    net: Network,
    train_inputs: Matrix,
    train_labels: Matrix,
    test_inputs: Matrix,
    test_labels: Matrix,
    batch_size: int,
    epochs: int,
    test_every: int,
    learning_rate: float,
    worker_count: int,
    sink: ReportSink | object | None = None,
    *,
    seed: int | None = None,
    loss: str = "mse",
) -> List[TrainingReport]:
    """Train ``net`` in place and return every report produced."""

    config = TrainerConfig(
        batch_size=batch_size,
        epochs=epochs,
        test_every=test_every,
        learning_rate=learning_rate,
        worker_count=worker_count,
        seed=seed,
        loss=loss,
    )
    trainer = Trainer(net, config)
    sinks = [sink] if sink is not None else []
    return trainer.train(train_inputs, train_labels, test_inputs, test_labels, sinks=sinks)


__all__ = ["Trainer", "TrainerConfig", "TrainerState", "train"]
