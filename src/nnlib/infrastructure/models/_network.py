"""
Sequential network orchestrator.

This module defines `Network`, which owns an ordered list of layers, one loss
and one optimizer, and drives them through the training protocol:

    forward(x, target) -> backward() -> ... -> update_weights()

Every `backward` hands each layer's parameter gradients to the optimizer,
which accumulates them; `update_weights` applies the average over the
backward calls since the previous update.

Structure rules
---------------
- The first layer must declare its full input shape. Every later layer has
  its input shape inferred from (and checked against) its predecessor.
- A Softmax-activated layer can only be the last layer, and it is legal only
  together with `SparseCategoricalCrossEntropy` (and vice versa).
- Layers are append-only and cannot be added once the network is compiled.

Notes
-----
- `predict` runs the layers without touching the loss, so it works on any
  network whose layers are compiled, including one loaded from a checkpoint.
- Training requires `compile(loss, optimizer)`; layer compilation is then a
  no-op for already compiled layers, so restored parameters are kept.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ...domain._dataset import IDataset
from ...domain._errors import OrderingError, TensorShapeError
from ...domain._progress import IProgressReporter
from .._activations import Softmax
from .._layer import Layer
from .._losses import Loss, SparseCategoricalCrossEntropy
from ..module._serialization_weights import (
    extract_network_payload,
    load_network_payload,
)
from ..optimizers._sgd import SGD
from ..tensor import Tensor
from ._history import History

logger = logging.getLogger(__name__)


def _is_softmax_layer(layer: Layer) -> bool:
    return isinstance(getattr(layer, "activation", None), Softmax)


class Network:
    """
    Sequential feed-forward network.

    Parameters
    ----------
    *layers : Layer
        Zero or more layers appended in order via `add()`.
    """

    def __init__(self, *layers: Layer) -> None:
        self._layers: List[Layer] = []
        self._loss: Optional[Loss] = None
        self._optimizer: Optional[SGD] = None
        self._compiled = False
        self._forward_performed = False
        self._mini_batch_count: Optional[int] = None
        self.last_prediction: Optional[Tensor] = None
        for layer in layers:
            self.add(layer)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------
    @property
    def layers(self) -> Tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def loss(self) -> Optional[Loss]:
        return self._loss

    @property
    def optimizer(self) -> Optional[SGD]:
        return self._optimizer

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers)

    def __getitem__(self, idx: int) -> Layer:
        return self._layers[idx]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def add(self, layer: Layer) -> None:
        """
        Append a layer, inferring its input shape from the previous layer.

        Raises
        ------
        OrderingError
            If the network is compiled, the layer was already added, or the
            previous layer is Softmax-activated.
        ValueError
            If the first layer does not declare its full input shape.
        TensorShapeError
            If the layer's declared input shape conflicts with the previous
            layer's output shape.
        """
        if self._compiled:
            raise OrderingError("Network.add: the network is already compiled")
        if any(existing is layer for existing in self._layers):
            raise OrderingError("Network.add: this layer instance was already added")

        if not self._layers:
            if not layer.has_input_shape:
                raise ValueError(
                    "Network.add: the first layer must declare its full input shape"
                )
        else:
            previous = self._layers[-1]
            if _is_softmax_layer(previous):
                raise OrderingError(
                    "Network.add: no layer may follow a Softmax-activated layer"
                )
            layer.infer_input_shape(previous.output_shape)

        self._layers.append(layer)

    def compile(self, loss: Loss, optimizer: SGD) -> None:
        """
        Compile every layer and bind the loss and optimizer.

        Raises
        ------
        ValueError
            If `loss` or `optimizer` is None.
        OrderingError
            If the network has no layers, is already compiled, or pairs
            Softmax and SparseCategoricalCrossEntropy incorrectly.
        """
        if loss is None:
            raise ValueError("Network.compile: a loss must be specified")
        if optimizer is None:
            raise ValueError("Network.compile: an optimizer must be specified")
        if self._compiled:
            raise OrderingError("Network.compile: the network is already compiled")
        if not self._layers:
            raise OrderingError("Network.compile: the network has no layers")

        softmax_last = _is_softmax_layer(self._layers[-1])
        scce = isinstance(loss, SparseCategoricalCrossEntropy)
        if scce and not softmax_last:
            raise OrderingError(
                "SparseCategoricalCrossEntropy requires a Softmax-activated last layer"
            )
        if softmax_last and not scce:
            raise OrderingError(
                "a Softmax-activated last layer requires SparseCategoricalCrossEntropy"
            )

        for layer in self._layers:
            layer.compile()
        for layer in self._layers:
            optimizer.add_layer(layer)
        optimizer.compile()

        self._loss = loss
        self._optimizer = optimizer
        self._compiled = True
        logger.debug("Compiled network:\n%s", self.summary())

    # ------------------------------------------------------------------
    # Forward / backward
    # ------------------------------------------------------------------
    def _check_input(self, op: str, x: Tensor) -> None:
        expected = self._layers[0].input_shape
        got = (x.depth, x.rows, x.columns)
        if got != expected.as_tuple():
            raise TensorShapeError(
                f"Network.{op}",
                f"input per-item shape {got[0]}x{got[1]}x{got[2]} does not match "
                f"the first layer's input {expected}",
            )

    def _run_layers(self, x: Tensor) -> Tensor:
        out = x
        for layer in self._layers:
            out = layer.forward_pass(out)
        return out

    def _require_compiled(self, op: str) -> None:
        if not self._compiled:
            raise OrderingError(f"Network.{op}: the network is not compiled")

    def predict(self, x: Tensor) -> Tensor:
        """
        Run `x` through every layer and return the output.

        The layers re-cache their inputs, so a forward pass still waiting for
        its `backward` is discarded.

        Raises
        ------
        OrderingError
            If the network has no layers or a layer is not compiled.
        TensorShapeError
            If `x` does not match the first layer's input shape.
        """
        if not self._layers or not all(layer.compiled for layer in self._layers):
            raise OrderingError("Network.predict: every layer must be compiled")
        self._check_input("predict", x)
        self._forward_performed = False
        return self._run_layers(x)

    def forward(self, x: Tensor, target: Tensor) -> float:
        """
        Run a forward pass and return the batch-mean loss.

        The output is stored in `last_prediction`. A pending step is
        discarded first, so when the input or the target is rejected the
        following `backward` raises `OrderingError`.
        """
        self._require_compiled("forward")
        self._forward_performed = False
        self.last_prediction = None
        self._check_input("forward", x)
        prediction = self._run_layers(x)
        value = self._loss.forward(prediction, target)
        self.last_prediction = prediction
        self._forward_performed = True
        return value

    def backward(self) -> None:
        """
        Backpropagate the last forward pass and accumulate the gradients.

        Raises
        ------
        OrderingError
            If the network is not compiled or no forward pass precedes the call.
        """
        self._require_compiled("backward")
        if not self._forward_performed:
            raise OrderingError("Network.backward called without a preceding forward")

        grad = self._loss.backward()
        for i in range(len(self._layers) - 1, -1, -1):
            grads = self._layers[i].backward_pass(grad)
            self._optimizer.remember_gradient(
                i, grads.weights_gradient, grads.bias_gradient
            )
            grad = grads.input_gradient

        self._mini_batch_count = (self._mini_batch_count or 0) + 1
        self._forward_performed = False

    def update_weights(self) -> None:
        """
        Apply the gradients accumulated since the last update.

        Raises
        ------
        OrderingError
            If no backward pass happened since the last update.
        """
        self._require_compiled("update_weights")
        if self._mini_batch_count is None:
            raise OrderingError(
                "Network.update_weights called without a preceding backward"
            )
        self._optimizer.update_weights(self._mini_batch_count, self._layers)
        self._mini_batch_count = None

    # ------------------------------------------------------------------
    # Training loops
    # ------------------------------------------------------------------
    @staticmethod
    def accuracy(target: Tensor, prediction: Tensor) -> float:
        """
        Fraction of batch items whose argmax over rows agrees.

        Only depth 0 and column 0 are compared; on ties the first maximum wins.
        """
        t = target.to_numpy()[:, 0, :, 0]
        p = prediction.to_numpy()[:, 0, :, 0]
        hits = np.argmax(t, axis=1) == np.argmax(p, axis=1)
        return float(np.mean(hits))

    def fit(
        self,
        dataset: IDataset,
        epochs: int,
        batch_size: int,
        reporter: Optional[IProgressReporter] = None,
    ) -> History:
        """
        Train on `dataset` for `epochs` epochs of mini-batches.

        At the end of every epoch the validation split is evaluated; its loss
        and accuracy are recorded in the returned `History` and passed to
        `reporter.on_epoch_end`.

        Raises
        ------
        OrderingError
            If the network is not compiled.
        ValueError
            If `epochs < 1` or `batch_size < 1`.
        """
        self._require_compiled("fit")
        if epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {epochs}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        dataset.epochs = epochs
        dataset.batch_size = batch_size

        history = History()
        epoch = 1
        batches = 0
        while not dataset.end_training:
            x, y = dataset.get_batch()
            if x is not None:
                self.forward(x, y)
                self.backward()
                self.update_weights()
                batches += 1

            if dataset.end_epoch:
                vx, vy = dataset.get_validation()
                loss = self.forward(vx, vy)
                acc = self.accuracy(vy, self.last_prediction)
                logger.debug(
                    "Epoch %d finished after %d batches (loss=%f, accuracy=%f)",
                    epoch,
                    batches,
                    loss,
                    acc,
                )
                history.append_epoch(epoch, {"loss": loss, "accuracy": acc})
                if reporter is not None:
                    reporter.on_epoch_end(epoch, loss, acc)
                epoch += 1
                batches = 0

        self._forward_performed = False
        return history

    def evaluate(
        self, dataset: IDataset, reporter: Optional[IProgressReporter] = None
    ) -> Tuple[float, float]:
        """
        Evaluate the test split and return `(loss, accuracy)`.
        """
        self._require_compiled("evaluate")
        x, y = dataset.get_test_set()
        loss = self.forward(x, y)
        self._forward_performed = False
        acc = self.accuracy(y, self.last_prediction)
        if reporter is not None:
            reporter.on_evaluation_end(loss, acc)
        return loss, acc

    # ------------------------------------------------------------------
    # Inspection / persistence
    # ------------------------------------------------------------------
    def summary(self) -> str:
        """
        Return a table of layers with their output shapes and parameter counts.
        """
        lines = [f"{self.__class__.__name__}("]
        total = 0
        for i, layer in enumerate(self._layers):
            try:
                out = str(layer.output_shape)
            except OrderingError:
                out = "?"
            total += layer.parameter_count
            lines.append(
                f"  ({i}): {layer.name} -> {out} params={layer.parameter_count}"
            )
        lines.append(f")  total params={total}")
        return "\n".join(lines)

    def save_json(self, path: str | Path) -> None:
        """
        Save the layers and their parameters into a JSON checkpoint.

        Raises
        ------
        OrderingError
            If a layer is not compiled (parameters do not exist yet).
        """
        if not all(layer.compiled for layer in self._layers):
            raise OrderingError("Network.save_json: every layer must be compiled")
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        payload = extract_network_payload(self._layers)
        p.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Saved network with %d layers to %s", len(self._layers), p)

    @classmethod
    def load_json(cls, path: str | Path) -> "Network":
        """
        Load a network saved by `save_json`.

        The returned network has compiled layers and is ready for `predict`;
        call `compile(loss, optimizer)` to train it further.
        """
        p = Path(path)
        payload = json.loads(p.read_text(encoding="utf-8"))
        network = cls()
        network._attach_layers(load_network_payload(payload))
        logger.info("Loaded network with %d layers from %s", len(network), p)
        return network

    def _attach_layers(self, layers: Sequence[Layer]) -> None:
        for i in range(1, len(layers)):
            if layers[i].input_shape != layers[i - 1].output_shape:
                raise TensorShapeError(
                    "Network.load_json",
                    f"layer {i} input {layers[i].input_shape} does not match "
                    f"layer {i - 1} output {layers[i - 1].output_shape}",
                )
        self._layers = list(layers)
