"""Feed-forward network with manual backpropagation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Sequence

import numpy as np

from ..training.metrics import evaluation_summary
from .activations import Activation, get_activation
from .errors import InvalidShape, ShapeMismatch
from .matrix import Matrix
from .types import Array, EvaluationResult, ForwardState, Gradients, ModelDescription


@dataclass
class Layer:
    """Affine transform ``z = a @ W.T + b.T`` followed by an activation.

    ``weights`` is ``out x in`` and ``bias`` is ``out x 1``.
    """

    weights: Matrix
    bias: Matrix
    activation: Activation

    def __post_init__(self) -> None:
        if self.bias.shape != (self.weights.rows, 1):
            raise InvalidShape(
                f"Bias must be {self.weights.rows}x1 for weights {self.weights.rows}x{self.weights.cols}, "
                f"got {self.bias.rows}x{self.bias.cols}"
            )

    @property
    def in_features(self) -> int:
        return self.weights.cols

    @property
    def out_features(self) -> int:
        return self.weights.rows

    def pre_activation(self, inputs: Matrix) -> Matrix:
        return inputs.multiply(self.weights.transpose()).add_row_vector(self.bias.transpose())


class Network:
    """Ordered stack of :class:`Layer` objects.

    ``activations`` holds one entry per hidden layer plus one for the output
    layer, given either as :class:`Activation` objects or registry tags.
    """

    def __init__(
        self,
        input_size: int,
        output_size: int,
        hidden: Sequence[int] = (),
        activations: Sequence["str | Activation"] | None = None,
        *,
        seed: int | None = None,
        init_range: tuple[float, float] = (-1.0, 1.0),
    ) -> None:
        dims = [int(input_size), *(int(h) for h in hidden), int(output_size)]
        if any(d <= 0 for d in dims):
            raise InvalidShape(f"Layer widths must be positive, got {dims}")
        if activations is None:
            activations = ["sigmoid"] * (len(dims) - 1)
        if len(activations) != len(dims) - 1:
            raise InvalidShape(
                f"Expected {len(dims) - 1} activations for {len(hidden)} hidden layers, "
                f"got {len(activations)}"
            )
        rng = np.random.default_rng(seed)
        low, high = init_range
        layers: List[Layer] = []
        for in_dim, out_dim, act in zip(dims[:-1], dims[1:], activations):
            weights = Matrix(out_dim, in_dim)
            weights.randomize(low, high, rng)
            bias = Matrix(out_dim, 1)
            bias.randomize(low, high, rng)
            layers.append(Layer(weights=weights, bias=bias, activation=get_activation(act)))
        self.layers = layers

    @classmethod
    def from_layers(cls, layers: Sequence[Layer]) -> "Network":
        if not layers:
            raise InvalidShape("A network needs at least one layer")
        for idx in range(len(layers) - 1):
            if layers[idx].out_features != layers[idx + 1].in_features:
                raise InvalidShape(
                    f"Layer {idx} emits {layers[idx].out_features} features but layer {idx + 1} "
                    f"expects {layers[idx + 1].in_features}"
                )
        net = cls.__new__(cls)
        net.layers = list(layers)
        return net

    # ------------------------------------------------------------------
    # Topology

    @property
    def input_size(self) -> int:
        return self.layers[0].in_features

    @property
    def output_size(self) -> int:
        return self.layers[-1].out_features

    @property
    def hidden(self) -> List[int]:
        return [layer.out_features for layer in self.layers[:-1]]

    @property
    def layer_dims(self) -> List[int]:
        return [self.input_size, *(layer.out_features for layer in self.layers)]

    def describe(self) -> ModelDescription:
        return ModelDescription(
            layer_dims=self.layer_dims,
            activations=[layer.activation.name for layer in self.layers],
        )

    def parameter_count(self) -> int:
        return int(sum(l.out_features * l.in_features + l.out_features for l in self.layers))

    # ------------------------------------------------------------------
    # Forward pass

    def _as_inputs(self, sample: "Matrix | Array | Sequence[float]") -> Matrix:
        inputs = sample if isinstance(sample, Matrix) else Matrix.from_array(sample)
        if inputs.cols != self.input_size:
            raise ShapeMismatch(
                "forward", [inputs.shape, (inputs.rows, self.input_size)],
                f"network expects {self.input_size} input features",
            )
        return inputs

    def feed_forward(self, inputs: "Matrix | Array | Sequence[float]") -> ForwardState:
        """Run the forward pass and keep what backpropagation needs."""

        x = self._as_inputs(inputs)
        pre_activations: List[Matrix] = []
        activations: List[Matrix] = []
        a = x
        for layer in self.layers:
            z = layer.pre_activation(a)
            a = layer.activation.apply(z)
            pre_activations.append(z)
            activations.append(a)
        return ForwardState(inputs=x, pre_activations=pre_activations, activations=activations)

    def forward(self, sample: "Matrix | Array | Sequence[float]") -> Matrix:
        """Evaluate the network; returns a ``batch x out`` matrix."""

        a = self._as_inputs(sample)
        for layer in self.layers:
            a = layer.activation.apply(layer.pre_activation(a))
        return a

    __call__ = forward

    # ------------------------------------------------------------------
    # Backward pass

    def gradient_sums(self, state: ForwardState, targets: Matrix, loss=None) -> Gradients:
        """Backpropagate the output error and sum gradients over the batch.

        The output error is ``predicted - targets`` unless a loss from
        :mod:`backpropnets.training.losses` supplies its own ``dL/dy``.
        """

        predicted = state.output
        if targets.shape != predicted.shape:
            raise ShapeMismatch("backward", [predicted.shape, targets.shape], "predictions vs targets")

        n_layers = len(self.layers)
        weight_grads: List[Matrix] = [None] * n_layers  # type: ignore[list-item]
        bias_grads: List[Matrix] = [None] * n_layers  # type: ignore[list-item]

        last = self.layers[-1]
        error = predicted.subtract(targets) if loss is None else loss(predicted, targets)[1]
        delta = error.hadamard(
            last.activation.derivative(state.pre_activations[-1], state.activations[-1])
        )
        for idx in reversed(range(n_layers)):
            weight_grads[idx] = delta.transpose().multiply(state.layer_input(idx))
            bias_grads[idx] = delta.sum_rows().transpose()
            if idx == 0:
                break
            below = self.layers[idx - 1]
            delta = delta.multiply(self.layers[idx].weights).hadamard(
                below.activation.derivative(state.pre_activations[idx - 1], state.activations[idx - 1])
            )
        return Gradients(weights=weight_grads, biases=bias_grads, samples=predicted.rows)

    def backward(self, state: ForwardState, targets: Matrix, loss=None) -> Gradients:
        """Batch-averaged gradients; never applied here."""

        return self.gradient_sums(state, targets, loss).mean()

    def apply_gradients(self, grads: Gradients, learning_rate: float) -> None:
        """``W -= lr * dW`` and ``b -= lr * db`` for every layer."""

        if len(grads.weights) != len(self.layers) or len(grads.biases) != len(self.layers):
            raise ShapeMismatch(
                "apply_gradients",
                [(len(self.layers), 1), (len(grads.weights), 1)],
                "layer count differs",
            )
        updated: List[tuple[Matrix, Matrix]] = []
        for layer, dw, db in zip(self.layers, grads.weights, grads.biases):
            if dw.shape != layer.weights.shape:
                raise ShapeMismatch("apply_gradients", [layer.weights.shape, dw.shape])
            if db.shape != layer.bias.shape:
                raise ShapeMismatch("apply_gradients", [layer.bias.shape, db.shape])
            updated.append(
                (
                    layer.weights.subtract(dw.scale(learning_rate)),
                    layer.bias.subtract(db.scale(learning_rate)),
                )
            )
        for layer, (weights, bias) in zip(self.layers, updated):
            layer.weights.set(weights)
            layer.bias.set(bias)

    # ------------------------------------------------------------------
    # Evaluation

    def evaluate(self, inputs: Matrix, labels: Matrix, batch_size: int = 256) -> EvaluationResult:
        """Mean squared error and thresholded accuracy over the whole set."""

        if isinstance(batch_size, bool) or int(batch_size) != batch_size or batch_size <= 0:
            raise ValueError(f"batch_size must be a positive integer, got {batch_size!r}")
        batch_size = int(batch_size)
        if inputs.rows != labels.rows:
            raise ShapeMismatch("evaluate", [inputs.shape, labels.shape], "row counts differ")
        if labels.cols != self.output_size:
            raise ShapeMismatch(
                "evaluate", [labels.shape, (labels.rows, self.output_size)], "label width"
            )
        outputs = []
        for start in range(0, inputs.rows, batch_size):
            stop = min(start + batch_size, inputs.rows)
            outputs.append(self.forward(inputs.take_rows(range(start, stop))).to_numpy())
        predictions = np.concatenate(outputs, axis=0)
        return evaluation_summary(predictions, labels.to_numpy())

    # ------------------------------------------------------------------
    # Parameters

    def state_dict(self) -> Mapping[str, Array]:
        state: dict[str, Array] = {}
        for idx, layer in enumerate(self.layers):
            state[f"W{idx}"] = layer.weights.to_numpy()
            state[f"b{idx}"] = layer.bias.to_numpy()
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx, layer in enumerate(self.layers):
            for key, target in ((f"W{idx}", layer.weights), (f"b{idx}", layer.bias)):
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
                target.set(state[key])

    def copy(self) -> "Network":
        return Network.from_layers(
            [Layer(l.weights.copy(), l.bias.copy(), l.activation) for l in self.layers]
        )

    def __repr__(self) -> str:
        acts = [layer.activation.name for layer in self.layers]
        return f"Network(dims={self.layer_dims}, activations={acts})"


__all__ = ["Layer", "Network"]
