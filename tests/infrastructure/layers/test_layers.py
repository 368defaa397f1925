import unittest

import numpy as np

from src.nnlib.domain._errors import OrderingError, TensorShapeError
from src.nnlib.domain._layer import ILayer, is_trainable
from src.nnlib.domain._shape import Shape
from src.nnlib.domain._tensor import MultiplicationMode
from src.nnlib.infrastructure._activations import ReLU, Softmax
from src.nnlib.infrastructure._losses import MSELoss
from src.nnlib.infrastructure.flatten._flatten_module import FlattenLayer
from src.nnlib.infrastructure.fully_connected._dense import DenseLayer
from src.nnlib.infrastructure.layers._input import InputLayer
from src.nnlib.infrastructure.tensor import Tensor
from src.nnlib.infrastructure.utils.weight_initializer import WeightInitializer


def _compiled_dense(out_size, in_size, depth=1, **kwargs):
    layer = DenseLayer(out_size, in_size=in_size, **kwargs)
    layer.set_input_shape(depth=depth)
    layer.compile()
    return layer


class TestInputLayer(unittest.TestCase):
    def test_identity_both_ways(self):
        layer = InputLayer(1, 2, 3)
        layer.compile()
        x = Tensor.from_numpy(np.arange(12.0).reshape(2, 1, 2, 3))
        np.testing.assert_array_equal(layer.forward_pass(x).to_numpy(), x.to_numpy())
        grads = layer.backward_pass(x)
        self.assertIsNone(grads.weights_gradient)
        self.assertIsNone(grads.bias_gradient)
        np.testing.assert_array_equal(grads.input_gradient.to_numpy(), x.to_numpy())
        self.assertFalse(is_trainable(layer))
        self.assertIsInstance(layer, ILayer)

    def test_rejects_wrong_input_shape(self):
        layer = InputLayer(1, 2, 3)
        layer.compile()
        with self.assertRaises(TensorShapeError):
            layer.forward_pass(Tensor(1, 1, 3, 2))

    def test_requires_compile_and_ordering(self):
        layer = InputLayer(1, 1, 1)
        with self.assertRaises(OrderingError):
            layer.forward_pass(Tensor(1, 1, 1, 1))
        layer.compile()
        with self.assertRaises(OrderingError):
            layer.backward_pass(Tensor(1, 1, 1, 1))

    def test_shape_is_locked_after_compile(self):
        layer = InputLayer(1, 2, 2)
        layer.compile()
        with self.assertRaises(OrderingError):
            layer.set_input_shape(rows=3)
        with self.assertRaises(OrderingError):
            layer.infer_input_shape(Shape(1, 2, 2))

    def test_non_positive_shape(self):
        with self.assertRaises(ValueError):
            InputLayer(1, 0, 1)


class TestFlattenLayer(unittest.TestCase):
    def test_forward_and_backward_reshape(self):
        layer = FlattenLayer()
        layer.infer_input_shape(Shape(2, 3, 4))
        layer.compile()
        self.assertEqual(layer.output_shape, Shape(1, 24, 1))

        x = Tensor.from_numpy(np.arange(48.0).reshape(2, 2, 3, 4))
        out = layer.forward_pass(x)
        self.assertEqual(out.shape, (2, 1, 24, 1))
        np.testing.assert_array_equal(out.to_numpy().reshape(-1), np.arange(48.0))

        back = layer.backward_pass(out).input_gradient
        np.testing.assert_array_equal(back.to_numpy(), x.to_numpy())

    def test_uncompiled_without_shape(self):
        layer = FlattenLayer()
        self.assertFalse(layer.has_input_shape)
        with self.assertRaises(OrderingError):
            layer.compile()

    def test_declared_shape_conflict(self):
        layer = FlattenLayer(1, 28, 28)
        with self.assertRaises(TensorShapeError):
            layer.infer_input_shape(Shape(1, 28, 27))


class TestDenseLayer(unittest.TestCase):
    def test_construction_errors(self):
        with self.assertRaises(ValueError):
            DenseLayer(0)
        with self.assertRaises(ValueError):
            DenseLayer(3, in_size=-1)
        with self.assertRaises(ValueError):
            DenseLayer(3, weight_initializer="does-not-exist")

    def test_parameters_require_compile(self):
        layer = DenseLayer(3, in_size=2)
        with self.assertRaises(OrderingError):
            _ = layer.weights
        self.assertTrue(is_trainable(layer))

    def test_compile_allocates_parameters(self):
        layer = _compiled_dense(3, 2, weight_initializer=WeightInitializer("ones"))
        self.assertEqual(layer.weights.shape, (1, 1, 3, 2))
        self.assertIs(layer.weights.mode, MultiplicationMode.LAST_LEVEL)
        self.assertEqual(layer.bias.shape, (1, 1, 3, 1))
        np.testing.assert_array_equal(layer.bias.to_numpy(), np.zeros((1, 1, 3, 1)))
        self.assertEqual(layer.output_shape, Shape(1, 3, 1))
        self.assertEqual(layer.parameter_count, 9)

    def test_compile_twice_keeps_parameters(self):
        layer = _compiled_dense(3, 2)
        w = layer.weights.to_numpy()
        layer.compile()
        np.testing.assert_array_equal(layer.weights.to_numpy(), w)

    def test_compile_rejects_matrix_input(self):
        layer = DenseLayer(3)
        layer.infer_input_shape(Shape(1, 4, 2))
        with self.assertRaises(TensorShapeError):
            layer.compile()

    def test_from_parameters(self):
        w = Tensor.from_array([[[[1, 2], [3, 4], [5, 6]]]])
        layer = DenseLayer.from_parameters(w, activation="ReLU")
        self.assertEqual(layer.in_size, 2)
        self.assertEqual(layer.out_size, 3)
        self.assertIsInstance(layer.activation, ReLU)
        np.testing.assert_array_equal(layer.bias.to_numpy(), np.zeros((1, 1, 3, 1)))

    def test_from_parameters_errors(self):
        w = Tensor(1, 1, 3, 2)
        with self.assertRaises(ValueError):
            DenseLayer.from_parameters(w, Tensor(1, 1, 2, 1))
        with self.assertRaises(ValueError):
            DenseLayer.from_parameters(Tensor(2, 1, 3, 2))

    def test_forward_computes_affine_map(self):
        w = Tensor.from_array([[[[1, 2], [3, 4], [5, 6]]]])
        b = Tensor.from_array([[[[1], [0], [-1]]]])
        layer = DenseLayer.from_parameters(w, b)
        layer.set_input_shape(depth=1)
        layer.compile()

        x = Tensor.from_numpy(np.array([[1.0, 1.0], [2.0, -1.0]]).reshape(2, 1, 2, 1))
        out = layer.forward_pass(x).to_numpy().reshape(2, 3)
        np.testing.assert_allclose(out, [[4, 7, 10], [1, 2, 3]])

    def test_assign_parameters_validates_shape(self):
        layer = _compiled_dense(3, 2)
        with self.assertRaises(TensorShapeError):
            layer.assign_parameters(Tensor(1, 1, 2, 3), layer.bias)
        with self.assertRaises(TensorShapeError):
            layer.assign_parameters(layer.weights, Tensor(1, 1, 2, 1))
        layer.assign_parameters(Tensor(1, 1, 3, 2), Tensor(1, 1, 3, 1))
        self.assertIs(layer.weights.mode, MultiplicationMode.LAST_LEVEL)

    def test_backward_before_forward(self):
        layer = _compiled_dense(2, 2)
        with self.assertRaises(OrderingError):
            layer.backward_pass(Tensor(1, 1, 2, 1))

    def test_backward_rejects_wrong_gradient_shape(self):
        layer = _compiled_dense(2, 3)
        layer.forward_pass(Tensor(1, 1, 3, 1))
        with self.assertRaises(TensorShapeError):
            layer.backward_pass(Tensor(1, 1, 3, 1))

    def test_gradient_matches_central_difference(self):
        rng = np.random.default_rng(7)
        layer = _compiled_dense(
            3, 4, activation="ReLU", weight_initializer=WeightInitializer("normal", seed=3)
        )
        x = Tensor.from_numpy(rng.standard_normal((5, 1, 4, 1)))
        target = Tensor.from_numpy(rng.standard_normal((5, 1, 3, 1)))
        loss = MSELoss()

        loss.forward(layer.forward_pass(x), target)
        grads = layer.backward_pass(loss.backward())
        dw = grads.weights_gradient.to_numpy()
        db = grads.bias_gradient.to_numpy()

        w0, b0 = layer.weights.to_numpy(), layer.bias.to_numpy()
        eps = 1e-6

        def loss_at(w, b):
            layer.assign_parameters(Tensor.from_numpy(w), Tensor.from_numpy(b))
            value = MSELoss().forward(layer.forward_pass(x), target)
            layer.activation.backward(Tensor.zeros(5, 1, 3, 1))
            return value

        for idx in [(0, 0, 0, 0), (0, 0, 1, 2), (0, 0, 2, 3)]:
            plus, minus = w0.copy(), w0.copy()
            plus[idx] += eps
            minus[idx] -= eps
            numeric = (loss_at(plus, b0) - loss_at(minus, b0)) / (2 * eps)
            self.assertAlmostEqual(numeric, dw[idx], places=4)

        for idx in [(0, 0, 0, 0), (0, 0, 2, 0)]:
            plus, minus = b0.copy(), b0.copy()
            plus[idx] += eps
            minus[idx] -= eps
            numeric = (loss_at(w0, plus) - loss_at(w0, minus)) / (2 * eps)
            self.assertAlmostEqual(numeric, db[idx], places=4)

    def test_multi_depth_input_uses_last_slice(self):
        w = Tensor.from_array([[[[1, 0], [0, 1]]]])
        layer = DenseLayer.from_parameters(w)
        layer.set_input_shape(depth=3)
        layer.compile()

        x = Tensor.from_numpy(np.arange(12.0).reshape(2, 3, 2, 1))
        out = layer.forward_pass(x)
        np.testing.assert_array_equal(out.to_numpy(), x.to_numpy()[:, 2:3])

        upstream = layer.backward_pass(Tensor.from_numpy(np.ones((2, 1, 2, 1)))).input_gradient
        self.assertEqual(upstream.shape, (2, 3, 2, 1))
        np.testing.assert_array_equal(upstream.to_numpy()[:, :2], np.zeros((2, 2, 2, 1)))
        np.testing.assert_array_equal(upstream.to_numpy()[:, 2], np.ones((2, 2, 1)))

    def test_softmax_activation_output_is_distribution(self):
        layer = _compiled_dense(4, 3, activation=Softmax())
        out = layer.forward_pass(Tensor.from_numpy(np.ones((2, 1, 3, 1)))).to_numpy()
        np.testing.assert_allclose(out.sum(axis=2).ravel(), [1.0, 1.0])

    def test_get_config(self):
        layer = DenseLayer(5, activation="ReLU", in_size=3)
        self.assertEqual(
            layer.get_config(), {"out_size": 5, "activation": "ReLU", "in_size": 3}
        )


if __name__ == "__main__":
    unittest.main()
