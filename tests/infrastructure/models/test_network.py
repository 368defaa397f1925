import logging
import unittest

import numpy as np

from src.nnlib.domain._errors import OrderingError, TensorShapeError
from src.nnlib.domain._shape import Shape
from src.nnlib.infrastructure._activations import Softmax
from src.nnlib.infrastructure._losses import MSELoss, SparseCategoricalCrossEntropy
from src.nnlib.infrastructure.datasets._array_dataset import ArrayDataset
from src.nnlib.infrastructure.flatten._flatten_module import FlattenLayer
from src.nnlib.infrastructure.fully_connected._dense import DenseLayer
from src.nnlib.infrastructure.layers._input import InputLayer
from src.nnlib.infrastructure.models import History, LoggingProgressReporter, Network
from src.nnlib.infrastructure.optimizers import SGD
from src.nnlib.infrastructure.tensor import Tensor
from src.nnlib.infrastructure.utils.weight_initializer import WeightInitializer


def _regression_data(n, seed):
    rng = np.random.default_rng(seed)
    x = rng.uniform(-1.0, 1.0, size=(n, 2))
    y = (2.0 * x[:, 0] - x[:, 1] + 0.5).reshape(n, 1)
    return x, y


class TestNetworkConstruction(unittest.TestCase):
    def test_add_infers_input_shape(self):
        net = Network(InputLayer(1, 4, 1), DenseLayer(3), DenseLayer(2))
        self.assertEqual(len(net), 3)
        self.assertEqual(net[1].input_shape, Shape(1, 4, 1))
        self.assertEqual(net[2].input_shape, Shape(1, 3, 1))

    def test_add_rejects_conflicting_declared_shape(self):
        net = Network(InputLayer(1, 4, 1))
        with self.assertRaises(TensorShapeError):
            net.add(DenseLayer(2, in_size=3))

    def test_first_layer_needs_full_shape(self):
        with self.assertRaises(ValueError):
            Network(DenseLayer(3))

    def test_same_instance_twice(self):
        layer = DenseLayer(2)
        net = Network(InputLayer(1, 2, 1), layer)
        with self.assertRaises(OrderingError):
            net.add(layer)

    def test_nothing_after_softmax(self):
        net = Network(InputLayer(1, 2, 1), DenseLayer(2, activation="Softmax"))
        with self.assertRaises(OrderingError):
            net.add(DenseLayer(2))

    def test_add_after_compile(self):
        net = Network(InputLayer(1, 2, 1), DenseLayer(1))
        net.compile(MSELoss(), SGD(0.1))
        with self.assertRaises(OrderingError):
            net.add(DenseLayer(1))

    def test_compile_checks(self):
        with self.assertRaises(ValueError):
            Network(InputLayer(1, 2, 1)).compile(None, SGD(0.1))
        with self.assertRaises(ValueError):
            Network(InputLayer(1, 2, 1)).compile(MSELoss(), None)
        with self.assertRaises(OrderingError):
            Network().compile(MSELoss(), SGD(0.1))

        net = Network(InputLayer(1, 2, 1), DenseLayer(2))
        with self.assertRaises(OrderingError):
            net.compile(SparseCategoricalCrossEntropy(), SGD(0.1))

        net = Network(InputLayer(1, 2, 1), DenseLayer(2, activation=Softmax()))
        with self.assertRaises(OrderingError):
            net.compile(MSELoss(), SGD(0.1))

        net.compile(SparseCategoricalCrossEntropy(), SGD(0.1))
        self.assertTrue(net.compiled)
        self.assertEqual(len(net.optimizer), 2)
        with self.assertRaises(OrderingError):
            net.compile(SparseCategoricalCrossEntropy(), SGD(0.1))

    def test_failed_layer_compile_leaves_optimizer_empty(self):
        name = "wrong_shape_for_compile"
        WeightInitializer.register_initializer(name, overwrite=True)(
            lambda shape, rng: np.zeros(3)
        )
        self.addCleanup(WeightInitializer.INITIALIZERS.pop, name, None)

        net = Network(
            InputLayer(1, 2, 1), DenseLayer(2), DenseLayer(1, weight_initializer=name)
        )
        sgd = SGD(0.1)
        with self.assertRaises(ValueError):
            net.compile(MSELoss(), sgd)
        self.assertFalse(net.compiled)
        self.assertEqual(len(sgd), 0)
        self.assertFalse(sgd.compiled)

    def test_summary_lists_layers(self):
        net = Network(InputLayer(1, 3, 1), DenseLayer(2))
        net.compile(MSELoss(), SGD(0.1))
        text = net.summary()
        self.assertIn("InputLayer", text)
        self.assertIn("DenseLayer -> 1x2x1 params=8", text)
        self.assertIn("total params=8", text)


class TestNetworkTraining(unittest.TestCase):
    def _compiled(self, lr=0.05):
        net = Network(InputLayer(1, 2, 1), DenseLayer(1, weight_initializer="zeros"))
        net.compile(MSELoss(), SGD(lr))
        return net

    def test_requires_compile(self):
        net = Network(InputLayer(1, 2, 1), DenseLayer(1))
        with self.assertRaises(OrderingError):
            net.forward(Tensor(1, 1, 2, 1), Tensor(1, 1, 1, 1))
        with self.assertRaises(OrderingError):
            net.predict(Tensor(1, 1, 2, 1))

    def test_predict_checks_input_shape(self):
        net = self._compiled()
        with self.assertRaises(TensorShapeError):
            net.predict(Tensor(1, 1, 3, 1))
        self.assertEqual(net.predict(Tensor(4, 1, 2, 1)).shape, (4, 1, 1, 1))

    def test_ordering_of_training_steps(self):
        net = self._compiled()
        with self.assertRaises(OrderingError):
            net.backward()
        with self.assertRaises(OrderingError):
            net.update_weights()

        x = Tensor.from_numpy(np.array([1.0, 2.0]).reshape(1, 1, 2, 1))
        y = Tensor.from_numpy(np.array([3.0]).reshape(1, 1, 1, 1))
        self.assertAlmostEqual(net.forward(x, y), 9.0)
        net.backward()
        with self.assertRaises(OrderingError):
            net.backward()
        net.update_weights()
        with self.assertRaises(OrderingError):
            net.update_weights()

    def test_single_step_matches_sgd_rule(self):
        net = self._compiled(lr=0.1)
        x = Tensor.from_numpy(np.array([1.0, 2.0]).reshape(1, 1, 2, 1))
        y = Tensor.from_numpy(np.array([3.0]).reshape(1, 1, 1, 1))
        net.forward(x, y)
        net.backward()
        net.update_weights()
        # dL/dp = 2 * (0 - 3) = -6
        np.testing.assert_allclose(net[1].weights.to_numpy().ravel(), [0.6, 1.2])
        np.testing.assert_allclose(net[1].bias.to_numpy().ravel(), [0.6])

    def test_accumulated_backward_calls_are_averaged(self):
        net = self._compiled(lr=0.1)
        x = Tensor.from_numpy(np.array([1.0, 0.0]).reshape(1, 1, 2, 1))
        for target in (2.0, 4.0):
            net.forward(x, Tensor.from_numpy(np.array([target]).reshape(1, 1, 1, 1)))
            net.backward()
        net.update_weights()
        # mean gradient 2 * (0 - 3) = -6 on w0 and on the bias
        np.testing.assert_allclose(net[1].weights.to_numpy().ravel(), [0.6, 0.0])
        np.testing.assert_allclose(net[1].bias.to_numpy().ravel(), [0.6])

    def _step_data(self):
        x1 = Tensor.from_numpy(np.array([1.0, 2.0]).reshape(1, 1, 2, 1))
        y1 = Tensor.from_numpy(np.array([3.0]).reshape(1, 1, 1, 1))
        x2 = Tensor.from_numpy(np.array([5.0, -3.0]).reshape(1, 1, 2, 1))
        return x1, y1, x2

    def test_rejected_target_aborts_pending_step(self):
        net = self._compiled()
        x1, y1, x2 = self._step_data()
        net.forward(x1, y1)
        with self.assertRaises(TensorShapeError):
            net.forward(x2, Tensor(1, 1, 2, 1))
        self.assertIsNone(net.last_prediction)
        with self.assertRaises(OrderingError):
            net.backward()

    def test_rejected_input_aborts_pending_step(self):
        net = self._compiled()
        x1, y1, _ = self._step_data()
        net.forward(x1, y1)
        with self.assertRaises(TensorShapeError):
            net.forward(Tensor(1, 1, 3, 1), y1)
        with self.assertRaises(OrderingError):
            net.backward()

    def test_predict_discards_pending_step(self):
        net = self._compiled()
        x1, y1, x2 = self._step_data()
        net.forward(x1, y1)
        net.predict(x2)
        with self.assertRaises(OrderingError):
            net.backward()

        net.forward(x1, y1)
        net.backward()
        np.testing.assert_allclose(
            net.optimizer.accumulated(1)[0].to_numpy().ravel(), [-6.0, -12.0]
        )

    def test_accuracy_first_maximum_wins(self):
        target = Tensor.from_numpy(np.array([[0, 1], [1, 0], [1, 0]], dtype=float).reshape(3, 1, 2, 1))
        pred = Tensor.from_numpy(np.array([[0.2, 0.8], [0.6, 0.4], [0.5, 0.5]]).reshape(3, 1, 2, 1))
        self.assertAlmostEqual(Network.accuracy(target, pred), 1.0)

    def test_fit_reduces_validation_loss(self):
        x, y = _regression_data(32, seed=0)
        vx, vy = _regression_data(8, seed=1)
        ds = ArrayDataset(x, y, validation=(vx, vy), test=(vx, vy), shuffle=True, seed=0)

        net = Network(InputLayer(1, 2, 1), DenseLayer(1))
        net.compile(MSELoss(), SGD(0.05))
        history = net.fit(ds, epochs=30, batch_size=4)

        self.assertIsInstance(history, History)
        self.assertEqual(len(history), 30)
        self.assertEqual(history.epoch, list(range(1, 31)))
        self.assertLess(history.loss[-1], 0.1 * history.loss[0])

        loss, _ = net.evaluate(ds)
        self.assertAlmostEqual(loss, history.loss[-1])

    def test_fit_argument_checks(self):
        net = self._compiled()
        x, y = _regression_data(4, seed=0)
        ds = ArrayDataset(x, y, validation=(x, y))
        with self.assertRaises(ValueError):
            net.fit(ds, epochs=0, batch_size=2)
        with self.assertRaises(ValueError):
            net.fit(ds, epochs=1, batch_size=0)

    def test_reporter_logs_epochs_and_evaluation(self):
        x, y = _regression_data(6, seed=2)
        ds = ArrayDataset(x, y, validation=(x, y), test=(x, y))
        net = self._compiled()
        logger = logging.getLogger("nnlib.tests.progress")
        reporter = LoggingProgressReporter(logger)

        with self.assertLogs(logger, level="INFO") as cm:
            net.fit(ds, epochs=2, batch_size=4, reporter=reporter)
            net.evaluate(ds, reporter=reporter)

        self.assertEqual(len(cm.output), 3)
        self.assertIn("Epoch 1", cm.output[0])
        self.assertIn("Epoch 2", cm.output[1])
        self.assertIn("Test loss", cm.output[2])

    def test_classifier_outputs_distributions(self):
        net = Network(
            InputLayer(1, 2, 2),
            FlattenLayer(),
            DenseLayer(5, activation="ReLU"),
            DenseLayer(3, activation=Softmax()),
        )
        net.compile(SparseCategoricalCrossEntropy(), SGD(0.1))
        rng = np.random.default_rng(4)
        out = net.predict(Tensor.from_numpy(rng.standard_normal((6, 1, 2, 2))))
        self.assertEqual(out.shape, (6, 1, 3, 1))
        np.testing.assert_allclose(out.to_numpy().sum(axis=2).ravel(), np.ones(6))


class TestHistory(unittest.TestCase):
    def test_append_and_last(self):
        h = History()
        self.assertEqual(h.last(), {})
        h.append_epoch(1, {"loss": 2, "accuracy": 0.5})
        h.append_epoch(2, {"loss": 1.5, "accuracy": 0.75})
        self.assertEqual(h.loss, [2.0, 1.5])
        self.assertEqual(h.accuracy, [0.5, 0.75])
        self.assertEqual(h.last(), {"loss": 1.5, "accuracy": 0.75})
        self.assertEqual(len(h), 2)


if __name__ == "__main__":
    unittest.main()
