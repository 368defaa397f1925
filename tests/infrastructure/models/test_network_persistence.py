import json
import os
import tempfile
import unittest

import numpy as np

from src.nnlib.domain._errors import OrderingError, SerializationFormatError
from src.nnlib.infrastructure._activations import ReLU, Softmax
from src.nnlib.infrastructure._losses import SparseCategoricalCrossEntropy
from src.nnlib.infrastructure.flatten._flatten_module import FlattenLayer
from src.nnlib.infrastructure.fully_connected._dense import DenseLayer
from src.nnlib.infrastructure.layers._input import InputLayer
from src.nnlib.infrastructure.models import Network
from src.nnlib.infrastructure.module._serialization_core import (
    create_layer,
    registered_layers,
)
from src.nnlib.infrastructure.module._serialization_weights import CHECKPOINT_FORMAT
from src.nnlib.infrastructure.optimizers import SGD
from src.nnlib.infrastructure.tensor import Tensor


def _classifier():
    net = Network(
        InputLayer(1, 2, 3),
        FlattenLayer(),
        DenseLayer(4, activation=ReLU(), weight_initializer="kaiming"),
        DenseLayer(3, activation=Softmax()),
    )
    net.compile(SparseCategoricalCrossEntropy(), SGD(0.1))
    return net


class TestNetworkPersistence(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "ckpt", "model.json")

    def tearDown(self):
        self._tmp.cleanup()

    def test_save_then_load_predicts_identically(self):
        net = _classifier()
        x = Tensor.from_numpy(np.random.default_rng(0).standard_normal((5, 1, 2, 3)))
        expected = net.predict(x).to_numpy()

        net.save_json(self.path)
        loaded = Network.load_json(self.path)

        self.assertEqual(len(loaded), 4)
        self.assertEqual([l.name for l in loaded], [l.name for l in net])
        self.assertIsInstance(loaded[3].activation, Softmax)
        np.testing.assert_array_equal(loaded[2].weights.to_numpy(), net[2].weights.to_numpy())
        np.testing.assert_array_equal(loaded.predict(x).to_numpy(), expected)

    def test_checkpoint_layout(self):
        _classifier().save_json(self.path)
        with open(self.path, encoding="utf-8") as f:
            payload = json.load(f)

        self.assertEqual(payload["format"], CHECKPOINT_FORMAT)
        types = [node["type"] for node in payload["layers"]]
        self.assertEqual(types, ["InputLayer", "FlattenLayer", "DenseLayer", "DenseLayer"])
        dense = payload["layers"][2]
        self.assertEqual(dense["shape"], {"in": [1, 6, 1], "out": [1, 4, 1]})
        self.assertEqual(dense["config"]["activation"], "ReLU")
        self.assertTrue(dense["parameters"]["weights"]["data"].startswith("{LENGTH:24}"))
        self.assertEqual(payload["layers"][0]["parameters"], {})

    def test_loaded_network_can_resume_training(self):
        _classifier().save_json(self.path)
        net = Network.load_json(self.path)
        self.assertFalse(net.compiled)
        weights = net[3].weights.to_numpy()
        bias = net[3].bias.to_numpy()

        net.compile(SparseCategoricalCrossEntropy(), SGD(0.5))
        np.testing.assert_array_equal(net[3].weights.to_numpy(), weights)

        x = Tensor.from_numpy(np.ones((2, 1, 2, 3)))
        y = Tensor.from_numpy(np.array([[1, 0, 0], [0, 0, 1]], dtype=float).reshape(2, 1, 3, 1))
        net.forward(x, y)
        net.backward()
        net.update_weights()
        self.assertFalse(np.array_equal(net[3].bias.to_numpy(), bias))

    def test_save_requires_compiled_layers(self):
        net = Network(InputLayer(1, 2, 1), DenseLayer(2))
        with self.assertRaises(OrderingError):
            net.save_json(self.path)

    def test_rejects_unknown_format(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"format": "other", "layers": []}, f)
        with self.assertRaises(ValueError):
            Network.load_json(self.path)

    def test_rejects_corrupted_parameters(self):
        _classifier().save_json(self.path)
        with open(self.path, encoding="utf-8") as f:
            payload = json.load(f)
        payload["layers"][2]["parameters"]["weights"]["data"] = "{LENGTH:24}1.0;2.0"
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        with self.assertRaises(SerializationFormatError):
            Network.load_json(self.path)

    def test_rejects_inconsistent_output_shape(self):
        _classifier().save_json(self.path)
        with open(self.path, encoding="utf-8") as f:
            payload = json.load(f)
        payload["layers"][1]["shape"]["out"] = [1, 5, 1]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        with self.assertRaises(SerializationFormatError):
            Network.load_json(self.path)


class TestLayerRegistry(unittest.TestCase):
    def test_builtin_layers_registered(self):
        for name in ("InputLayer", "FlattenLayer", "DenseLayer"):
            self.assertIn(name, registered_layers())

    def test_create_layer(self):
        layer = create_layer("DenseLayer", {"out_size": 3, "activation": "ReLU", "in_size": 2})
        self.assertEqual(layer.out_size, 3)
        self.assertEqual(layer.in_size, 2)
        with self.assertRaises(ValueError):
            create_layer("Conv2D", {})


if __name__ == "__main__":
    unittest.main()
