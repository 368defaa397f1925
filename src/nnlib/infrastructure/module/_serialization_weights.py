from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from ...domain._errors import SerializationFormatError
from ...domain._layer import is_trainable
from ..encoding._length_prefixed import (
    ndarray_to_payload,
    parse_shape,
    payload_to_ndarray,
)
from ..tensor import Tensor
from ._serialization_core import create_layer, layer_to_config

# Built-in layer types register themselves on import.
from ..layers._input import InputLayer  # noqa: F401
from ..flatten._flatten_module import FlattenLayer  # noqa: F401
from ..fully_connected._dense import DenseLayer  # noqa: F401

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT = "nnlib.json.ckpt.v1"


def extract_network_payload(layers: Sequence[Any]) -> Dict[str, Any]:
    """
    Build the JSON checkpoint payload of a sequence of compiled layers.

    Format
    ------
    {
      "format": "nnlib.json.ckpt.v1",
      "layers": [
        {"type": ..., "shape": {...}, "config": {...},
         "parameters": {"weights": {...}, "bias": {...}}},
        ...
      ]
    }
    """
    nodes: List[Dict[str, Any]] = []
    for layer in layers:
        node = layer_to_config(layer)
        params: Dict[str, Any] = {}
        if is_trainable(layer):
            params["weights"] = ndarray_to_payload(layer.weights.to_numpy())
            params["bias"] = ndarray_to_payload(layer.bias.to_numpy())
        node["parameters"] = params
        nodes.append(node)
    return {"format": CHECKPOINT_FORMAT, "layers": nodes}


def load_network_payload(payload: Dict[str, Any]) -> List[Any]:
    """
    Rebuild compiled layers (with restored parameters) from a payload.

    Raises
    ------
    ValueError
        If the checkpoint format is unsupported or a layer type is unknown.
    SerializationFormatError
        If a shape entry or parameter buffer is malformed.
    """
    fmt = payload.get("format") if isinstance(payload, dict) else None
    if fmt != CHECKPOINT_FORMAT:
        raise ValueError(f"Unsupported checkpoint format: {fmt!r}")

    nodes = payload.get("layers")
    if not isinstance(nodes, list):
        raise SerializationFormatError("'layers' must be a list")

    layers: List[Any] = []
    for i, node in enumerate(nodes):
        if not isinstance(node, dict) or "type" not in node:
            raise SerializationFormatError(f"layer entry {i} has no 'type'")
        shape = node.get("shape") or {}
        in_shape = parse_shape(shape.get("in"), 3)
        out_shape = parse_shape(shape.get("out"), 3)

        layer = create_layer(node["type"], node.get("config"))
        layer.set_input_shape(*in_shape)

        params = node.get("parameters") or {}
        if is_trainable(layer):
            if "weights" not in params or "bias" not in params:
                raise SerializationFormatError(
                    f"layer entry {i} ({node['type']}) is missing its parameters"
                )
            layer.load_parameters(
                Tensor.from_numpy(payload_to_ndarray(params["weights"])),
                Tensor.from_numpy(payload_to_ndarray(params["bias"])),
            )

        layer.compile()
        if layer.output_shape.as_tuple() != tuple(out_shape):
            raise SerializationFormatError(
                f"layer entry {i} declares output {list(out_shape)} but "
                f"computes {list(layer.output_shape.as_tuple())}"
            )
        layers.append(layer)

    logger.debug("Restored %d layers from checkpoint payload", len(layers))
    return layers
