from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type

_LAYER_REGISTRY: dict[str, Type[Any]] = {}


def register_layer(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a Layer class for JSON deserialization.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _LAYER_REGISTRY[key] = cls
        return cls

    return deco


def registered_layers() -> tuple[str, ...]:
    return tuple(sorted(_LAYER_REGISTRY))


def layer_to_config(layer: Any) -> dict[str, Any]:
    """
    Convert a layer into a JSON-serializable node (without parameters).

    Node format
    -----------
    {
      "type": "DenseLayer",
      "shape": {"in": [d, r, c], "out": [d, r, c]},
      "config": {...}
    }
    """
    get_cfg = getattr(layer, "get_config", None)
    cfg = get_cfg() if callable(get_cfg) else {}
    return {
        "type": layer.__class__.__name__,
        "shape": {
            "in": list(layer.input_shape.as_tuple()),
            "out": list(layer.output_shape.as_tuple()),
        },
        "config": cfg,
    }


def create_layer(type_name: str, config: Optional[Dict[str, Any]] = None) -> Any:
    """
    Instantiate a registered layer from its type tag and configuration.

    Raises
    ------
    ValueError
        If the type tag is not registered.
    """
    type_name = str(type_name)
    if type_name not in _LAYER_REGISTRY:
        raise ValueError(
            f"Unknown layer type '{type_name}'. Register it via @register_layer."
        )

    cls = _LAYER_REGISTRY[type_name]
    cfg = config or {}

    from_cfg = getattr(cls, "from_config", None)
    if callable(from_cfg):
        return from_cfg(cfg)
    return cls(**cfg)
