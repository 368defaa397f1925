from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

import numpy as np

from ...domain._errors import SerializationFormatError

_PREFIX = "{LENGTH:"


def encode_doubles(values: Iterable[float]) -> str:
    """
    Encode doubles as ``{LENGTH:n}v0;v1;...;v(n-1)``.

    Values are written with `repr(float)`, the shortest representation that
    round-trips exactly and never depends on the locale.
    """
    items = [repr(float(v)) for v in values]
    return f"{_PREFIX}{len(items)}}}" + ";".join(items)


def decode_doubles(text: str) -> np.ndarray:
    """
    Decode a string produced by `encode_doubles`.

    Raises
    ------
    SerializationFormatError
        If the prefix, the length field, the closing brace, any value, or the
        number of values is invalid.
    """
    if not isinstance(text, str) or not text.startswith(_PREFIX):
        raise SerializationFormatError(
            "data representation has to start with {LENGTH:"
        )

    end = text.find("}", len(_PREFIX))
    if end < 0:
        raise SerializationFormatError("missing closing '}' after the length")
    length_field = text[len(_PREFIX) : end]
    if not length_field or not length_field.isdigit() or not length_field.isascii():
        raise SerializationFormatError(f"invalid length representation {length_field!r}")
    length = int(length_field)

    body = text[end + 1 :]
    parts = body.split(";") if body else []
    if len(parts) != length:
        raise SerializationFormatError(
            f"declared length {length} but found {len(parts)} values"
        )

    try:
        return np.array([float(p) for p in parts], dtype=np.float64)
    except ValueError as e:
        raise SerializationFormatError(f"invalid value in data ({e})") from e


def ndarray_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize a NumPy array into a JSON-safe payload.

    Returns
    -------
    dict
        {"shape": [...], "data": "{LENGTH:n}v0;..."}
    """
    a = np.asarray(arr, dtype=np.float64)
    return {"shape": list(a.shape), "data": encode_doubles(a.reshape(-1).tolist())}


def parse_shape(raw: Any, rank: int) -> Sequence[int]:
    """
    Validate a JSON shape entry of `rank` positive integers.

    Raises
    ------
    SerializationFormatError
        If the entry is not a list of `rank` positive integers.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) != rank:
        raise SerializationFormatError(f"expected a shape of {rank} integers, got {raw!r}")
    out = []
    for v in raw:
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise SerializationFormatError(
                f"shape entries must be positive integers, got {raw!r}"
            )
        out.append(int(v))
    return tuple(out)


def payload_to_ndarray(payload: Dict[str, Any]) -> np.ndarray:
    """
    Deserialize a payload produced by `ndarray_to_payload`.

    Raises
    ------
    SerializationFormatError
        If the payload is malformed or its data does not fill its shape.
    """
    if not isinstance(payload, dict) or "shape" not in payload or "data" not in payload:
        raise SerializationFormatError("parameter payload needs 'shape' and 'data'")
    shape = parse_shape(payload["shape"], 4)
    values = decode_doubles(payload["data"])
    if values.size != int(np.prod(shape)):
        raise SerializationFormatError(
            f"{values.size} values cannot fill shape {list(shape)}"
        )
    return values.reshape(shape)
