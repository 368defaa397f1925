"""
Error taxonomy for nnlib.

This module defines the exceptions raised by the numeric core, the layers and
the network orchestrator. They let the library fail fast and clearly at every
boundary (tensor construction, layer forward/backward entry, network
add/compile): a silently wrong shape would otherwise produce silently wrong
gradients.

Taxonomy
--------
- `TensorShapeError` (a `ValueError`): dimension mismatch in tensor
  arithmetic, layer input/output shape mismatch, loss operand mismatch.
- `SerializationFormatError` (a `TensorShapeError`): malformed serialized
  parameter buffers or shape entries.
- `OrderingError` (a `RuntimeError`): an operation was invoked in the wrong
  lifecycle state (backward before forward, use of an uncompiled layer or
  network, weight update without accumulated gradients, ...).
- `UnsupportedOperationError` (a `NotImplementedError`): an operand
  combination outside the documented broadcast modes, or Softmax on a
  non-column-vector input.

Invalid arguments and out-of-range values keep using the built-in
`ValueError` / `IndexError`.
"""


class TensorShapeError(ValueError):
    """
    Raised when tensor dimensions do not satisfy an operation's contract.

    Attributes
    ----------
    op : str
        Name of the operation that rejected its operands (e.g. "add", "matmul",
        "DenseLayer.forward_pass").
    """

    def __init__(self, op: str, message: str) -> None:
        """
        Initialize the TensorShapeError.

        Parameters
        ----------
        op : str
            Name of the operation that detected the mismatch.
        message : str
            Human-readable description of the mismatch.
        """
        super().__init__(f"{op}: {message}")
        self.op = op


class SerializationFormatError(TensorShapeError):
    """
    Raised when serialized data (parameter buffers, shape tuples) is malformed.
    """

    def __init__(self, message: str) -> None:
        super().__init__("deserialize", message)


class OrderingError(RuntimeError):
    """
    Raised when an operation is invoked in an invalid lifecycle state.

    Typical causes are calling `backward` without a preceding `forward`,
    running an uncompiled layer or network, or updating weights when no
    gradient has been accumulated since the last update.
    """


class UnsupportedOperationError(NotImplementedError):
    """
    Raised when an operand combination is outside the supported modes.

    Attributes
    ----------
    op : str
        The operation that was attempted.
    """

    def __init__(self, op: str, message: str) -> None:
        super().__init__(f"{op}: {message}")
        self.op = op
