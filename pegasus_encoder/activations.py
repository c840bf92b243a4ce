"""Activation functions selectable from configuration."""

from __future__ import annotations

from enum import Enum
from typing import Callable

import torch
import torch.nn.functional as f

TensorFunction = Callable[[torch.Tensor], torch.Tensor]


class Activation(str, Enum):
    """Closed set of feed-forward activations.

    Values match the ``activation_function`` strings found in pretrained
    checkpoint configs, so ``Activation("relu")`` works directly.
    """

    GELU = "gelu"
    GELU_NEW = "gelu_new"
    RELU = "relu"
    SWISH = "swish"
    MISH = "mish"
    TANH = "tanh"
    LINEAR = "linear"

    def get_function(self) -> TensorFunction:
        """Return the tensor function for this activation."""
        return _ACTIVATIONS[self]


def _identity(x: torch.Tensor) -> torch.Tensor:
    return x


def _gelu_new(x: torch.Tensor) -> torch.Tensor:
    # tanh approximation used by GPT-2 style checkpoints
    return f.gelu(x, approximate="tanh")


_ACTIVATIONS: dict[Activation, TensorFunction] = {
    Activation.GELU: f.gelu,
    Activation.GELU_NEW: _gelu_new,
    Activation.RELU: f.relu,
    Activation.SWISH: f.silu,
    Activation.MISH: f.mish,
    Activation.TANH: torch.tanh,
    Activation.LINEAR: _identity,
}
