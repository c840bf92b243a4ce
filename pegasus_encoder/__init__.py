"""
pegasus-encoder: the encoder stack of a Pegasus-style seq2seq transformer.

Converts token ids into contextualized vectors using fixed sinusoidal
positions and a stack of pre-norm self-attention + feed-forward layers.

Features:
    - Pre-norm encoder layers with checkpoint-compatible parameter names
    - Sinusoidal positional encoding (interleaved or split-halves layout)
    - Optional collection of per-layer hidden states and attention weights
    - Explicit train flag and random source on every forward call

Example:
    >>> import torch
    >>> import torch.nn as nn
    >>> from pegasus_encoder import PegasusEncoder, tiny_config
    >>>
    >>> config = tiny_config()
    >>> encoder = PegasusEncoder(config)
    >>> embeddings = nn.Embedding(100, config.d_model)
    >>> ids = torch.randint(0, 100, (2, 12))
    >>> mask = torch.ones(2, 12, dtype=torch.long)
    >>> output = encoder(ids, embeddings, attention_mask=mask)
    >>> output.hidden_state.shape
    torch.Size([2, 12, 8])

References:
    - PEGASUS: https://arxiv.org/abs/1912.08777
    - Attention Is All You Need: https://arxiv.org/abs/1706.03762
"""

from __future__ import annotations

import logging as _logging

from .activations import Activation
from .attention import LayerState, MultiHeadAttention
from .config import EncoderConfig, pegasus_large_config, tiny_config
from .encoder import EncoderOutput, PegasusEncoder, create_pegasus_encoder
from .errors import ConfigError, EncoderError, InvariantError, RangeError, ShapeError
from .layer import EncoderLayer
from .positional import SinusoidalPositionalEncoding, build_table
from .utils import dropout, expand_mask

_logging.getLogger(__name__).addHandler(_logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "Activation",
    "ConfigError",
    "EncoderConfig",
    "EncoderError",
    "EncoderLayer",
    "EncoderOutput",
    "InvariantError",
    "LayerState",
    "MultiHeadAttention",
    "PegasusEncoder",
    "RangeError",
    "ShapeError",
    "SinusoidalPositionalEncoding",
    "build_table",
    "create_pegasus_encoder",
    "dropout",
    "expand_mask",
    "pegasus_large_config",
    "tiny_config",
]
