"""Layer components for pegasus-encoder.

This module provides:
- EncoderLayer: Pre-norm self-attention + feed-forward transformer block
"""

from .encoder_layer import EncoderLayer

__all__ = [
    "EncoderLayer",
]
