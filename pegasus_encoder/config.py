"""Configuration dataclasses for the encoder stack.

All structural configuration is centralized here. Modules receive an
``EncoderConfig`` and never read settings from anywhere else.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .activations import Activation
from .errors import ConfigError


@dataclass(frozen=True)
class EncoderConfig:
    """Configuration for PegasusEncoder and its layers.

    Structural fields are required; only the optional switches carry
    defaults.

    Args:
        d_model: Width of every hidden-state vector.
        encoder_attention_heads: Number of self-attention heads.
        encoder_layers: Number of stacked encoder layers.
        encoder_ffn_dim: Inner width of the feed-forward sub-block.
        max_position_embeddings: Capacity of the positional table.
        dropout: Dropout on embeddings and sub-block outputs.
        attention_dropout: Dropout on attention probabilities.
        activation_dropout: Dropout after the feed-forward activation.
        activation_function: Feed-forward activation.
        output_hidden_states: Collect the hidden state entering each layer.
        output_attentions: Collect attention weights from each layer.
        scale_embedding: Multiply token embeddings by sqrt(d_model).
        layer_norm_eps: Epsilon shared by every LayerNorm.
    """

    d_model: int
    encoder_attention_heads: int
    encoder_layers: int
    encoder_ffn_dim: int
    max_position_embeddings: int
    dropout: float
    attention_dropout: float
    activation_dropout: float
    activation_function: Activation = Activation.GELU
    output_hidden_states: bool = False
    output_attentions: bool = False
    scale_embedding: bool = False
    layer_norm_eps: float = 1e-5

    def __post_init__(self) -> None:
        for name in (
            "d_model",
            "encoder_attention_heads",
            "encoder_layers",
            "encoder_ffn_dim",
            "max_position_embeddings",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")

        if self.d_model % self.encoder_attention_heads != 0:
            raise ConfigError(
                f"d_model ({self.d_model}) must be divisible "
                f"by encoder_attention_heads ({self.encoder_attention_heads})"
            )

        for name in ("dropout", "attention_dropout", "activation_dropout"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ConfigError(f"{name} must be in [0, 1), got {value}")

        if not isinstance(self.activation_function, Activation):
            raise ConfigError(
                f"activation_function must be an Activation, got {self.activation_function!r}"
            )

    @property
    def head_dim(self) -> int:
        """Dimension per attention head."""
        return self.d_model // self.encoder_attention_heads

    @property
    def embedding_scale(self) -> float:
        """Factor applied to token embeddings before adding positions."""
        return math.sqrt(self.d_model) if self.scale_embedding else 1.0


# Preset configurations


def tiny_config() -> EncoderConfig:
    """Tiny config for tests and examples (d_model=8, 2 heads, 2 layers)."""
    return EncoderConfig(
        d_model=8,
        encoder_attention_heads=2,
        encoder_layers=2,
        encoder_ffn_dim=16,
        max_position_embeddings=64,
        dropout=0.1,
        attention_dropout=0.0,
        activation_dropout=0.0,
    )


def pegasus_large_config() -> EncoderConfig:
    """Encoder geometry of the published Pegasus-large checkpoints."""
    return EncoderConfig(
        d_model=1024,
        encoder_attention_heads=16,
        encoder_layers=16,
        encoder_ffn_dim=4096,
        max_position_embeddings=1024,
        dropout=0.1,
        attention_dropout=0.1,
        activation_dropout=0.1,
        activation_function=Activation.RELU,
        scale_embedding=True,
    )
