"""Pegasus encoder stack.

PegasusEncoder: embeddings + sinusoidal positions -> N pre-norm layers -> LayerNorm.
EncoderOutput: final hidden state plus the optional per-layer collections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import torch
import torch.nn as nn

from .config import EncoderConfig
from .errors import InvariantError, ShapeError
from .layer import EncoderLayer
from .positional import SinusoidalPositionalEncoding
from .utils import dropout, expand_mask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncoderOutput:
    """Result of one encoder forward call.

    Args:
        hidden_state: Final normalized output [batch, seq, d_model].
        all_hidden_states: Hidden state entering each layer plus the
            pre-norm output of the last layer (layers + 1 entries), or None
            when not collected.
        all_attentions: Attention weights of each layer (layers entries,
            each [batch, heads, seq, seq]), or None when not collected.
    """

    hidden_state: torch.Tensor
    all_hidden_states: list[torch.Tensor] | None
    all_attentions: list[torch.Tensor] | None


class PegasusEncoder(nn.Module):
    """Encoder stack of a Pegasus-style sequence-to-sequence transformer.

    The token embedding table is owned by the caller (it is shared with the
    decoder in a full model) and passed to every forward call.

    Args:
        config: Encoder configuration.

    Example:
        >>> from pegasus_encoder.config import tiny_config
        >>> config = tiny_config()
        >>> encoder = PegasusEncoder(config)
        >>> embeddings = nn.Embedding(100, config.d_model)
        >>> ids = torch.randint(0, 100, (2, 12))
        >>> encoder(ids, embeddings).hidden_state.shape
        torch.Size([2, 12, 8])
    """

    def __init__(self, config: EncoderConfig) -> None:
        super().__init__()
        self.config = config
        self.d_model = config.d_model
        self.dropout = config.dropout
        self.embedding_scale = config.embedding_scale
        self.output_hidden_states = config.output_hidden_states
        self.output_attentions = config.output_attentions

        self.embed_positions = SinusoidalPositionalEncoding(
            max_positions=config.max_position_embeddings,
            d_model=config.d_model,
        )
        self.layers = nn.ModuleList([EncoderLayer(config) for _ in range(config.encoder_layers)])
        self.layer_norm = nn.LayerNorm(config.d_model, eps=config.layer_norm_eps)

    def forward(
        self,
        input_ids: torch.Tensor,
        embeddings: nn.Embedding,
        attention_mask: torch.Tensor | None = None,
        train: bool = False,
        generator: torch.Generator | None = None,
    ) -> EncoderOutput:
        """Forward pass.

        Args:
            input_ids: Token ids [batch, seq].
            embeddings: Token embedding table with ``embedding_dim == d_model``.
            attention_mask: Padding mask [batch, seq], 1 for real tokens and
                0 for padding. None means full attention.
            train: Whether dropout is active.
            generator: Random source for every dropout in this call.

        Returns:
            EncoderOutput for this call.
        """
        if input_ids.dim() != 2:
            raise ShapeError(f"input_ids must be [batch, seq], got shape {tuple(input_ids.shape)}")
        if embeddings.embedding_dim != self.d_model:
            raise ShapeError(
                f"embedding dim {embeddings.embedding_dim} does not match d_model {self.d_model}"
            )

        bias = None
        if attention_mask is not None:
            if attention_mask.shape != input_ids.shape:
                raise ShapeError(
                    f"attention mask shape {tuple(attention_mask.shape)} does not match "
                    f"input_ids shape {tuple(input_ids.shape)}"
                )
            bias = expand_mask(attention_mask, embeddings.weight.dtype)

        x = embeddings(input_ids) * self.embedding_scale
        x = x + self.embed_positions.positions_for(input_ids, 0).to(x.dtype)
        hidden_state = dropout(x, self.dropout, train, generator)

        all_hidden_states: list[torch.Tensor] | None = [] if self.output_hidden_states else None
        all_attentions: list[torch.Tensor] | None = [] if self.output_attentions else None

        for index, layer in enumerate(self.layers):
            if all_hidden_states is not None:
                all_hidden_states.append(hidden_state.clone())

            hidden_state, attention_weights = layer(hidden_state, bias, train, generator)

            if all_attentions is not None:
                if attention_weights is None:
                    raise InvariantError(f"layer {index} returned no attention weights")
                all_attentions.append(attention_weights)

        if all_hidden_states is not None:
            all_hidden_states.append(hidden_state.clone())

        return EncoderOutput(
            hidden_state=self.layer_norm(hidden_state),
            all_hidden_states=all_hidden_states,
            all_attentions=all_attentions,
        )


def create_pegasus_encoder(config: EncoderConfig) -> PegasusEncoder:
    """Factory function to create a PegasusEncoder from config.

    Args:
        config: EncoderConfig containing all model settings

    Returns:
        Configured PegasusEncoder instance
    """
    encoder = PegasusEncoder(config)
    logger.debug(
        "Created PegasusEncoder: d_model=%d, heads=%d, layers=%d, ffn_dim=%d, activation=%s",
        config.d_model,
        config.encoder_attention_heads,
        config.encoder_layers,
        config.encoder_ffn_dim,
        config.activation_function.value,
    )
    return encoder
