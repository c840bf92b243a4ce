"""Pre-norm transformer encoder layer."""

from __future__ import annotations

import torch
import torch.nn as nn

from pegasus_encoder.attention import MultiHeadAttention
from pegasus_encoder.config import EncoderConfig
from pegasus_encoder.errors import ShapeError
from pegasus_encoder.utils import dropout


class EncoderLayer(nn.Module):
    """Transformer encoder layer with pre-normalization.

    Pre-norm architecture:
        x = x + dropout(self_attn(LayerNorm(x)))
        x = x + dropout(fc2(dropout(act(fc1(LayerNorm(x))))))

    Submodule names (``self_attn``, ``self_attn_layer_norm``, ``fc1``,
    ``fc2``, ``final_layer_norm``) follow the pretrained checkpoint layout.

    Args:
        config: Encoder configuration.

    Example:
        >>> from pegasus_encoder.config import tiny_config
        >>> layer = EncoderLayer(tiny_config())
        >>> x = torch.randn(2, 10, 8)
        >>> out, weights = layer(x)  # [2, 10, 8], None
    """

    def __init__(self, config: EncoderConfig) -> None:
        super().__init__()
        self.d_model = config.d_model
        self.dropout = config.dropout
        self.activation_dropout = config.activation_dropout
        self.activation = config.activation_function.get_function()

        self.self_attn = MultiHeadAttention(
            embed_dim=config.d_model,
            num_heads=config.encoder_attention_heads,
            dropout=config.attention_dropout,
            output_attentions=config.output_attentions,
        )
        self.self_attn_layer_norm = nn.LayerNorm(config.d_model, eps=config.layer_norm_eps)
        self.fc1 = nn.Linear(config.d_model, config.encoder_ffn_dim)
        self.fc2 = nn.Linear(config.encoder_ffn_dim, config.d_model)
        self.final_layer_norm = nn.LayerNorm(config.d_model, eps=config.layer_norm_eps)

    def forward(
        self,
        x: torch.Tensor,
        attention_mask: torch.Tensor | None = None,
        train: bool = False,
        generator: torch.Generator | None = None,
    ) -> tuple[torch.Tensor, torch.Tensor | None]:
        """Forward pass with pre-norm architecture.

        Args:
            x: Input tensor of shape [batch, seq, d_model].
            attention_mask: Additive bias of shape [batch, 1, seq, seq].
            train: Whether dropout is active.
            generator: Random source for dropout.

        Returns:
            Tuple of the output tensor [batch, seq, d_model] and the attention
            weights [batch, heads, seq, seq] (None unless the config enables
            ``output_attentions``).
        """
        if x.dim() != 3 or x.size(-1) != self.d_model:
            raise ShapeError(f"expected [batch, seq, {self.d_model}], got shape {tuple(x.shape)}")

        normed = self.self_attn_layer_norm(x)
        attn_out, attention_weights, _ = self.self_attn(
            normed, None, attention_mask, None, train, generator
        )
        x = dropout(attn_out, self.dropout, train, generator) + x

        residual = x
        h = self.activation(self.fc1(self.final_layer_norm(x)))
        h = dropout(h, self.activation_dropout, train, generator)
        h = dropout(self.fc2(h), self.dropout, train, generator)
        return h + residual, attention_weights
