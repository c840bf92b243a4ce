"""Multi-head scaled dot-product attention."""

from __future__ import annotations

from dataclasses import dataclass

import torch
import torch.nn as nn

from .errors import ConfigError, ShapeError
from .utils import dropout


@dataclass(frozen=True)
class LayerState:
    """Cached keys and values from earlier calls.

    Both tensors have shape [batch, num_heads, cached_len, head_dim].
    """

    prev_key: torch.Tensor
    prev_value: torch.Tensor


class MultiHeadAttention(nn.Module):
    """
    Multi-head scaled dot-product attention.

    The attention mechanism:
        1. Projects input to Q, K, V (Q scaled by head_dim ** -0.5)
        2. Adds the additive attention bias to Q @ K^T
        3. Softmax over keys, then attention dropout in training mode
        4. Weights @ V, heads merged, output projection

    Projection names (``q_proj``, ``k_proj``, ``v_proj``, ``out_proj``)
    follow the pretrained checkpoint layout.

    Args:
        embed_dim: Hidden dimension of the model.
        num_heads: Number of attention heads.
        dropout: Dropout probability on attention weights.
        output_attentions: Whether forward returns the attention weights.

    Example:
        >>> attn = MultiHeadAttention(embed_dim=256, num_heads=4, dropout=0.0, output_attentions=True)
        >>> hidden_states = torch.randn(2, 32, 256)
        >>> output, weights, _ = attn(hidden_states)
        >>> weights.shape
        torch.Size([2, 4, 32, 32])
    """

    def __init__(
        self,
        embed_dim: int,
        num_heads: int,
        dropout: float,
        output_attentions: bool,
    ) -> None:
        """Initialize MultiHeadAttention."""
        super().__init__()

        if embed_dim % num_heads != 0:
            raise ConfigError(
                f"embed_dim ({embed_dim}) must be divisible by num_heads ({num_heads})"
            )

        self.embed_dim = embed_dim
        self.num_heads = num_heads
        self.head_dim = embed_dim // num_heads
        self.dropout = dropout
        self.output_attentions = output_attentions
        self.scaling = self.head_dim**-0.5

        self.q_proj = nn.Linear(embed_dim, embed_dim)
        self.k_proj = nn.Linear(embed_dim, embed_dim)
        self.v_proj = nn.Linear(embed_dim, embed_dim)
        self.out_proj = nn.Linear(embed_dim, embed_dim)

    def _split_heads(self, tensor: torch.Tensor) -> torch.Tensor:
        """
        Split tensor into attention heads.

        Args:
            tensor: [batch, seq, embed_dim]

        Returns:
            [batch, num_heads, seq, head_dim]
        """
        batch, seq, _ = tensor.shape
        tensor = tensor.view(batch, seq, self.num_heads, self.head_dim)
        return tensor.transpose(1, 2)

    def _merge_heads(self, tensor: torch.Tensor) -> torch.Tensor:
        """
        Merge attention heads back.

        Args:
            tensor: [batch, num_heads, seq, head_dim]

        Returns:
            [batch, seq, embed_dim]
        """
        batch, num_heads, seq, head_dim = tensor.shape
        tensor = tensor.transpose(1, 2)
        return tensor.reshape(batch, seq, num_heads * head_dim)

    def _check_input(self, tensor: torch.Tensor, name: str) -> None:
        if tensor.dim() != 3 or tensor.size(-1) != self.embed_dim:
            raise ShapeError(
                f"{name} must be [batch, seq, {self.embed_dim}], got shape {tuple(tensor.shape)}"
            )

    def forward(
        self,
        hidden_states: torch.Tensor,
        key_value_states: torch.Tensor | None = None,
        attention_mask: torch.Tensor | None = None,
        layer_state: LayerState | None = None,
        train: bool = False,
        generator: torch.Generator | None = None,
    ) -> tuple[torch.Tensor, torch.Tensor | None, LayerState | None]:
        """
        Forward pass.

        Args:
            hidden_states: Query source [batch, tgt_len, embed_dim].
            key_value_states: Cross-attention source [batch, src_len, embed_dim].
                If None, keys and values come from ``hidden_states``.
            attention_mask: Additive bias [batch, 1, tgt_len, src_len].
            layer_state: Cached keys/values. For self-attention they are
                prepended to the new ones; for cross-attention they replace
                the projection of ``key_value_states``.
            train: Whether attention dropout is active.
            generator: Random source for attention dropout.

        Returns:
            Tuple of:
                - output: [batch, tgt_len, embed_dim]
                - weights: [batch, num_heads, tgt_len, src_len], or None when
                  ``output_attentions`` is disabled
                - updated LayerState, or None when no state was passed in
        """
        self._check_input(hidden_states, "hidden_states")
        kv_source = hidden_states if key_value_states is None else key_value_states
        if key_value_states is not None:
            self._check_input(key_value_states, "key_value_states")
            if key_value_states.size(0) != hidden_states.size(0):
                raise ShapeError("key_value_states batch size does not match hidden_states")

        # [batch, num_heads, seq, head_dim]
        query_states = self._split_heads(self.q_proj(hidden_states) * self.scaling)

        new_state = None
        if layer_state is not None and key_value_states is not None:
            # cross-attention keys/values depend only on the source; reuse the cache
            key_states = layer_state.prev_key
            value_states = layer_state.prev_value
            new_state = layer_state
        else:
            key_states = self._split_heads(self.k_proj(kv_source))
            value_states = self._split_heads(self.v_proj(kv_source))
            if layer_state is not None:
                key_states = torch.cat([layer_state.prev_key, key_states], dim=2)
                value_states = torch.cat([layer_state.prev_value, value_states], dim=2)
                new_state = LayerState(prev_key=key_states, prev_value=value_states)

        batch, _, tgt_len, _ = query_states.shape
        src_len = key_states.size(2)

        # [batch, num_heads, tgt_len, src_len]
        scores = torch.matmul(query_states, key_states.transpose(-1, -2))

        if attention_mask is not None:
            expected = (batch, 1, tgt_len, src_len)
            if tuple(attention_mask.shape) != expected:
                raise ShapeError(
                    f"attention mask must have shape {expected}, got {tuple(attention_mask.shape)}"
                )
            scores = scores + attention_mask

        weights = torch.softmax(scores, dim=-1)
        probs = dropout(weights, self.dropout, train, generator)

        attn_output = torch.matmul(probs, value_states)
        output = self.out_proj(self._merge_heads(attn_output))

        return output, (weights if self.output_attentions else None), new_state

    def extra_repr(self) -> str:
        """Return extra representation string for printing."""
        return (
            f"embed_dim={self.embed_dim}, "
            f"num_heads={self.num_heads}, "
            f"head_dim={self.head_dim}, "
            f"dropout={self.dropout}"
        )
