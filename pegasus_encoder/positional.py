"""Sinusoidal positional encoding."""

from __future__ import annotations

import logging
import math

import torch
import torch.nn as nn

from .errors import RangeError

logger = logging.getLogger(__name__)

BASE = 10000.0


def build_table(
    num_positions: int,
    d_model: int,
    offset: int = 0,
    split_halves: bool = False,
) -> torch.Tensor:
    """
    Build a sinusoidal position table from 'Attention Is All You Need'.

    Row ``i`` encodes position ``i + offset``. In the default interleaved
    layout column ``2k`` holds ``sin(pos / 10000^(2k/d_model))`` and column
    ``2k + 1`` the matching cosine. With ``split_halves`` the sines fill the
    first ``ceil(d_model / 2)`` columns and the cosines the remainder, which
    is how Pegasus/Marian checkpoints store the table.

    Args:
        num_positions: Number of rows.
        d_model: Number of columns (odd widths end with a sine column).
        offset: First position encoded.
        split_halves: Use the sin-block / cos-block layout.

    Returns:
        Table of shape [num_positions, d_model].
    """
    position = torch.arange(offset, offset + num_positions, dtype=torch.float64).unsqueeze(1)
    div_term = torch.exp(
        torch.arange(0, d_model, 2, dtype=torch.float64) * (-math.log(BASE) / d_model)
    )
    angles = position * div_term  # [num_positions, ceil(d_model / 2)]
    sines = torch.sin(angles)
    cosines = torch.cos(angles)[:, : d_model // 2]

    pe = torch.zeros(num_positions, d_model, dtype=torch.float64)
    if split_halves:
        sentinel = sines.size(1)
        pe[:, :sentinel] = sines
        pe[:, sentinel:] = cosines
    else:
        pe[:, 0::2] = sines
        pe[:, 1::2] = cosines
    return pe.to(torch.get_default_dtype())


class SinusoidalPositionalEncoding(nn.Module):
    """Fixed (non-learned) sinusoidal position table.

    The table is precomputed up to ``max_positions`` and stored as the
    buffer ``weight`` so it sits at ``embed_positions.weight`` in the
    encoder's state dict.

    Args:
        max_positions: Maximum supported ``offset + seq_len``.
        d_model: Encoding width.
        split_halves: Use the sin-block / cos-block column layout.

    Example:
        >>> pe = SinusoidalPositionalEncoding(max_positions=512, d_model=16)
        >>> pe(10).shape
        torch.Size([10, 16])
    """

    def __init__(self, max_positions: int, d_model: int, split_halves: bool = False) -> None:
        super().__init__()
        self.max_positions = max_positions
        self.d_model = d_model
        self.split_halves = split_halves
        self.register_buffer("weight", build_table(max_positions, d_model, split_halves=split_halves))
        logger.debug("Built positional table [%d, %d]", max_positions, d_model)

    def forward(self, seq_len: int, offset: int = 0) -> torch.Tensor:
        """Return encodings for positions ``offset .. offset + seq_len - 1``.

        Returns:
            Tensor of shape [seq_len, d_model].
        """
        if seq_len < 0 or offset < 0:
            raise RangeError(f"seq_len and offset must be non-negative, got {seq_len}, {offset}")
        if offset + seq_len > self.max_positions:
            raise RangeError(
                f"positions up to {offset + seq_len} requested but the table "
                f"holds {self.max_positions}"
            )
        return self.weight[offset : offset + seq_len]

    def positions_for(self, input_ids: torch.Tensor, offset: int = 0) -> torch.Tensor:
        """Encodings matching the sequence length of a [batch, seq] id tensor."""
        return self.forward(input_ids.size(-1), offset)

    def extra_repr(self) -> str:
        """Return extra representation string for printing."""
        return f"max_positions={self.max_positions}, d_model={self.d_model}, split_halves={self.split_halves}"
