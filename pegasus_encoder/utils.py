"""Functional helpers shared by the encoder modules."""

from __future__ import annotations

import torch

from .errors import ShapeError


def dropout(
    x: torch.Tensor,
    p: float,
    train: bool,
    generator: torch.Generator | None = None,
) -> torch.Tensor:
    """
    Inverted dropout with an explicit mode flag and random source.

    In evaluation mode (or with ``p == 0``) this is the identity. In training
    mode each element is zeroed with probability ``p`` and survivors are
    scaled by ``1 / (1 - p)``. The mask is drawn from ``generator`` when one
    is given, so callers holding their own generator never share random
    state with concurrent calls.

    Args:
        x: Input tensor of any shape.
        p: Drop probability in [0, 1).
        train: Whether dropout is active.
        generator: Optional random source for the keep mask.

    Returns:
        Tensor with the same shape as ``x``.

    Example:
        >>> g = torch.Generator().manual_seed(0)
        >>> y = dropout(torch.ones(4, 4), p=0.5, train=True, generator=g)
        >>> assert set(y.unique().tolist()) <= {0.0, 2.0}
    """
    if not train or p == 0.0:
        return x
    keep = torch.empty_like(x).bernoulli_(1.0 - p, generator=generator)
    return x * keep / (1.0 - p)


def expand_mask(
    mask: torch.Tensor,
    dtype: torch.dtype,
    tgt_len: int | None = None,
) -> torch.Tensor:
    """
    Expand a padding mask into an additive attention bias.

    Positions marked 1 are attendable and receive a bias of 0; positions
    marked 0 receive the most negative finite value of ``dtype`` so their
    softmax weight underflows to zero.

    Args:
        mask: Padding mask of shape [batch, src_len] (0/1 or boolean).
        dtype: Floating dtype of the bias (match the attention scores).
        tgt_len: Query length. Defaults to ``src_len``.

    Returns:
        Bias tensor of shape [batch, 1, tgt_len, src_len].
    """
    if mask.dim() != 2:
        raise ShapeError(f"attention mask must be [batch, seq_len], got shape {tuple(mask.shape)}")

    batch, src_len = mask.shape
    tgt_len = tgt_len if tgt_len is not None else src_len

    # [batch, src_len] -> [batch, 1, tgt_len, src_len]
    expanded = mask[:, None, None, :].expand(batch, 1, tgt_len, src_len).to(dtype)
    inverted = 1.0 - expanded
    return inverted.masked_fill(inverted.bool(), torch.finfo(dtype).min)
