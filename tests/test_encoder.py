"""Tests for PegasusEncoder."""

from __future__ import annotations

import dataclasses
import logging
import math

import pytest
import torch
import torch.nn as nn

from pegasus_encoder import (
    EncoderConfig,
    EncoderOutput,
    InvariantError,
    PegasusEncoder,
    RangeError,
    ShapeError,
    create_pegasus_encoder,
    tiny_config,
)

VOCAB_SIZE = 50


def _config(**overrides) -> EncoderConfig:
    return dataclasses.replace(tiny_config(), **overrides)


def _setup(config: EncoderConfig) -> tuple[PegasusEncoder, nn.Embedding]:
    torch.manual_seed(0)
    return PegasusEncoder(config), nn.Embedding(VOCAB_SIZE, config.d_model)


class TestPegasusEncoderInit:
    """Tests for PegasusEncoder construction."""

    def test_layers(self) -> None:
        """One EncoderLayer per configured layer."""
        encoder, _ = _setup(_config(encoder_layers=3))
        assert len(encoder.layers) == 3

    def test_state_dict_keys(self) -> None:
        """Top-level names follow the checkpoint layout."""
        encoder, _ = _setup(tiny_config())
        keys = set(encoder.state_dict().keys())
        assert "embed_positions.weight" in keys
        assert "layer_norm.weight" in keys
        assert "layer_norm.bias" in keys
        assert "layers.0.self_attn.q_proj.weight" in keys
        assert "layers.1.final_layer_norm.bias" in keys
        assert not any(key.startswith("layers.2.") for key in keys)

    def test_factory(self, caplog: pytest.LogCaptureFixture) -> None:
        """create_pegasus_encoder builds the stack and logs it."""
        caplog.set_level(logging.DEBUG, logger="pegasus_encoder")
        encoder = create_pegasus_encoder(tiny_config())
        assert isinstance(encoder, PegasusEncoder)
        assert "Created PegasusEncoder" in caplog.text


class TestPegasusEncoderForward:
    """Tests for PegasusEncoder forward pass."""

    def test_small_scenario(self) -> None:
        """d_model=8, 2 heads, ffn 16, 2 layers on a 1x4 batch."""
        config = _config(output_hidden_states=True, output_attentions=True)
        encoder, embeddings = _setup(config)
        ids = torch.tensor([[3, 7, 1, 9]])
        output = encoder(ids, embeddings)
        assert isinstance(output, EncoderOutput)
        assert output.hidden_state.shape == (1, 4, 8)
        assert torch.isfinite(output.hidden_state).all()
        assert len(output.all_hidden_states) == 3
        assert len(output.all_attentions) == 2

    @pytest.mark.parametrize("batch,seq_len", [(1, 1), (2, 7), (3, 16)])
    def test_shape_preserved(self, batch: int, seq_len: int) -> None:
        """Output is [batch, seq_len, d_model]."""
        encoder, embeddings = _setup(tiny_config())
        ids = torch.randint(0, VOCAB_SIZE, (batch, seq_len))
        assert encoder(ids, embeddings).hidden_state.shape == (batch, seq_len, 8)

    def test_collectors_absent_by_default(self) -> None:
        """Disabled collectors are None."""
        encoder, embeddings = _setup(tiny_config())
        output = encoder(torch.randint(0, VOCAB_SIZE, (1, 4)), embeddings)
        assert output.all_hidden_states is None
        assert output.all_attentions is None

    def test_eval_deterministic(self) -> None:
        """Without training, identical inputs give bit-identical outputs."""
        encoder, embeddings = _setup(_config(dropout=0.3))
        ids = torch.randint(0, VOCAB_SIZE, (2, 6))
        mask = torch.tensor([[1, 1, 1, 1, 1, 1], [1, 1, 1, 1, 0, 0]])
        out1 = encoder(ids, embeddings, attention_mask=mask).hidden_state
        out2 = encoder(ids, embeddings, attention_mask=mask).hidden_state
        assert torch.equal(out1, out2)

    def test_train_seeded_reproducible(self) -> None:
        """Training mode is reproducible for equally seeded generators."""
        encoder, embeddings = _setup(_config(dropout=0.5, activation_dropout=0.5, attention_dropout=0.5))
        ids = torch.randint(0, VOCAB_SIZE, (2, 16))
        out1 = encoder(ids, embeddings, train=True, generator=torch.Generator().manual_seed(11))
        out2 = encoder(ids, embeddings, train=True, generator=torch.Generator().manual_seed(11))
        out3 = encoder(ids, embeddings, train=True, generator=torch.Generator().manual_seed(12))
        torch.testing.assert_close(out1.hidden_state, out2.hidden_state)
        assert not torch.allclose(out1.hidden_state, out3.hidden_state)

    def test_hidden_states_boundaries(self) -> None:
        """First entry is the embedded input; last is the pre-norm output."""
        encoder, embeddings = _setup(_config(output_hidden_states=True))
        ids = torch.randint(0, VOCAB_SIZE, (2, 5))
        output = encoder(ids, embeddings)

        embedded = embeddings(ids) + encoder.embed_positions(5)
        torch.testing.assert_close(output.all_hidden_states[0], embedded)
        torch.testing.assert_close(encoder.layer_norm(output.all_hidden_states[-1]), output.hidden_state)

    def test_hidden_states_captured_before_each_layer(self) -> None:
        """Entry i + 1 is layer i applied to entry i."""
        encoder, embeddings = _setup(_config(output_hidden_states=True, encoder_layers=3))
        output = encoder(torch.randint(0, VOCAB_SIZE, (1, 4)), embeddings)
        assert len(output.all_hidden_states) == 4
        for index, layer in enumerate(encoder.layers):
            expected, _ = layer(output.all_hidden_states[index])
            torch.testing.assert_close(output.all_hidden_states[index + 1], expected)

    def test_attentions_shape(self) -> None:
        """One [batch, heads, seq, seq] map per layer."""
        encoder, embeddings = _setup(_config(output_attentions=True, encoder_layers=3))
        output = encoder(torch.randint(0, VOCAB_SIZE, (2, 6)), embeddings)
        assert len(output.all_attentions) == 3
        for weights in output.all_attentions:
            assert weights.shape == (2, 2, 6, 6)

    def test_mask_suppresses_padding(self) -> None:
        """Padded positions get (near) zero attention in every layer."""
        encoder, embeddings = _setup(_config(output_attentions=True))
        ids = torch.randint(0, VOCAB_SIZE, (1, 5))
        mask = torch.tensor([[1, 1, 1, 0, 1]])
        output = encoder(ids, embeddings, attention_mask=mask)
        for weights in output.all_attentions:
            assert weights[..., 3].max().item() < 1e-6

    def test_scale_embedding(self) -> None:
        """Embeddings are multiplied by sqrt(d_model) when configured."""
        encoder, embeddings = _setup(_config(scale_embedding=True, output_hidden_states=True))
        ids = torch.randint(0, VOCAB_SIZE, (1, 3))
        output = encoder(ids, embeddings)
        expected = embeddings(ids) * math.sqrt(8) + encoder.embed_positions(3)
        torch.testing.assert_close(output.all_hidden_states[0], expected)

    def test_residual_with_zero_weights(self) -> None:
        """With zeroed projections the stack is LayerNorm(embedded input)."""
        encoder, embeddings = _setup(tiny_config())
        with torch.no_grad():
            for module in encoder.layers.modules():
                if isinstance(module, nn.Linear):
                    module.weight.zero_()
                    module.bias.zero_()
        ids = torch.randint(0, VOCAB_SIZE, (2, 4))
        embedded = embeddings(ids) + encoder.embed_positions(4)
        torch.testing.assert_close(encoder(ids, embeddings).hidden_state, encoder.layer_norm(embedded))

    def test_missing_weights_raise_invariant_error(self) -> None:
        """A layer returning no weights while collecting is a composition bug."""
        encoder, embeddings = _setup(_config(output_attentions=True))
        encoder.layers[1].self_attn.output_attentions = False
        with pytest.raises(InvariantError, match="layer 1"):
            encoder(torch.randint(0, VOCAB_SIZE, (1, 4)), embeddings)

    def test_mask_shape_mismatch_raises(self) -> None:
        """Mask must match the id tensor shape."""
        encoder, embeddings = _setup(tiny_config())
        with pytest.raises(ShapeError, match="attention mask"):
            encoder(torch.randint(0, VOCAB_SIZE, (2, 4)), embeddings, attention_mask=torch.ones(2, 5))

    def test_ids_rank_raises(self) -> None:
        """Ids must be [batch, seq]."""
        encoder, embeddings = _setup(tiny_config())
        with pytest.raises(ShapeError):
            encoder(torch.randint(0, VOCAB_SIZE, (4,)), embeddings)

    def test_embedding_width_raises(self) -> None:
        """Embedding width must equal d_model."""
        encoder, _ = _setup(tiny_config())
        with pytest.raises(ShapeError, match="d_model"):
            encoder(torch.randint(0, VOCAB_SIZE, (1, 4)), nn.Embedding(VOCAB_SIZE, 6))

    def test_sequence_too_long_raises(self) -> None:
        """Sequences longer than the positional table raise RangeError."""
        encoder, embeddings = _setup(_config(max_position_embeddings=8))
        with pytest.raises(RangeError):
            encoder(torch.randint(0, VOCAB_SIZE, (1, 9)), embeddings)

    def test_parameters_unchanged_by_forward(self) -> None:
        """Forward never mutates parameters or buffers."""
        encoder, embeddings = _setup(tiny_config())
        before = {name: t.clone() for name, t in encoder.state_dict().items()}
        encoder(torch.randint(0, VOCAB_SIZE, (2, 5)), embeddings, train=True)
        for name, tensor in encoder.state_dict().items():
            assert torch.equal(tensor, before[name])

    def test_gradient_flow(self) -> None:
        """Gradients reach the shared embedding table."""
        encoder, embeddings = _setup(tiny_config())
        output = encoder(torch.randint(0, VOCAB_SIZE, (2, 5)), embeddings, train=True)
        output.hidden_state.sum().backward()
        assert embeddings.weight.grad is not None
        assert not torch.isnan(embeddings.weight.grad).any()

    def test_embedding_dropout(self) -> None:
        """``dropout`` masks the embedded input before the first layer."""
        encoder, embeddings = _setup(
            _config(dropout=0.5, attention_dropout=0.0, activation_dropout=0.0, output_hidden_states=True)
        )
        ids = torch.randint(0, VOCAB_SIZE, (2, 5))
        output = encoder(ids, embeddings, train=True, generator=torch.Generator().manual_seed(9))

        g = torch.Generator().manual_seed(9)
        embedded = embeddings(ids) + encoder.embed_positions(5)
        keep = torch.empty(2, 5, 8).bernoulli_(0.5, generator=g)
        torch.testing.assert_close(output.all_hidden_states[0], embedded * keep / 0.5)
        assert not torch.allclose(output.all_hidden_states[0], embedded)
