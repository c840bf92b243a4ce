"""Basic usage examples for pegasus-encoder library."""

import dataclasses

import torch
import torch.nn as nn

from pegasus_encoder import PegasusEncoder, SinusoidalPositionalEncoding, tiny_config


def positional_encoding_example():
    """
    Example: Using SinusoidalPositionalEncoding directly.

    The table is fixed (no learned parameters); row i encodes position i.
    """
    print("=" * 60)
    print("SinusoidalPositionalEncoding Example")
    print("=" * 60)

    pe = SinusoidalPositionalEncoding(max_positions=128, d_model=8)
    table = pe(4)
    print(f"Table shape: {table.shape}")
    print(f"Row 0: {table[0].tolist()}")
    print(f"Rows 2..3 with offset 2 match: {torch.equal(pe(2, offset=2), table[2:])}")

    split = SinusoidalPositionalEncoding(max_positions=128, d_model=8, split_halves=True)
    print(f"Split-halves row 1: {split(2)[1].tolist()}")


def encoder_example():
    """
    Example: Running the encoder stack over a padded batch.

    The embedding table belongs to the caller and is passed per call.
    """
    print("\n" + "=" * 60)
    print("PegasusEncoder Example")
    print("=" * 60)

    config = dataclasses.replace(tiny_config(), output_hidden_states=True, output_attentions=True)
    encoder = PegasusEncoder(config)
    embeddings = nn.Embedding(100, config.d_model)
    print(f"Parameters: {sum(p.numel() for p in encoder.parameters()):,}")

    input_ids = torch.tensor([[5, 17, 42, 8], [9, 3, 0, 0]])
    attention_mask = torch.tensor([[1, 1, 1, 1], [1, 1, 0, 0]])

    output = encoder(input_ids, embeddings, attention_mask=attention_mask)
    print(f"Hidden state shape: {output.hidden_state.shape}")
    print(f"Collected hidden states: {len(output.all_hidden_states)}")
    print(f"Collected attention maps: {len(output.all_attentions)}")

    padded = output.all_attentions[-1][1, :, :, 2:]
    print(f"Max attention on padding (sequence 2): {padded.max().item():.2e}")

    # Training mode with a private generator is reproducible
    g1 = torch.Generator().manual_seed(0)
    g2 = torch.Generator().manual_seed(0)
    out1 = encoder(input_ids, embeddings, attention_mask=attention_mask, train=True, generator=g1)
    out2 = encoder(input_ids, embeddings, attention_mask=attention_mask, train=True, generator=g2)
    print(f"Seeded train-mode outputs equal: {torch.equal(out1.hidden_state, out2.hidden_state)}")


if __name__ == "__main__":
    positional_encoding_example()
    encoder_example()
