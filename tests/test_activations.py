"""Tests for activation selection."""

import pytest
import torch
import torch.nn.functional as f

from pegasus_encoder import Activation


class TestActivation:
    """Tests for the Activation enum and its lookup table."""

    def test_from_checkpoint_string(self):
        """Checkpoint strings map onto enum members."""
        assert Activation("relu") is Activation.RELU
        assert Activation("gelu_new") is Activation.GELU_NEW

    def test_unknown_string_raises(self):
        """Unsupported names are rejected."""
        with pytest.raises(ValueError):
            Activation("softsign")

    @pytest.mark.parametrize("activation", list(Activation))
    def test_shape_preserved(self, activation):
        """Every activation maps to a shape-preserving function."""
        x = torch.randn(2, 3, 4)
        y = activation.get_function()(x)
        assert y.shape == x.shape

    def test_gelu(self):
        """GELU uses the exact erf form."""
        x = torch.randn(50)
        torch.testing.assert_close(Activation.GELU.get_function()(x), f.gelu(x))

    def test_gelu_new_close_to_gelu(self):
        """Tanh approximation stays close to exact GELU."""
        x = torch.linspace(-4, 4, 101)
        approx = Activation.GELU_NEW.get_function()(x)
        exact = Activation.GELU.get_function()(x)
        assert (approx - exact).abs().max() < 1e-2

    def test_relu(self):
        """ReLU zeroes negatives."""
        x = torch.tensor([-2.0, -0.5, 0.0, 1.5])
        y = Activation.RELU.get_function()(x)
        torch.testing.assert_close(y, torch.tensor([0.0, 0.0, 0.0, 1.5]))

    def test_swish(self):
        """Swish is x * sigmoid(x)."""
        x = torch.randn(20)
        torch.testing.assert_close(Activation.SWISH.get_function()(x), x * torch.sigmoid(x))

    def test_linear_is_identity(self):
        """Linear activation returns its input."""
        x = torch.randn(5)
        assert torch.equal(Activation.LINEAR.get_function()(x), x)
