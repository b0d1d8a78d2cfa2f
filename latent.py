"""latent.py

Sampling and interpolation of latent vectors (Z) for the depth VAE.

Latent vectors are ``[1, D]`` rows; batches of them are ``[K, D]``.
"""
import torch
from torch import nn

import config


class Sampler(nn.Module):
    """Reparameterisation layer: takes ``(mu, logvar)`` and returns a sample of Z."""

    @staticmethod
    def reparameterize(mu, logvar, generator=None):
        std = torch.exp(0.5 * logvar)
        eps = torch.randn(std.shape, generator=generator, dtype=std.dtype, device=std.device)
        return mu + eps * std

    def forward(self, encoded):
        mu, logvar = encoded
        return self.reparameterize(mu, logvar)


def _draw(param, generator):
    # A (mean, log_var) pair describes a distribution over the parameter itself
    if isinstance(param, (tuple, list)):
        mean, log_var = param
        return Sampler.reparameterize(mean, log_var, generator)
    return param


def sample_diagonal_mvn(mean, log_var, num_vectors, generator=None):
    """Draw ``num_vectors`` samples from a Gaussian with diagonal covariance.

    ``mean`` and ``log_var`` are ``[1, D]`` tensors. Either can instead be a
    ``(mean, log_var)`` pair of ``[1, D]`` tensors, in which case a fresh
    mean (or log-variance) is drawn from that distribution for every sample.
    Returns a ``[num_vectors, D]`` tensor.
    """
    samples = []
    for _ in range(num_vectors):
        mu = _draw(mean, generator)
        logvar = _draw(log_var, generator)
        samples.append(Sampler.reparameterize(mu, logvar, generator).reshape(1, -1))
    return torch.cat(samples, 0)


def interpolate_z_vectors(z_vector, target_z_vector, num_vectors):
    """``num_vectors`` evenly spaced latent vectors from ``z_vector`` to ``target_z_vector``, both included."""
    alphas = torch.linspace(0, 1, steps=num_vectors, dtype=z_vector.dtype, device=z_vector.device).unsqueeze(1)
    return (1 - alphas) * z_vector.reshape(1, -1) + alphas * target_z_vector.reshape(1, -1)


def get_encodings(inputs, encoder, sampler, num_samples=config.num_encoding_samples, device=None):
    """Average latent code of a single example.

    The example is fed twice so batch norm layers see more than one input;
    only the first row of each sample is used.
    """
    if device is None:
        device = next(encoder.parameters(), torch.empty(0)).device
    inputs = torch.cat([inputs, inputs], 0).to(device)
    with torch.no_grad():
        encoded = encoder(inputs)
        z = torch.cat([sampler(encoded)[:1] for _ in range(num_samples)], 0)
    return z.mean(0, keepdim=True)


def load_model(model_path, map_location=None):
    # Whole pickled modules, not state dicts
    return torch.load(model_path, map_location=map_location, weights_only=False)
