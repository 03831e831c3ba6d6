import os

import torch

# --- Configuration ---
def _default_device() -> torch.device:
    requested = os.environ.get("TORCHFG_DEVICE")
    if requested:
        return torch.device(requested)
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")

DEVICE = _default_device()
"""The device (CPU or CUDA GPU) every tensor in torchfg lives on. Set TORCHFG_DEVICE to override."""

DEFAULT_DTYPE = torch.float64
"""Floating point precision for all tensors. Elimination is numerically delicate, so float64."""

SINGULAR_RTOL = 1e-10
"""Relative pivot tolerance below which an elimination step is declared singular."""

torch.set_default_dtype(DEFAULT_DTYPE)


def as_tensor(value) -> torch.Tensor:
    """Converts `value` to a detached tensor on DEVICE with DEFAULT_DTYPE."""
    if isinstance(value, torch.Tensor):
        return value.detach().to(device=DEVICE, dtype=DEFAULT_DTYPE)
    return torch.as_tensor(value, device=DEVICE, dtype=DEFAULT_DTYPE)
