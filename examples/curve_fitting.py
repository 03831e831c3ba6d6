import torch
import tyro # For CLI argument parsing

from torchfg.variables import VectorVariable
from torchfg.core import Values, NoiseModel, FunctionFactor, NonlinearFactorGraph
from torchfg.solvers import GaussNewtonOptimizer, GaussNewtonParams, Verbosity
from torchfg.utils.misc import DEVICE, DEFAULT_DTYPE

def main(num_samples: int = 50, noise_sigma: float = 0.05, verbose: bool = False):
    """
    Fits y = a * exp(b * t) to noisy samples with one factor per sample.

    Args:
        num_samples: Number of samples of the curve.
        noise_sigma: Standard deviation of the measurement noise.
        verbose: Whether to print optimizer progress.
    """
    generator = torch.Generator().manual_seed(0)
    true_params = torch.tensor([2.0, -1.5], device=DEVICE, dtype=DEFAULT_DTYPE)
    t = torch.linspace(0.0, 2.0, num_samples, dtype=DEFAULT_DTYPE).to(DEVICE)
    y = true_params[0] * torch.exp(true_params[1] * t)
    y = y + noise_sigma * torch.randn(num_samples, generator=generator, dtype=DEFAULT_DTYPE).to(DEVICE)

    # 1. The unknown (a, b)
    coefficients = VectorVariable(2, name="ab")

    # 2. One residual per sample
    graph = NonlinearFactorGraph()
    noise = NoiseModel.isotropic(1, noise_sigma)
    for t_i, y_i in zip(t, y):
        graph.add(FunctionFactor([coefficients], lambda ab, t_i=t_i, y_i=y_i: (ab[0] * torch.exp(ab[1] * t_i) - y_i).reshape(1),
                                 noise, name="Sample"))

    # 3. Solve from a rough guess
    params = GaussNewtonParams(verbosity=Verbosity.ERROR if verbose else Verbosity.SILENT)
    result = GaussNewtonOptimizer(graph, Values({coefficients: [1.0, 0.0]}), params).optimize()

    print(f"Estimated (a, b): {result.values[coefficients].cpu().numpy()}, true: {true_params.cpu().numpy()}")
    print(f"Final error: {result.error:.4f} after {result.iterations} iterations")

if __name__ == "__main__":
    tyro.cli(main)
