import math
import torch
import tyro # For CLI argument parsing
from typing import Literal

from torchfg.variables.base import Variable # For reseting ID counter if needed for multiple runs
from torchfg.variables.lie_groups import SE2Variable
from torchfg.lie_math.se2 import se2_compose, se2_inverse
from torchfg.core import Values, NoiseModel, PriorFactor, BetweenFactor, NonlinearFactorGraph
from torchfg.linear.elimination import Elimination, Factorization
from torchfg.solvers import GaussNewtonOptimizer, GaussNewtonParams, Verbosity
from torchfg.utils.misc import DEVICE, DEFAULT_DTYPE

def main(elimination: Literal["MULTIFRONTAL", "SEQUENTIAL"] = "MULTIFRONTAL",
         factorization: Literal["LDL", "QR", "CHOLESKY"] = "LDL",
         num_poses: int = 8, verbose: bool = True):
    """
    Runs a planar SE(2) pose graph: a loop of odometry measurements closed back on the first pose.

    Args:
        elimination: How the linear system is eliminated at every iteration.
        factorization: Dense factorization used per elimination step.
        num_poses: Number of poses on the loop.
        verbose: Whether to print optimizer progress and results.
    """
    print(f"torchfg Pose Graph Example - Using {DEVICE} with {DEFAULT_DTYPE}")
    print(f"Elimination: {elimination}, factorization: {factorization}")

    # Reset variable IDs for consistent naming if run multiple times in a session
    Variable._next_id = 0

    # 1. Ground truth: poses on a circle, each facing along the tangent
    radius = 5.0
    truth = []
    for i in range(num_poses):
        angle = 2 * math.pi * i / num_poses
        truth.append(torch.tensor([radius * math.cos(angle), radius * math.sin(angle), angle + math.pi / 2],
                                  device=DEVICE, dtype=DEFAULT_DTYPE))
    poses = [SE2Variable(name=f"x{i}") for i in range(num_poses)]

    # 2. Measurements: a prior anchoring the first pose, odometry and one loop closure
    generator = torch.Generator().manual_seed(0)
    odometry_noise = NoiseModel.diagonal([0.1, 0.1, 0.05])
    graph = NonlinearFactorGraph()
    graph.add(PriorFactor(poses[0], truth[0], NoiseModel.isotropic(3, 1e-3)))
    for i in range(num_poses):
        j = (i + 1) % num_poses
        measured = se2_compose(se2_inverse(truth[i]), truth[j])
        measured = measured + 0.01 * torch.randn(3, generator=generator, dtype=DEFAULT_DTYPE).to(DEVICE)
        graph.add(BetweenFactor(poses[i], poses[j], measured, odometry_noise))

    # 3. Initial estimate: ground truth corrupted by noise
    initial = Values({
        pose: value + 0.3 * torch.randn(3, generator=generator, dtype=DEFAULT_DTYPE).to(DEVICE)
        for pose, value in zip(poses, truth)
    })

    # 4. Configure and run Gauss-Newton
    params = GaussNewtonParams(
        max_iterations=20,
        elimination=Elimination(elimination),
        factorization=Factorization(factorization),
        verbosity=Verbosity.ERROR if verbose else Verbosity.SILENT,
    )
    if verbose:
        params.print("Gauss-Newton parameters:")
    optimizer = GaussNewtonOptimizer(graph, initial, params)
    result = optimizer.optimize()

    # 5. Print Results
    print(f"\nError: {optimizer.error:.6e} -> {result.error:.6e} after {result.iterations} iterations")
    if verbose:
        for pose, expected in zip(poses, truth):
            offset = pose.local_coordinates(expected, result.values[pose])
            print(f"{pose.name}: {result.values[pose].cpu().numpy()}  (|offset from truth| = {torch.linalg.norm(offset).item():.3e})")

if __name__ == "__main__":
    # Use tyro to parse CLI arguments for main function
    tyro.cli(main)
