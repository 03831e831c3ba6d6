import torch

def wrap_angle(theta: torch.Tensor) -> torch.Tensor:
    """
    Wraps angles into (-pi, pi]. Written with atan2 so it stays differentiable.
    Args:
        theta (torch.Tensor): Angles of any shape.
    Returns:
        torch.Tensor: Wrapped angles, same shape.
    """
    return torch.atan2(torch.sin(theta), torch.cos(theta))

def rot2(theta: torch.Tensor) -> torch.Tensor:
    """
    Rotation matrices for a tensor of angles.
    Args:
        theta (torch.Tensor): Angles of shape (...,).
    Returns:
        torch.Tensor: Rotation matrices of shape (..., 2, 2).
    """
    c, s = torch.cos(theta), torch.sin(theta)
    return torch.stack([torch.stack([c, -s], dim=-1), torch.stack([s, c], dim=-1)], dim=-2)

def _v_coefficients(theta: torch.Tensor):
    # A = sin(t)/t, B = (1 - cos(t))/t, with Taylor series near zero.
    small = theta.abs() < 1e-6
    safe = torch.where(small, torch.ones_like(theta), theta)
    theta_sq = theta * theta
    A = torch.where(small, 1.0 - theta_sq / 6.0, torch.sin(safe) / safe)
    B = torch.where(small, theta / 2.0 - theta * theta_sq / 24.0, (1.0 - torch.cos(safe)) / safe)
    return A, B

def se2_exp_map(xi: torch.Tensor) -> torch.Tensor:
    """
    SE(2) exponential map.
    Args:
        xi (torch.Tensor): Tangent vectors of shape (..., 3) as (v_x, v_y, omega).
    Returns:
        torch.Tensor: Poses of shape (..., 3) as (x, y, theta).
    """
    vx, vy, w = xi[..., 0], xi[..., 1], xi[..., 2]
    A, B = _v_coefficients(w)
    x = A * vx - B * vy
    y = B * vx + A * vy
    return torch.stack([x, y, wrap_angle(w)], dim=-1)

def se2_log_map(pose: torch.Tensor) -> torch.Tensor:
    """
    SE(2) logarithm map, inverse of `se2_exp_map` for theta in (-pi, pi].
    Args:
        pose (torch.Tensor): Poses of shape (..., 3).
    Returns:
        torch.Tensor: Tangent vectors of shape (..., 3).
    """
    x, y, theta = pose[..., 0], pose[..., 1], wrap_angle(pose[..., 2])
    A, B = _v_coefficients(theta)
    det = A * A + B * B
    # V^-1 = [[A, B], [-B, A]] / (A^2 + B^2)
    vx = (A * x + B * y) / det
    vy = (-B * x + A * y) / det
    return torch.stack([vx, vy, theta], dim=-1)

def se2_compose(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
    """Pose composition a * b for (..., 3) poses."""
    t = a[..., :2] + (rot2(a[..., 2]) @ b[..., :2].unsqueeze(-1)).squeeze(-1)
    return torch.cat([t, wrap_angle(a[..., 2] + b[..., 2]).unsqueeze(-1)], dim=-1)

def se2_inverse(a: torch.Tensor) -> torch.Tensor:
    """Pose inverse for (..., 3) poses: (-R^T t, -theta)."""
    t = -(rot2(a[..., 2]).transpose(-1, -2) @ a[..., :2].unsqueeze(-1)).squeeze(-1)
    return torch.cat([t, wrap_angle(-a[..., 2]).unsqueeze(-1)], dim=-1)
