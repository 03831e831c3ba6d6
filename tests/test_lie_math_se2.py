import math
import torch
import unittest

from torchfg.lie_math.se2 import wrap_angle, rot2, se2_exp_map, se2_log_map, se2_compose, se2_inverse
from torchfg.utils.misc import DEVICE, DEFAULT_DTYPE

class TestSE2Math(unittest.TestCase):
    """Tests for SE(2) exponential and logarithmic maps and pose algebra."""

    def setUp(self):
        self.xi_zero = torch.zeros(3, device=DEVICE, dtype=DEFAULT_DTYPE)
        self.xi_small = torch.tensor([0.01, -0.02, 1e-8], device=DEVICE, dtype=DEFAULT_DTYPE)
        self.xi_large = torch.tensor([1.5, -0.7, 2.5], device=DEVICE, dtype=DEFAULT_DTYPE)
        self.pose_a = torch.tensor([1.0, 2.0, 0.3], device=DEVICE, dtype=DEFAULT_DTYPE)
        self.pose_b = torch.tensor([-0.5, 0.25, -2.0], device=DEVICE, dtype=DEFAULT_DTYPE)

    def test_wrap_angle(self):
        angles = torch.tensor([0.0, math.pi + 0.1, -math.pi - 0.1, 4 * math.pi + 0.2], device=DEVICE, dtype=DEFAULT_DTYPE)
        expected = torch.tensor([0.0, -math.pi + 0.1, math.pi - 0.1, 0.2], device=DEVICE, dtype=DEFAULT_DTYPE)
        self.assertTrue(torch.allclose(wrap_angle(angles), expected, atol=1e-12))

    def test_rot2_is_orthonormal(self):
        R = rot2(torch.tensor(0.7, device=DEVICE, dtype=DEFAULT_DTYPE))
        self.assertEqual(R.shape, (2, 2))
        self.assertTrue(torch.allclose(R @ R.T, torch.eye(2, device=DEVICE, dtype=DEFAULT_DTYPE), atol=1e-12))

    def test_exp_zero_is_identity(self):
        self.assertTrue(torch.allclose(se2_exp_map(self.xi_zero), self.xi_zero, atol=1e-12))
        self.assertTrue(torch.allclose(se2_log_map(self.xi_zero), self.xi_zero, atol=1e-12))

    def test_exp_log_inversion(self):
        for xi in (self.xi_small, self.xi_large):
            with self.subTest(xi=xi.tolist()):
                self.assertTrue(torch.allclose(se2_log_map(se2_exp_map(xi)), xi, atol=1e-9))

    def test_pure_rotation(self):
        pose = se2_exp_map(torch.tensor([0.0, 0.0, 0.5], device=DEVICE, dtype=DEFAULT_DTYPE))
        self.assertTrue(torch.allclose(pose, torch.tensor([0.0, 0.0, 0.5], device=DEVICE, dtype=DEFAULT_DTYPE)))

    def test_compose_with_inverse(self):
        identity = se2_compose(self.pose_a, se2_inverse(self.pose_a))
        self.assertTrue(torch.allclose(identity, self.xi_zero, atol=1e-12))
        identity = se2_compose(se2_inverse(self.pose_b), self.pose_b)
        self.assertTrue(torch.allclose(identity, self.xi_zero, atol=1e-12))

    def test_compose_translation(self):
        a = torch.tensor([1.0, 0.0, math.pi / 2], device=DEVICE, dtype=DEFAULT_DTYPE)
        b = torch.tensor([1.0, 0.0, 0.0], device=DEVICE, dtype=DEFAULT_DTYPE)
        expected = torch.tensor([1.0, 1.0, math.pi / 2], device=DEVICE, dtype=DEFAULT_DTYPE)
        self.assertTrue(torch.allclose(se2_compose(a, b), expected, atol=1e-12))

    def test_batched(self):
        batch = torch.stack([self.xi_small, self.xi_large, self.xi_zero])
        poses = se2_exp_map(batch)
        self.assertEqual(poses.shape, (3, 3))
        self.assertTrue(torch.allclose(se2_log_map(poses), batch, atol=1e-9))

if __name__ == '__main__':
    unittest.main()
