import math
import torch
import unittest

from torchfg.core.values import Values
from torchfg.core.noise import NoiseModel
from torchfg.core.factor import PriorFactor, BetweenFactor, FunctionFactor
from torchfg.core.graph import NonlinearFactorGraph
from torchfg.linear.factors import JacobianFactor
from torchfg.variables.lie_groups import VectorVariable, SO2Variable, SE2Variable
from torchfg.utils.misc import DEVICE, DEFAULT_DTYPE

def _t(values):
    return torch.tensor(values, device=DEVICE, dtype=DEFAULT_DTYPE)

class AnalyticalRangeFactor(FunctionFactor):
    """Squared-range residual with a hand-written Jacobian."""
    def __init__(self, point: VectorVariable, squared_range: float):
        super().__init__([point], lambda p: (p @ p - squared_range).reshape(1), name="Range")
        self.point = point

    def analytical_jacobian(self, var_values):
        p = var_values[self.point]
        return [2.0 * p.reshape(1, -1)], self.residual(var_values)


class TestNoiseModel(unittest.TestCase):

    def test_whiten(self):
        noise = NoiseModel.diagonal([0.5, 2.0])
        self.assertTrue(torch.allclose(noise.whiten(_t([1.0, 1.0])), _t([2.0, 0.5])))
        self.assertTrue(torch.equal(NoiseModel.unit().whiten(_t([3.0])), _t([3.0])))
        with self.assertRaises(ValueError):
            NoiseModel.isotropic(2, 0.0)
        with self.assertRaises(ValueError):
            noise.whiten(_t([1.0, 2.0, 3.0]))


class TestFactors(unittest.TestCase):
    """Tests for nonlinear factors: error convention and linearization."""

    def test_error_is_half_squared_whitened_norm(self):
        x = VectorVariable(2, name="x")
        factor = PriorFactor(x, [0.0, 0.0], NoiseModel.isotropic(2, 0.5))
        values = Values({x: [3.0, 4.0]})
        # whitened residual (6, 8)
        self.assertAlmostEqual(factor.error(values), 50.0)

    def test_linearize_vector_prior(self):
        x = VectorVariable(2, name="x")
        factor = PriorFactor(x, [1.0, -1.0], NoiseModel.diagonal([1.0, 0.5]))
        linear = factor.linearize(Values({x: [2.0, 0.0]}))
        self.assertIsInstance(linear, JacobianFactor)
        self.assertEqual(linear.keys, (x,))
        self.assertTrue(torch.allclose(linear.blocks[0], torch.diag(_t([1.0, 2.0]))))
        self.assertTrue(torch.allclose(linear.b, _t([-1.0, -2.0])))

    def test_linearize_se2_prior_at_prior(self):
        p = SE2Variable(name="p")
        prior = [1.0, 2.0, 0.4]
        linear = PriorFactor(p, prior).linearize(Values({p: prior}))
        self.assertTrue(torch.allclose(linear.blocks[0], torch.eye(3, device=DEVICE, dtype=DEFAULT_DTYPE), atol=1e-9))
        self.assertTrue(torch.allclose(linear.b, torch.zeros(3, device=DEVICE, dtype=DEFAULT_DTYPE), atol=1e-12))

    def test_linearize_between_so2(self):
        a, b = SO2Variable(name="a"), SO2Variable(name="b")
        factor = BetweenFactor(a, b, 0.1)
        linear = factor.linearize(Values({a: math.pi - 0.05, b: -math.pi + 0.05}))
        self.assertTrue(torch.allclose(linear.blocks[0], _t([[-1.0]])))
        self.assertTrue(torch.allclose(linear.blocks[1], _t([[1.0]])))
        # Actual rotation is 0.1 across the wrap-around, so the residual is zero.
        self.assertTrue(torch.allclose(linear.b, _t([0.0]), atol=1e-12))

    def test_between_requires_same_group(self):
        with self.assertRaises(ValueError):
            BetweenFactor(SO2Variable(), SE2Variable(), [0.0, 0.0, 0.0])
        with self.assertRaises(ValueError):
            BetweenFactor(VectorVariable(1), VectorVariable(2), [0.0])

    def test_analytical_matches_autograd(self):
        point = VectorVariable(2, name="pt")
        values = Values({point: [1.0, 2.0]})
        analytical = AnalyticalRangeFactor(point, 4.0).linearize(values)
        autograd = FunctionFactor([point], lambda p: (p @ p - 4.0).reshape(1)).linearize(values)
        self.assertTrue(torch.allclose(analytical.blocks[0], _t([[2.0, 4.0]])))
        self.assertTrue(torch.allclose(analytical.blocks[0], autograd.blocks[0]))
        self.assertTrue(torch.allclose(analytical.b, autograd.b))

    def test_factor_variables_must_be_unique(self):
        x = VectorVariable(1)
        with self.assertRaises(ValueError):
            FunctionFactor([x, x], lambda a, b: a - b)


class TestNonlinearFactorGraph(unittest.TestCase):

    def setUp(self):
        self.x1 = VectorVariable(1, name="x1")
        self.x2 = VectorVariable(1, name="x2")
        self.graph = NonlinearFactorGraph()
        self.graph.add(PriorFactor(self.x1, [0.0]))
        self.graph.add(BetweenFactor(self.x1, self.x2, [1.0]))

    def test_keys_and_missing(self):
        self.assertEqual(self.graph.keys(), [self.x1, self.x2])
        self.assertEqual(self.graph.missing_keys(Values({self.x1: [0.0]})), [self.x2])
        with self.assertRaises(TypeError):
            self.graph.add("not a factor")

    def test_read_only_copy(self):
        frozen = NonlinearFactorGraph(self.graph, read_only=True)
        self.assertIsInstance(frozen.factors, tuple)
        with self.assertRaises(TypeError):
            frozen.add(PriorFactor(self.x2, [0.0]))
        self.graph.add(PriorFactor(self.x2, [0.0]))
        self.assertEqual(len(frozen), 2)
        self.assertEqual(frozen.keys(), [self.x1, self.x2])

    def test_error_and_linearize(self):
        values = Values({self.x1: [1.0], self.x2: [1.0]})
        # prior: 0.5 * 1, between: 0.5 * 1
        self.assertAlmostEqual(self.graph.error(values), 1.0)
        linear = self.graph.linearize(values)
        self.assertEqual(len(linear), 2)
        self.assertEqual(linear.keys(), [self.x1, self.x2])
        A, b = linear.jacobian()
        self.assertTrue(torch.allclose(A.to_dense(), _t([[1.0, 0.0], [-1.0, 1.0]])))
        self.assertTrue(torch.allclose(b, _t([-1.0, 1.0])))

if __name__ == '__main__':
    unittest.main()
