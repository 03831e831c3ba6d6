import math
import torch
import unittest

from torchfg.core.values import Values
from torchfg.linear.vector_values import VectorValues
from torchfg.variables.lie_groups import VectorVariable, SO2Variable, SE2Variable
from torchfg.utils.misc import DEVICE, DEFAULT_DTYPE

def _t(values):
    return torch.tensor(values, device=DEVICE, dtype=DEFAULT_DTYPE)

class TestVariables(unittest.TestCase):
    """Tests for the manifold structure of the variable types."""

    def test_identity_by_id(self):
        a = VectorVariable(2, name="a")
        b = VectorVariable(2, name="a")
        self.assertNotEqual(a, b)
        self.assertEqual(a, a)
        self.assertEqual(len({a, b, a}), 2)
        self.assertEqual(repr(a), "a")

    def test_vector_retract_local(self):
        v = VectorVariable(3)
        x = _t([1.0, 2.0, 3.0])
        d = _t([0.5, -0.5, 0.0])
        self.assertTrue(torch.equal(v.retract(x, d), _t([1.5, 1.5, 3.0])))
        self.assertTrue(torch.allclose(v.local_coordinates(x, v.retract(x, d)), d))
        with self.assertRaises(ValueError):
            VectorVariable(0)

    def test_so2_wraps_around(self):
        r = SO2Variable(name="r")
        near_pi = r.check_value(math.pi - 0.1)
        moved = r.retract(near_pi, _t([0.2]))
        self.assertAlmostEqual(moved.item(), -math.pi + 0.1, places=12)
        # The short way around, not 2*pi - 0.2.
        self.assertAlmostEqual(r.local_coordinates(near_pi, moved).item(), 0.2, places=12)

    def test_se2_retract_is_body_frame(self):
        p = SE2Variable(name="p")
        pose = _t([1.0, 0.0, math.pi / 2])
        moved = p.retract(pose, _t([1.0, 0.0, 0.0]))
        self.assertTrue(torch.allclose(moved, _t([1.0, 1.0, math.pi / 2]), atol=1e-12))
        self.assertTrue(torch.allclose(p.local_coordinates(pose, moved), _t([1.0, 0.0, 0.0]), atol=1e-12))

    def test_se2_check_value(self):
        p = SE2Variable()
        self.assertAlmostEqual(p.check_value([0.0, 0.0, 3 * math.pi - 0.1])[2].item(), math.pi - 0.1, places=9)
        with self.assertRaises(ValueError):
            p.check_value([0.0, 0.0])

    def test_between(self):
        p = SE2Variable()
        a, b = _t([1.0, 2.0, 0.3]), _t([0.0, -1.0, 1.2])
        self.assertTrue(torch.allclose(p.compose(a, p.between(a, b)), b, atol=1e-12))


class TestValues(unittest.TestCase):
    """Tests for the immutable Values container."""

    def setUp(self):
        self.x = VectorVariable(2, name="x")
        self.r = SO2Variable(name="r")
        self.values = Values({self.x: [1.0, 2.0], self.r: 0.5})

    def test_insert_and_update_return_copies(self):
        y = VectorVariable(1, name="y")
        extended = self.values.insert(y, [3.0])
        self.assertNotIn(y, self.values)
        self.assertIn(y, extended)
        self.assertIs(extended[self.x], self.values[self.x])
        with self.assertRaises(KeyError):
            self.values.insert(self.x, [0.0, 0.0])

        changed = self.values.update(self.x, [0.0, 0.0])
        self.assertTrue(torch.equal(self.values[self.x], _t([1.0, 2.0])))
        self.assertTrue(torch.equal(changed[self.x], _t([0.0, 0.0])))

    def test_rejects_bad_values(self):
        with self.assertRaises(ValueError):
            Values({self.x: [1.0, 2.0, 3.0]})
        with self.assertRaises(TypeError):
            Values({"x": [1.0]})

    def test_retract(self):
        delta = VectorValues({self.r: [math.pi]})
        retracted = self.values.retract(delta)
        self.assertAlmostEqual(retracted[self.r].item(), 0.5 - math.pi, places=12)
        self.assertIs(retracted[self.x], self.values[self.x])
        self.assertAlmostEqual(self.values[self.r].item(), 0.5)
        with self.assertRaises(KeyError):
            self.values.retract(VectorValues({VectorVariable(1): [1.0]}))

    def test_local_coordinates(self):
        other = self.values.update(self.x, [2.0, 2.0])
        delta = self.values.local_coordinates(other)
        self.assertTrue(torch.allclose(delta[self.x], _t([1.0, 0.0])))
        self.assertTrue(torch.allclose(delta[self.r], _t([0.0])))
        self.assertAlmostEqual(delta.norm(), 1.0)
        self.assertEqual(self.values.dims(), {self.x: 2, self.r: 1})

if __name__ == '__main__':
    unittest.main()
