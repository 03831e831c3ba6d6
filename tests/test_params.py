import contextlib
import dataclasses
import io
import unittest

from torchfg.linear.elimination import Elimination, Factorization
from torchfg.linear.ordering import Ordering
from torchfg.solvers.params import GaussNewtonParams, NonlinearOptimizerParams, OrderingType, Verbosity
from torchfg.variables.lie_groups import VectorVariable

class TestGaussNewtonParams(unittest.TestCase):
    """Tests for optimizer configuration and its printing."""

    def test_defaults(self):
        params = GaussNewtonParams()
        self.assertEqual(params.max_iterations, 100)
        self.assertEqual(params.relative_error_tol, 1e-5)
        self.assertEqual(params.absolute_error_tol, 1e-5)
        self.assertEqual(params.error_tol, 0.0)
        self.assertEqual(params.verbosity, Verbosity.SILENT)
        self.assertEqual(params.elimination, Elimination.MULTIFRONTAL)
        self.assertEqual(params.factorization, Factorization.LDL)
        self.assertIsNone(params.ordering)
        self.assertEqual(params.ordering_type, OrderingType.MIN_DEGREE)
        self.assertFalse(params.has_ordering)

    def test_immutable(self):
        params = GaussNewtonParams()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            params.factorization = Factorization.QR
        changed = dataclasses.replace(params, factorization=Factorization.QR)
        self.assertEqual(changed.factorization, Factorization.QR)
        self.assertEqual(params.factorization, Factorization.LDL)

    def test_coercion_and_validation(self):
        x = VectorVariable(1, name="x")
        params = GaussNewtonParams(elimination="SEQUENTIAL", factorization="QR", ordering=[x], verbosity=2)
        self.assertEqual(params.elimination, Elimination.SEQUENTIAL)
        self.assertEqual(params.factorization, Factorization.QR)
        self.assertEqual(params.ordering, Ordering([x]))
        self.assertEqual(params.verbosity, Verbosity.VALUES)
        self.assertTrue(params.has_ordering)
        self.assertFalse(GaussNewtonParams(ordering=[]).has_ordering)
        with self.assertRaises(ValueError):
            GaussNewtonParams(factorization="SVD")
        with self.assertRaises(ValueError):
            NonlinearOptimizerParams(max_iterations=-1)
        with self.assertRaises(ValueError):
            NonlinearOptimizerParams(error_tol=-1.0)

    def test_print(self):
        x = VectorVariable(1, name="pose_x")
        params = GaussNewtonParams(ordering=Ordering([x]), factorization=Factorization.CHOLESKY)
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            params.print("My params:")
        text = out.getvalue()
        self.assertTrue(text.startswith("My params:"))
        for expected in ("max_iterations:      100", "CHOLESKY", "MULTIFRONTAL", "[pose_x]", "MIN_DEGREE", "SILENT"):
            self.assertIn(expected, text)
        self.assertTrue(GaussNewtonParams().summary().startswith("GaussNewtonParams:"))
        self.assertIn("(computed)", GaussNewtonParams().summary())

    def test_print_with_corrupted_enums(self):
        params = GaussNewtonParams()
        object.__setattr__(params, "factorization", "BOGUS")
        object.__setattr__(params, "elimination", 42)
        object.__setattr__(params, "verbosity", None)
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            params.print()
        text = out.getvalue()
        self.assertEqual(text.count("(invalid)"), 3)
        self.assertIn("MIN_DEGREE", text)

if __name__ == '__main__':
    unittest.main()
