"""Derivation tests — DERIV-001 through DERIV-004."""

import pytest

from coreworld.derivations import (
    BetaStep, CongApp, CongLam, Refl, Sym, Trans, check_derivation, derive_whnf,
)
from coreworld.errors import ErrorKind, ProofRuleViolation
from coreworld.reduction import NormalForm, OutOfFuel
from coreworld.terms import App, Lam, Var, apps

I = Lam(Var(0))
K = Lam(Lam(Var(1)))
DELTA = Lam(App(Var(0), Var(0)))
OMEGA = App(DELTA, DELTA)


class TestDERIV001:
    """DERIV-001: Each rule concludes the right equation."""

    def test_refl(self):
        assert check_derivation(Refl(OMEGA)) == (OMEGA, OMEGA)

    def test_beta(self):
        assert check_derivation(BetaStep(App(I, Var(2)), Var(2))) == (App(I, Var(2)), Var(2))

    def test_sym(self):
        assert check_derivation(Sym(BetaStep(App(I, I), I))) == (I, App(I, I))

    def test_trans(self):
        first = BetaStep(App(K, Var(0)), Lam(Var(1)))
        second = CongLam(Refl(Var(1)))
        assert check_derivation(Trans(first, second)) == (App(K, Var(0)), Lam(Var(1)))

    def test_congruence(self):
        step = BetaStep(App(I, Var(0)), Var(0))
        assert check_derivation(CongApp(step, Refl(Var(1)))) == (
            App(App(I, Var(0)), Var(1)), App(Var(0), Var(1)))
        assert check_derivation(CongLam(step)) == (Lam(App(I, Var(0))), Lam(Var(0)))


class TestDERIV002:
    """DERIV-002: Broken steps are rejected."""

    def test_not_a_redex(self):
        with pytest.raises(ProofRuleViolation) as exc:
            check_derivation(BetaStep(App(Var(0), Var(1)), Var(0)))
        assert exc.value.rule == "beta"
        assert exc.value.error.kind is ErrorKind.PROOF_RULE

    def test_wrong_contractum(self):
        with pytest.raises(ProofRuleViolation) as exc:
            check_derivation(BetaStep(App(I, Var(0)), Var(1)))
        assert exc.value.rule == "beta"

    def test_trans_middle_mismatch(self):
        with pytest.raises(ProofRuleViolation) as exc:
            check_derivation(Trans(Refl(Var(0)), Refl(Var(1))))
        assert exc.value.rule == "trans"

    def test_violation_deep_inside(self):
        bad = CongLam(Sym(BetaStep(I, I)))
        with pytest.raises(ProofRuleViolation):
            check_derivation(bad)

    def test_not_a_derivation(self):
        with pytest.raises(ProofRuleViolation) as exc:
            check_derivation(Var(0))
        assert exc.value.rule == "unknown"


class TestDERIV003:
    """DERIV-003: Derivations of weak head normalization."""

    def test_constant_function(self):
        term = apps(K, Var(0), Var(1))
        derivation, result = derive_whnf(term, 10)
        assert result == NormalForm(Var(0), 2, result.trace)
        assert isinstance(derivation, Trans)
        assert check_derivation(derivation) == (term, Var(0))

    def test_single_step(self):
        derivation, _ = derive_whnf(App(I, Var(4)), 10)
        assert derivation == BetaStep(App(I, Var(4)), Var(4))

    def test_no_steps(self):
        derivation, result = derive_whnf(Lam(OMEGA), 10)
        assert derivation == Refl(Lam(OMEGA))
        assert result.steps == 0

    def test_partial_derivation_on_divergence(self):
        derivation, result = derive_whnf(OMEGA, 3)
        assert isinstance(result, OutOfFuel)
        assert check_derivation(derivation) == (OMEGA, OMEGA)


class TestDERIV004:
    """DERIV-004: Derivation nodes are values."""

    def test_equality(self):
        assert Sym(Refl(Var(0))) == Sym(Refl(Var(0)))
        assert Refl(Var(0)) != Refl(Var(1))

    def test_hash_follows_equality(self):
        left = Trans(BetaStep(App(I, Var(0)), Var(0)), Refl(Var(0)))
        right = Trans(BetaStep(App(I, Var(0)), Var(0)), Refl(Var(0)))
        assert hash(left) == hash(right)
        assert len({left, right}) == 1

    def test_different_rules_differ(self):
        assert Sym(Refl(Var(0))) != CongLam(Refl(Var(0)))
        assert CongApp(Refl(Var(0)), Refl(Var(1))) != CongApp(Refl(Var(1)), Refl(Var(0)))

    def test_long_chain_equality(self):
        first, _ = derive_whnf(apps(I, *([I] * 1500)), 2000)
        second, _ = derive_whnf(apps(I, *([I] * 1500)), 2000)
        assert first == second
        assert hash(first) == hash(second)
