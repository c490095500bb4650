"""Proof ledger tests — LEDGER-001 through LEDGER-003.

Checks collections of proof artifacts for joint consistency with Z3.
"""

from coreworld.checker import verify_equiv
from coreworld.ledger import LedgerConflict, check_ledger
from coreworld.proofs import (
    Consistent, Equivalent, Inconclusive, NotEquivalent, Proof, Witness,
)
from coreworld.terms import App, Lam, Var

I = Lam(Var(0))
K = Lam(Lam(Var(1)))
DELTA = Lam(App(Var(0), Var(0)))
OMEGA = App(DELTA, DELTA)


def claim_equal(a, b):
    return Proof(a, b, Equivalent())


def claim_different(a, b):
    return Proof(a, b, NotEquivalent(Witness("", a, b, "recorded")))


class TestLEDGER001:
    """LEDGER-001: Proofs produced by the checker are jointly consistent."""

    def test_checker_results(self):
        proofs = [
            verify_equiv(App(I, I), I, 10),
            verify_equiv(K, Lam(Lam(Var(0))), 10),
            verify_equiv(App(I, Var(0)), Var(0), 10),
        ]
        assert check_ledger(proofs) == Consistent(settled=True)

    def test_empty_ledger(self):
        assert check_ledger([]) == Consistent(settled=True)

    def test_inconclusive_asserts_nothing(self):
        proof = Proof(OMEGA, I, Inconclusive("fuel exhausted", 1))
        assert check_ledger([proof, claim_different(OMEGA, I)]) == Consistent(settled=True)


class TestLEDGER002:
    """LEDGER-002: Contradictions are located."""

    def test_transitivity(self):
        a, b, c = App(I, Var(0)), App(K, Var(0)), App(I, App(I, Var(0)))
        result = check_ledger([
            claim_equal(a, b),
            claim_equal(b, c),
            claim_different(a, c),
        ])
        assert isinstance(result, LedgerConflict)
        assert result.indices == (0, 1, 2)
        assert "0, 1, 2" in result.reason

    def test_distinct_variables(self):
        result = check_ledger([
            verify_equiv(I, I, 0),
            claim_equal(Var(0), Var(1)),
        ])
        assert isinstance(result, LedgerConflict)
        assert 1 in result.indices
        assert any(p.subject_b == Var(1) for p in result.proofs)

    def test_congruence(self):
        a, b = App(I, Var(0)), Var(0)
        result = check_ledger([
            claim_equal(a, b),
            claim_different(Lam(App(a, Var(1))), Lam(App(b, Var(1)))),
        ])
        assert isinstance(result, LedgerConflict)
        assert result.indices == (0, 1)


class TestLEDGER003:
    """LEDGER-003: Generators are accepted."""

    def test_iterable_input(self):
        result = check_ledger(verify_equiv(t, t, 0) for t in (I, K, OMEGA))
        assert isinstance(result, Consistent)
