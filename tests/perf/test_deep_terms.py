"""Deep term tests — DEEP-001 through DEEP-006.

Terms nested far past the interpreter's recursion limit must go through
every kernel operation without a RecursionError.
"""

import sys

from coreworld.checker import verify_equiv
from coreworld.codec import decode_derivation, decode_term, encode_derivation, encode_term
from coreworld.derivations import derive_whnf
from coreworld.equivalence import alpha_equiv
from coreworld.inconsistency import check_inconsistency
from coreworld.machine import evaluate
from coreworld.proofs import Consistent
from coreworld.reduction import NormalForm, normalize, normalize_strong
from coreworld.shifting import shift
from coreworld.substitution import substitute
from coreworld.terms import App, Lam, Var, apps, check_well_formed, depth, lams

DEPTH = max(20_000, sys.getrecursionlimit() * 10)
I = Lam(Var(0))


def deep_lambda(free=0):
    # λ.λ. ... λ.(DEPTH-1+free)
    return lams(DEPTH, Var(DEPTH - 1 + free))


class TestDEEP001:
    """DEEP-001: Structural operations."""

    def test_equality_and_alpha(self):
        assert deep_lambda() == deep_lambda()
        assert alpha_equiv(deep_lambda(), deep_lambda())
        assert not alpha_equiv(deep_lambda(), deep_lambda(free=1))

    def test_depth(self):
        assert depth(deep_lambda()) == DEPTH + 1

    def test_well_formed(self):
        assert check_well_formed(deep_lambda(), closed=True).is_closed


class TestDEEP002:
    """DEEP-002: Shifting and substitution."""

    def test_shift(self):
        shifted = shift(1, 0, deep_lambda(free=1))
        assert shifted == deep_lambda(free=2)

    def test_substitute(self):
        result = substitute(deep_lambda(free=1), 0, I)
        assert result == lams(DEPTH, I)


class TestDEEP003:
    """DEEP-003: Reduction."""

    def test_beta_into_deep_body(self):
        term = App(Lam(deep_lambda(free=1)), Var(3))
        result = normalize(term, 10)
        assert isinstance(result, NormalForm)
        assert result.term == deep_lambda(free=4)

    def test_long_spine(self):
        term = apps(I, *([I] * DEPTH))
        result = normalize(term, DEPTH + 1)
        assert result == NormalForm(I, DEPTH)

    def test_machine_long_spine(self):
        result = evaluate(apps(I, *([I] * DEPTH)), DEPTH + 1)
        assert result.settled
        assert result.steps == DEPTH
        assert result.term == I

    def test_strong_under_many_binders(self):
        term = lams(DEPTH, App(I, Var(0)))
        result = normalize_strong(term, 5)
        assert result == NormalForm(lams(DEPTH, Var(0)), 1)


class TestDEEP004:
    """DEEP-004: Checking and encoding."""

    def test_verify_equiv(self):
        proof = verify_equiv(App(Lam(deep_lambda(free=1)), Var(0)), deep_lambda(free=1), 10)
        assert proof.equivalent
        assert proof.fuel_used == 1

    def test_inconsistency(self):
        result = check_inconsistency(App(Lam(deep_lambda(free=1)), Var(0)), 10)
        assert isinstance(result, Consistent)
        assert result.settled

    def test_codec(self):
        term = deep_lambda()
        data = encode_term(term)
        assert len(data) == DEPTH + 9
        assert decode_term(data) == term


LEVELS = 30


def doubling(levels):
    # each level binds a copy of the previous argument applied to itself
    body = Var(0)
    for _ in range(levels):
        body = App(Lam(body), App(Var(0), Var(0)))
    return App(Lam(body), Var(7))


def doubled(levels, leaf=7):
    # 2**levels leaves as a DAG with one node per level
    term = Var(leaf)
    for _ in range(levels):
        term = App(term, term)
    return term


class TestDEEP005:
    """DEEP-005: Shared subterms stay shared."""

    def test_normalize_keeps_sharing(self):
        result = normalize(doubling(LEVELS), 100)
        assert isinstance(result, NormalForm)
        assert result.steps == LEVELS + 1
        assert result.term == doubled(LEVELS)

    def test_machine_keeps_sharing(self):
        result = evaluate(doubling(LEVELS), 100)
        assert result.settled
        assert result.steps == LEVELS + 1
        assert alpha_equiv(result.term, doubled(LEVELS))

    def test_inconsistency_on_shared_normal_form(self):
        result = check_inconsistency(doubling(LEVELS), 100)
        assert isinstance(result, Consistent)
        assert result.settled
        assert result.steps == LEVELS + 1
        assert result.normal_form == doubled(LEVELS)

    def test_structural_operations_on_dag(self):
        term = doubled(LEVELS)
        assert alpha_equiv(term, doubled(LEVELS))
        assert not alpha_equiv(term, doubled(LEVELS - 1))
        assert depth(term) == LEVELS + 1
        assert check_well_formed(term, max_free=8) is term
        assert shift(1, 0, term) == doubled(LEVELS, leaf=8)
        assert substitute(term, 7, Var(2)) == doubled(LEVELS, leaf=2)


class TestDEEP006:
    """DEEP-006: Derivations longer than the recursion limit."""

    def test_long_derivation_round_trip(self):
        derivation, result = derive_whnf(apps(I, *([I] * 1500)), 2000)
        assert result.settled
        assert decode_derivation(encode_derivation(derivation)) == derivation
