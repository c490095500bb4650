"""Joint consistency of many proof artifacts.

Each proof is individually checked when it is produced, but a collection of
them (an audit log, a cache of trust-tier results) can still contradict
itself: ``A = B`` and ``B = C`` recorded alongside ``A ≠ C``.

``check_ledger`` hands the recorded claims to Z3 over an uninterpreted sort
of terms:

    var : Int -> Term     lam : Term -> Term     app : Term x Term -> Term

Equivalent proofs become equalities, NotEquivalent proofs disequalities,
and distinct variables are asserted distinct (they are distinct β-normal
forms). Congruence closure then does the rest: from ``A = B`` it knows
``app(A, C) = app(B, C)`` and ``lam(A) = lam(B)``. β-equivalence classes of
terms are a model of every true claim, so an unsatisfiable ledger contains
a false one. The unsat core names the proofs involved.

Inconclusive and Inconsistent proofs assert nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Union

import z3

from coreworld.proofs import Consistent, Equivalent, NotEquivalent, Proof
from coreworld.terms import Term, Var, fold

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerConflict:
    """Proofs that cannot all hold. Indices refer to the input order."""
    indices: tuple[int, ...]
    proofs: tuple[Proof, ...]

    @property
    def reason(self) -> str:
        listed = ", ".join(str(i) for i in self.indices)
        return f"proofs {listed} contradict each other"


LedgerResult = Union[Consistent, LedgerConflict]


class _TermEncoder:
    def __init__(self) -> None:
        self.sort = z3.DeclareSort("Term")
        self.var = z3.Function("var", z3.IntSort(), self.sort)
        self.lam = z3.Function("lam", self.sort, self.sort)
        self.app = z3.Function("app", self.sort, self.sort, self.sort)
        self.indices: set[int] = set()
        self._memo: dict[Term, z3.ExprRef] = {}

    def encode(self, term: Term) -> z3.ExprRef:
        cached = self._memo.get(term)
        if cached is not None:
            return cached

        def on_var(node: Var) -> z3.ExprRef:
            self.indices.add(node.index)
            return self.var(node.index)

        expr = fold(
            term,
            on_var,
            lambda _, body: self.lam(body),
            lambda _, func, arg: self.app(func, arg),
        )
        self._memo[term] = expr
        return expr


def check_ledger(proofs: Iterable[Proof]) -> LedgerResult:
    """Check that ``proofs`` can all hold at once."""
    proofs = tuple(proofs)
    encoder = _TermEncoder()
    solver = z3.Solver()
    labels: dict[str, int] = {}

    for i, proof in enumerate(proofs):
        verdict = proof.verdict
        if isinstance(verdict, Equivalent):
            claim = encoder.encode(proof.subject_a) == encoder.encode(proof.subject_b)
        elif isinstance(verdict, NotEquivalent):
            claim = encoder.encode(proof.subject_a) != encoder.encode(proof.subject_b)
        else:
            continue
        label = f"proof_{i}"
        labels[label] = i
        solver.assert_and_track(claim, z3.Bool(label))

    if len(encoder.indices) > 1:
        solver.add(z3.Distinct(*[encoder.var(i) for i in sorted(encoder.indices)]))

    outcome = solver.check()
    if outcome == z3.unsat:
        indices = tuple(sorted(labels[str(c)] for c in solver.unsat_core()))
        logger.debug("check_ledger: conflict among proofs %s", indices)
        return LedgerConflict(indices, tuple(proofs[i] for i in indices))
    if outcome == z3.unknown:
        logger.debug("check_ledger: solver returned unknown: %s", solver.reason_unknown())
        return Consistent(settled=False)
    return Consistent(settled=True)
