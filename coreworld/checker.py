"""Semantic (β) equivalence checking.

``verify_equiv(a, b, fuel)`` decides whether two terms are β-convertible,
as far as a fuel budget allows, and returns a ``Proof``.

The check first tries alpha-equivalence, which costs nothing. Failing that
it works through a queue of corresponding positions, starting at the root.
At each position both sides are driven to weak head normal form in
lockstep, one step on each side in turn, drawing on the shared fuel pool.
The two head shapes then decide:

  λ.M   vs  λ.N                 compare M with N                  (cong-lam)
  x M1..Mn  vs  x N1..Nn        compare each Mi with Ni           (cong-app)
  anything else                 a finite counterexample           NotEquivalent

The last case is sound because a WHNF headed by a variable only ever
reduces to terms with the same head and the same number of arguments, and
never to an abstraction.

Non-termination never produces ``NotEquivalent``. A position that runs out
of fuel leaves the result ``Inconclusive`` unless some other position
still yields a counterexample.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from coreworld.equivalence import alpha_equiv
from coreworld.proofs import (
    ALPHA, BETA_WHNF, BOTH, CONG_APP, CONG_LAM, SIDE_A, SIDE_B,
    Equivalent, Inconclusive, NotEquivalent, Proof, TraceStep, Witness,
)
from coreworld.reduction import is_whnf, unwind, whnf_step
from coreworld.terms import Lam, Term, Var

logger = logging.getLogger(__name__)


class _Budget:
    """Shared fuel pool and trace for one verification run."""

    def __init__(self, fuel: int, record: bool):
        self.fuel = fuel
        self.used = 0
        self.record = record
        self.trace: list[TraceStep] = []

    @property
    def remaining(self) -> int:
        return self.fuel - self.used

    def note(self, rule: str, position: str, side: str, before: Term, after: Term) -> None:
        if self.record:
            self.trace.append(TraceStep(rule, position, side, before, after))

    def step(self, position: str, side: str, term: Term) -> Term:
        reduct = whnf_step(term)
        assert reduct is not None
        self.used += 1
        self.note(BETA_WHNF, position, side, term, reduct)
        return reduct

    def drive(self, position: str, left: Term, right: Term) -> tuple[Term, Term, bool]:
        """Reduce both sides to WHNF in lockstep. Third item: both settled."""
        left_done = is_whnf(left)
        right_done = is_whnf(right)
        while not (left_done and right_done):
            if not left_done:
                if self.remaining <= 0:
                    return left, right, False
                left = self.step(position, SIDE_A, left)
                left_done = is_whnf(left)
            if not right_done:
                if self.remaining <= 0:
                    return left, right, False
                right = self.step(position, SIDE_B, right)
                right_done = is_whnf(right)
        return left, right, True


def _spine_position(position: str, arity: int, i: int) -> str:
    # argument i of a spine with `arity` arguments
    return position + "f" * (arity - 1 - i) + "a"


def _compare_heads(position: str, left: Term, right: Term,
                   queue: deque, budget: _Budget) -> Optional[Witness]:
    if isinstance(left, Lam) and isinstance(right, Lam):
        budget.note(CONG_LAM, position, BOTH, left, right)
        queue.append((position + "b", left.body, right.body))
        return None
    if isinstance(left, Lam) or isinstance(right, Lam):
        return Witness(position, left, right, "abstraction against a variable-headed term")

    left_head, left_args = unwind(left)
    right_head, right_args = unwind(right)
    assert isinstance(left_head, Var) and isinstance(right_head, Var)
    if left_head.index != right_head.index:
        return Witness(position, left, right,
                       f"different head variables {left_head.index} and {right_head.index}")
    if len(left_args) != len(right_args):
        return Witness(position, left, right,
                       f"head variable {left_head.index} applied to "
                       f"{len(left_args)} and {len(right_args)} arguments")
    budget.note(CONG_APP, position, BOTH, left, right)
    arity = len(left_args)
    for i, (l_arg, r_arg) in enumerate(zip(left_args, right_args)):
        queue.append((_spine_position(position, arity, i), l_arg, r_arg))
    return None


def verify_equiv(term_a: Term, term_b: Term, fuel: int, record: bool = True) -> Proof:
    """Check ``term_a`` and ``term_b`` for β-equivalence within ``fuel`` steps."""
    if fuel < 0:
        raise ValueError(f"fuel must be non-negative, got {fuel}")
    budget = _Budget(fuel, record)

    if alpha_equiv(term_a, term_b):
        budget.note(ALPHA, "", BOTH, term_a, term_b)
        return Proof(term_a, term_b, Equivalent(), tuple(budget.trace), fuel, 0)

    queue: deque = deque([("", term_a, term_b)])
    pending = 0
    while queue:
        position, left, right = queue.popleft()
        if alpha_equiv(left, right):
            budget.note(ALPHA, position, BOTH, left, right)
            continue
        left, right, settled = budget.drive(position, left, right)
        if not settled:
            pending += 1
            continue
        if alpha_equiv(left, right):
            budget.note(ALPHA, position, BOTH, left, right)
            continue
        witness = _compare_heads(position, left, right, queue, budget)
        if witness is not None:
            logger.debug("verify_equiv: counterexample at %r after %d steps", position, budget.used)
            return Proof(term_a, term_b, NotEquivalent(witness),
                         tuple(budget.trace), fuel, budget.used)

    if pending:
        logger.debug("verify_equiv: inconclusive, %d position(s) unsettled", pending)
        verdict = Inconclusive(
            f"fuel exhausted after {budget.used} step(s) with {pending} position(s) "
            f"not in weak head normal form",
            pending,
        )
        return Proof(term_a, term_b, verdict, tuple(budget.trace), fuel, budget.used)
    return Proof(term_a, term_b, Equivalent(), tuple(budget.trace), fuel, budget.used)
