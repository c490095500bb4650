"""Inconsistency detection.

The calculus is confluent and call-by-name reduction is deterministic, so a
correct kernel can never derive two different weak head normal forms for
one term. When it does, something upstream built a bad proof obligation
(or the kernel itself is broken) and the result must not be trusted.

``check_inconsistency`` looks for such contradictions:

  * for a term, it runs the substitution-based normalizer and the Krivine
    machine side by side under the same fuel and compares what they reach,
    how many β-steps they needed, and whether they settled at all;
  * for a derivation, it replays every rule and then asks the equivalence
    checker whether the concluded equation has a finite counterexample.

Disagreement produces an ``InconsistencyCertificate``; anything else is
``Consistent``.
"""

from __future__ import annotations

import logging
from typing import Union

from coreworld.checker import verify_equiv
from coreworld.derivations import DERIVATION_TYPES, Derivation, check_derivation
from coreworld.equivalence import alpha_equiv
from coreworld.machine import evaluate
from coreworld.proofs import Consistent, InconsistencyCertificate, NotEquivalent
from coreworld.reduction import DEFAULT_FUEL, normalize
from coreworld.terms import Term

logger = logging.getLogger(__name__)

SMALL_STEP = "small-step"
KRIVINE = "krivine"

ConsistencyResult = Union[Consistent, InconsistencyCertificate]


def _check_term(term: Term, fuel: int) -> ConsistencyResult:
    small = normalize(term, fuel)
    machine = evaluate(term, fuel)

    def certificate(reason: str) -> InconsistencyCertificate:
        logger.debug("check_inconsistency: %s", reason)
        return InconsistencyCertificate(
            reason=reason,
            subject_a=term,
            subject_b=term,
            paths=(SMALL_STEP, KRIVINE),
            left=small.term if small.settled else None,
            right=machine.term if machine.settled else None,
            left_steps=small.steps,
            right_steps=machine.steps,
        )

    if small.settled != machine.settled:
        return certificate("one reduction path settled within the budget and the other did not")
    if small.steps != machine.steps:
        return certificate(
            f"reduction paths took {small.steps} and {machine.steps} β-steps")
    if small.settled and not alpha_equiv(small.term, machine.term):
        return certificate("reduction paths reached alpha-inequivalent weak head normal forms")
    return Consistent(
        settled=small.settled,
        steps=small.steps,
        normal_form=small.term if small.settled else None,
    )


def _check_derivation(derivation: Derivation, fuel: int) -> ConsistencyResult:
    lhs, rhs = check_derivation(derivation)
    proof = verify_equiv(lhs, rhs, fuel, record=False)
    if isinstance(proof.verdict, NotEquivalent):
        witness = proof.verdict.witness
        logger.debug("check_inconsistency: derivation refuted at %r", witness.position)
        return InconsistencyCertificate(
            reason=f"derivation concludes an equation refuted by a counterexample: {witness.reason}",
            subject_a=lhs,
            subject_b=rhs,
            paths=("derivation", "verify_equiv"),
            left=witness.left,
            right=witness.right,
            right_steps=proof.fuel_used,
        )
    return Consistent(settled=proof.equivalent, steps=proof.fuel_used)


def check_inconsistency(subject: Union[Term, Derivation], fuel: int = DEFAULT_FUEL) -> ConsistencyResult:
    """Look for a self-contradiction in ``subject``.

    ``ProofRuleViolation`` propagates from derivations whose steps do not
    follow their rules; that is a malformed proof, not a contradiction.
    """
    if fuel < 0:
        raise ValueError(f"fuel must be non-negative, got {fuel}")
    if isinstance(subject, Term):
        return _check_term(subject, fuel)
    if isinstance(subject, DERIVATION_TYPES):
        return _check_derivation(subject, fuel)
    raise TypeError(f"expected a Term or a derivation, got {type(subject).__name__}")
