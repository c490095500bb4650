"""Proof artifacts.

A ``Proof`` is the immutable record of one verification request:

    subject_a, subject_b   the two terms compared
    verdict                Equivalent | NotEquivalent | Inconclusive | Inconsistent
    trace                  the derivation: reduction steps, congruence
                           descents and closing alpha checks, in order
    fuel, fuel_used        budget granted and spent

Verdicts are separate classes rather than flags so that trust-tier code has
to dispatch on every case. ``Inconclusive`` means exactly that: it is not
evidence of equivalence and not evidence of difference.

Only the equivalence checker and the inconsistency detector construct
proofs. ``coreworld.codec`` gives them a stable byte encoding for audit
logs; ``to_dict``/``to_json``/``to_ascii`` are for reporting.
"""

from __future__ import annotations

import json
import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from coreworld.terms import Term


class VerdictKind(str, Enum):
    EQUIVALENT = "equivalent"
    NOT_EQUIVALENT = "not_equivalent"
    INCONCLUSIVE = "inconclusive"
    INCONSISTENT = "inconsistent"


# Trace rules
BETA_WHNF = "beta-whnf"      # one call-by-name step on one side
CONG_LAM = "cong-lam"        # both sides are abstractions: compare bodies
CONG_APP = "cong-app"        # both sides share a variable head: compare spines
ALPHA = "alpha"              # position closed by alpha-equivalence

SIDE_A = "a"
SIDE_B = "b"
BOTH = "ab"


@dataclass(frozen=True)
class TraceStep:
    """One entry of a derivation trace.

    ``position`` is a path from the root of the subjects: ``b`` enters an
    abstraction body, ``f`` and ``a`` the function and argument of an
    application; ``""`` is the root. For ``beta-whnf`` steps ``before`` and
    ``after`` are the term on ``side`` before and after the step; for the
    other rules they are the side-a and side-b terms at the position.
    """
    rule: str
    position: str
    side: str
    before: Term
    after: Term

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "position": self.position,
            "side": self.side,
            "before": str(self.before),
            "after": str(self.after),
        }


@dataclass(frozen=True)
class Witness:
    """A finite counterexample: two weak head normal forms that cannot meet."""
    position: str
    left: Term
    right: Term
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "left": str(self.left),
            "right": str(self.right),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class InconsistencyCertificate:
    """Two individually valid derivations of one subject that disagree.

    ``paths`` names the two derivations; ``left``/``right`` are what each
    produced (``None`` when a path did not settle) and ``left_steps``/
    ``right_steps`` how many β-steps each took.
    """
    reason: str
    subject_a: Term
    subject_b: Term
    paths: tuple[str, str]
    left: Optional[Term] = None
    right: Optional[Term] = None
    left_steps: int = 0
    right_steps: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "subject_a": str(self.subject_a),
            "subject_b": str(self.subject_b),
            "paths": list(self.paths),
            "left": None if self.left is None else str(self.left),
            "right": None if self.right is None else str(self.right),
            "left_steps": self.left_steps,
            "right_steps": self.right_steps,
        }

    def to_proof(self) -> Proof:
        return Proof(
            subject_a=self.subject_a,
            subject_b=self.subject_b,
            verdict=Inconsistent(self),
        )


@dataclass(frozen=True)
class Consistent:
    """No contradiction found.

    ``settled`` is False when the check could not run to completion (fuel
    ran out on both paths); nothing contradictory was seen, but nothing was
    confirmed either.
    """
    settled: bool = True
    steps: int = 0
    normal_form: Optional[Term] = None


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Equivalent:
    kind: ClassVar[VerdictKind] = VerdictKind.EQUIVALENT


@dataclass(frozen=True)
class NotEquivalent:
    witness: Witness
    kind: ClassVar[VerdictKind] = VerdictKind.NOT_EQUIVALENT


@dataclass(frozen=True)
class Inconclusive:
    reason: str
    pending: int = 0
    kind: ClassVar[VerdictKind] = VerdictKind.INCONCLUSIVE


@dataclass(frozen=True)
class Inconsistent:
    certificate: InconsistencyCertificate
    kind: ClassVar[VerdictKind] = VerdictKind.INCONSISTENT


Verdict = Union[Equivalent, NotEquivalent, Inconclusive, Inconsistent]


def _verdict_dict(verdict: Verdict) -> dict[str, Any]:
    d: dict[str, Any] = {"kind": verdict.kind.value}
    if isinstance(verdict, NotEquivalent):
        d["witness"] = verdict.witness.to_dict()
    elif isinstance(verdict, Inconclusive):
        d["reason"] = verdict.reason
        d["pending"] = verdict.pending
    elif isinstance(verdict, Inconsistent):
        d["certificate"] = verdict.certificate.to_dict()
    return d


@dataclass(frozen=True)
class Proof:
    subject_a: Term
    subject_b: Term
    verdict: Verdict
    trace: tuple[TraceStep, ...] = ()
    fuel: int = 0
    fuel_used: int = 0

    @property
    def kind(self) -> VerdictKind:
        return self.verdict.kind

    @property
    def equivalent(self) -> bool:
        return isinstance(self.verdict, Equivalent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_a": str(self.subject_a),
            "subject_b": str(self.subject_b),
            "verdict": _verdict_dict(self.verdict),
            "fuel": self.fuel,
            "fuel_used": self.fuel_used,
            "trace": [step.to_dict() for step in self.trace],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_ascii(self) -> str:
        """Terminal summary."""
        marks = {
            VerdictKind.EQUIVALENT: "✓ EQUIVALENT",
            VerdictKind.NOT_EQUIVALENT: "✗ NOT EQUIVALENT",
            VerdictKind.INCONCLUSIVE: "? INCONCLUSIVE",
            VerdictKind.INCONSISTENT: "! INCONSISTENT",
        }
        lines = [
            f"  {marks[self.kind]}",
            f"    A         : {self.subject_a}",
            f"    B         : {self.subject_b}",
            f"    Fuel      : {self.fuel_used}/{self.fuel}",
        ]
        verdict = self.verdict
        if isinstance(verdict, NotEquivalent):
            w = verdict.witness
            lines.append(f"    Witness   : {w.left}  ≠  {w.right}  @{w.position or 'root'}")
            lines.append(f"    Reason    : {w.reason}")
        elif isinstance(verdict, Inconclusive):
            lines.append(f"    Reason    : {textwrap.fill(verdict.reason, width=72, subsequent_indent=' ' * 16)}")
        elif isinstance(verdict, Inconsistent):
            lines.append(f"    Reason    : {verdict.certificate.reason}")
        if self.trace:
            lines.append(f"    Trace     : {len(self.trace)} step(s)")
        return "\n".join(lines)
