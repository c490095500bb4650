"""Explicit β-equational derivations.

A derivation is a proof term for an equation ``lhs = rhs``:

    Refl(M)                   M = M
    Sym(p)                    from p : M = N        infer N = M
    Trans(p, q)               from M = N, N' = P    infer M = P   (N ≡α N')
    BetaStep(R, C)            R = C   where R is (λ.M) N and C is [N/0]M
    CongApp(p, q)             from M = M', N = N'   infer M N = M' N'
    CongLam(p)                from M = N            infer λ.M = λ.N

There is no η rule: equivalence in this kernel is β only.

``check_derivation`` replays every rule and returns the proven equation, or
raises ``ProofRuleViolation`` at the first step that does not follow its
rule. ``derive_whnf`` produces the derivation of ``M = WHNF(M)`` that the
normalizer followed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from coreworld.equivalence import alpha_equiv
from coreworld.errors import ProofRuleViolation
from coreworld.reduction import NormalizationResult, normalize, unwind
from coreworld.substitution import beta
from coreworld.terms import App, Lam, Term


class _Rule:
    """Shared equality for derivation nodes.

    Derivations can be as long as the reductions they record, so equality
    walks both proofs with an explicit stack and hashing reads a value
    cached at construction.
    """

    hash_value: int

    def _cache_hash(self, *parts: object) -> None:
        object.__setattr__(self, "hash_value", hash((type(self).__name__,) + parts))

    def __hash__(self) -> int:
        return self.hash_value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Rule):
            return NotImplemented
        return _same_derivation(self, other)


@dataclass(frozen=True, eq=False)
class Refl(_Rule):
    term: Term
    hash_value: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._cache_hash(self.term.hash_value)


@dataclass(frozen=True, eq=False)
class Sym(_Rule):
    proof: Derivation
    hash_value: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._cache_hash(self.proof.hash_value)


@dataclass(frozen=True, eq=False)
class Trans(_Rule):
    left: Derivation
    right: Derivation
    hash_value: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._cache_hash(self.left.hash_value, self.right.hash_value)


@dataclass(frozen=True, eq=False)
class BetaStep(_Rule):
    redex: Term
    contractum: Term
    hash_value: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._cache_hash(self.redex.hash_value, self.contractum.hash_value)


@dataclass(frozen=True, eq=False)
class CongApp(_Rule):
    func: Derivation
    arg: Derivation
    hash_value: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._cache_hash(self.func.hash_value, self.arg.hash_value)


@dataclass(frozen=True, eq=False)
class CongLam(_Rule):
    body: Derivation
    hash_value: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._cache_hash(self.body.hash_value)


Derivation = Union[Refl, Sym, Trans, BetaStep, CongApp, CongLam]
DERIVATION_TYPES = (Refl, Sym, Trans, BetaStep, CongApp, CongLam)

Equation = tuple[Term, Term]


def children(node: Derivation) -> tuple[Derivation, ...]:
    if isinstance(node, Sym):
        return (node.proof,)
    if isinstance(node, Trans):
        return (node.left, node.right)
    if isinstance(node, CongApp):
        return (node.func, node.arg)
    if isinstance(node, CongLam):
        return (node.body,)
    return ()


def _same_derivation(a: _Rule, b: _Rule) -> bool:
    seen: set[tuple[int, int]] = set()
    stack = [(a, b)]
    while stack:
        left, right = stack.pop()
        if left is right or (id(left), id(right)) in seen:
            continue
        seen.add((id(left), id(right)))
        if type(left) is not type(right) or left.hash_value != right.hash_value:
            return False
        if isinstance(left, Refl):
            if left.term != right.term:
                return False
        elif isinstance(left, BetaStep):
            if left.redex != right.redex or left.contractum != right.contractum:
                return False
        else:
            stack.extend(zip(children(left), children(right)))
    return True


def _conclude(node: Derivation, premises: list[Equation]) -> Equation:
    if isinstance(node, Refl):
        return node.term, node.term
    if isinstance(node, BetaStep):
        redex = node.redex
        if not (isinstance(redex, App) and isinstance(redex.func, Lam)):
            raise ProofRuleViolation("beta", f"{redex} is not a redex")
        expected = beta(redex.func.body, redex.arg)
        if expected != node.contractum:
            raise ProofRuleViolation(
                "beta", f"{redex} contracts to {expected}, not {node.contractum}")
        return redex, node.contractum
    if isinstance(node, Sym):
        lhs, rhs = premises[0]
        return rhs, lhs
    if isinstance(node, Trans):
        (l1, r1), (l2, r2) = premises
        if not alpha_equiv(r1, l2):
            raise ProofRuleViolation(
                "trans", f"middle terms differ: {r1} and {l2}")
        return l1, r2
    if isinstance(node, CongApp):
        (f1, f2), (a1, a2) = premises
        return App(f1, a1), App(f2, a2)
    if isinstance(node, CongLam):
        b1, b2 = premises[0]
        return Lam(b1), Lam(b2)
    raise ProofRuleViolation("unknown", f"not a derivation: {type(node).__name__}")


def check_derivation(derivation: Derivation) -> Equation:
    """Replay ``derivation`` and return the equation it proves."""
    results: list[Equation] = []
    stack: list[tuple[Derivation, bool]] = [(derivation, False)]
    while stack:
        node, expanded = stack.pop()
        premises = children(node)
        if not premises:
            results.append(_conclude(node, []))
        elif not expanded:
            stack.append((node, True))
            for premise in reversed(premises):
                stack.append((premise, False))
        else:
            taken = results[-len(premises):]
            del results[-len(premises):]
            results.append(_conclude(node, taken))
    return results[0]


def _step_derivation(term: Term) -> Derivation:
    head, args = unwind(term)
    assert isinstance(head, Lam) and args
    redex = App(head, args[0])
    step: Derivation = BetaStep(redex, beta(head.body, args[0]))
    for arg in args[1:]:
        step = CongApp(step, Refl(arg))
    return step


def derive_whnf(term: Term, fuel: int) -> tuple[Derivation, NormalizationResult]:
    """Derivation of ``term = t`` where ``t`` is where normalization stopped."""
    result = normalize(term, fuel, record=True)
    derivation: Derivation = Refl(term)
    for i, current in enumerate(result.trace[:-1]):
        step = _step_derivation(current)
        derivation = step if i == 0 else Trans(derivation, step)
    return derivation, result
