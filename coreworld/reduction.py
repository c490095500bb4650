"""Call-by-name reduction to weak head normal form.

Evaluation contexts:

    E ::= []  |  E N

The hole sits only in function position, never under a binder and never in
argument position. A term steps iff it has the shape ``E[(λ.M) N]``, and the
step is

    (λ.M) N  →  [N/0] M

with ``N`` passed unevaluated. It may be copied, or dropped without ever
being looked at, which is what lets ``(λ.λ.0) Ω`` settle in one step.

A term is in weak head normal form (WHNF) when its application spine is
headed by a variable, or by an abstraction with no arguments left.

``normalize`` drives ``E``-steps under a fuel budget. Divergence is an
ordinary outcome: when fuel runs out the caller gets ``OutOfFuel`` with the
last term reached and may resume from it.

``reduce_once`` and ``normalize_strong`` are the full normal-order
counterparts. They contract the leftmost-outermost redex anywhere in the
term, including under binders, and are never used by ``normalize``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from coreworld.substitution import beta
from coreworld.terms import App, Lam, Term

logger = logging.getLogger(__name__)

DEFAULT_FUEL = 1000


@dataclass(frozen=True)
class NormalForm:
    """Reduction settled.

    ``trace`` is empty unless recording was requested; otherwise it holds
    every term visited, starting with the input and ending with ``term``.
    """
    term: Term
    steps: int = 0
    trace: tuple[Term, ...] = ()

    @property
    def settled(self) -> bool:
        return True


@dataclass(frozen=True)
class OutOfFuel:
    """Fuel ran out first. ``term`` is where reduction stopped."""
    term: Term
    steps: int = 0
    trace: tuple[Term, ...] = ()

    @property
    def settled(self) -> bool:
        return False


NormalizationResult = Union[NormalForm, OutOfFuel]


# ---------------------------------------------------------------------------
# Application spines
# ---------------------------------------------------------------------------

def unwind(term: Term) -> tuple[Term, list[Term]]:
    """Split ``h a1 ... an`` into ``(h, [a1, ..., an])`` with ``h`` not an App."""
    args: list[Term] = []
    while isinstance(term, App):
        args.append(term.arg)
        term = term.func
    args.reverse()
    return term, args


def _push_spine(term: Term, stack: list[Term]) -> Term:
    # stack holds pending arguments with the next one to consume on top
    while isinstance(term, App):
        stack.append(term.arg)
        term = term.func
    return term


def _rebuild(head: Term, stack: list[Term]) -> Term:
    for arg in reversed(stack):
        head = App(head, arg)
    return head


def is_whnf(term: Term) -> bool:
    head = term
    has_args = False
    while isinstance(head, App):
        head = head.func
        has_args = True
    return not (has_args and isinstance(head, Lam))


def head_redex(term: Term) -> Optional[App]:
    """The redex filling the evaluation-context hole, if any."""
    node = term
    while isinstance(node, App):
        if isinstance(node.func, Lam):
            return node
        node = node.func
    return None


def whnf_step(term: Term) -> Optional[Term]:
    """One call-by-name step, or ``None`` if ``term`` is in WHNF."""
    stack: list[Term] = []
    head = _push_spine(term, stack)
    if not (isinstance(head, Lam) and stack):
        return None
    reduct = beta(head.body, stack.pop())
    return _rebuild(reduct, stack)


def normalize(term: Term, fuel: int, record: bool = False) -> NormalizationResult:
    """Reduce ``term`` to WHNF spending at most ``fuel`` steps."""
    if fuel < 0:
        raise ValueError(f"fuel must be non-negative, got {fuel}")

    stack: list[Term] = []
    head = _push_spine(term, stack)
    steps = 0
    trace: list[Term] = [term] if record else []
    if not (isinstance(head, Lam) and stack):
        return NormalForm(term, 0, tuple(trace))

    while isinstance(head, Lam) and stack:
        if steps >= fuel:
            logger.debug("normalize: out of fuel after %d steps", steps)
            current = term if steps == 0 else _rebuild(head, stack)
            return OutOfFuel(current, steps, tuple(trace))
        head = _push_spine(beta(head.body, stack.pop()), stack)
        steps += 1
        if record:
            trace.append(_rebuild(head, stack))

    logger.debug("normalize: settled in %d steps", steps)
    return NormalForm(_rebuild(head, stack), steps, tuple(trace))


# ---------------------------------------------------------------------------
# Full normal order
# ---------------------------------------------------------------------------

def reduce_once(term: Term) -> Optional[Term]:
    """Contract the leftmost-outermost redex anywhere in ``term``.

    Returns ``None`` when the term is in β-normal form.
    """
    # visited nodes as (node, parent slot, which child of the parent)
    visited: list[tuple[Term, int, str]] = []
    stack: list[tuple[Term, int, str]] = [(term, -1, "")]
    while stack:
        node, parent, slot = stack.pop()
        if isinstance(node, App) and isinstance(node.func, Lam):
            result = beta(node.func.body, node.arg)
            while parent != -1:
                owner, parent_of_owner, owner_slot = visited[parent]
                if isinstance(owner, Lam):
                    result = Lam(result)
                elif slot == "func":
                    result = App(result, owner.arg)
                else:
                    result = App(owner.func, result)
                parent, slot = parent_of_owner, owner_slot
            return result
        if isinstance(node, Lam):
            visited.append((node, parent, slot))
            stack.append((node.body, len(visited) - 1, "body"))
        elif isinstance(node, App):
            visited.append((node, parent, slot))
            here = len(visited) - 1
            stack.append((node.arg, here, "arg"))
            stack.append((node.func, here, "func"))
    return None


def normalize_strong(term: Term, fuel: int, record: bool = False) -> NormalizationResult:
    """Reduce ``term`` to β-normal form spending at most ``fuel`` steps."""
    if fuel < 0:
        raise ValueError(f"fuel must be non-negative, got {fuel}")
    steps = 0
    trace: list[Term] = [term] if record else []
    current = term
    while True:
        reduct = reduce_once(current)
        if reduct is None:
            break
        if steps >= fuel:
            logger.debug("normalize_strong: out of fuel after %d steps", steps)
            return OutOfFuel(current, steps, tuple(trace))
        current = reduct
        steps += 1
        if record:
            trace.append(current)
    return NormalForm(current, steps, tuple(trace))
