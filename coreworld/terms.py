"""Term model for the indexed lambda calculus.

    M, N ::= n          Var(n)     de Bruijn index, 0 = nearest binder
           | λ.M        Lam(M)     introduces exactly one binder
           | M N        App(M, N)

Terms are immutable value trees and may share subterms freely. Every node
caches three facts computed from its children at construction time:

  hash        structural hash, so hashing never recurses
  free_bound  one more than the largest free index (0 for a closed term)
  size        number of nodes

``free_bound`` is what lets shifting and substitution skip, and share,
every subterm that cannot contain an affected index.

Structural equality (``==``) is an exact tree match. It is a
separate notion from alpha-equivalence (``coreworld.equivalence``), even
though the two coincide for de Bruijn terms.

All traversals here use explicit stacks; terms nested far deeper than the
interpreter's recursion limit are supported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from coreworld.errors import WellFormednessError

R = TypeVar("R")


class Term:
    """Base class of the three term forms."""

    hash_value: int
    free_bound: int
    size: int

    def __hash__(self) -> int:
        return self.hash_value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return structurally_equal(self, other)

    def __str__(self) -> str:
        return render(self)

    def __repr__(self) -> str:
        return fold(
            self,
            lambda v: f"Var({v.index})",
            lambda _, body: f"Lam({body})",
            lambda _, func, arg: f"App({func}, {arg})",
        )

    @property
    def is_closed(self) -> bool:
        return self.free_bound == 0


def _require_term(value: object, role: str) -> None:
    if not isinstance(value, Term):
        raise TypeError(f"{role} must be a Term, got {type(value).__name__}")


@dataclass(frozen=True, eq=False, repr=False)
class Var(Term):
    index: int
    hash_value: int = field(init=False, compare=False)
    free_bound: int = field(init=False, compare=False)
    size: int = field(init=False, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int):
            raise WellFormednessError(self.index, "index must be an int")
        if self.index < 0:
            raise WellFormednessError(self.index, "index must be non-negative")
        object.__setattr__(self, "hash_value", hash(("var", self.index)))
        object.__setattr__(self, "free_bound", self.index + 1)
        object.__setattr__(self, "size", 1)


@dataclass(frozen=True, eq=False, repr=False)
class Lam(Term):
    body: Term
    hash_value: int = field(init=False, compare=False)
    free_bound: int = field(init=False, compare=False)
    size: int = field(init=False, compare=False)

    def __post_init__(self) -> None:
        _require_term(self.body, "abstraction body")
        object.__setattr__(self, "hash_value", hash(("lam", self.body.hash_value)))
        object.__setattr__(self, "free_bound", max(self.body.free_bound - 1, 0))
        object.__setattr__(self, "size", self.body.size + 1)


@dataclass(frozen=True, eq=False, repr=False)
class App(Term):
    func: Term
    arg: Term
    hash_value: int = field(init=False, compare=False)
    free_bound: int = field(init=False, compare=False)
    size: int = field(init=False, compare=False)

    def __post_init__(self) -> None:
        _require_term(self.func, "function position")
        _require_term(self.arg, "argument position")
        object.__setattr__(self, "hash_value",
                           hash(("app", self.func.hash_value, self.arg.hash_value)))
        object.__setattr__(self, "free_bound", max(self.func.free_bound, self.arg.free_bound))
        object.__setattr__(self, "size", self.func.size + self.arg.size + 1)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def var(index: int) -> Var:
    return Var(index)


def lam(body: Term) -> Lam:
    return Lam(body)


def app(func: Term, arg: Term) -> App:
    return App(func, arg)


def apps(func: Term, *args: Term) -> Term:
    """Left-nested application ``func a1 a2 ... an``."""
    result = func
    for arg in args:
        result = App(result, arg)
    return result


def lams(count: int, body: Term) -> Term:
    """``count`` nested abstractions around ``body``."""
    result = body
    for _ in range(count):
        result = Lam(result)
    return result


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def fold(
    term: Term,
    on_var: Callable[[Var], R],
    on_lam: Callable[[Lam, R], R],
    on_app: Callable[[App, R, R], R],
) -> R:
    """Bottom-up catamorphism over a term, without recursion."""
    # a node reached along several paths is folded once
    done: dict[int, R] = {}
    results: list[R] = []
    stack: list[tuple[Term, bool]] = [(term, False)]
    while stack:
        node, expanded = stack.pop()
        if isinstance(node, Var):
            results.append(on_var(node))
        elif not expanded:
            if id(node) in done:
                results.append(done[id(node)])
                continue
            stack.append((node, True))
            if isinstance(node, Lam):
                stack.append((node.body, False))
            else:
                stack.append((node.arg, False))
                stack.append((node.func, False))
        else:
            if isinstance(node, Lam):
                value = on_lam(node, results.pop())
            else:
                arg = results.pop()
                value = on_app(node, results.pop(), arg)
            done[id(node)] = value
            results.append(value)
    return results[0]


def structurally_equal(a: Term, b: Term) -> bool:
    """Exact tree match."""
    seen: set[tuple[int, int]] = set()
    stack = [(a, b)]
    while stack:
        left, right = stack.pop()
        if left is right:
            continue
        pair = (id(left), id(right))
        if pair in seen:
            continue
        seen.add(pair)
        if left.hash_value != right.hash_value or type(left) is not type(right):
            return False
        if isinstance(left, Var):
            if left.index != right.index:
                return False
        elif isinstance(left, Lam):
            stack.append((left.body, right.body))
        else:
            stack.append((left.arg, right.arg))
            stack.append((left.func, right.func))
    return True


def depth(term: Term) -> int:
    """Height of the term tree; a lone variable has depth 1."""
    return fold(
        term,
        lambda _: 1,
        lambda _, body: body + 1,
        lambda _, func, arg: max(func, arg) + 1,
    )


def free_indices(term: Term) -> frozenset[int]:
    """Free indices of ``term``, counted from its outermost scope."""
    seen: set[tuple[int, int]] = set()
    found: set[int] = set()
    stack: list[tuple[Term, int]] = [(term, 0)]
    while stack:
        node, binders = stack.pop()
        if node.free_bound <= binders:
            continue
        if (id(node), binders) in seen:
            continue
        seen.add((id(node), binders))
        if isinstance(node, Var):
            found.add(node.index - binders)
        elif isinstance(node, Lam):
            stack.append((node.body, binders + 1))
        else:
            stack.append((node.arg, binders))
            stack.append((node.func, binders))
    return frozenset(found)


def check_well_formed(term: Term, closed: bool = False, max_free: Optional[int] = None) -> Term:
    """Validate ``term`` and return it unchanged.

    Construction already guarantees non-negative integer indices. This
    additionally walks the tree when the caller asks for a closed term
    (``closed=True``) or caps the free indices (``max_free``), and raises
    ``WellFormednessError`` naming the first offending occurrence.
    """
    limit = 0 if closed else max_free
    if not isinstance(term, Term):
        raise TypeError(f"expected a Term, got {type(term).__name__}")
    if limit is None or term.free_bound <= limit:
        return term
    seen: set[tuple[int, int]] = set()
    stack: list[tuple[Term, int]] = [(term, 0)]
    while stack:
        node, binders = stack.pop()
        if node.free_bound - binders <= limit:
            continue
        if (id(node), binders) in seen:
            continue
        seen.add((id(node), binders))
        if isinstance(node, Var):
            reason = ("free variable in a term required to be closed" if closed
                      else f"free index {node.index - binders} exceeds limit {limit}")
            raise WellFormednessError(node.index, reason, depth=binders)
        if isinstance(node, Lam):
            stack.append((node.body, binders + 1))
        else:
            stack.append((node.arg, binders))
            stack.append((node.func, binders))
    return term


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render(term: Term, binder: str = "λ.") -> str:
    """Kernel notation: ``λ.0``, ``(λ.(1 0)) (λ.0)``, ``0 1 (2 3)``."""

    def on_lam(node: Lam, body: str) -> str:
        return f"{binder}({body})" if isinstance(node.body, App) else f"{binder}{body}"

    def on_app(node: App, func: str, arg: str) -> str:
        if isinstance(node.func, Lam):
            func = f"({func})"
        if not isinstance(node.arg, Var):
            arg = f"({arg})"
        return f"{func} {arg}"

    return fold(term, lambda v: str(v.index), on_lam, on_app)
