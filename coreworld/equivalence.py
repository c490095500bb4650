"""Alpha-equivalence.

Two terms are alpha-equivalent when they differ at most in the names of
bound variables. With de Bruijn indices names are gone, so the check walks
both trees in lockstep, opening corresponding binders as pairs, and asks of
each pair of variable occurrences whether they denote the same thing:

  * both bound  -> they must point at the same binder pair
  * both free   -> they must be the same free reference
  * otherwise   -> different

Purely structural: nothing is reduced, no fuel is needed, and the check
always terminates.
"""

from __future__ import annotations

from dataclasses import dataclass

from coreworld.terms import Lam, Term, Var


@dataclass(frozen=True)
class BinderCorrespondence:
    """Binder pairs opened so far in one comparison.

    Binders are opened one pair at a time, so pair ``k`` (counted outward
    from the root) sits at level ``k`` on both sides.
    """
    opened: int = 0

    def extend(self) -> BinderCorrespondence:
        return BinderCorrespondence(self.opened + 1)

    def binder_of(self, index: int) -> int:
        """Level of the binder an index refers to, or -1 if it is free."""
        if index < self.opened:
            return self.opened - 1 - index
        return -1

    def same_variable(self, left: int, right: int) -> bool:
        left_binder = self.binder_of(left)
        right_binder = self.binder_of(right)
        if left_binder >= 0 or right_binder >= 0:
            return left_binder == right_binder
        return left - self.opened == right - self.opened


def alpha_equiv(a: Term, b: Term) -> bool:
    root = BinderCorrespondence()
    seen: set[tuple[int, int, int]] = set()
    stack: list[tuple[Term, Term, BinderCorrespondence]] = [(a, b, root)]
    while stack:
        left, right, scope = stack.pop()
        if left is right:
            continue
        key = (id(left), id(right), scope.opened)
        if key in seen:
            continue
        seen.add(key)
        if isinstance(left, Var) and isinstance(right, Var):
            if not scope.same_variable(left.index, right.index):
                return False
        elif isinstance(left, Lam) and isinstance(right, Lam):
            stack.append((left.body, right.body, scope.extend()))
        elif type(left) is type(right):
            stack.append((left.arg, right.arg, scope))
            stack.append((left.func, right.func, scope))
        else:
            return False
    return True
