"""Capture-avoiding substitution.

    [N/k] k       = N
    [N/k] n       = n - 1          if n > k
    [N/k] n       = n              if n < k
    [N/k] (λ.M)   = λ.[↑N/k+1] M    ↑N lifts the free indices of N by one
    [N/k] (M1 M2) = ([N/k] M1) ([N/k] M2)

The binder at ``k`` disappears from the result, which is why indices above
it move down by one. Every binder crossed on the way to an occurrence lifts
the replacement once more; the lifted copies are computed at most once per
depth and shared by every occurrence at that depth.
"""

from __future__ import annotations

from coreworld.shifting import shift
from coreworld.terms import App, Lam, Term, Var


def substitute(term: Term, target_index: int, replacement: Term) -> Term:
    """Replace occurrences of ``target_index`` in ``term`` by ``replacement``."""
    if target_index < 0:
        raise ValueError(f"target index must be non-negative, got {target_index}")
    if term.free_bound <= target_index:
        return term

    lifted = [replacement]

    def replacement_at(binders: int) -> Term:
        while len(lifted) <= binders:
            lifted.append(shift(1, 0, lifted[-1]))
        return lifted[binders]

    done: dict[tuple[int, int], Term] = {}
    results: list[Term] = []
    stack: list[tuple[Term, int, bool]] = [(term, 0, False)]
    while stack:
        node, binders, expanded = stack.pop()
        target = target_index + binders
        if node.free_bound <= target:
            results.append(node)
        elif isinstance(node, Var):
            if node.index == target:
                results.append(replacement_at(binders))
            else:
                results.append(Var(node.index - 1))
        elif not expanded:
            cached = done.get((id(node), binders))
            if cached is not None:
                results.append(cached)
                continue
            stack.append((node, binders, True))
            if isinstance(node, Lam):
                stack.append((node.body, binders + 1, False))
            else:
                stack.append((node.arg, binders, False))
                stack.append((node.func, binders, False))
        else:
            if isinstance(node, Lam):
                result: Term = Lam(results.pop())
            else:
                arg = results.pop()
                result = App(results.pop(), arg)
            done[(id(node), binders)] = result
            results.append(result)
    return results[0]


def beta(body: Term, argument: Term) -> Term:
    """Contract ``(λ.body) argument``."""
    return substitute(body, 0, argument)
