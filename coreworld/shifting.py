"""Index shifting.

    ↑(d, c) n      = n + d   if n >= c
                   = n       if n <  c
    ↑(d, c) (λ.M)  = λ.↑(d, c+1) M
    ↑(d, c) (M N)  = (↑(d, c) M) (↑(d, c) N)

Used by substitution whenever a term is relocated beneath more binders.
Subterms whose free bound does not reach the cutoff contain no affected
index and are returned as the very same object.
"""

from __future__ import annotations

from coreworld.errors import WellFormednessError
from coreworld.terms import App, Lam, Term, Var


def shift(amount: int, cutoff: int, term: Term) -> Term:
    """Add ``amount`` to every index of ``term`` that is ``>= cutoff``.

    Total for ``amount >= 0``. A negative amount is accepted only if no
    affected index would fall below the cutoff (that would capture it);
    otherwise ``WellFormednessError`` names the index.
    """
    if cutoff < 0:
        raise ValueError(f"cutoff must be non-negative, got {cutoff}")
    if amount == 0 or term.free_bound <= cutoff:
        return term

    # shifted copies by (id(node), cutoff): a shared subterm is shifted once
    done: dict[tuple[int, int], Term] = {}
    results: list[Term] = []
    stack: list[tuple[Term, int, bool]] = [(term, cutoff, False)]
    while stack:
        node, c, expanded = stack.pop()
        if node.free_bound <= c:
            results.append(node)
        elif isinstance(node, Var):
            shifted = node.index + amount
            if shifted < c:
                raise WellFormednessError(
                    node.index, f"shifting by {amount} would move it below cutoff {c}", depth=c - cutoff)
            results.append(Var(shifted))
        elif not expanded:
            cached = done.get((id(node), c))
            if cached is not None:
                results.append(cached)
                continue
            stack.append((node, c, True))
            if isinstance(node, Lam):
                stack.append((node.body, c + 1, False))
            else:
                stack.append((node.arg, c, False))
                stack.append((node.func, c, False))
        else:
            if isinstance(node, Lam):
                result: Term = Lam(results.pop())
            else:
                arg = results.pop()
                result = App(results.pop(), arg)
            done[(id(node), c)] = result
            results.append(result)
    return results[0]


def lift(term: Term, amount: int = 1) -> Term:
    """Shift every free index of ``term`` up by ``amount``."""
    return shift(amount, 0, term)
