"""Krivine machine: call-by-name weak-head evaluation without substitution.

State is a triple (code, environment, argument stack):

    (M N, e, s)      ->  (M, e, (N, e) :: s)
    (λ.M, e, c :: s) ->  (M, c :: e, s)          one β-step
    (n, e, s)        ->  (M, e', s)               if e[n] = (M, e')

It stops at an abstraction with an empty stack, or at a variable beyond the
environment (a free variable heading a neutral term). The final state is
read back into an ordinary term by instantiating each closure's
environment.

This is a second, independent implementation of the same reduction
strategy as ``coreworld.reduction.normalize``. It shares no code with the
substitution engine except the final read-back, and takes exactly the same
number of β-steps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from coreworld.shifting import shift
from coreworld.terms import App, Lam, Term, Var


@dataclass(frozen=True)
class Closure:
    term: Term
    env: Optional[Frame]


@dataclass(frozen=True)
class Frame:
    """One environment entry; ``parent`` is the rest of the environment."""
    closure: Closure
    parent: Optional[Frame]
    length: int


@dataclass(frozen=True)
class MachineResult:
    term: Term
    steps: int
    settled: bool


def _extend(closure: Closure, env: Optional[Frame]) -> Frame:
    return Frame(closure, env, 1 if env is None else env.length + 1)


def _lookup(env: Optional[Frame], index: int) -> Optional[Closure]:
    frame = env
    for _ in range(index):
        if frame is None:
            return None
        frame = frame.parent
    return None if frame is None else frame.closure


def _length(env: Optional[Frame]) -> int:
    return 0 if env is None else env.length


_VISIT, _LAM, _APP, _SHIFT, _STORE = range(5)

_Memo = dict[tuple[int, int, int], Term]


def read_back(term: Term, env: Optional[Frame]) -> Term:
    """The plain term denoted by closure ``(term, env)``."""
    return _read_back(term, env, {})


def _read_back(term: Term, env: Optional[Frame], memo: _Memo) -> Term:
    # memo is keyed by (id(node), id(env), binders); a closure reached through
    # several variables is read back once and the result is shared
    results: list[Term] = []
    tasks: list[tuple[int, Optional[Term], Optional[Frame], int]] = [(_VISIT, term, env, 0)]
    while tasks:
        op, node, scope, binders = tasks.pop()
        if op == _LAM:
            results.append(Lam(results.pop()))
        elif op == _APP:
            arg = results.pop()
            func = results.pop()
            results.append(App(func, arg))
        elif op == _SHIFT:
            results.append(shift(binders, 0, results.pop()))
        elif op == _STORE:
            memo[(id(node), id(scope), binders)] = results[-1]
        elif node.free_bound <= binders:
            results.append(node)
        else:
            key = (id(node), id(scope), binders)
            if key in memo:
                results.append(memo[key])
                continue
            if isinstance(node, Var):
                closure = _lookup(scope, node.index - binders)
                if closure is None:
                    results.append(Var(node.index - _length(scope)))
                    continue
                tasks.append((_STORE, node, scope, binders))
                if binders:
                    tasks.append((_SHIFT, None, None, binders))
                tasks.append((_VISIT, closure.term, closure.env, 0))
            elif isinstance(node, Lam):
                tasks.append((_STORE, node, scope, binders))
                tasks.append((_LAM, None, None, binders))
                tasks.append((_VISIT, node.body, scope, binders + 1))
            else:
                tasks.append((_STORE, node, scope, binders))
                tasks.append((_APP, None, None, binders))
                tasks.append((_VISIT, node.arg, scope, binders))
                tasks.append((_VISIT, node.func, scope, binders))
    return results[0]


def evaluate(term: Term, fuel: int) -> MachineResult:
    """Run the machine on ``term`` for at most ``fuel`` β-steps."""
    if fuel < 0:
        raise ValueError(f"fuel must be non-negative, got {fuel}")
    code = term
    env: Optional[Frame] = None
    stack: list[Closure] = []
    steps = 0
    settled = True

    while True:
        if isinstance(code, App):
            stack.append(Closure(code.arg, env))
            code = code.func
        elif isinstance(code, Lam):
            if not stack:
                break
            if steps >= fuel:
                settled = False
                break
            env = _extend(stack.pop(), env)
            code = code.body
            steps += 1
        else:
            closure = _lookup(env, code.index)
            if closure is None:
                break
            code, env = closure.term, closure.env

    memo: _Memo = {}
    head = _read_back(code, env, memo)
    for closure in reversed(stack):
        head = App(head, _read_back(closure.term, closure.env, memo))
    return MachineResult(head, steps, settled)
