"""Reader and printer for the kernel's index notation.

    term  ::= binder term  |  atom+          application is left-associative
    atom  ::= INDEX  |  "(" term ")"  |  binder term
    binder ::= "λ" | "\\"  followed by an optional "."

Examples: ``λ.0``, ``\\.\\.1``, ``(λ.0 0) (λ.0 0)``, ``0 1 (2 3)``.

This is the notation ``str(term)`` prints; it is not a surface language and
knows nothing about names.
"""

from __future__ import annotations

from typing import Optional

from coreworld.errors import NotationError
from coreworld.terms import App, Lam, Term, Var, render

_BINDERS = ("λ", "\\")


def _tokenize(text: str) -> list[tuple[str, int]]:
    tokens: list[tuple[str, int]] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch.isspace():
            i += 1
        elif ch in _BINDERS:
            tokens.append(("λ", i + 1))
            i += 1
            if i < len(text) and text[i] == ".":
                i += 1
        elif ch in "()":
            tokens.append((ch, i + 1))
            i += 1
        elif "0" <= ch <= "9":
            start = i
            while i < len(text) and "0" <= text[i] <= "9":
                i += 1
            tokens.append((text[start:i], start + 1))
        else:
            raise NotationError(f"unexpected character {ch!r}", i + 1, text)
    return tokens


class _Reader:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos][0] if self.pos < len(self.tokens) else None

    def column(self) -> int:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos][1]
        return len(self.text) + 1

    def term(self) -> Term:
        # one frame per open binder or parenthesis: [kind, application so far]
        frames: list[list] = [["top", None]]

        def attach(atom: Term) -> None:
            frame = frames[-1]
            frame[1] = atom if frame[1] is None else App(frame[1], atom)

        while True:
            token = self.peek()
            if token == "λ":
                self.pos += 1
                frames.append(["lam", None])
            elif token == "(":
                self.pos += 1
                frames.append(["paren", None])
            elif token is not None and token != ")":
                try:
                    index = int(token)
                except ValueError as exc:
                    raise NotationError(f"index too large: {exc}", self.column(), self.text) from exc
                self.pos += 1
                attach(Var(index))
            else:
                kind, body = frames[-1]
                if body is None:
                    raise NotationError("expected a term", self.column(), self.text)
                if kind == "lam":
                    # a binder body runs to the closing parenthesis or the end
                    frames.pop()
                    attach(Lam(body))
                elif kind == "paren":
                    if token is None:
                        raise NotationError("expected ')'", self.column(), self.text)
                    self.pos += 1
                    frames.pop()
                    attach(body)
                elif token == ")":
                    raise NotationError("unbalanced ')'", self.column(), self.text)
                else:
                    return body


def parse_term(text: str) -> Term:
    return _Reader(text).term()


def format_term(term: Term, ascii_only: bool = False) -> str:
    return render(term, binder="\\." if ascii_only else "λ.")
