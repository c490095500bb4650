"""Stable encodings for terms, derivations and proofs.

Terms: a prefix byte stream, little-endian.

    Var(n)     0x01  n as u64
    Lam(M)     0x02  M
    App(M, N)  0x03  M N

Derivations: the same scheme, with terms embedded as term streams:

    BetaStep   0x01  redex contractum
    (eta)      0x02  reserved; rejected, the kernel is β only
    Refl       0x03  term
    Sym        0x04  derivation
    Trans      0x05  derivation derivation
    CongApp    0x06  derivation derivation
    CongLam    0x07  derivation

Proofs: canonical JSON (sorted keys, no whitespace, UTF-8) tagged with a
format marker, terms embedded as base64 term streams.

For every x: ``decode(encode(x)) == x``, and equal inputs give identical
bytes. Decoders reject unknown tags, truncation and trailing data with
``DecodeError``. Encoding and decoding are iterative.
"""

from __future__ import annotations

import base64
import binascii
import json
import struct
from typing import Any, Callable, Optional

from coreworld.derivations import (
    BetaStep, CongApp, CongLam, Derivation, Refl, Sym, Trans, children,
)
from coreworld.errors import DecodeError, WellFormednessError
from coreworld.proofs import (
    Equivalent, Inconclusive, InconsistencyCertificate, Inconsistent,
    NotEquivalent, Proof, TraceStep, Verdict, VerdictKind, Witness,
)
from coreworld.terms import App, Lam, Term, Var

PROOF_FORMAT = "coreworld.proof/1"

TAG_VAR = 0x01
TAG_LAM = 0x02
TAG_APP = 0x03

TAG_BETA = 0x01
TAG_ETA = 0x02
TAG_REFL = 0x03
TAG_SYM = 0x04
TAG_TRANS = 0x05
TAG_CONG_APP = 0x06
TAG_CONG_LAM = 0x07

_U64 = struct.Struct("<Q")

# (label, arity, payload, next offset)
Header = tuple[int, int, Any, int]


def _decode_tree(data: bytes, pos: int,
                 read_header: Callable[[bytes, int], Header],
                 build: Callable[[int, Any, list], Any]) -> tuple[Any, int]:
    """Decode one prefix-encoded tree starting at ``pos``."""
    pending: list[tuple[int, int, list]] = []
    while True:
        label, arity, payload, pos = read_header(data, pos)
        if arity:
            pending.append((label, arity, []))
            continue
        value = build(label, payload, [])
        while pending:
            parent_label, parent_arity, built = pending[-1]
            built.append(value)
            if len(built) < parent_arity:
                break
            pending.pop()
            value = build(parent_label, None, built)
        else:
            return value, pos


# ---------------------------------------------------------------------------
# Terms
# ---------------------------------------------------------------------------

def _write_term(term: Term, out: bytearray) -> None:
    stack = [term]
    while stack:
        node = stack.pop()
        if isinstance(node, Var):
            if node.index > 0xFFFF_FFFF_FFFF_FFFF:
                raise WellFormednessError(node.index, "index does not fit the u64 encoding")
            out.append(TAG_VAR)
            out += _U64.pack(node.index)
        elif isinstance(node, Lam):
            out.append(TAG_LAM)
            stack.append(node.body)
        else:
            out.append(TAG_APP)
            stack.append(node.arg)
            stack.append(node.func)


def _read_term_header(data: bytes, pos: int) -> Header:
    if pos >= len(data):
        raise DecodeError("unexpected end of term stream", pos)
    tag = data[pos]
    if tag == TAG_VAR:
        if pos + 1 + _U64.size > len(data):
            raise DecodeError("truncated variable index", pos + 1)
        (index,) = _U64.unpack_from(data, pos + 1)
        return TAG_VAR, 0, index, pos + 1 + _U64.size
    if tag == TAG_LAM:
        return TAG_LAM, 1, None, pos + 1
    if tag == TAG_APP:
        return TAG_APP, 2, None, pos + 1
    raise DecodeError(f"unknown term tag 0x{tag:02x}", pos)


def _build_term(label: int, payload: Any, parts: list) -> Term:
    if label == TAG_VAR:
        return Var(payload)
    if label == TAG_LAM:
        return Lam(parts[0])
    return App(parts[0], parts[1])


def _read_term(data: bytes, pos: int) -> tuple[Term, int]:
    return _decode_tree(data, pos, _read_term_header, _build_term)


def encode_term(term: Term) -> bytes:
    out = bytearray()
    _write_term(term, out)
    return bytes(out)


def decode_term(data: bytes) -> Term:
    term, end = _read_term(data, 0)
    if end != len(data):
        raise DecodeError(f"{len(data) - end} trailing byte(s) after term", end)
    return term


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------

_DERIVATION_TAGS = {
    Sym: TAG_SYM,
    Trans: TAG_TRANS,
    CongApp: TAG_CONG_APP,
    CongLam: TAG_CONG_LAM,
}
_DERIVATION_ARITY = {TAG_SYM: 1, TAG_TRANS: 2, TAG_CONG_APP: 2, TAG_CONG_LAM: 1}


def encode_derivation(derivation: Derivation) -> bytes:
    out = bytearray()
    stack = [derivation]
    while stack:
        node = stack.pop()
        if isinstance(node, Refl):
            out.append(TAG_REFL)
            _write_term(node.term, out)
        elif isinstance(node, BetaStep):
            out.append(TAG_BETA)
            _write_term(node.redex, out)
            _write_term(node.contractum, out)
        else:
            out.append(_DERIVATION_TAGS[type(node)])
            stack.extend(reversed(children(node)))
    return bytes(out)


def _read_derivation_header(data: bytes, pos: int) -> Header:
    if pos >= len(data):
        raise DecodeError("unexpected end of derivation stream", pos)
    tag = data[pos]
    if tag == TAG_REFL:
        term, end = _read_term(data, pos + 1)
        return TAG_REFL, 0, (term,), end
    if tag == TAG_BETA:
        redex, mid = _read_term(data, pos + 1)
        contractum, end = _read_term(data, mid)
        return TAG_BETA, 0, (redex, contractum), end
    if tag == TAG_ETA:
        raise DecodeError("eta steps are not part of the calculus", pos)
    if tag in _DERIVATION_ARITY:
        return tag, _DERIVATION_ARITY[tag], None, pos + 1
    raise DecodeError(f"unknown derivation tag 0x{tag:02x}", pos)


def _build_derivation(label: int, payload: Any, parts: list) -> Derivation:
    if label == TAG_REFL:
        return Refl(payload[0])
    if label == TAG_BETA:
        return BetaStep(payload[0], payload[1])
    if label == TAG_SYM:
        return Sym(parts[0])
    if label == TAG_TRANS:
        return Trans(parts[0], parts[1])
    if label == TAG_CONG_APP:
        return CongApp(parts[0], parts[1])
    return CongLam(parts[0])


def decode_derivation(data: bytes) -> Derivation:
    derivation, end = _decode_tree(data, 0, _read_derivation_header, _build_derivation)
    if end != len(data):
        raise DecodeError(f"{len(data) - end} trailing byte(s) after derivation", end)
    return derivation


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------

def _term_text(term: Term) -> str:
    return base64.b64encode(encode_term(term)).decode("ascii")


def _optional_term_text(term: Optional[Term]) -> Optional[str]:
    return None if term is None else _term_text(term)


def _text_term(text: Any, field_name: str) -> Term:
    if not isinstance(text, str):
        raise DecodeError(f"field {field_name!r} must be a base64 string")
    try:
        raw = base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise DecodeError(f"field {field_name!r} is not valid base64: {exc}") from exc
    return decode_term(raw)


def _certificate_to_wire(cert: InconsistencyCertificate) -> dict[str, Any]:
    return {
        "reason": cert.reason,
        "subject_a": _term_text(cert.subject_a),
        "subject_b": _term_text(cert.subject_b),
        "paths": list(cert.paths),
        "left": _optional_term_text(cert.left),
        "right": _optional_term_text(cert.right),
        "left_steps": cert.left_steps,
        "right_steps": cert.right_steps,
    }


def _verdict_to_wire(verdict: Verdict) -> dict[str, Any]:
    d: dict[str, Any] = {"kind": verdict.kind.value}
    if isinstance(verdict, NotEquivalent):
        w = verdict.witness
        d["witness"] = {
            "position": w.position,
            "left": _term_text(w.left),
            "right": _term_text(w.right),
            "reason": w.reason,
        }
    elif isinstance(verdict, Inconclusive):
        d["reason"] = verdict.reason
        d["pending"] = verdict.pending
    elif isinstance(verdict, Inconsistent):
        d["certificate"] = _certificate_to_wire(verdict.certificate)
    return d


def proof_to_wire(proof: Proof) -> dict[str, Any]:
    return {
        "format": PROOF_FORMAT,
        "subject_a": _term_text(proof.subject_a),
        "subject_b": _term_text(proof.subject_b),
        "verdict": _verdict_to_wire(proof.verdict),
        "trace": [
            {
                "rule": step.rule,
                "position": step.position,
                "side": step.side,
                "before": _term_text(step.before),
                "after": _term_text(step.after),
            }
            for step in proof.trace
        ],
        "fuel": proof.fuel,
        "fuel_used": proof.fuel_used,
    }


def encode_proof(proof: Proof) -> bytes:
    return json.dumps(
        proof_to_wire(proof), sort_keys=True, separators=(",", ":"), ensure_ascii=False,
    ).encode("utf-8")


def _field(d: Any, name: str, kind: type) -> Any:
    if not isinstance(d, dict) or name not in d:
        raise DecodeError(f"missing field {name!r}")
    value = d[name]
    if kind is int and isinstance(value, bool):
        raise DecodeError(f"field {name!r} must be int")
    if not isinstance(value, kind):
        raise DecodeError(f"field {name!r} must be {kind.__name__}")
    return value


def _certificate_from_wire(d: Any) -> InconsistencyCertificate:
    paths = _field(d, "paths", list)
    if len(paths) != 2 or not all(isinstance(p, str) for p in paths):
        raise DecodeError("field 'paths' must hold two strings")
    left = d.get("left")
    right = d.get("right")
    return InconsistencyCertificate(
        reason=_field(d, "reason", str),
        subject_a=_text_term(_field(d, "subject_a", str), "subject_a"),
        subject_b=_text_term(_field(d, "subject_b", str), "subject_b"),
        paths=(paths[0], paths[1]),
        left=None if left is None else _text_term(left, "left"),
        right=None if right is None else _text_term(right, "right"),
        left_steps=_field(d, "left_steps", int),
        right_steps=_field(d, "right_steps", int),
    )


def _verdict_from_wire(d: Any) -> Verdict:
    kind = _field(d, "kind", str)
    try:
        verdict_kind = VerdictKind(kind)
    except ValueError as exc:
        raise DecodeError(f"unknown verdict {kind!r}") from exc
    if verdict_kind is VerdictKind.EQUIVALENT:
        return Equivalent()
    if verdict_kind is VerdictKind.NOT_EQUIVALENT:
        w = _field(d, "witness", dict)
        return NotEquivalent(Witness(
            position=_field(w, "position", str),
            left=_text_term(_field(w, "left", str), "left"),
            right=_text_term(_field(w, "right", str), "right"),
            reason=_field(w, "reason", str),
        ))
    if verdict_kind is VerdictKind.INCONCLUSIVE:
        return Inconclusive(_field(d, "reason", str), _field(d, "pending", int))
    return Inconsistent(_certificate_from_wire(_field(d, "certificate", dict)))


def proof_from_wire(d: Any) -> Proof:
    if _field(d, "format", str) != PROOF_FORMAT:
        raise DecodeError(f"unsupported proof format {d['format']!r}")
    trace = tuple(
        TraceStep(
            rule=_field(step, "rule", str),
            position=_field(step, "position", str),
            side=_field(step, "side", str),
            before=_text_term(_field(step, "before", str), "before"),
            after=_text_term(_field(step, "after", str), "after"),
        )
        for step in _field(d, "trace", list)
    )
    return Proof(
        subject_a=_text_term(_field(d, "subject_a", str), "subject_a"),
        subject_b=_text_term(_field(d, "subject_b", str), "subject_b"),
        verdict=_verdict_from_wire(_field(d, "verdict", dict)),
        trace=trace,
        fuel=_field(d, "fuel", int),
        fuel_used=_field(d, "fuel_used", int),
    )


def decode_proof(data: bytes) -> Proof:
    try:
        wire = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"proof is not valid UTF-8 JSON: {exc}") from exc
    return proof_from_wire(wire)
