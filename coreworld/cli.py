"""coreworld CLI — command-line access to the kernel.

Commands:
  coreworld normalize <term> [--fuel N] [--strong]   — reduce to WHNF (or β-normal form)
  coreworld equiv <a> <b> [--fuel N]                 — β-equivalence proof
  coreworld alpha <a> <b>                            — alpha-equivalence
  coreworld check <term> [--fuel N]                  — inconsistency check
  coreworld encode <term>                            — term → hex byte stream
  coreworld decode <hex>                             — hex byte stream → term

Terms are written in index notation: \\.0, λ.(0 0), (λ.0) 3.
Exit status: 0 positive answer, 1 negative or inconclusive answer, 2 bad input.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional

from coreworld import __version__
from coreworld.checker import verify_equiv
from coreworld.codec import decode_term, encode_term
from coreworld.config import KernelConfig, load_config
from coreworld.equivalence import alpha_equiv
from coreworld.errors import CoreWorldError, DecodeError
from coreworld.inconsistency import check_inconsistency
from coreworld.notation import format_term, parse_term
from coreworld.proofs import Consistent
from coreworld.reduction import normalize, normalize_strong
from coreworld.terms import Term, check_well_formed


def _read_term(text: str, config: KernelConfig) -> Term:
    term = parse_term(text)
    return check_well_formed(term, closed=config.strict_closed, max_free=config.max_free)


def _emit(args: argparse.Namespace, payload: dict[str, Any], text: str) -> None:
    if args.format == "text":
        print(text)
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))


def _fuel(args: argparse.Namespace, config: KernelConfig) -> int:
    return config.fuel if args.fuel is None else args.fuel


def cmd_normalize(args: argparse.Namespace, config: KernelConfig) -> int:
    """Reduce a term under the fuel budget."""
    term = _read_term(args.term, config)
    fuel = _fuel(args, config)
    driver = normalize_strong if args.strong else normalize
    result = driver(term, fuel, record=args.trace)
    status = "normal_form" if result.settled else "out_of_fuel"
    payload: dict[str, Any] = {
        "status": status,
        "term": format_term(result.term),
        "steps": result.steps,
        "fuel": fuel,
    }
    if args.trace:
        payload["trace"] = [format_term(t) for t in result.trace]
    _emit(args, payload, f"{status}: {format_term(result.term)}  ({result.steps} step(s))")
    return 0 if result.settled else 1


def cmd_equiv(args: argparse.Namespace, config: KernelConfig) -> int:
    """Check two terms for β-equivalence."""
    a = _read_term(args.a, config)
    b = _read_term(args.b, config)
    proof = verify_equiv(a, b, _fuel(args, config), record=config.record_trace and not args.no_trace)
    _emit(args, proof.to_dict(), proof.to_ascii())
    return 0 if proof.equivalent else 1


def cmd_alpha(args: argparse.Namespace, config: KernelConfig) -> int:
    """Check two terms for alpha-equivalence."""
    result = alpha_equiv(_read_term(args.a, config), _read_term(args.b, config))
    _emit(args, {"alpha_equivalent": result}, "alpha-equivalent" if result else "not alpha-equivalent")
    return 0 if result else 1


def cmd_check(args: argparse.Namespace, config: KernelConfig) -> int:
    """Look for contradictory reductions of a term."""
    term = _read_term(args.term, config)
    result = check_inconsistency(term, _fuel(args, config))
    if isinstance(result, Consistent):
        payload: dict[str, Any] = {
            "status": "consistent",
            "settled": result.settled,
            "steps": result.steps,
        }
        if result.normal_form is not None:
            payload["normal_form"] = format_term(result.normal_form)
        text = "consistent" if result.settled else "consistent (unsettled: fuel exhausted)"
        _emit(args, payload, text)
        return 0
    payload = {"status": "inconsistent", "certificate": result.to_dict()}
    _emit(args, payload, f"INCONSISTENT: {result.reason}")
    return 1


def cmd_encode(args: argparse.Namespace, config: KernelConfig) -> int:
    data = encode_term(_read_term(args.term, config))
    _emit(args, {"hex": data.hex(), "bytes": len(data)}, data.hex())
    return 0


def cmd_decode(args: argparse.Namespace, config: KernelConfig) -> int:
    try:
        data = bytes.fromhex(args.hex)
    except ValueError as exc:
        raise DecodeError(f"not a hex string: {exc}") from exc
    term = check_well_formed(decode_term(data), closed=config.strict_closed, max_free=config.max_free)
    _emit(args, {"term": format_term(term)}, format_term(term))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coreworld",
        description="Formal rewriting kernel for the indexed lambda calculus",
    )
    parser.add_argument("--version", action="version", version=f"coreworld {__version__}")
    parser.add_argument("--config", help="Path to a .coreworldrc file")
    parser.add_argument("--format", choices=["json", "text"], default=None,
                        help="Output format (default: from config, else json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")

    sub = parser.add_subparsers(dest="command")
    sub.required = True

    p = sub.add_parser("normalize", help="Reduce a term to weak head normal form")
    p.add_argument("term")
    p.add_argument("--fuel", type=int, default=None)
    p.add_argument("--strong", action="store_true", help="Reduce under binders to β-normal form")
    p.add_argument("--trace", action="store_true", help="Include every intermediate term")
    p.set_defaults(handler=cmd_normalize)

    p = sub.add_parser("equiv", help="Prove or refute β-equivalence")
    p.add_argument("a")
    p.add_argument("b")
    p.add_argument("--fuel", type=int, default=None)
    p.add_argument("--no-trace", action="store_true", help="Omit the derivation trace")
    p.set_defaults(handler=cmd_equiv)

    p = sub.add_parser("alpha", help="Alpha-equivalence")
    p.add_argument("a")
    p.add_argument("b")
    p.set_defaults(handler=cmd_alpha)

    p = sub.add_parser("check", help="Inconsistency check")
    p.add_argument("term")
    p.add_argument("--fuel", type=int, default=None)
    p.set_defaults(handler=cmd_check)

    p = sub.add_parser("encode", help="Encode a term as hex")
    p.add_argument("term")
    p.set_defaults(handler=cmd_encode)

    p = sub.add_parser("decode", help="Decode a hex term stream")
    p.add_argument("hex")
    p.set_defaults(handler=cmd_decode)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except CoreWorldError as e:
        print(e.to_json(), file=sys.stderr)
        return 2

    if args.format is None:
        args.format = config.format
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if getattr(args, "fuel", None) is not None and args.fuel < 0:
        print(json.dumps({"error": "fuel must be non-negative"}), file=sys.stderr)
        return 2

    try:
        return args.handler(args, config)
    except CoreWorldError as e:
        print(e.to_json(), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
