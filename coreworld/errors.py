"""Structured error objects for the coreworld kernel.

Every error is machine-readable: each exception carries a ``KernelError``
record that serializes to JSON, so callers higher up the trust stack can log
or forward rejections without parsing message strings.

Only malformed *input* is an error. Running out of fuel, an inconclusive
equivalence check and a detected inconsistency are ordinary result values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    WELL_FORMEDNESS = "well_formedness"
    DECODE = "decode_error"
    PROOF_RULE = "proof_rule_violation"
    NOTATION = "notation_error"
    CONFIG = "config_error"


@dataclass
class KernelError:
    kind: ErrorKind
    message: str
    column: Optional[int] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.column is not None:
            d["location"] = {"column": self.column}
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at column {self.column}" if self.column is not None else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def well_formedness_error(index: Any, reason: str, depth: Optional[int] = None) -> KernelError:
    details: dict[str, Any] = {"index": index if isinstance(index, int) else repr(index)}
    if depth is not None:
        details["depth"] = depth
    return KernelError(
        kind=ErrorKind.WELL_FORMEDNESS,
        message=f"Ill-formed variable index {index!r}: {reason}",
        details=details,
    )


def decode_error(message: str, offset: Optional[int] = None) -> KernelError:
    details: dict[str, Any] = {}
    if offset is not None:
        details["offset"] = offset
    return KernelError(kind=ErrorKind.DECODE, message=message, details=details)


def proof_rule_error(rule: str, message: str) -> KernelError:
    return KernelError(
        kind=ErrorKind.PROOF_RULE,
        message=f"{rule}: {message}",
        details={"rule": rule},
    )


class CoreWorldError(Exception):
    """Exception wrapping a single KernelError."""

    def __init__(self, error: KernelError):
        self.error = error
        super().__init__(str(error))

    def to_dict(self) -> dict[str, Any]:
        return self.error.to_dict()

    def to_json(self, indent: int = 2) -> str:
        return self.error.to_json(indent=indent)


class WellFormednessError(CoreWorldError):
    """A term violates the index convention. Names the offending index."""

    def __init__(self, index: Any, reason: str, depth: Optional[int] = None):
        self.index = index
        self.depth = depth
        super().__init__(well_formedness_error(index, reason, depth))


class DecodeError(CoreWorldError):
    """A byte or JSON stream does not decode to a kernel object."""

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        super().__init__(decode_error(message, offset))


class ProofRuleViolation(CoreWorldError):
    """A derivation step does not follow the rule it claims."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(proof_rule_error(rule, message))


class NotationError(CoreWorldError):
    def __init__(self, message: str, column: int, text: str = ""):
        self.column = column
        super().__init__(KernelError(
            kind=ErrorKind.NOTATION,
            message=message,
            column=column,
            details={"text": text} if text else {},
        ))


class ConfigError(CoreWorldError):
    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(KernelError(
            kind=ErrorKind.CONFIG,
            message=message,
            details={"path": path} if path else {},
        ))
