"""coreworld — formal rewriting kernel for the indexed lambda calculus."""

__version__ = "0.1.0"

from coreworld.terms import App, Lam, Term, Var, app, apps, check_well_formed, lam, lams, var
from coreworld.errors import (
    CoreWorldError, DecodeError, ProofRuleViolation, WellFormednessError,
)
from coreworld.shifting import shift
from coreworld.substitution import beta, substitute
from coreworld.reduction import (
    DEFAULT_FUEL, NormalForm, OutOfFuel, is_whnf, normalize, normalize_strong,
    reduce_once, whnf_step,
)
from coreworld.equivalence import alpha_equiv
from coreworld.proofs import (
    Consistent, Equivalent, Inconclusive, InconsistencyCertificate, Inconsistent,
    NotEquivalent, Proof, TraceStep, VerdictKind, Witness,
)
from coreworld.checker import verify_equiv
from coreworld.derivations import (
    BetaStep, CongApp, CongLam, Refl, Sym, Trans, check_derivation, derive_whnf,
)
from coreworld.inconsistency import check_inconsistency
from coreworld.ledger import LedgerConflict, check_ledger
from coreworld.codec import (
    decode_derivation, decode_proof, decode_term,
    encode_derivation, encode_proof, encode_term,
)
