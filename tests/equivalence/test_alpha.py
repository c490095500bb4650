"""Alpha-equivalence tests — ALPHA-001 through ALPHA-003."""

from coreworld.checker import verify_equiv
from coreworld.equivalence import BinderCorrespondence, alpha_equiv
from coreworld.proofs import Equivalent
from coreworld.terms import App, Lam, Var


def from_named(expr, scope=()):
    """Index form of a tiny named syntax: ("var", x), ("lam", x, body), ("app", f, a)."""
    tag = expr[0]
    if tag == "var":
        return Var(scope.index(expr[1]))
    if tag == "lam":
        return Lam(from_named(expr[2], (expr[1],) + scope))
    return App(from_named(expr[1], scope), from_named(expr[2], scope))


class TestALPHA001:
    """ALPHA-001: Index terms compare up to binder correspondence."""

    def test_reflexive(self):
        term = Lam(App(Var(0), Lam(App(Var(1), Var(2)))))
        assert alpha_equiv(term, term)

    def test_different_binder(self):
        assert not alpha_equiv(Lam(Lam(Var(0))), Lam(Lam(Var(1))))

    def test_free_variables(self):
        assert alpha_equiv(Lam(Var(3)), Lam(Var(3)))
        assert not alpha_equiv(Lam(Var(3)), Lam(Var(2)))

    def test_bound_against_free(self):
        assert not alpha_equiv(Lam(Var(0)), Lam(Var(1)))

    def test_shape_mismatch(self):
        assert not alpha_equiv(Lam(Var(0)), App(Var(0), Var(0)))
        assert not alpha_equiv(Var(0), Lam(Var(0)))


class TestALPHA002:
    """ALPHA-002: Differently named surface terms."""

    def test_renamed_binders(self):
        k_xy = from_named(("lam", "x", ("lam", "y", ("var", "x"))))
        k_ab = from_named(("lam", "a", ("lam", "b", ("var", "a"))))
        assert k_xy == Lam(Lam(Var(1)))
        assert alpha_equiv(k_xy, k_ab)

    def test_renamed_terms_equivalent_without_fuel(self):
        s1 = from_named(("lam", "f", ("lam", "g", ("lam", "x",
                        ("app", ("app", ("var", "f"), ("var", "x")),
                         ("app", ("var", "g"), ("var", "x")))))))
        s2 = from_named(("lam", "p", ("lam", "q", ("lam", "r",
                        ("app", ("app", ("var", "p"), ("var", "r")),
                         ("app", ("var", "q"), ("var", "r")))))))
        proof = verify_equiv(s1, s2, 0)
        assert isinstance(proof.verdict, Equivalent)
        assert proof.fuel_used == 0

    def test_shadowing_names(self):
        inner = from_named(("lam", "x", ("lam", "x", ("var", "x"))))
        assert alpha_equiv(inner, Lam(Lam(Var(0))))


class TestALPHA003:
    """ALPHA-003: Binder correspondence."""

    def test_binder_of(self):
        scope = BinderCorrespondence().extend().extend()
        assert scope.binder_of(0) == 1
        assert scope.binder_of(1) == 0
        assert scope.binder_of(2) == -1

    def test_same_variable(self):
        scope = BinderCorrespondence(opened=1)
        assert scope.same_variable(0, 0)
        assert not scope.same_variable(0, 1)
        assert scope.same_variable(4, 4)
