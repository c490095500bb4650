"""Term model tests — TERM-001 through TERM-006."""

import pytest

from coreworld.errors import ErrorKind, WellFormednessError
from coreworld.terms import (
    App, Lam, Var, apps, check_well_formed, depth, free_indices, lams, render,
)

I = Lam(Var(0))


class TestTERM001:
    """TERM-001: Construction rejects malformed indices."""

    def test_negative_index(self):
        with pytest.raises(WellFormednessError) as exc:
            Var(-1)
        assert exc.value.index == -1
        assert exc.value.error.kind is ErrorKind.WELL_FORMEDNESS

    def test_non_integer_index(self):
        with pytest.raises(WellFormednessError):
            Var("1")
        with pytest.raises(WellFormednessError):
            Var(1.0)

    def test_bool_is_not_an_index(self):
        with pytest.raises(WellFormednessError):
            Var(True)

    def test_children_must_be_terms(self):
        with pytest.raises(TypeError):
            Lam(3)
        with pytest.raises(TypeError):
            App(Var(0), "x")

    def test_terms_are_immutable(self):
        v = Var(0)
        with pytest.raises(AttributeError):
            v.index = 2


class TestTERM002:
    """TERM-002: Cached free bound and size."""

    def test_free_bound(self):
        assert Var(3).free_bound == 4
        assert Lam(Var(0)).free_bound == 0
        assert Lam(Var(2)).free_bound == 2
        assert App(Var(1), Lam(Var(4))).free_bound == 4

    def test_closed(self):
        assert I.is_closed
        assert not Lam(Var(1)).is_closed

    def test_size(self):
        assert Var(0).size == 1
        assert App(I, I).size == 5

    def test_free_indices(self):
        assert free_indices(Lam(App(Var(0), Var(3)))) == frozenset({2})
        assert free_indices(I) == frozenset()
        assert free_indices(App(Var(1), Lam(Lam(Var(2))))) == frozenset({0, 1})

    def test_depth(self):
        assert depth(Var(0)) == 1
        assert depth(lams(3, Var(0))) == 4


class TestTERM003:
    """TERM-003: Structural equality and hashing."""

    def test_equal_trees(self):
        assert App(Lam(Var(0)), Var(1)) == App(Lam(Var(0)), Var(1))
        assert hash(App(Lam(Var(0)), Var(1))) == hash(App(Lam(Var(0)), Var(1)))

    def test_different_trees(self):
        assert Lam(Var(0)) != Lam(Var(1))
        assert Var(0) != Lam(Var(0))

    def test_not_equal_to_non_terms(self):
        assert Var(0) != 0

    def test_usable_as_dict_keys(self):
        table = {Lam(Var(0)): "id"}
        assert table[Lam(Var(0))] == "id"


class TestTERM004:
    """TERM-004: Helper constructors."""

    def test_apps_is_left_nested(self):
        assert apps(Var(0), Var(1), Var(2)) == App(App(Var(0), Var(1)), Var(2))

    def test_apps_without_arguments(self):
        assert apps(Var(0)) == Var(0)

    def test_lams(self):
        assert lams(2, Var(1)) == Lam(Lam(Var(1)))


class TestTERM005:
    """TERM-005: Well-formedness checks on demand."""

    def test_closed_accepts_closed_term(self):
        assert check_well_formed(I, closed=True) is I

    def test_closed_rejects_free_variable(self):
        with pytest.raises(WellFormednessError) as exc:
            check_well_formed(Lam(App(Var(0), Var(1))), closed=True)
        assert exc.value.index == 1
        assert exc.value.depth == 1

    def test_max_free(self):
        assert check_well_formed(Var(1), max_free=2) == Var(1)
        with pytest.raises(WellFormednessError) as exc:
            check_well_formed(Lam(Var(3)), max_free=2)
        assert exc.value.to_dict()["details"]["index"] == 3

    def test_open_terms_allowed_by_default(self):
        assert check_well_formed(Var(7)) == Var(7)

    def test_rejects_non_terms(self):
        with pytest.raises(TypeError):
            check_well_formed("λ.0")


class TestTERM006:
    """TERM-006: Rendering in index notation."""

    def test_render(self):
        assert render(I) == "λ.0"
        assert render(Lam(App(Var(1), Var(0)))) == "λ.(1 0)"
        assert render(App(Lam(App(Var(1), Var(0))), I)) == "(λ.(1 0)) (λ.0)"
        assert render(apps(Var(0), Var(1), App(Var(2), Var(3)))) == "0 1 (2 3)"

    def test_str_and_repr(self):
        assert str(Lam(Lam(Var(1)))) == "λ.λ.1"
        assert repr(App(Var(0), Lam(Var(0)))) == "App(Var(0), Lam(Var(0)))"
