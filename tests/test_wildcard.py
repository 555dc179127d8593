import pytest

from evdispatch.core.registry import compile_wildcard, contains_wildcard, matches_wildcard


@pytest.mark.parametrize("event", ["A.x", "A.", "A.x.y"])
def test_trailing_wildcard_matches(event):
    assert matches_wildcard(event, "A.*")


@pytest.mark.parametrize("event", ["A", "B.x", "a.x", "xA.x"])
def test_trailing_wildcard_rejects(event):
    assert not matches_wildcard(event, "A.*")


def test_multiple_wildcards():
    assert matches_wildcard("a.x.c", "a.*.c")
    assert matches_wildcard("a..c", "a.*.c")
    assert not matches_wildcard("a.x.y", "a.*.c")
    assert matches_wildcard("user.42.created", "*.*.created")
    assert matches_wildcard("anything", "*")
    assert matches_wildcard("", "*")


def test_dot_is_literal():
    assert not matches_wildcard("AB", "A.*")
    assert matches_wildcard("price(1)+tax", "price(*)+tax")


def test_match_is_anchored_at_both_ends():
    pattern = compile_wildcard("*.saved")
    assert pattern.fullmatch("doc.saved")
    assert not pattern.fullmatch("doc.saved.twice")


def test_contains_wildcard():
    assert contains_wildcard("a.*")
    assert not contains_wildcard("a.b")


def test_wildcard_listeners_come_before_exact_ones(dispatcher, recorder):
    exact = recorder.listener("exact")
    wild = recorder.listener("wild")
    dispatcher.listen("A.x", exact)
    dispatcher.listen("A.*", wild)

    assert dispatcher.get_listeners("A.x") == [wild, exact]


def test_wildcard_patterns_keep_registration_order(dispatcher, recorder):
    l1, l2, l3, l4 = (recorder.listener(n) for n in ("l1", "l2", "l3", "l4"))
    dispatcher.listen("*.created", l1)
    dispatcher.listen("order.*", l2)
    dispatcher.listen("*.created", l3)
    dispatcher.listen("order.created", l4)
    dispatcher.listen("invoice.*", recorder.listener("other"))

    assert dispatcher.get_listeners("order.created") == [l1, l3, l2, l4]


def test_has_listeners_through_wildcard_only(dispatcher, recorder):
    dispatcher.listen("order.*", recorder.listener("L"))

    assert dispatcher.has_listeners("order.created")
    assert not dispatcher.has_listeners("order")
    assert not dispatcher.has_listeners("invoice.created")


def test_compiled_patterns_are_cached():
    assert compile_wildcard("a.*.c") is compile_wildcard("a.*.c")
