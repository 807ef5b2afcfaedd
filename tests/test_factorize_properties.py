from typing import List, Optional

from hypothesis import given, settings
from hypothesis import strategies as st

from einfactor import Intermediate, Namespace, Subscripts, User, build_plan, factorize_all

_LABELS = "abcdef"


@st.composite
def notations(draw) -> str:
    inputs: List[str] = draw(
        st.lists(st.text(alphabet=_LABELS, min_size=0, max_size=4), min_size=1, max_size=5)
    )
    lhs = ",".join(inputs)
    if draw(st.booleans()):
        return lhs
    used = sorted({label for sub in inputs for label in sub})
    output: Optional[List[str]] = draw(st.permutations(used))
    size = draw(st.integers(min_value=0, max_value=len(used)))
    return f"{lhs}->{''.join(output[:size])}"


@settings(max_examples=200, deadline=None)
@given(notations())
def test_construction_is_deterministic(text):
    first = Subscripts.from_raw_indices(Namespace.init(), text)
    second = Subscripts.from_raw_indices(Namespace.init(), text)
    assert first == second
    assert str(first) == str(second)


@settings(max_examples=200, deadline=None)
@given(notations())
def test_user_positions_cover_all_inputs(text):
    subscripts = Subscripts.from_raw_indices(Namespace.init(), text)
    positions = [sub.position for sub in subscripts.inputs]
    assert positions == [User(i) for i in range(len(subscripts.inputs))]


@settings(max_examples=200, deadline=None)
@given(notations())
def test_every_split_makes_progress(text):
    names = Namespace.init()
    subscripts = Subscripts.from_raw_indices(names, text)
    original = subscripts.contraction_indices()
    for index in original:
        before = names.last
        split = subscripts.factorize(names, index)
        if split is None:
            assert names.last == before
            continue
        first, second = split
        assert first.output.position == Intermediate(before)
        assert names.last == before + 1
        assert first.contraction_indices() == (index,)
        assert first.factorize(names, index) is None
        remaining = second.contraction_indices()
        assert index not in remaining
        assert set(remaining) < set(original)
        expected = sorted({lbl for sub in first.inputs for lbl in sub.indices()} - {index})
        assert list(first.output.indices()) == expected


@settings(max_examples=200, deadline=None)
@given(notations())
def test_full_factorization_terminates_with_irreducible_leaves(text):
    names = Namespace.init()
    root = Subscripts.from_raw_indices(names, text)
    tree = factorize_all(names, root)
    issued = []
    for step in tree.leaves():
        for index in step.contraction_indices():
            assert step.factorize(Namespace.init(), index) is None
        issued.append(step.output.position)
    intermediates = sorted(pos.index for pos in issued)
    assert intermediates == list(range(names.last))


@settings(max_examples=100, deadline=None)
@given(notations())
def test_plan_is_stable_across_runs(text):
    assert build_plan(text).explain() == build_plan(text).explain()
