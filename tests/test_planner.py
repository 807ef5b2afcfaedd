import pytest

from einfactor import (
    ArgumentCountMismatch,
    NameCollisionError,
    ParseError,
    PlanConfig,
    build_plan,
    expand,
)
from einfactor.core.planner import step_names
from einfactor.core.subscripts import Namespace, Subscripts


def test_matrix_chain_plan_has_two_binary_steps():
    plan = build_plan("ij,jk,kl->il")
    assert [step.notation() for step in plan.steps] == ["ij,jk->ik", "ik,kl->il"]
    assert plan.names == ("ij_jk__ik", "ik_kl__il")
    assert plan.tree.index == "j"
    assert plan.tree.first.is_leaf
    assert plan.tree.second.is_leaf
    assert plan.args == ("arg0", "arg1", "arg2")


def test_irreducible_notation_is_a_single_step():
    plan = build_plan("ij,ji->")
    assert plan.tree.is_leaf
    assert plan.steps == (plan.root,)


def test_descending_order_factors_last_index_first():
    plan = build_plan("ij,jk,kl->il", PlanConfig(order="descending"))
    assert plan.tree.index == "k"
    assert [step.notation() for step in plan.steps] == ["jk,kl->jl", "jl,ij->il"]


def test_plan_steps_run_in_dependency_order():
    plan = build_plan("ab,bc,cd,de->ae")
    produced = {"arg0", "arg1", "arg2", "arg3"}
    for step in plan.steps:
        for sub in step.inputs:
            assert str(sub.position) in produced
        produced.add(str(step.output.position))
    assert str(plan.steps[-1].output.position) == "out0"


def test_explain_text():
    text = build_plan("ij,jk,kl->il").explain()
    lines = text.splitlines()
    assert lines[0] == "[plan] ij,jk,kl->il | arg0 arg1 arg2 -> out0"
    assert lines[1] == "[step] ij_jk__ik ij,jk->ik | arg0 arg1 -> out1 contract:{j}"
    assert lines[2] == "[step] ik_kl__il ik,kl->il | out1 arg2 -> out0 contract:{k}"


def test_explain_json_structure():
    payload = build_plan("ij,jk,kl->il").explain(json=True)
    assert payload["notation"] == "ij,jk,kl->il"
    assert [entry["name"] for entry in payload["steps"]] == ["ij_jk__ik", "ik_kl__il"]
    assert payload["steps"][1]["inputs"] == ["out1", "arg2"]
    assert payload["tree"]["index"] == "j"


def test_custom_prefixes_rename_positions():
    cfg = PlanConfig(user_prefix="x", intermediate_prefix="t")
    plan = build_plan("ij,jk,kl->il", cfg)
    assert plan.args == ("x0", "x1", "x2")
    assert "| t1 x2 -> t0" in plan.explain()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"order": "cheapest"},
        {"collisions": "ignore"},
        {"user_prefix": "1x"},
        {"user_prefix": "v", "intermediate_prefix": "v"},
        {"user_prefix": "x", "intermediate_prefix": "x1"},
        {"user_prefix": "tmp", "intermediate_prefix": "t"},
    ],
)
def test_plan_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        PlanConfig(**kwargs).normalized()


def test_plan_config_normalizes_case():
    cfg = PlanConfig(order="Descending", collisions="ERROR").normalized()
    assert cfg.order == "descending"
    assert cfg.collisions == "error"


def test_expand_checks_argument_count_before_factorizing():
    with pytest.raises(ArgumentCountMismatch) as info:
        expand("ij,jk->ik", ["a"], call_site="model.py:12")
    assert info.value.expected == 2
    assert info.value.received == 1
    assert "model.py:12" in str(info.value)


def test_expand_keeps_argument_expressions():
    plan = expand("ij,jk->ik", ["a", "b.T"])
    assert plan.args == ("a", "b.T")


def test_expand_propagates_parse_errors():
    with pytest.raises(ParseError):
        expand("ij,j?", ["a", "b"])


def _steps(*texts):
    return [Subscripts.from_raw_indices(Namespace.init(), text) for text in texts]


def test_step_names_share_identical_steps():
    steps = _steps("ij,jk->ik", "ij,jk->ik")
    assert step_names(steps) == ("ij_jk__ik", "ij_jk__ik")


def test_step_names_suffix_colliding_steps():
    steps = _steps("i...,j->ij...", "i,...j->ij...", "i...,j->ij...")
    assert step_names(steps) == ("i____j__ij___", "i____j__ij____1", "i____j__ij___")


def test_step_names_can_reject_collisions():
    steps = _steps("i...,j->ij...", "i,...j->ij...")
    with pytest.raises(NameCollisionError):
        step_names(steps, collisions="error")


def test_long_chain_keeps_argument_and_intermediate_names_apart():
    labels = "abcdefghijklm"
    notation = ",".join(labels[i : i + 2] for i in range(12)) + f"->a{labels[12]}"
    plan = build_plan(notation, PlanConfig(user_prefix="x", intermediate_prefix="y"))
    intermediates = {plan.config.position_name(step.output.position) for step in plan.steps}
    assert len(plan.args) == 12
    assert not intermediates & set(plan.args)
