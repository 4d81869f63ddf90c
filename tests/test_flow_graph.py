from __future__ import annotations

import pytest

from conftest import make_record
from mental_health_views.flow_graph import (
    Condition,
    FlowStage,
    UnknownConditionError,
    build_flow_graph,
    cgpa_node,
    condition_node,
    treatment_node,
)


def _stage_weight(graph, *, source_stage=None, target_stage=None):
    return sum(
        edge.weight
        for edge in graph.edges
        if (source_stage is None or edge.source.stage is source_stage)
        and (target_stage is None or edge.target.stage is target_stage)
    )


def test_node_names_are_derived_from_tagged_keys():
    assert cgpa_node("3.5-4.0").name == "3.5-4.0"
    assert condition_node(Condition.PANIC_ATTACK, True).name == "Panic attack Yes"
    assert treatment_node(False).name == "Treatment No"


def test_same_bin_collapses_into_one_node():
    records = [
        make_record(depression=True, cgpa=3.6, treatment=True),
        make_record(depression=True, cgpa=3.7, treatment=True),
    ]

    graph = build_flow_graph(records, Condition.DEPRESSION)

    cgpa_nodes = [key for key in graph.nodes if key.stage is FlowStage.CGPA_BIN]
    assert [key.name for key in cgpa_nodes] == ["3.5-4.0"]
    assert graph.weight(cgpa_nodes[0], condition_node(Condition.DEPRESSION, True)) == 2
    assert len(graph.edges) == 2


def test_unparseable_cgpa_keeps_condition_to_treatment_edge():
    records = [
        make_record(anxiety=True, cgpa=None, treatment=True),
        make_record(anxiety=True, cgpa=2.2, treatment=True),
    ]

    graph = build_flow_graph(records, "Anxiety")

    status = condition_node(Condition.ANXIETY, True)
    assert graph.weight(status, treatment_node(True)) == 2
    assert _stage_weight(graph, source_stage=FlowStage.CGPA_BIN) == 1
    assert [key.name for key in graph.nodes if key.stage is FlowStage.CGPA_BIN] == ["2.0-2.49"]


def test_only_unparseable_cgpa_yields_no_bin_nodes():
    graph = build_flow_graph([make_record(cgpa=None)], Condition.DEPRESSION)

    assert [key.name for key in graph.nodes] == ["Depression No", "Treatment No"]
    assert _stage_weight(graph, target_stage=FlowStage.TREATMENT) == 1


def test_weight_conservation(sample_records):
    records = sample_records + [make_record(cgpa=None, treatment=True)]

    graph = build_flow_graph(records, Condition.PANIC_ATTACK)

    with_cgpa = sum(1 for record in records if record.cgpa is not None)
    assert _stage_weight(graph, source_stage=FlowStage.CGPA_BIN) == with_cgpa
    assert _stage_weight(graph, target_stage=FlowStage.TREATMENT) == len(records)


def test_edges_are_unique_and_positive(sample_records):
    graph = build_flow_graph(sample_records * 3, Condition.DEPRESSION)

    pairs = [(edge.source, edge.target) for edge in graph.edges]
    assert len(pairs) == len(set(pairs))
    assert all(edge.weight >= 1 for edge in graph.edges)
    endpoints = {edge.source for edge in graph.edges} | {edge.target for edge in graph.edges}
    assert endpoints == set(graph.nodes)


def test_nodes_keep_first_seen_order():
    records = [
        make_record(depression=False, cgpa=3.9, treatment=True),
        make_record(depression=True, cgpa=1.0, treatment=False),
    ]

    graph = build_flow_graph(records, Condition.DEPRESSION)

    assert [key.name for key in graph.nodes] == [
        "3.5-4.0",
        "Depression No",
        "Treatment Yes",
        "0-1.99",
        "Depression Yes",
        "Treatment No",
    ]


def test_build_is_idempotent(sample_records):
    assert build_flow_graph(sample_records, "Depression") == build_flow_graph(sample_records, "Depression")


def test_condition_switch_renames_condition_nodes(sample_records):
    graph = build_flow_graph(sample_records, Condition.PANIC_ATTACK)

    names = {key.name for key in graph.nodes if key.stage is FlowStage.CONDITION}
    assert names == {"Panic attack Yes", "Panic attack No"}
    assert graph.condition is Condition.PANIC_ATTACK


def test_unknown_condition_is_a_configuration_error(sample_records):
    with pytest.raises(UnknownConditionError):
        build_flow_graph(sample_records, "Insomnia")


def test_condition_parse_accepts_labels_and_names():
    assert Condition.parse("panic attack") is Condition.PANIC_ATTACK
    assert Condition.parse("PANIC_ATTACK") is Condition.PANIC_ATTACK
    assert Condition.parse(Condition.ANXIETY) is Condition.ANXIETY
    assert Condition.DEPRESSION.column == "Do you have Depression?"


def test_networkx_view_carries_weights(sample_records):
    graph = build_flow_graph(sample_records, Condition.DEPRESSION)

    nx_graph = graph.to_networkx()

    assert nx_graph.number_of_nodes() == len(graph.nodes)
    treatment = [key for key in graph.nodes if key.stage is FlowStage.TREATMENT]
    assert sum(nx_graph.in_degree(key, weight="weight") for key in treatment) == len(sample_records)
