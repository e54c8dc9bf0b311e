from agency_builder.graph.compiler import (
    WorkflowCompiler,
    compile_workflow,
    convert_edges_to_connections,
    convert_workflow_to_agent_steps,
)
from agency_builder.graph.schema import ConditionKind, ConnectionCondition, NodeKind
from tests.workflow_helpers import GOVERNANCE, LEDGER, REGISTRY, agent_node, chain, edge


def test_linear_workflow_compiles_in_topological_order():
    nodes = [
        agent_node("c", REGISTRY, name="Reporter"),
        agent_node("a", LEDGER, name="Intake"),
        agent_node("b", GOVERNANCE, name="Analyzer"),
    ]
    schedule = compile_workflow(nodes, chain("a", "b", "c"))

    assert [s.agent_name for s in schedule.steps] == ["Intake", "Analyzer", "Reporter"]
    assert [(c.source_step_index, c.target_step_index) for c in schedule.connections] == [(0, 1), (1, 2)]
    assert all(c.condition.kind == ConditionKind.ALWAYS for c in schedule.connections)


def test_step_copies_node_configuration():
    node = agent_node(
        "a",
        LEDGER,
        name="Billing Agent",
        input_template="Process {input}",
        requiresApproval=True,
        retryOnFailure=True,
        timeout=120,
        triggerConfig={"cron": "0 * * * *"},
        stepTarget={"agency": {"agencyId": "agency-7", "inputMapping": "{input}"}},
        loopConfig={"forEach": {"arraySource": "items", "itemVariable": "it", "indexVariable": "i"}},
    )
    [step] = convert_workflow_to_agent_steps([node], [])

    assert step.agent_canister_id == LEDGER
    assert step.input_template == "Process {input}"
    assert step.requires_approval is True
    assert step.retry_on_failure is True
    assert step.timeout == 120
    assert step.trigger_config == {"cron": "0 * * * *"}
    assert step.step_target.agency.agency_id == "agency-7"
    assert step.loop_config.for_each.array_source == "items"
    assert step.loop_config is not node.data.loop_config


def test_ineligible_nodes_are_skipped_and_indices_stay_contiguous():
    nodes = [
        agent_node("a", LEDGER),
        agent_node("blank", ""),
        agent_node("trigger", LEDGER, node_type=NodeKind.TRIGGER),
        agent_node("b", GOVERNANCE),
    ]
    edges = [edge("a", "blank"), edge("blank", "b"), edge("trigger", "b"), edge("a", "b")]
    schedule = compile_workflow(nodes, edges)

    assert [s.agent_canister_id for s in schedule.steps] == [LEDGER, GOVERNANCE]
    assert [(c.source_step_index, c.target_step_index) for c in schedule.connections] == [(0, 1)]


def test_every_connection_points_inside_the_schedule():
    nodes = [agent_node(n, LEDGER) for n in ("a", "b", "c", "d")]
    nodes.append(agent_node("x", ""))
    edges = [edge("a", "b"), edge("b", "c"), edge("a", "x"), edge("x", "d"), edge("c", "ghost")]
    schedule = compile_workflow(nodes, edges)

    for conn in schedule.connections:
        assert 0 <= conn.source_step_index < len(schedule.steps)
        assert 0 <= conn.target_step_index < len(schedule.steps)


def test_hosting_canister_and_availability_filters():
    nodes = [agent_node("self", REGISTRY), agent_node("a", LEDGER), agent_node("b", GOVERNANCE)]
    compiler = WorkflowCompiler(hosting_canister_id=REGISTRY, available_agent_ids=[LEDGER])
    schedule = compiler.compile(nodes, chain("self", "a", "b"))

    assert [s.agent_canister_id for s in schedule.steps] == [LEDGER]
    assert schedule.connections == []


def test_no_eligible_nodes_gives_empty_schedule():
    schedule = compile_workflow([agent_node("a", None)], [])
    assert schedule.is_empty
    assert schedule.connections == []


def test_cyclic_nodes_are_left_out_without_raising():
    nodes = [agent_node("a", LEDGER), agent_node("b", GOVERNANCE), agent_node("c", REGISTRY)]
    edges = [edge("a", "b"), edge("b", "c"), edge("c", "b")]
    schedule = compile_workflow(nodes, edges)

    assert [s.agent_canister_id for s in schedule.steps] == [LEDGER]
    assert schedule.connections == []


def test_conditions_are_carried_and_normalized():
    mixed = ConnectionCondition.model_validate({"always": None, "ifEquals": {"field": "s", "value": "ok"}})
    nodes = [agent_node(n, LEDGER) for n in ("a", "b", "c", "d")]
    edges = [
        edge("a", "b", ConnectionCondition.on_failure_()),
        edge("a", "c", ConnectionCondition.if_contains_("status", "done")),
        edge("a", "d", mixed),
    ]
    connections = convert_edges_to_connections(nodes, edges)

    assert [c.condition.kind for c in connections] == [
        ConditionKind.ON_FAILURE,
        ConditionKind.IF_CONTAINS,
        ConditionKind.ALWAYS,
    ]
    assert connections[1].to_runtime()["condition"] == {"ifContains": {"field": "status", "value": "done"}}
    assert connections[2].to_runtime()["condition"] == {"always": None}


def test_compilation_is_deterministic():
    nodes = [agent_node(n, LEDGER, name=n.upper()) for n in ("a", "b", "c")]
    edges = [edge("a", "c"), edge("b", "c")]
    first = compile_workflow(nodes, edges)
    second = compile_workflow(nodes, edges)

    assert first == second
    assert first.compute_hash() == second.compute_hash()


def test_runtime_payload_uses_camel_case_and_drops_unset_optionals():
    [step] = convert_workflow_to_agent_steps([agent_node("a", LEDGER, name="Intake")], [])
    payload = step.to_runtime()

    assert payload["agentCanisterId"] == LEDGER
    assert payload["agentName"] == "Intake"
    assert "timeout" not in payload
    assert "loopConfig" not in payload


def test_filter_composition_with_allow_list_and_hosting_ref():
    nodes = [agent_node("x", "c1"), agent_node("y", ""), agent_node("z", "c1")]

    allowed_only = compile_workflow(nodes, [], allowed_refs=["c1"])
    assert [s.agent_canister_id for s in allowed_only.steps] == ["c1", "c1"]
    assert [s.agent_name for s in allowed_only.steps] == ["Agent x", "Agent z"]

    hosted = compile_workflow(nodes, [], excluded_ref="c1", allowed_refs=["c1"])
    assert hosted.is_empty


def test_connection_index_mapping_for_on_failure_edge():
    nodes = [agent_node("n1", LEDGER), agent_node("n2", GOVERNANCE)]
    schedule = compile_workflow(nodes, [edge("n1", "n2", ConnectionCondition.on_failure_())])

    assert [c.to_runtime() for c in schedule.connections] == [
        {"sourceStepIndex": 0, "targetStepIndex": 1, "condition": {"onFailure": None}}
    ]


def test_edge_to_unconfigured_node_is_dropped_silently():
    nodes = [agent_node("a", LEDGER), agent_node("b", "")]
    schedule = compile_workflow(nodes, [edge("a", "b")])

    assert len(schedule.steps) == 1
    assert schedule.connections == []


def test_schedule_payload_carries_only_steps_and_connections():
    schedule = compile_workflow([agent_node("a", LEDGER), agent_node("b", GOVERNANCE)], chain("a", "b"))
    assert set(schedule.to_runtime()) == {"steps", "connections"}
