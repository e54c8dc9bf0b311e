import json

import pytest

from agency_builder.exceptions import InvalidWorkflowFormatError, WorkflowError
from agency_builder.graph.compiler import compile_workflow
from agency_builder.graph.schema import ConditionKind, ConnectionCondition
from agency_builder.services.workflow_io import (
    INVALID_WORKFLOW_MESSAGE,
    WorkflowMetadata,
    export_workflow,
    import_workflow,
)
from tests.workflow_helpers import GOVERNANCE, LEDGER, agent_node, edge


def _sample():
    nodes = [
        agent_node("a", LEDGER, name="Intake", loopConfig={"repeat": {"count": 2}}),
        agent_node("b", GOVERNANCE, name="Review"),
    ]
    edges = [edge("a", "b", ConnectionCondition.if_contains_("status", "ok"))]
    return nodes, edges


def test_export_envelope_uses_camel_case():
    nodes, edges = _sample()
    exported = json.loads(export_workflow(nodes, edges, {"name": "Pipeline", "description": "demo"}))

    assert exported["version"] == "1.0"
    assert exported["metadata"] == {"name": "Pipeline", "description": "demo"}
    assert exported["exportedAt"].endswith("Z")
    assert exported["nodes"][0]["data"]["agentCanisterId"] == LEDGER
    assert exported["nodes"][0]["data"]["loopConfig"] == {"repeat": {"count": 2, "indexVariable": None}}
    assert exported["edges"][0]["data"]["condition"] == {"ifContains": {"field": "status", "value": "ok"}}


def test_exported_workflow_imports_back():
    nodes, edges = _sample()
    raw = export_workflow(nodes, edges, WorkflowMetadata(name="Pipeline"))
    imported = import_workflow(raw)

    assert [n.id for n in imported.nodes] == ["a", "b"]
    assert imported.nodes[0].data.loop_config.repeat.count == 2
    assert imported.edges[0].condition.kind == ConditionKind.IF_CONTAINS
    assert imported.metadata["name"] == "Pipeline"


def test_missing_collections_default_to_empty():
    imported = import_workflow('{"version": "1.0"}')
    assert imported.nodes == []
    assert imported.edges == []
    assert imported.metadata is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[1, 2, 3]",
        '{"nodes": "oops"}',
        '{"nodes": [42]}',
        '{"nodes": [{"type": "agent"}]}',
        '{"edges": [{"id": "e1", "source": "a"}]}',
    ],
)
def test_invalid_payloads_raise_a_single_error_kind(raw):
    with pytest.raises(InvalidWorkflowFormatError) as exc_info:
        import_workflow(raw)

    assert str(exc_info.value) == INVALID_WORKFLOW_MESSAGE
    assert isinstance(exc_info.value, WorkflowError)
    assert exc_info.value.__cause__ is not None


def test_fractional_timeout_imports_and_compiles():
    raw = json.dumps({
        "version": "1.0",
        "nodes": [{"id": "a", "type": "agent", "data": {"agentCanisterId": LEDGER, "timeout": 30.5}}],
        "edges": [],
    })
    imported = import_workflow(raw)

    assert imported.nodes[0].data.timeout == 30.5
    [step] = compile_workflow(imported.nodes, imported.edges).steps
    assert step.to_runtime()["timeout"] == 30.5


def test_whole_second_timeout_stays_an_integer():
    raw = json.dumps({"nodes": [{"id": "a", "data": {"agentCanisterId": LEDGER, "timeout": 30}}]})
    exported = json.loads(export_workflow(import_workflow(raw).nodes, [], {"name": "t"}))
    assert exported["nodes"][0]["data"]["timeout"] == 30
    assert isinstance(exported["nodes"][0]["data"]["timeout"], int)
