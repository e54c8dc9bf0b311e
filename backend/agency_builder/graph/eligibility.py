"""
Eligibility Filter - decides which canvas nodes become executable steps.

Rejections never raise. A partially configured canvas still compiles to the
subset of nodes that are ready; every rejection is logged so the user can find
out why a node is missing from the schedule.
"""
import logging
from enum import Enum
from typing import Collection, List, Optional, Sequence

from .schema import NodeKind, WorkflowNode

logger = logging.getLogger(__name__)


class EligibilityRejection(str, Enum):
    NOT_AN_AGENT = "not_an_agent"
    MISSING_CANISTER_ID = "missing_canister_id"
    HOSTING_CANISTER = "hosting_canister"
    NOT_AVAILABLE = "not_available"


def ineligibility_reason(
    node: WorkflowNode,
    excluded_ref: Optional[str] = None,
    allowed_refs: Optional[Collection[str]] = None,
) -> Optional[EligibilityRejection]:
    if node.type != NodeKind.AGENT:
        return EligibilityRejection.NOT_AN_AGENT

    canister_id = node.data.agent_canister_id
    if not canister_id or not canister_id.strip():
        return EligibilityRejection.MISSING_CANISTER_ID

    if excluded_ref and canister_id == excluded_ref:
        return EligibilityRejection.HOSTING_CANISTER

    if allowed_refs and canister_id not in allowed_refs:
        return EligibilityRejection.NOT_AVAILABLE

    return None


def is_eligible_node(
    node: WorkflowNode,
    excluded_ref: Optional[str] = None,
    allowed_refs: Optional[Collection[str]] = None,
) -> bool:
    return ineligibility_reason(node, excluded_ref, allowed_refs) is None


def filter_eligible_nodes(
    nodes: Sequence[WorkflowNode],
    excluded_ref: Optional[str] = None,
    allowed_refs: Optional[Collection[str]] = None,
) -> List[WorkflowNode]:
    """Order-preserving subset of ``nodes`` that qualify as executable steps."""
    eligible: List[WorkflowNode] = []
    for node in nodes:
        reason = ineligibility_reason(node, excluded_ref, allowed_refs)
        if reason is None:
            eligible.append(node)
            continue
        _log_rejection(node, reason)
    return eligible


def _log_rejection(node: WorkflowNode, reason: EligibilityRejection) -> None:
    name = node.display_name or node.id
    if reason == EligibilityRejection.MISSING_CANISTER_ID:
        logger.warning("Agent node %r has no canister ID - skipping", name)
    elif reason == EligibilityRejection.HOSTING_CANISTER:
        logger.error(
            "Agent node %r points at the workflow's own hosting canister %r - skipping",
            name,
            node.data.agent_canister_id,
        )
    elif reason == EligibilityRejection.NOT_AVAILABLE:
        logger.warning(
            "Agent node %r has canister ID %r which is not in the list of available agents - skipping",
            name,
            node.data.agent_canister_id,
        )
    else:
        logger.debug("Node %r is a %s node - not compiled", node.id, node.type.value)
