from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import Field, ValidationError

from agency_builder.config import get_settings
from agency_builder.exceptions import TemplateError
from agency_builder.graph.schema import (
    ExecutionMode,
    NodeKind,
    WireModel,
    WorkflowEdge,
    WorkflowNode,
)

logger = logging.getLogger(__name__)

SAVED_TEMPLATE_PREFIX = "saved-"
DEFAULT_TEMPLATE_DESCRIPTION = "Saved workflow template"
ALL_CATEGORIES = "all"


class WorkflowTemplate(WireModel):
    id: str
    name: str
    description: str = ""
    category: str = "general"
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    thumbnail: Optional[str] = None
    difficulty: str = "intermediate"
    estimated_time: str = ""
    tags: List[str] = Field(default_factory=list)

    @property
    def is_saved(self) -> bool:
        return self.id.startswith(SAVED_TEMPLATE_PREFIX)

    def matches(self, term: str = "", category: str = ALL_CATEGORIES) -> bool:
        matches_category = category == ALL_CATEGORIES or self.category == category or self.is_saved
        if not matches_category:
            return False
        if not term:
            return True
        needle = term.lower()
        return (
            needle in self.name.lower()
            or needle in self.description.lower()
            or any(needle in tag.lower() for tag in self.tags)
        )


def has_configured_agent(nodes: Sequence[WorkflowNode]) -> bool:
    return any(
        node.type == NodeKind.AGENT
        and node.data.agent_canister_id
        and node.data.agent_canister_id.strip()
        for node in nodes
    )


class TemplateLibrary:
    """
    Per-project store of workflows saved as reusable templates.

    Each project's templates live in one JSON file,
    ``workflow-templates-{project}.json``, rewritten on every change.
    """

    def __init__(self, project: str, storage_dir: Optional[Path] = None):
        if not project or not project.strip():
            raise TemplateError("A project is required to store templates")
        self.project = project.strip()
        self.storage_dir = Path(storage_dir) if storage_dir is not None else get_settings().templates_dir

    @property
    def path(self) -> Path:
        return self.storage_dir / f"workflow-templates-{self.project}.json"

    def list_templates(self) -> List[WorkflowTemplate]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise TypeError("template file must contain a JSON list")
            return [WorkflowTemplate.model_validate(item) for item in raw]
        except (TypeError, ValueError, ValidationError) as exc:
            logger.warning("Failed to load saved templates from %s: %s", self.path, exc)
            return []

    def get_template(self, template_id: str) -> WorkflowTemplate:
        for template in self.list_templates():
            if template.id == template_id:
                return template
        raise TemplateError(f"Template '{template_id}' not found")

    def search(self, term: str = "", category: str = ALL_CATEGORIES) -> List[WorkflowTemplate]:
        return [t for t in self.list_templates() if t.matches(term.strip(), category)]

    def save_workflow_as_template(
        self,
        name: str,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL,
        description: str = "",
    ) -> WorkflowTemplate:
        if not nodes:
            raise TemplateError("Cannot save empty workflow as template")
        if not has_configured_agent(nodes):
            raise TemplateError(
                "Please configure at least one agent with a canister ID before saving as template"
            )
        if not name or not name.strip():
            raise TemplateError("Please enter a template name")

        template = WorkflowTemplate(
            id=f"{SAVED_TEMPLATE_PREFIX}{int(time.time() * 1000)}",
            name=name.strip(),
            description=description.strip() or DEFAULT_TEMPLATE_DESCRIPTION,
            category="general",
            nodes=[node.model_copy(deep=True) for node in nodes],
            edges=[edge.model_copy(deep=True) for edge in edges],
            execution_mode=execution_mode,
            difficulty="intermediate",
            estimated_time="5-15 minutes",
            tags=["saved", "custom"],
        )

        templates = self.list_templates()
        templates.append(template)
        self._write(templates)
        logger.info("Saved template %r (%s) for project %s", template.name, template.id, self.project)
        return template

    def delete_template(self, template_id: str) -> None:
        templates = self.list_templates()
        remaining = [t for t in templates if t.id != template_id]
        if len(remaining) == len(templates):
            raise TemplateError(f"Template '{template_id}' not found")
        self._write(remaining)

    def _write(self, templates: Sequence[WorkflowTemplate]) -> None:
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        payload = [t.model_dump(by_alias=True, mode="json") for t in templates]
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
