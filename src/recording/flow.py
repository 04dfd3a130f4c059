"""Flow management: the ordered Step sequences a recording produces.

``FlowStore`` is the collaborator interface the recorder and replay engine
depend on. ``InMemoryFlowStore`` is the reference implementation; disk
persistence lives outside this package.
"""

import copy
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import structlog

from .models import Step

logger = structlog.get_logger()

_VARIABLE = re.compile(r"\{\{(\w+)\}\}")


class FlowNotFoundError(KeyError):
    """Raised when a flow id is unknown."""


class StepNotFoundError(KeyError):
    """Raised when a step id is unknown within a flow."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Flow:
    """A named, ordered sequence of recorded Steps."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Untitled Flow"
    start_url: str = ""
    steps: list[Step] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    test_data: dict[str, Any] = field(default_factory=dict)
    created: datetime = field(default_factory=_now)
    modified: datetime = field(default_factory=_now)

    @property
    def enabled_steps(self) -> list[Step]:
        return [s for s in self.steps if s.enabled]

    def find_step(self, step_id: str) -> Step:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise StepNotFoundError(step_id)

    def touch(self) -> None:
        self.modified = _now()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "start_url": self.start_url,
            "steps": [s.to_dict() for s in self.steps],
            "variables": dict(self.variables),
            "test_data": dict(self.test_data),
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Flow":
        flow = cls(
            id=data.get("id") or str(uuid.uuid4()),
            name=data.get("name") or "Untitled Flow",
            start_url=data.get("start_url", ""),
            steps=[Step.from_dict(s) for s in data.get("steps", [])],
            variables=dict(data.get("variables", {})),
            test_data=dict(data.get("test_data", {})),
        )
        for key in ("created", "modified"):
            if data.get(key):
                try:
                    setattr(flow, key, datetime.fromisoformat(data[key]))
                except ValueError:
                    pass
        return flow


class FlowStore(Protocol):
    """Operations the recorder and replay engine call on flow storage."""

    def create_flow(self, name: Optional[str] = None, start_url: str = "") -> Flow: ...

    def get_flow(self, flow_id: str) -> Flow: ...

    def has_flow(self, flow_id: str) -> bool: ...

    def add_step(self, flow_id: str, step: Step) -> Step: ...

    def update_step(self, flow_id: str, step_id: str, **updates: Any) -> Step: ...

    def remove_step(self, flow_id: str, step_id: str) -> None: ...

    def reorder_steps(self, flow_id: str, ordered_step_ids: list[str]) -> list[Step]: ...


class InMemoryFlowStore:
    """Dictionary-backed FlowStore."""

    def __init__(self):
        self._flows: dict[str, Flow] = {}
        self.active_flow_id: Optional[str] = None
        self.log = logger.bind(component="flow_store")

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def create_flow(self, name: Optional[str] = None, start_url: str = "") -> Flow:
        flow = Flow(name=name or "Untitled Flow", start_url=start_url)
        self._flows[flow.id] = flow
        self.active_flow_id = flow.id
        self.log.info("Flow created", flow_id=flow.id, name=flow.name)
        return flow

    def save_flow(self, flow: Flow) -> Flow:
        self._flows[flow.id] = flow
        return flow

    def get_flow(self, flow_id: str) -> Flow:
        try:
            return self._flows[flow_id]
        except KeyError:
            raise FlowNotFoundError(flow_id) from None

    def has_flow(self, flow_id: str) -> bool:
        return flow_id in self._flows

    def list_flows(self) -> list[dict]:
        return [
            {
                "id": f.id,
                "name": f.name,
                "step_count": len(f.steps),
                "modified": f.modified.isoformat(),
            }
            for f in self._flows.values()
        ]

    def rename_flow(self, flow_id: str, name: str) -> Flow:
        flow = self.get_flow(flow_id)
        flow.name = name
        flow.touch()
        return flow

    def delete_flow(self, flow_id: str) -> bool:
        removed = self._flows.pop(flow_id, None) is not None
        if self.active_flow_id == flow_id:
            self.active_flow_id = None
        return removed

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def add_step(self, flow_id: str, step: Step) -> Step:
        """Append a step and merge its test data into the flow's."""
        flow = self.get_flow(flow_id)
        flow.steps.append(step)
        flow.test_data.update(step.test_data)
        flow.touch()
        return step

    def update_step(self, flow_id: str, step_id: str, **updates: Any) -> Step:
        flow = self.get_flow(flow_id)
        step = flow.find_step(step_id)
        for key, value in updates.items():
            if not hasattr(step, key):
                raise AttributeError(f"Step has no field '{key}'")
            setattr(step, key, value)
        if "test_data" in updates:
            flow.test_data.update(step.test_data)
        flow.touch()
        return step

    def remove_step(self, flow_id: str, step_id: str) -> None:
        """Remove a step; remaining orders stay contiguous from 1."""
        flow = self.get_flow(flow_id)
        step = flow.find_step(step_id)
        flow.steps.remove(step)
        self._renumber(flow)
        flow.touch()

    def reorder_steps(self, flow_id: str, ordered_step_ids: list[str]) -> list[Step]:
        """Reorder steps by id. Steps not listed keep their relative order after the listed ones."""
        flow = self.get_flow(flow_id)
        by_id = {s.id: s for s in flow.steps}
        for step_id in ordered_step_ids:
            if step_id not in by_id:
                raise StepNotFoundError(step_id)

        listed = [by_id[i] for i in dict.fromkeys(ordered_step_ids)]
        listed_ids = {s.id for s in listed}
        flow.steps = listed + [s for s in flow.steps if s.id not in listed_ids]
        self._renumber(flow)
        flow.touch()
        return flow.steps

    def toggle_step(self, flow_id: str, step_id: str, enabled: Optional[bool] = None) -> Step:
        step = self.get_flow(flow_id).find_step(step_id)
        return self.update_step(flow_id, step_id, enabled=(not step.enabled) if enabled is None else enabled)

    def rename_step(self, flow_id: str, step_id: str, description: str) -> Step:
        return self.update_step(flow_id, step_id, description=description)

    def set_variable(self, flow_id: str, key: str, value: Any) -> None:
        flow = self.get_flow(flow_id)
        flow.variables[key] = value
        flow.touch()

    @staticmethod
    def _renumber(flow: Flow) -> None:
        for i, step in enumerate(flow.steps, start=1):
            step.order = i


def substitute(value: Any, variables: dict[str, Any]) -> Any:
    """Replace ``{{name}}`` placeholders in a string; other values pass through."""
    if not isinstance(value, str) or not variables:
        return value

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        return str(variables[name]) if name in variables else match.group(0)

    return _VARIABLE.sub(_replace, value)


def resolve_variables(flow: Flow, step: Step) -> Step:
    """Return a copy of ``step`` with flow variables substituted.

    Applies to test-data values and URLs. Unknown placeholders are left as-is.
    The stored step is never modified.
    """
    resolved = copy.deepcopy(step)
    if not flow.variables:
        return resolved

    resolved.test_data = {k: substitute(v, flow.variables) for k, v in resolved.test_data.items()}
    if resolved.url:
        resolved.url = substitute(resolved.url, flow.variables)
    return resolved
