from __future__ import annotations

"""Data structures shared by discovery, probing, graph building and export.

Everything here is a plain dataclass. ``to_dict`` methods produce the
camelCase shape written to ``flow-map-state-machine.json`` so downstream
reporting tools can read the snapshot without importing this package.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Channel(str, Enum):
    """The six input modalities a state is probed through, in probe order."""

    KEYBOARD = "keyboard"
    MOUSE = "mouse"
    TOUCH = "touch"
    SCROLL = "scroll"
    ZOOM = "zoom"
    FORMS = "forms"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Route:
    """A candidate route handed over by the route-discovery collaborator."""

    path: str
    critical: bool = False

    @classmethod
    def from_obj(cls, value: Any) -> "Route":
        # accept bare strings as well as {"path": ..., "critical": ...}
        if isinstance(value, Route):
            return value
        if isinstance(value, str):
            return cls(path=value)
        if not isinstance(value, dict) or not isinstance(value.get("path"), str):
            raise ValueError(f"Invalid route entry {value!r}: expected a path string or an object with a 'path'")
        return cls(path=value["path"], critical=bool(value.get("critical", False)))


@dataclass(frozen=True)
class PageSnapshot:
    """What the fingerprinter gets to see of a freshly loaded page."""

    path: str
    title: str
    content_hash: str = ""


@dataclass
class ElementInfo:
    """Point-in-time description of one interactive DOM node.

    ``index`` is the node's position in the page-wide inventory query, which
    is how the driver finds it again when the node has no DOM id.
    """

    index: int
    tag: str
    type: Optional[str] = None
    text: str = ""
    href: Optional[str] = None
    role: Optional[str] = None
    aria_label: Optional[str] = None
    dom_id: str = ""
    classes: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ElementInfo":
        return cls(
            index=int(raw.get("index", 0)),
            tag=str(raw.get("tag") or "").upper(),
            type=raw.get("type") or None,
            text=(raw.get("text") or "")[:50],
            href=raw.get("href"),
            role=raw.get("role"),
            aria_label=raw.get("ariaLabel"),
            dom_id=raw.get("id") or "",
            classes=raw.get("classes") or "",
        )

    @property
    def is_clickable(self) -> bool:
        return self.tag in ("BUTTON", "A") or self.role == "button"

    @property
    def is_focusable(self) -> bool:
        return self.tag in ("BUTTON", "A", "INPUT", "SELECT", "TEXTAREA") or self.role == "button"

    @property
    def is_form_control(self) -> bool:
        return self.tag in ("INPUT", "SELECT", "TEXTAREA")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "tag": self.tag,
            "type": self.type,
            "text": self.text,
            "href": self.href,
            "role": self.role,
            "ariaLabel": self.aria_label,
            "id": self.dom_id,
            "classes": self.classes,
        }


@dataclass
class State:
    """A deduplicated screen of the application under test."""

    id: str
    url: str
    title: str
    route: str = ""
    elements: List[ElementInfo] = field(default_factory=list, repr=False)
    screenshot: Optional[str] = None  # file name relative to the output dir

    @property
    def element_count(self) -> int:
        return len(self.elements)

    @property
    def label(self) -> str:
        return self.title or self.url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "elementCount": self.element_count,
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True)
class InteractionRecord:
    channel: Channel
    type: str
    state: str
    success: bool
    duration: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "channel": self.channel.value,
            "type": self.type,
            "state": self.state,
            "success": self.success,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        data.update(self.payload)
        return data


@dataclass(frozen=True)
class Transition:
    """An observed URL change caused by one probe action."""

    from_state: str
    to: str
    trigger: Dict[str, Any]
    duration: int = 0

    @property
    def trigger_kind(self) -> str:
        return str(self.trigger.get("type", "unknown"))

    @property
    def label(self) -> str:
        return str(self.trigger.get("key") or self.trigger.get("action") or "click")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_state,
            "to": self.to,
            "trigger": self.trigger,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class Issue:
    state: str
    type: str
    severity: Severity
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "state": self.state,
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        return data


@dataclass
class Coverage:
    states: int = 0
    transitions: int = 0
    interactions: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"states": self.states, "transitions": self.transitions, "interactions": self.interactions}


@dataclass
class FlowMap:
    """Manifest of the artifacts an export actually managed to write."""

    formats: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"formats": list(self.formats), "files": list(self.files)}


def _empty_interactions() -> Dict[Channel, List[InteractionRecord]]:
    return {channel: [] for channel in Channel}


@dataclass
class ProbeReport:
    """Everything a single state's probe produced."""

    state_id: str
    interactions: Dict[Channel, List[InteractionRecord]] = field(default_factory=_empty_interactions)
    transitions: List[Transition] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)

    @property
    def interaction_count(self) -> int:
        return sum(len(records) for records in self.interactions.values())


@dataclass
class FlowResult:
    """Aggregate of one exploration run.

    Only appended to while the run is in progress; ``refresh_coverage`` is
    called before export so the counters match the collected data.
    """

    states: List[State] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    interactions: Dict[Channel, List[InteractionRecord]] = field(default_factory=_empty_interactions)
    coverage: Coverage = field(default_factory=Coverage)
    issues: List[Issue] = field(default_factory=list)
    flow_map: Optional[FlowMap] = None
    skipped: List[Dict[str, str]] = field(default_factory=list)

    # --- accumulation -----------------------------------------------------
    def merge(self, report: ProbeReport) -> None:
        for channel, records in report.interactions.items():
            self.interactions[channel].extend(records)
        self.transitions.extend(report.transitions)
        self.issues.extend(report.issues)
        self.refresh_coverage()

    def refresh_coverage(self) -> Coverage:
        self.coverage = Coverage(
            states=len(self.states),
            transitions=len(self.transitions),
            interactions=sum(len(records) for records in self.interactions.values()),
        )
        return self.coverage

    # --- lookups ----------------------------------------------------------
    def get_state(self, state_id: str) -> Optional[State]:
        for st in self.states:
            if st.id == state_id:
                return st
        return None

    def issues_for(self, state_id: str) -> List[Issue]:
        return [issue for issue in self.issues if issue.state == state_id]

    # --- persistence ------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "states": [st.to_dict() for st in self.states],
            "transitions": [t.to_dict() for t in self.transitions],
            "interactions": {
                channel.value: [rec.to_dict() for rec in records]
                for channel, records in self.interactions.items()
            },
            "coverage": self.coverage.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues],
            "flowMap": self.flow_map.to_dict() if self.flow_map else None,
            "skipped": list(self.skipped),
        }
