from __future__ import annotations

"""Writes the flow map: JSON state machine, Mermaid diagram, HTML summary and GraphML."""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import networkx as nx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .graph import TransitionGraph
from .models import Channel, FlowMap, FlowResult

logger = logging.getLogger(__name__)

JSON_FILE = "flow-map-state-machine.json"
MERMAID_FILE = "flow-map-diagram.mmd"
HTML_FILE = "flow-map-interactive.html"
GRAPHML_FILE = "flow-map-graph.graphml"

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")

CHANNEL_LABELS = {
    Channel.KEYBOARD: "Keyboard",
    Channel.MOUSE: "Mouse",
    Channel.TOUCH: "Touch",
    Channel.SCROLL: "Scroll",
    Channel.ZOOM: "Zoom",
    Channel.FORMS: "Forms",
}


def _mermaid_id(state_id: str) -> str:
    return state_id.replace("-", "_")


def _mermaid_text(text: str) -> str:
    return text.replace('"', "#quot;").replace("|", "#124;").replace("\n", " ")


def render_mermaid(result: FlowResult, graph: TransitionGraph) -> str:
    lines = ["graph LR"]
    for state in result.states:
        lines.append(f'  {_mermaid_id(state.id)}["{_mermaid_text(state.label)}"]')
    lines.append("")
    for edge in graph.collapsed(known_only=True):
        lines.append(f"  {_mermaid_id(edge.source)} -->|{_mermaid_text(edge.label)}| {_mermaid_id(edge.target)}")
    return "\n".join(lines) + "\n"


class FlowMapExporter:
    """Best-effort export: a format that fails is logged and left out of the manifest."""

    def __init__(self, output_dir: str, base_url: Optional[str] = None) -> None:
        self.output_dir = output_dir
        self.base_url = base_url
        self._env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape(["html"]))

    def export(self, result: FlowResult) -> FlowMap:
        os.makedirs(self.output_dir, exist_ok=True)
        graph = TransitionGraph.from_result(result, self.base_url)
        generated = datetime.now(timezone.utc).isoformat()

        writers: List[Tuple[str, str, Callable[[str], None]]] = [
            ("JSON", JSON_FILE, lambda path: self._write_json(path, result, generated)),
            ("Mermaid", MERMAID_FILE, lambda path: self._write_text(path, render_mermaid(result, graph))),
            ("HTML", HTML_FILE, lambda path: self._write_text(path, self.render_html(result, graph, generated))),
            ("GraphML", GRAPHML_FILE, lambda path: nx.write_graphml(graph.to_graphml_graph(), path)),
        ]

        flow_map = FlowMap()
        for fmt, filename, write in writers:
            path = os.path.join(self.output_dir, filename)
            try:
                write(path)
            except Exception as e:
                logger.warning("Failed to write %s flow map to %s: %s", fmt, path, e)
                continue
            flow_map.formats.append(fmt)
            flow_map.files.append(path)
        logger.info("Flow map written: %s", ", ".join(flow_map.formats) or "nothing")
        return flow_map

    # ------------------------------------------------------------------
    def snapshot(self, result: FlowResult, generated: str) -> Dict[str, Any]:
        return {
            "states": [st.to_dict() for st in result.states],
            "transitions": [t.to_dict() for t in result.transitions],
            "coverage": result.coverage.to_dict(),
            "generated": generated,
        }

    def render_html(self, result: FlowResult, graph: TransitionGraph, generated: str) -> str:
        template = self._env.get_template("flow_map.html")
        return template.render(
            generated=generated,
            coverage=result.coverage,
            states=result.states,
            transitions=result.transitions,
            edges=graph.collapsed(),
            channels=[(CHANNEL_LABELS[ch], len(result.interactions[ch])) for ch in Channel],
            issues=result.issues,
            skipped=result.skipped,
        )

    def _write_json(self, path: str, result: FlowResult, generated: str) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.snapshot(result, generated), fh, indent=2, default=str)

    @staticmethod
    def _write_text(path: str, text: str) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
