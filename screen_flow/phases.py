from __future__ import annotations

"""Static phase registry used by orchestrators that run screen-flow as one phase of many."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Type

from .config import ExplorerConfig
from .driver import PageDriver
from .explorer import ScreenFlowExplorer
from .models import FlowResult, Route


class PhaseKind(str, Enum):
    SCREEN_FLOW = "screen-flow"


@dataclass(frozen=True)
class PhaseContext:
    """Read-only inputs handed to a phase."""

    config: ExplorerConfig
    driver: PageDriver
    routes: Tuple[Route, ...] = ()


@dataclass
class PhaseResult:
    kind: PhaseKind
    data: Any
    summary: Dict[str, Any] = field(default_factory=dict)


class Phase:
    kind: PhaseKind

    async def run(self, context: PhaseContext) -> PhaseResult:
        raise NotImplementedError


class ScreenFlowPhase(Phase):
    kind = PhaseKind.SCREEN_FLOW

    async def run(self, context: PhaseContext) -> PhaseResult:
        result: FlowResult = await ScreenFlowExplorer(context.config).run(context.driver, context.routes)
        summary = dict(result.coverage.to_dict(), issues=len(result.issues))
        return PhaseResult(kind=self.kind, data=result, summary=summary)


PHASES: Dict[PhaseKind, Type[Phase]] = {
    PhaseKind.SCREEN_FLOW: ScreenFlowPhase,
}


def get_phase(kind: PhaseKind | str) -> Phase:
    return PHASES[PhaseKind(kind)]()
