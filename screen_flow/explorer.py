from __future__ import annotations

"""The exploration run: discover states, probe them, export the flow map."""

import logging
import os
from typing import Any, Iterable, List, Optional

from .config import ExplorerConfig
from .discovery import StateDiscoverer
from .driver import PageDriver, launch_page
from .exporter import FlowMapExporter
from .fingerprint import Fingerprinter, get_fingerprinter
from .models import FlowResult, Route
from .probe import InteractionProbe

logger = logging.getLogger(__name__)


class ScreenFlowExplorer:
    """High-level driver of one run.

    Inputs (config, routes, page) are never modified; the run builds a new
    ``FlowResult`` and hands it back.
    """

    def __init__(self, config: ExplorerConfig, fingerprinter: Optional[Fingerprinter] = None) -> None:
        self._config = config
        self._fingerprinter = fingerprinter or get_fingerprinter(config.fingerprint)

    async def explore(self, routes: Iterable[Any]) -> FlowResult:
        """Launch a browser, run, and close the browser again."""
        async with launch_page(self._config) as driver:
            return await self.run(driver, routes)

    async def run(self, driver: PageDriver, routes: Iterable[Any]) -> FlowResult:
        candidates: List[Route] = [Route.from_obj(r) for r in routes] or [Route("/")]
        os.makedirs(self._config.output_dir, exist_ok=True)
        result = FlowResult()

        # 1. states ------------------------------------------------------------
        logger.info("Discovering states across %d routes", len(candidates))
        discoverer = StateDiscoverer(driver, self._fingerprinter)
        result.states = await discoverer.discover(candidates)
        result.skipped = list(discoverer.skipped)
        result.refresh_coverage()
        logger.info("Found %d unique states (%d routes skipped)", len(result.states), len(result.skipped))

        # 2. interactions ------------------------------------------------------
        probe = InteractionProbe(driver)
        to_probe = result.states[: self._config.max_states]
        if len(to_probe) < len(result.states):
            logger.info("Probing the first %d of %d states", len(to_probe), len(result.states))
        for state in to_probe:
            result.merge(await probe.probe(state))
        result.refresh_coverage()
        logger.info(
            "Tested %d interactions, observed %d transitions, recorded %d issues",
            result.coverage.interactions,
            result.coverage.transitions,
            len(result.issues),
        )

        # 3. flow map ----------------------------------------------------------
        result.flow_map = FlowMapExporter(self._config.output_dir, self._config.base_url).export(result)
        return result
