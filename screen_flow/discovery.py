from __future__ import annotations

"""State discovery: turn a list of candidate routes into deduplicated states."""

import logging
import os
import re
from typing import Dict, Iterable, List, Optional, Set

from .driver import PAGE_SNAPSHOT_JS, PageDriver
from .errors import UnreachableBaseUrlError
from .fingerprint import Fingerprinter
from .models import Route, State

logger = logging.getLogger(__name__)


def route_slug(path: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", path).strip("-")
    return slug or "home"


class StateDiscoverer:
    """Visits each route once and keeps one ``State`` per fingerprint."""

    def __init__(self, driver: PageDriver, fingerprinter: Optional[Fingerprinter] = None) -> None:
        self._driver = driver
        self._config = driver.config
        self._fingerprinter = fingerprinter or Fingerprinter()
        # routes that produced no state, with the reason; read by the explorer
        self.skipped: List[Dict[str, str]] = []

    async def discover(self, routes: Iterable[Route]) -> List[State]:
        states: List[State] = []
        seen: Set[str] = set()
        attempted = 0
        reached = 0
        self.skipped = []

        for route in routes:
            attempted += 1
            nav = await self._driver.navigate(self._config.url_for(route.path))
            if not nav.ok:
                logger.info("Skipping route %s: %s", route.path, nav.error)
                self._skip(route, f"navigation failed: {nav.error}")
                continue
            reached += 1

            raw = await self._driver.evaluate(PAGE_SNAPSHOT_JS)
            if not raw.ok or not isinstance(raw.value, dict):
                logger.info("Skipping route %s: could not read page snapshot (%s)", route.path, raw.error)
                self._skip(route, "snapshot unavailable")
                continue

            snapshot = self._fingerprinter.snapshot(raw.value)
            key = self._fingerprinter.fingerprint(snapshot)
            if key in seen:
                logger.debug("Route %s resolved to known state %s", route.path, key)
                continue
            seen.add(key)

            state = State(id=f"state-{len(states)}", url=snapshot.path, title=snapshot.title, route=route.path)
            inventory = await self._driver.attempt(self._driver.inventory, self._config.max_elements)
            if inventory.ok:
                state.elements = inventory.value
            else:
                logger.warning("Element inventory failed on %s: %s", route.path, inventory.error)
            state.screenshot = await self._capture(state, route)
            states.append(state)
            logger.info("Discovered %s %s (%r, %d elements)", state.id, state.url, state.title, state.element_count)

        if attempted and not reached:
            raise UnreachableBaseUrlError(self._config.base_url, attempted)
        return states

    # ------------------------------------------------------------------
    async def _capture(self, state: State, route: Route) -> Optional[str]:
        filename = f"flow-{state.id}-{route_slug(route.path)}.png"
        shot = await self._driver.screenshot(os.path.join(self._config.output_dir, filename))
        if not shot.ok:
            logger.warning("Screenshot failed for %s: %s", state.id, shot.error)
            return None
        return filename

    def _skip(self, route: Route, reason: str) -> None:
        self.skipped.append({"route": route.path, "reason": reason})
