from __future__ import annotations

"""Runs every channel tester against one state, in a fixed order."""

import logging
from typing import Sequence, Type

from .channels import CHANNEL_TESTERS, ChannelOutcome, ChannelTester, TouchTester
from .driver import PageDriver
from .models import Issue, ProbeReport, Severity, State

logger = logging.getLogger(__name__)


class InteractionProbe:
    """Probe a state through keyboard, mouse, touch, scroll, zoom and forms.

    The page is loaded fresh before the first channel and again after the
    touch channel, which leaves the page at the mobile viewport's layout.
    A tester that raises loses only the rest of its own channel: what it
    recorded so far is kept, a medium-severity issue is added and the next
    channel runs.
    """

    def __init__(self, driver: PageDriver, testers: Sequence[Type[ChannelTester]] = CHANNEL_TESTERS) -> None:
        self._driver = driver
        self._config = driver.config
        self._testers = tuple(testers)

    async def probe(self, state: State) -> ProbeReport:
        report = ProbeReport(state_id=state.id)
        url = self._config.url_for(state.url)

        nav = await self._driver.navigate(url)
        if not nav.ok:
            logger.warning("Cannot probe %s: navigation to %s failed (%s)", state.id, url, nav.error)
            report.issues.append(
                Issue(state=state.id, type="navigation", severity=Severity.HIGH, message=f"Failed to navigate to {state.url}")
            )
            return report

        logger.info("Probing %s (%s): %d elements", state.id, state.url, state.element_count)
        for tester_cls in self._testers:
            tester = tester_cls(self._driver, state)
            try:
                await tester.run()
            except Exception as e:
                logger.exception("%s channel failed on %s", tester.channel.value, state.id)
                tester.outcome.issues.append(
                    Issue(
                        state=state.id,
                        type=tester.issue_type,
                        severity=Severity.MEDIUM,
                        message=f"{tester.channel.value.capitalize()} testing error: {e}",
                    )
                )
            self._collect(report, tester)

            if issubclass(tester_cls, TouchTester):
                back = await self._driver.navigate(url)
                if not back.ok:
                    logger.warning("Reload of %s after touch testing failed: %s", state.id, back.error)

        logger.debug(
            "%s: %d interactions, %d transitions, %d issues",
            state.id,
            report.interaction_count,
            len(report.transitions),
            len(report.issues),
        )
        return report

    @staticmethod
    def _collect(report: ProbeReport, tester: ChannelTester) -> None:
        outcome: ChannelOutcome = tester.outcome
        report.interactions[tester.channel].extend(outcome.records)
        report.transitions.extend(outcome.transitions)
        report.issues.extend(outcome.issues)
