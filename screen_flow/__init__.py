"""Screen-flow package: state discovery and interaction-coverage testing for web applications.

Given a base URL and a list of candidate routes, the explorer loads each route
in a Playwright-driven browser, keeps one state per distinct screen, probes
every state through keyboard, mouse, touch, scroll, zoom and form input, and
writes a flow map of the transitions it observed.

Key sub-modules:

models.py       – States, interaction records, transitions, issues and the run result.
fingerprint.py  – Screen identity used to deduplicate discovery.
driver.py       – Playwright page wrapper (timeouts, scoped viewport, failures as data).
discovery.py    – Route list -> deduplicated states with element inventory and screenshot.
channels.py     – One tester per input channel.
probe.py        – Runs the channel testers against a state in a fixed order.
graph.py        – networkx multigraph of observed transitions.
exporter.py     – JSON, Mermaid, HTML and GraphML flow map artefacts.
explorer.py     – The end-to-end run.
phases.py       – Static registry for plugging the run into a larger orchestrator.
"""
