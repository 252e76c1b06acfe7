"""Prometheus counters for the draw and its persistence."""

from __future__ import annotations

from prometheus_client import Counter

ROUNDS_CONFIRMED = Counter(
    "draw_rounds_confirmed_total",
    "Participant-to-gift matches confirmed",
)
TRANSITIONS_REJECTED = Counter(
    "draw_transitions_rejected_total",
    "Operator actions ignored because their guard did not hold",
    ["action"],
)
ROSTER_COMMITS = Counter(
    "draw_roster_commits_total",
    "Roster replacements and full resets",
)
STORAGE_TIER_FAILURES = Counter(
    "storage_tier_failures_total",
    "Failed session writes per storage tier",
    ["backend"],
)
STORAGE_EXHAUSTED = Counter(
    "storage_exhausted_total",
    "Session saves where every storage tier failed",
)
