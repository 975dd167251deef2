"""Prometheus metrics for the notes server.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Tool invocation metrics
# ---------------------------------------------------------------------------

TOOL_INVOCATIONS = Counter(
    "notes_tool_invocations_total",
    "Total number of notes tool invocations",
    ["tool_name", "status"],
)

TOOL_DURATION = Histogram(
    "notes_tool_duration_seconds",
    "Duration of notes tool calls in seconds",
    ["tool_name"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ---------------------------------------------------------------------------
# Search metrics
# ---------------------------------------------------------------------------

SEARCH_SKIPPED = Counter(
    "notes_search_skipped_objects_total",
    "Objects skipped during a search scan",
    ["reason"],  # empty, malformed, read_error
)
