"""Prometheus metric inventory.

Every metric the service exports is declared here; the module that owns
the behavior imports the metric and records at the point of action.

HTTP metrics are filled in by MetricsMiddleware.  The grading metrics
answer the operational questions that matter for this service:

  - How many evaluations run, manual vs AI, and through which provider?
  - How often do hosted models fail, and for which task?
  - How often does a score come from a heuristic instead of a model?
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # AI evaluation requests wait on remote models, hence the long tail
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 60.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------

EVALUATIONS = Counter(
    "evaluations_total",
    "Completed evaluations",
    ["mode", "provider"],  # mode: manual|ai; provider: none|huggingface|ollama
)

SCORE_OVERRIDES = Counter(
    "score_overrides_total",
    "Final scores replaced by a professor override",
)

SUBMISSIONS = Counter(
    "submissions_total",
    "Final submissions accepted",
    ["submission_type"],  # direct|blockchain
)

# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------

INFERENCE_REQUESTS = Counter(
    "inference_requests_total",
    "Remote inference calls by task and outcome",
    ["task", "outcome"],  # outcome: ok|error
)

INFERENCE_DURATION = Histogram(
    "inference_duration_seconds",
    "Remote inference call latency",
    ["task"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

HEURISTIC_FALLBACKS = Counter(
    "heuristic_fallbacks_total",
    "Estimates produced by a heuristic instead of a remote model",
    ["check"],  # similarity|ai_detection|content
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],
)
