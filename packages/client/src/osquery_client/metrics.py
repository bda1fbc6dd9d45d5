"""Prometheus metrics for osquery-client.

Provides client-side observability:

1. RED Metrics (Rate, Errors, Duration)
   - RPC call counts by method and status
   - RPC call duration histograms

2. Lifecycle Metrics
   - Readiness probes issued while waiting for a spawned daemon
   - Time spent waiting for a spawned daemon
   - Daemons currently owned by live clients

Collectors register on the default registry; exposing them is up to the
embedding application.
"""

from prometheus_client import Counter, Gauge, Histogram

# ==============================================================================
# RED Metrics (Rate, Errors, Duration)
# ==============================================================================

RPC_CALL_DURATION = Histogram(
    "osquery_rpc_call_duration_seconds",
    "Duration of a single RPC call to the daemon in seconds",
    ["method", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 3.0],
)

RPC_CALL_COUNT = Counter(
    "osquery_rpc_calls_total",
    "Total RPC calls to the daemon",
    ["method", "status"],
)

# ==============================================================================
# Lifecycle Metrics
# ==============================================================================

READINESS_PROBES = Counter(
    "osquery_readiness_probes_total",
    "Connect attempts made while waiting for a spawned daemon",
)

SPAWN_WAIT_DURATION = Histogram(
    "osquery_spawn_wait_duration_seconds",
    "Time from process start until the control channel accepted a connection",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

OWNED_DAEMONS = Gauge(
    "osquery_owned_daemons",
    "Daemon processes currently owned by live clients",
)
