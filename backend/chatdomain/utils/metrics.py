from prometheus_client import Counter, Histogram

# Provider metrics
provider_call_duration = Histogram(
    "chatdomain_provider_call_duration_seconds",
    "Time taken by a call to an external provider API",
    ["provider", "operation"]
)

# Provisioning metrics
provisioning_runs = Counter(
    "chatdomain_provisioning_runs_total",
    "Total number of domain provisioning runs",
    ["outcome"]
)

duplicate_recoveries = Counter(
    "chatdomain_duplicate_recoveries_total",
    "Provisioning steps that reused an existing resource after a duplicate error",
    ["step"]
)

# Order metrics
order_events = Counter(
    "chatdomain_order_events_total",
    "Payment events processed for domain orders",
    ["event_type", "outcome"]
)
