"""
Prometheus metrics for reaction payment monitoring.

Tracks:
- Tokens issued
- Authorization verdicts by status
- Injected failures by policy
- Charge attempts and final charge results (caller side)
- Charge duration across all attempts
"""
from prometheus_client import Counter, Histogram

# Authority metrics
tokens_issued_total = Counter(
    "tokens_issued_total",
    "Total number of tokens issued",
)

authorizations_total = Counter(
    "authorizations_total",
    "Total authorization verdicts",
    ["status"],
)

injected_failures_total = Counter(
    "injected_failures_total",
    "Total simulated failures injected",
    ["policy"],
)

# Caller metrics
charge_attempts_total = Counter(
    "charge_attempts_total",
    "Total charge attempts, including retries",
    ["outcome"],  # accepted, terminal, transient
)

charge_results_total = Counter(
    "charge_results_total",
    "Final results of orchestrated charges",
    ["status", "exhausted"],
)

charge_duration_seconds = Histogram(
    "charge_duration_seconds",
    "Orchestrated charge duration across all attempts in seconds",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_token_issued() -> None:
        """Record a token issuance."""
        tokens_issued_total.inc()

    @staticmethod
    def record_authorization(status: str) -> None:
        """Record an authorization verdict."""
        authorizations_total.labels(status=status).inc()

    @staticmethod
    def record_injected_failure(policy: str) -> None:
        """Record a simulated failure."""
        injected_failures_total.labels(policy=policy).inc()

    @staticmethod
    def record_charge_attempt(outcome: str) -> None:
        """Record a single charge attempt."""
        charge_attempts_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_charge_result(status: str, exhausted: bool, duration_seconds: float) -> None:
        """Record the final result of an orchestrated charge."""
        charge_results_total.labels(status=status, exhausted=str(exhausted).lower()).inc()
        charge_duration_seconds.observe(duration_seconds)


# Export singleton instance
metrics = MetricsCollector()
