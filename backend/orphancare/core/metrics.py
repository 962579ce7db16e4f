"""Prometheus metrics for the application"""
from prometheus_client import Counter, REGISTRY


def _counter(name, documentation, labelnames=()):
    # Module may be re-imported (tests, reloads); reuse the registered collector
    try:
        return Counter(name, documentation, labelnames)
    except ValueError:
        return REGISTRY._names_to_collectors.get(name)


# Webhook metrics
webhook_events_counter = _counter(
    'orphancare_webhook_events_total',
    'Total number of billing webhook events received',
    ['event_type', 'outcome']
)

# Donation lifecycle metrics
subscriptions_created_counter = _counter(
    'orphancare_subscriptions_created_total',
    'Total number of recurring donation subscriptions created'
)

donations_cancelled_counter = _counter(
    'orphancare_donations_cancelled_total',
    'Total number of donations moved to cancelled',
    ['source']
)

# Scheduler metrics
scheduler_runs_counter = _counter(
    'orphancare_scheduler_runs_total',
    'Total number of scheduled job runs',
    ['job', 'status']
)
