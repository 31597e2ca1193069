from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "taskmelt_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "taskmelt_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

TASKS_PARSED_TOTAL = get_or_create_metric(
    "taskmelt_tasks_parsed_total", "Total capture lines parsed", Counter
)

TRIGGERS_TOTAL = get_or_create_metric(
    "taskmelt_triggers_total",
    "Reminder registrations by outcome",
    Counter,
    labelnames=["outcome"],
)

EVENTS_IMPORTED_TOTAL = get_or_create_metric(
    "taskmelt_calendar_events_imported_total", "Calendar events turned into tasks", Counter
)

SCHEDULED_NOTIFICATIONS = get_or_create_metric(
    "taskmelt_scheduled_notifications", "Notifications currently registered", Gauge
)


def record_sync(report) -> None:
    """Count one registrar report. Metrics are best-effort."""
    try:
        TRIGGERS_TOTAL.labels(outcome="scheduled").inc(len(report.scheduled))
        TRIGGERS_TOTAL.labels(outcome="cancelled").inc(len(report.cancelled))
        TRIGGERS_TOTAL.labels(outcome="unchanged").inc(len(report.unchanged))
        TRIGGERS_TOTAL.labels(outcome="failed").inc(len(report.failed))
    except Exception:
        pass
