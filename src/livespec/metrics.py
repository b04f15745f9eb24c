from prometheus_client import Counter, Gauge

polls_total = Counter(
    "livespec_polls_total",
    "Number of polling ticks by outcome",
    ["outcome"],
)

spec_changes_detected_total = Counter(
    "livespec_spec_changes_detected_total",
    "Number of classified spec changes by severity",
    ["severity"],
)

sync_triggers_total = Counter(
    "livespec_sync_triggers_total",
    "Number of downstream sync triggers by result",
    ["result"],
)

errors_handled_total = Counter(
    "livespec_errors_handled_total",
    "Number of handled source errors by error type",
    ["error_type"],
)

recovery_attempts_total = Counter(
    "livespec_recovery_attempts_total",
    "Number of recovery strategy attempts",
    ["strategy", "outcome"],
)

notifications_sent_total = Counter(
    "livespec_notifications_sent_total",
    "Number of notification events emitted",
    ["kind"],
)

active_polls = Gauge(
    "livespec_active_polls",
    "Number of sources currently being polled",
)
