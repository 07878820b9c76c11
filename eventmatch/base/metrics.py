from prometheus_client import Counter, Histogram


# === API Metrics ===

api_exception_counter = Counter(
    "api_exception_count", "Total API exceptions by type",
    ["type"]
)


# === Scheduling Metrics ===

auto_schedule_runs = Counter(
    "auto_schedule_runs_total", "Auto-schedule runs by outcome",
    ["outcome"]  # scheduled, no_matches, all_covered, no_availability, failed
)

meetings_auto_scheduled = Counter(
    "meetings_auto_scheduled_total", "Meetings created by the auto-scheduler"
)

matches_unscheduled = Counter(
    "matches_unscheduled_total", "Candidate matches left without a slot after a run"
)

auto_schedule_duration = Histogram(
    "auto_schedule_duration_seconds", "Wall time of the greedy slot assignment pass"
)

reminders_sent = Counter(
    "meeting_reminders_sent_total", "Reminder notifications created",
    ["reminder_type"]
)
