"""Qt integration: QSettings persistence and event-loop timers."""
