"""Import orchestration, progress display and run summary."""
