"""Command implementations behind the CLI; each `run_*` returns an exit code."""
