"""Registry operations used by the pull orchestrator."""
