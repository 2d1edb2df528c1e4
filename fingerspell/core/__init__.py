"""Pipeline core: domain types, state/context, scheduling and the orchestrator."""
