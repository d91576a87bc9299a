"""Core configuration and logging for PlanBook."""
