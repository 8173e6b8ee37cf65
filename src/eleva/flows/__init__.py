"""Multi-store flows (error resolution bridge, topic auto-scheduling)."""
