"""Eleva study planner backend."""
