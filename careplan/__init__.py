"""Core domain logic for recurring care schedules and completion analytics.

This package contains the scheduling and reporting logic and its domain models,
isolated from persistence so it is easy to test and reason about.
"""
