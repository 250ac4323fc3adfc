"""Scheduler core and the maintenance jobs built on it."""
