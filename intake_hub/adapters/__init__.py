"""Adapters for Intake-Hub (storage backends)."""
