"""API and event models for Intake-Hub."""
