"""Intake-Hub: patient intake records with name search and a real-time relay."""

__version__ = "1.0.0"
