"""Adapters for the PagerDuty REST API."""
