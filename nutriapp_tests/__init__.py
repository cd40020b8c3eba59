"""End-to-end and API test harness for the NutriApp web application."""

__version__ = "1.0.0"
