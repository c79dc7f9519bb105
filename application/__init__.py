"""
Application Layer for the Workout Parser API.

This package contains:
- ports/: Protocols for the catalog, persistence and AI clients
- use_cases/: The parse pipeline orchestration
- exceptions: Pipeline error hierarchy
"""
