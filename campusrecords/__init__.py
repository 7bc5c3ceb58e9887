"""
Campus Course & Records Manager.

Students, courses and enrollments kept in memory, validated against simple
business rules and stored as CSV files, with timestamped backups.
"""

__version__ = "1.0.0"
