"""
ATMS Package - Automated Train Management System
================================================
Discrete-time simulation of a single-track rail network

Structure:
- Core/: Entities, event log and the tick engine
- Utils/: Helper utilities and workers
- tests/: Unit tests
"""

__version__ = "1.0.0"
__author__ = "ATMS Team"
