"""
Nursery Roster: Monthly Shift Generation with Constraint Checking

Generates monthly shift schedules for nursery staff under band minimums,
adjacency and incompatibility rules, and supports single-cell edits with
candidate ranking and swap suggestions.
"""

__version__ = "1.0.0"
__author__ = "Nursery Roster Team"
