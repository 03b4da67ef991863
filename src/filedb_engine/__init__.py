"""
File DB Engine - Embedded document-persisted relational store

A single-document data engine with tables, rows, roles and per-table
privileges, mutated through a closed set of typed operations that can be
submitted one at a time or as a planner-produced batch.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
