"""
Helpdesk Service
================

Support tickets with a validated status lifecycle, keyword department
routing, triage advice (external classifier with heuristic fallback) and
period reports.
"""
