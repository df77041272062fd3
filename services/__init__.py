"""
Helpdesk Services
=================

Services:
- helpdesk: support tickets, department routing, triage advice and reports
"""
