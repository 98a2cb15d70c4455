"""Attendance Punch Engine package.

Organized by feature modules (geofence, shifts, session, ledger, punch, ...)
with a thin Flask controller layer on top of plain service classes.
"""
