"""Scan Attendance package.

Feature modules (sessions, attendance, corrections, archive, ...) sit on top of a
keyed document store, with a thin Flask controller layer over the services.
"""
