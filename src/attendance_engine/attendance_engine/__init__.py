"""Attendance Engine package.

Organized by feature modules (geofence, worktime, attendance, approvals, leave)
with a thin Flask JSON adapter on top of service/repository layers.
"""
