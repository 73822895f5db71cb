"""
Availability and conflict detection engine for healthcare consultations.

Computes bookable slots for providers, validates proposed bookings against
appointments, breaks and schedule exceptions, suggests alternatives and
re-validates upcoming appointments when a provider edits their schedule.
"""

__version__ = "0.1.0"
