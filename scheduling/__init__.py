"""Appointment scheduling application for the hospital backend.

This package holds the clinician slot calendar, the booking state machine
and walk-in admission, together with the serializers, views and route
registrations that expose them over the JSON API.
"""
