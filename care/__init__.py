"""Care application for the clinic backend.

This package contains models, services, serializers, views and route
registrations for appointments, home visits, prescriptions, medications
and emergency reports, consumed by the browser client.
"""
