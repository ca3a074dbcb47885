"""Care coordination application.

Models, serializers, services and views for accounts, patient records,
vitals, alerts, emergency dispatch and communication sessions.
"""
