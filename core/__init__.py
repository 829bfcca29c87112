"""Core application for the Blood Warriors API.

Models, services, serializers, views and routes for donors, patients,
donation requests, notifications and partner rewards.
"""
