"""Patients API for the ferrum service.

This app contains the patient model, the bearer token pipeline, the store
gateway and the lifecycle that serves the API until the process is told to
stop.
"""
