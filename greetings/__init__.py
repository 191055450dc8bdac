"""
Greetings: an observable, two-service request pipeline.

A front service answers ``GET /greeting`` by running three instrumented stages
(local work, a call to the backend service, language resolution); the backend
service answers ``GET /backend`` and encodes its business outcome in the body.
"""

__version__ = "0.1.0"
__author__ = "Platform Observability Team"
