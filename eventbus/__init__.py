"""Shared broker client for the auth and post services.

Modules include configuration, the queue registry, the RabbitMQ connection
manager, publisher and consumer registrar, payload validation, queue
inspection via the management API, metrics, and tracing helpers.
"""
