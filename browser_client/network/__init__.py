"""Requests, responses, routing and the HTTP request context."""
