"""Inbound push webhooks: verification, parsing and the HTTP server."""
