"""Transports and process plumbing for the offer-list cache (HTTP reader, websocket events, runner)."""
