"""Inbound webhook handling for json_bot events."""
