"""Outbound notification helpers: message rendering and SMTP delivery."""
