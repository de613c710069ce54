"""Shared configuration and logging for printer-link services."""
