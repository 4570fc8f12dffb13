"""Persistence: append-only event log and state reconstruction."""
