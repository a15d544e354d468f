"""Pydantic request/response schemas for the sync and progress handlers."""
