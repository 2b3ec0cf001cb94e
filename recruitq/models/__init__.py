"""Pydantic models for jobs and AI payloads."""
