"""Core domain types and exceptions for the ingest client."""
