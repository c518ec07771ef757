"""Content-generation job orchestration."""
