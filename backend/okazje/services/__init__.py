"""Domain services: mapping, validation, persistence and orchestration."""
