"""
pytest suite for the SIM order lifecycle backend.

Test categories:
- Unit tests: cron helpers, validators, encryption, auth
- Service tests: mapping registry, lifecycle engine, reclamation, audit
- Integration tests: full FastAPI app and concurrent claims on file-backed SQLite
"""
