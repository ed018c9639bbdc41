"""
Domain layer for bounty claim verification.

This layer contains:
- Data models (verdicts, proof payloads, submission requests)
- Business logic (email verification gate, proof payload builder, claim pipeline)
- Result types (explicit success/failure handling)
"""
