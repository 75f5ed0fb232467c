"""Integration adapters for external systems (Visma eAccounting).

Keep these modules small and testable:
- No FastAPI request/response objects
- Pure IO + parsing helpers
"""
