"""
services/ — External collaborators

Modules:
    redis_cache.py            - Pydantic-aware Redis client wrapper
    cache.py                  - Redis singleton with graceful degradation
    snapshot_store.py         - Redis / in-memory AnalysisSnapshot stores
    snapshot_gate.py          - Hash comparison in front of the snapshot store
    feedback_hash.py          - Order-independent feedback content hash
    feedback_repository.py    - In-memory feedback store
    oracle.py                 - LLM text-understanding oracle
"""
