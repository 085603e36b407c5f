"""
CaseDesk - Legal Case Management Backend
========================================

Role-based case management for clients and lawyers:
1. Client-owned cases with typed partial updates
2. Lawyer access requests, approvals and direct grants
3. Case documents gated by the same access verdict
"""

__version__ = "1.0.0"
