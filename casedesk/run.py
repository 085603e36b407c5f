#!/usr/bin/env python3
"""
Quick runner for CaseDesk
=========================

Usage:
    python -m casedesk.run
"""

import uvicorn

if __name__ == "__main__":
    print("Starting CaseDesk...")
    print("API docs: http://localhost:8000/docs")
    print("Health:   http://localhost:8000/health")
    print()

    uvicorn.run(
        "casedesk.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
