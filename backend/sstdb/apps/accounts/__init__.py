# backend/sstdb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- Administrator login against the configured credentials
- Read-only visitor tokens
"""
