# backend/sstdb/__init__.py
"""
SST training compliance backend.

Tracks NR (Norma Regulamentadora) safety-training compliance per employee
and keeps the database in step with the spreadsheet the HR staff edit.

The ORM models live in sstdb/apps/*/models.py; the compliance engine
(date parsing, status computation, row normalisation and the sync
reconciler) lives in sstdb/apps/training.
"""
