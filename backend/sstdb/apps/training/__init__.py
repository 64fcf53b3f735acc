# backend/sstdb/apps/training/__init__.py
"""
Training compliance app

Responsible for:
- The NR course catalog and per-training status computation
- Normalising spreadsheet rows into canonical employees
- Synchronising the spreadsheet into the database
- Employee listing, search, manual edits and the dashboard summary
"""
