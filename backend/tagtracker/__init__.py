"""
Tag Tracker Backend
===================

This is the Python package for the backend API.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (sensors, notifications, query filters)
- services/  = Workers (store, ingestion, visit counting, MQTT)
- routers/   = API endpoints (the doors into our app)
- utils/     = Small helpers (timestamp ranges, validation)
- main.py    = Puts it all together and starts the server

Author: Tag Tracker Team
"""

__version__ = "1.0.0"
