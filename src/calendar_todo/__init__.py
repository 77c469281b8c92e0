"""
Calendar Todo backend package.

A FastAPI service keeping a calendar todo list with scheduled reminders and
optional Google Calendar import/export. `create_app` builds the application;
`run` serves it with uvicorn.
"""

__version__ = "0.1.0"
