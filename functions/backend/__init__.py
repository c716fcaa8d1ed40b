"""
Backend package for the issue tracker.

This package provides the document store, user directory and attachment
storage abstractions shared by the Cloud Functions, plus a FastAPI
application that serves the same tracker functions as a long-running
service.
"""
