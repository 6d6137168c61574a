"""Application package for the study planner backend.

This package exposes the service, repository and model modules used by
the FastAPI application: subjects, activities, notes and pomodoro
sessions, each owned by the user who created them.
"""
