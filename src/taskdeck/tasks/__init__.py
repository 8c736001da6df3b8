"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, Project, Recurrence, TrackerState)
- codec.py: JSON blob <-> TrackerState, defensive decoding
- projector.py: filter/search/sort pipeline for the visible list
- recurrence.py: next-occurrence synthesis for recurring tasks
- task_store.py: state owner with write-through persistence + change notifications
- task_api.py: command dataclasses and dispatch
"""
