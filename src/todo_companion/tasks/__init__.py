"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskListState)
- task_controller.py: task screen state + CRUD transitions bound to the backend
"""
