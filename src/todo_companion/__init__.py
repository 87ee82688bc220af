"""To-do client: sign in, then list, add, rename and delete your tasks."""

__version__ = "0.1.0"
