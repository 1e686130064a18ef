"""TaskPilot: console client for the shared task-list backend."""
