"""
Task subsystem.

Components:
- classifier.py: due-date buckets (overdue / today / upcoming / no due / done) and search filter
- mutations.py: optimistic mutation controller (apply, call remote, confirm or roll back)
- task_store.py: observable task list + validated task operations
- reminders.py: local reminder scheduler and the polling delivery loop
"""
