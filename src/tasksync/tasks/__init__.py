"""
Task subsystem.

Components:
- task_models.py: data structures (Task, StoreError, FeedEvent)
- task_feed.py: live snapshot feed -> full replacement task lists
- task_store.py: observable task list + load/add/toggle/delete
- task_api.py: small helpers used by the console commands
"""
