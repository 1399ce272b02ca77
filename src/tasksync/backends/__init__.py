"""
Backends implementing the core ports.

- memory.py: in-process document store + auth provider (default, offline)
- firebase.py: Cloud Firestore + Firebase Auth REST
"""
