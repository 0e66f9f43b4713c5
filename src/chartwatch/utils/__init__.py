# ABOUTME: Utilities package initialization for chartwatch
# ABOUTME: Contains cluster access, snapshot delivery, and logging helpers

"""
chartwatch Utilities Package

Shared utilities:
    - kube.py: Kubernetes API access and connection errors
    - delivery.py: HTTP delivery of snapshots with retry on timeouts
    - logging.py: Structured logging with run ids
"""
