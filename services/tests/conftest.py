"""
Top-level test configuration for bucketfs.
"""

import os

# Ensure test-friendly defaults
os.environ.setdefault("BUCKETFS_CONFIG_FILE", "/nonexistent/bucketfs.yaml")
os.environ.setdefault("BUCKETFS_STORAGE__BACKEND", "memory")
os.environ.setdefault("BUCKETFS_JSON_LOGS", "false")
os.environ.setdefault("BUCKETFS_LOG_LEVEL", "DEBUG")
