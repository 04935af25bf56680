"""
RecallCore Utilities Package
============================
Serialization helpers shared by the storage layer.

Example:
    from recallcore.utils.json_compat import dumps, loads
"""
