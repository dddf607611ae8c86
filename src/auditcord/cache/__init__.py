"""
Per-member role snapshots used to diff role updates.
"""
