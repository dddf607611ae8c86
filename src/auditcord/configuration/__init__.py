"""
Configuration management for Auditcord.

- **app_configuration.py**: YAML configuration loader guarded by fcntl file
  locks. Provides the log channel routing table, the fallback channel, the
  attribution retry settings and the role cache warm-up toggle. Falls back
  gracefully on missing or malformed config files.
"""
