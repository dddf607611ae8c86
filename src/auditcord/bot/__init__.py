"""
Discord bot cogs for Auditcord.

- **audit_log_listener.py**: Subscribes to member, ban, channel, role, voice,
  invite and guild lifecycle events and forwards them to the event router.
"""
