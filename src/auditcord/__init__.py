"""
Auditcord - Attributed Discord Audit Logging

Auditcord watches moderation-relevant guild events and posts one embed per
change to a configured log channel, naming the moderator responsible whenever
the guild audit log can tell.

Core Components:

- **Attribution**: Polls the eventually-consistent audit log with backoff and
  picks the entry that explains an event, falling back to "System/Unknown"
- **Role Cache**: Keeps the last known role set of every member so role
  grants and removals are reported one role at a time
- **Event Router**: Turns gateway events into structured log records
- **Notification**: Renders records as embeds and delivers them, retrying once
  on a fallback channel
- **Interactive Console**: Live status, cache inspection and graceful
  restart/shutdown

Usage:
    from auditcord.main import main
    main()  # Starts the bot with console interface
"""
