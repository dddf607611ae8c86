"""
Log record delivery.

- **log_embed.py**: Renders a ``LogRecord`` as a Discord embed.
- **notification_sink.py**: Channel sink plus the dispatcher that routes
  records by category and falls back to a single backup channel.
"""
