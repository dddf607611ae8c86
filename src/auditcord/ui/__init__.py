"""
User interface components for Auditcord.

- **console.py**: Interactive console for live bot management: status, guild
  listing, role cache inspection, graceful shutdown and restart with process
  replacement. Uses prompt_toolkit so input does not block Discord events.
"""
