"""
Actor attribution for Auditcord.

- **audit_query_client.py**: Reads a guild's audit log through py-cord and
  converts entries into immutable ``AuditEntry`` values, including the role
  deltas of member role updates.

- **attribution_resolver.py**: Retries audit lookups with an increasing delay
  until the log catches up, then applies the matching rules (role hint,
  target, recency) to pick the responsible actor.
"""
