"""
Actor attribution for gateway events that arrive without an actor.

Discord's audit log is eventually consistent: the entry describing a kick or a
role change frequently shows up a second or two after the gateway event. The
resolver therefore polls the audit log a bounded number of times, waiting a
little longer before each retry, and picks the best candidate entry with a
fixed precedence of matching rules. When nothing matches it returns
:data:`UNKNOWN_ACTOR` instead of raising.
"""

from __future__ import annotations

import asyncio
import datetime
from typing import Any, Awaitable, Callable, List, Sequence

import discord

from auditcord.attribution.audit_query_client import AuditQueryClient
from auditcord.configuration.app_configuration import AttributionSettings
from auditcord.datatypes.attribution_datatypes import (
    UNKNOWN_ACTOR,
    Actor,
    AuditCategory,
    AuditEntry,
    RoleHint,
)
from auditcord.util.logger import get_logger

logger = get_logger("attribution_resolver")

Clock = Callable[[], datetime.datetime]
Sleeper = Callable[[float], Awaitable[Any]]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AttributionResolver:
    """Resolve the actor behind a state change from the guild audit log.

    Parameters
    ----------
    query_client:
        Source of audit entries.
    settings:
        Retry count, fetch size, delay schedule, staleness bound and query timeout.
    sleep:
        Awaitable used between attempts; must yield to the event loop.
    clock:
        Returns the current aware UTC time, used for the staleness bound.
    """

    def __init__(
        self,
        query_client: AuditQueryClient,
        settings: AttributionSettings | None = None,
        *,
        sleep: Sleeper = asyncio.sleep,
        clock: Clock = utcnow,
    ) -> None:
        self.query_client = query_client
        self.settings = settings or AttributionSettings()
        self._sleep = sleep
        self._clock = clock

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the zero-based ``attempt`` before trying again."""
        return self.settings.base_delay_seconds + attempt * self.settings.delay_increment_seconds

    def is_fresh(self, entry: AuditEntry) -> bool:
        age = (self._clock() - entry.created_at).total_seconds()
        return age < self.settings.staleness_seconds

    async def fetch(self, scope: Any, category: AuditCategory) -> List[AuditEntry]:
        """Run one bounded audit query. Any failure yields an empty list."""
        try:
            return list(
                await asyncio.wait_for(
                    self.query_client.query(scope, category, self.settings.fetch_limit),
                    timeout=self.settings.query_timeout_seconds,
                )
            )
        except asyncio.CancelledError:
            raise
        except discord.Forbidden:
            logger.warning("Missing 'View Audit Log' permission in guild %s", getattr(scope, "id", scope))
        except asyncio.TimeoutError:
            logger.debug("Audit query for %s timed out after %.1fs", category, self.settings.query_timeout_seconds)
        except Exception as exc:
            logger.debug("Audit query for %s failed: %s", category, exc)
        return []

    def match(
        self,
        entries: Sequence[AuditEntry],
        target_id: str,
        hint: RoleHint | None = None,
        *,
        strict: bool = False,
    ) -> AuditEntry | None:
        """Pick the entry that best explains the event, or None.

        Rules, most specific first:

        1. (hint) target matches and a change with the hinted direction holds the role;
        2. (hint) any entry with a change holding the role, whatever its target;
        3. target matches;
        4. the newest entry, if it is within the staleness bound.

        In ``strict`` mode rule 3 also requires freshness and rule 4 is skipped.
        """
        ordered = sorted(entries, key=lambda entry: entry.created_at, reverse=True)
        if not ordered:
            return None

        if hint is not None:
            for entry in ordered:
                if entry.target_id == target_id and entry.mentions_role(hint.role_id, hint.direction):
                    return entry
            for entry in ordered:
                if entry.mentions_role(hint.role_id):
                    return entry

        for entry in ordered:
            if entry.target_id == target_id and (not strict or self.is_fresh(entry)):
                return entry

        if not strict and self.is_fresh(ordered[0]):
            return ordered[0]

        return None

    async def resolve(
        self,
        scope: Any,
        category: AuditCategory,
        target_id: str,
        hint: RoleHint | None = None,
        *,
        strict: bool = False,
    ) -> Actor:
        """Return the actor responsible for an event, or UNKNOWN_ACTOR.

        Never raises for query failures; the worst-case duration is the sum of
        the inter-attempt delays plus one query timeout per attempt.
        """
        attempts = self.settings.max_attempts
        for attempt in range(attempts):
            entries = await self.fetch(scope, category)
            found = self.match(entries, target_id, hint, strict=strict)
            if found is not None:
                logger.debug(
                    "Attributed %s on %s to %s (attempt %d/%d)",
                    category, target_id, found.actor, attempt + 1, attempts,
                )
                return found.actor

            if attempt < attempts - 1:
                await self._sleep(self.delay_for(attempt))

        logger.debug("No %s audit entry matched %s after %d attempts", category, target_id, attempts)
        return UNKNOWN_ACTOR
