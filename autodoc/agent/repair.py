"""Argument repair for page writes.

Reasoning engines often echo the template values they were shown
(``"[Retrieved pageId]"``, ``"123"``, ``version=1``) instead of the
identifiers an earlier lookup returned. When a real page id is known, those
stand-ins are overwritten before the write executes.

Both functions are pure and idempotent: repairing already-repaired
arguments returns them unchanged.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping

from autodoc.agent.actions import ActionName
from autodoc.agent.state import ActionInvocationRecord, DiscoveredEntities
from autodoc.core.config import Settings


@dataclass(frozen=True)
class PlaceholderSentinels:
    """Exact-match stand-in values, compared after stripping whitespace."""

    page_ids: frozenset[str]
    titles: frozenset[str]
    versions: frozenset[str]

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlaceholderSentinels":
        return cls(
            page_ids=frozenset(settings.placeholder_page_ids),
            titles=frozenset(settings.placeholder_titles),
            versions=frozenset(settings.placeholder_versions),
        )


def is_placeholder(value: Any, sentinels: frozenset[str]) -> bool:
    """True if *value* is missing or one of *sentinels*."""
    if value is None:
        return True
    return str(value).strip() in sentinels


def repair_arguments(
    action_name: str,
    arguments: Mapping[str, Any],
    entities: DiscoveredEntities,
    sentinels: PlaceholderSentinels,
) -> dict[str, Any]:
    """Return a copy of *arguments* with placeholder page identity replaced.

    Only ``update-page`` is repaired, and only when its ``page_id`` is a
    placeholder and a page id was discovered. ``title`` and ``version`` are
    then replaced too, each only if it is itself a placeholder and a real
    value is known.
    """
    repaired = dict(arguments)
    if action_name != ActionName.UPDATE_PAGE.value or not entities.page_id:
        return repaired
    if not is_placeholder(repaired.get("page_id"), sentinels.page_ids):
        return repaired

    repaired["page_id"] = entities.page_id
    if entities.page_title and is_placeholder(repaired.get("title"), sentinels.titles):
        repaired["title"] = entities.page_title
    if entities.page_version is not None and is_placeholder(repaired.get("version"), sentinels.versions):
        repaired["version"] = entities.page_version
    return repaired


def repair_record(
    record: ActionInvocationRecord,
    entities: DiscoveredEntities,
    sentinels: PlaceholderSentinels,
) -> ActionInvocationRecord:
    """Record-level form of :func:`repair_arguments`."""
    arguments = repair_arguments(record.action_name, record.arguments, entities, sentinels)
    if arguments == record.arguments:
        return record
    return dataclasses.replace(record, arguments=arguments)
