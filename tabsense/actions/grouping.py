"""
Domain Grouping — one-shot pass that groups current-window tabs sharing a hostname.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from ..tabs.models import TabQuery, TabRecord, TabSourceError
from ..tabs.source import TabSource
from ..tabs.urls import hostname

logger = logging.getLogger(__name__)


def bucket_by_hostname(tabs: List[TabRecord]) -> Dict[str, List[int]]:
    """Exact-hostname buckets; pinned and URL-less tabs are left out."""
    buckets: Dict[str, List[int]] = {}
    for tab in tabs:
        if tab.is_pinned or not tab.url:
            continue
        host = hostname(tab.url)
        if host is None:
            continue
        buckets.setdefault(host, []).append(tab.id)
    return buckets


async def group_by_domain(source: TabSource) -> Dict[str, int]:
    """Group every hostname with two or more tabs. Returns hostname → group id for successes."""
    tabs = await source.list_tabs(TabQuery.CURRENT_WINDOW)
    buckets = {h: ids for h, ids in bucket_by_hostname(tabs).items() if len(ids) >= 2}

    hosts = list(buckets)
    results = await asyncio.gather(*(_group(source, h, buckets[h]) for h in hosts))
    return {h: gid for h, gid in zip(hosts, results) if gid is not None}


async def _group(source: TabSource, host: str, tab_ids: List[int]) -> Optional[int]:
    try:
        group_id = await source.group_tabs(tab_ids)
        await source.set_group_title(group_id, host)
    except TabSourceError as e:
        logger.warning("Could not group %d tabs for %s: %s", len(tab_ids), host, e)
        return None
    return group_id
