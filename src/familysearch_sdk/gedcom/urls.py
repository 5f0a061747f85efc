"""Rewrite FamilySearch API links into public website links."""
from __future__ import annotations

import re

from ..environment import Environment, detect_web_host

_PERSON_API_PATH = "/platform/tree/persons/"
_PERSON_ID = re.compile(r"persons/([^/?#]+)")
_ARK = re.compile(r"ark:/[^?#\s]+")


def to_web_url(url: str) -> str:
    """Turn ``.../platform/tree/persons/{id}...`` into a tree person page.

    Anything that is not a person API link is returned unchanged.
    """
    if _PERSON_API_PATH not in url:
        return url
    match = _PERSON_ID.search(url)
    if not match:
        return url
    return person_web_url(match.group(1), detect_web_host(url))


def person_web_url(person_id: str, host: str) -> str:
    return f"https://{host}/tree/person/{person_id}"


def source_web_url(url: str, default: Environment = Environment.PRODUCTION) -> str:
    """Canonical ARK link for a source, or the url itself when it has no ARK."""
    match = _ARK.search(url)
    if not match:
        return url
    return f"https://{detect_web_host(url, default)}/{match.group(0)}"


def person_link(
    person_id: str,
    href: str | None,
    persistent: str | None,
    environment: Environment = Environment.PRODUCTION,
) -> str:
    """Canonical website link for a person.

    API links are rewritten, persistent identifiers only lend their host,
    and with neither the link is synthesized from ``environment``.
    """
    if href and _PERSON_API_PATH in href:
        return to_web_url(href)
    candidate = href or persistent
    if candidate:
        return person_web_url(person_id, detect_web_host(candidate, environment))
    return person_web_url(person_id, environment.web_host)
