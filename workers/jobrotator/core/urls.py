from __future__ import annotations

import hashlib
import random
import re
from urllib.parse import urlparse

HR_EMAIL_PREFIXES = ("hr", "recruiting", "careers", "jobs", "talent", "recruitment")
SLUG_ID_DIGEST_LENGTH = 12

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"\s+")
_SLUG_DASH_RE = re.compile(r"-+")


def extract_domain(raw_url: str | None) -> str:
    """Return the bare host of a web address, without ``www.``.

    Addresses are often stored without a scheme ("example.org/about"), so
    one is assumed when missing. Anything that does not yield a host gives
    an empty string.
    """
    if not raw_url or not raw_url.strip():
        return ""
    candidate = raw_url.strip()
    if not candidate.lower().startswith("http"):
        candidate = f"https://{candidate}"
    try:
        host = urlparse(candidate).hostname or ""
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def hr_contact_email(domain: str, *, rng: random.Random | None = None) -> str:
    if not domain:
        return ""
    chooser = rng or random
    return f"{chooser.choice(HR_EMAIL_PREFIXES)}@{domain}"


def careers_link(domain: str) -> str:
    return f"https://{domain}/careers" if domain else ""


def slugify(value: str | None) -> str:
    lowered = (value or "").lower()
    stripped = _SLUG_STRIP_RE.sub("", lowered)
    dashed = _SLUG_SPACE_RE.sub("-", stripped.strip())
    return _SLUG_DASH_RE.sub("-", dashed).strip("-")


def identifier_digest(identifier: str) -> str:
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:SLUG_ID_DIGEST_LENGTH]


def build_slug(title: str | None, company_name: str | None, identifier: str) -> str:
    """Uniqueness key for a generated posting.

    The suffix is a digest of the full entity identifier so that repeated
    titles at different organisations never share a slug.
    """
    if not identifier or not identifier.strip():
        raise ValueError("entity identifier is required to build a slug")
    title_slug = slugify(title) or "untitled"
    company_slug = slugify(company_name) or "unknown-company"
    return f"{title_slug}-at-{company_slug}-{identifier_digest(identifier.strip())}"
