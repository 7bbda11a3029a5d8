import re

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 30

# One DNS label: lowercase alphanumerics, inner hyphens only.
SLUG_PATTERN = re.compile(r"[a-z0-9](?:[a-z0-9-]*[a-z0-9])?")

# Infrastructure labels that never name a tenant on the host. Never add a tenant slug here.
RESERVED_SUBDOMAINS = frozenset(
    {"www", "app", "api", "admin", "static", "assets", "cdn", "support", "help"}
)

# Names refused at registration; may include slugs that exist through seeding.
RESERVED_SLUGS = RESERVED_SUBDOMAINS | frozenset(
    {
        "demo",
        "localhost",
        "mail",
        "smtp",
        "ftp",
        "ns1",
        "ns2",
        "blog",
        "shop",
        "store",
        "dev",
        "staging",
        "test",
    }
)


def matches_slug_grammar(value: str) -> bool:
    return bool(value) and SLUG_PATTERN.fullmatch(value) is not None


def is_valid_tenant_slug(value: str) -> bool:
    """Registration rule: grammar, length bounds and not reserved."""
    if not value:
        return False
    if not SLUG_MIN_LENGTH <= len(value) <= SLUG_MAX_LENGTH:
        return False
    return matches_slug_grammar(value) and value not in RESERVED_SLUGS

